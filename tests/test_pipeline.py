from __future__ import annotations

import pytest

from esp_runner.config import RunnerConfig
from esp_runner.errors import BuildError, GuestExit, LaunchError, StagingError
from esp_runner.pipeline import StepCtx, run_pipeline


class RecordingStep:
    def __init__(self, step_id, log, error=None, guest=None):
        self.step_id = step_id
        self.log = log
        self.error = error
        self.guest = guest

    def run(self, ctx, state):
        self.log.append(self.step_id)
        if self.error is not None:
            raise self.error
        if self.guest is not None:
            state["guest_exit"] = self.guest
        state.setdefault("seen", []).append(self.step_id)
        return state


@pytest.fixture
def ctx():
    return StepCtx(cfg=RunnerConfig(), target="hello")


def test_runs_steps_in_order(ctx):
    log = []
    steps = [RecordingStep("a", log), RecordingStep("b", log), RecordingStep("c", log, guest=GuestExit(0))]
    result = run_pipeline(ctx=ctx, steps=steps)
    assert log == ["a", "b", "c"]
    assert result.ran_steps == ["a", "b", "c"]
    assert result.state["seen"] == ["a", "b", "c"]
    assert result.ok
    assert result.exit_code == 0


def test_stops_at_first_error(ctx):
    log = []
    err = BuildError("cargo exploded", exit_code=101)
    steps = [RecordingStep("build", log, error=err), RecordingStep("stage", log), RecordingStep("launch", log)]
    result = run_pipeline(ctx=ctx, steps=steps)
    assert log == ["build"]
    assert result.ran_steps == []
    assert result.failed_step == "build"
    assert result.error is err
    assert err.step == "build"
    assert not result.ok
    assert result.exit_code == 101


def test_error_in_middle_step(ctx):
    log = []
    steps = [
        RecordingStep("build", log),
        RecordingStep("stage", log, error=StagingError("no firmware")),
        RecordingStep("launch", log),
    ]
    result = run_pipeline(ctx=ctx, steps=steps)
    assert log == ["build", "stage"]
    assert result.ran_steps == ["build"]
    assert result.exit_code == 1


def test_guest_exit_is_a_successful_run(ctx):
    log = []
    result = run_pipeline(ctx=ctx, steps=[RecordingStep("launch", log, guest=GuestExit(3))])
    assert result.ok
    assert result.error is None
    assert result.guest == GuestExit(3)
    assert result.exit_code == 3


def test_launch_error_code(ctx):
    result = run_pipeline(ctx=ctx, steps=[RecordingStep("launch", [], error=LaunchError("gone", exit_code=127))])
    assert result.exit_code == 127


def test_stop_after(ctx):
    log = []
    steps = [RecordingStep("build", log), RecordingStep("stage", log), RecordingStep("launch", log)]
    result = run_pipeline(ctx=ctx, steps=steps, stop_after="stage")
    assert log == ["build", "stage"]
    assert result.guest is None
    assert result.exit_code == 0


def test_non_workflow_errors_propagate(ctx):
    steps = [RecordingStep("build", [], error=ZeroDivisionError("bug"))]
    with pytest.raises(ZeroDivisionError):
        run_pipeline(ctx=ctx, steps=steps)


@pytest.mark.parametrize("rc, status", [(0, 0), (2, 2), (-15, 143), (-9, 137)])
def test_guest_exit_status(rc, status):
    assert GuestExit(rc).exit_status == status


def test_guest_killed_by_signal_exit_code(ctx):
    result = run_pipeline(ctx=ctx, steps=[RecordingStep("launch", [], guest=GuestExit(-15))])
    assert result.ok
    assert result.guest.returncode == -15
    assert result.exit_code == 143
