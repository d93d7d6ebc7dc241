from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .config import RunnerConfig
from .errors import GuestExit, WorkflowError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepCtx:
    cfg: RunnerConfig
    target: str
    dry_run: bool = False


class Step(Protocol):
    """A single blocking step of the build/stage/launch sequence."""

    step_id: str

    def run(self, ctx: StepCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    failed_step: Optional[str] = None
    error: Optional[WorkflowError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def guest(self) -> Optional[GuestExit]:
        return self.state.get("guest_exit")

    @property
    def exit_code(self) -> int:
        """First failing step's code, else the guest's, else 0."""

        if self.error is not None:
            return self.error.exit_code
        if self.guest is not None:
            return self.guest.exit_status
        return 0


def run_pipeline(
    *,
    ctx: StepCtx,
    steps: Sequence[Step],
    state: Optional[Dict[str, Any]] = None,
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps in order, stopping at the first WorkflowError.

    Anything that is not a WorkflowError is a bug and propagates as-is.
    """

    state = {} if state is None else state
    ran: List[str] = []

    for step in steps:
        logger.info("[%s] Running step %s", ctx.target, step.step_id)
        try:
            state = step.run(ctx, state)
        except WorkflowError as e:
            e.step = step.step_id
            logger.error("[%s] Step %s failed: %s", ctx.target, step.step_id, e)
            return PipelineResult(state=state, ran_steps=ran, failed_step=step.step_id, error=e)
        ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break

    return PipelineResult(state=state, ran_steps=ran)
