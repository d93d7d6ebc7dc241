from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

import pytest

from esp_runner.config import RunnerConfig
from esp_runner.lib.command import CmdResult

CODE_BYTES = b"\x7fOVMF-CODE" * 64
VARS_BYTES = b"\x00NVRAM-PRISTINE" * 64


@pytest.fixture
def firmware_dir(tmp_path: Path) -> Path:
    d = tmp_path / "ovmf"
    d.mkdir()
    (d / "OVMF_CODE.fd").write_bytes(CODE_BYTES)
    (d / "OVMF_VARS.fd").write_bytes(VARS_BYTES)
    return d


@pytest.fixture
def cfg(tmp_path: Path, firmware_dir: Path) -> RunnerConfig:
    proj = tmp_path / "proj"
    proj.mkdir()
    return RunnerConfig(workdir=str(proj), firmware_dir=str(firmware_dir))


class FakeCargo:
    """Stands in for run_cmd in the build step; writes the artifact cargo would."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.fail_with: int | None = None

    def __call__(self, argv, *, cwd=None, dry_run=False, **kwargs) -> CmdResult:
        argv = list(argv)
        self.calls.append({"argv": argv, "cwd": cwd, "dry_run": dry_run})
        if self.fail_with is not None:
            from esp_runner.lib.command import CommandError

            raise CommandError(CmdResult(argv=argv, returncode=self.fail_with))
        if not dry_run:
            triple = argv[argv.index("--target") + 1]
            target = argv[argv.index("--example") + 1]
            profile = "release" if "--release" in argv else "debug"
            out = Path(cwd) / "target" / triple / profile / "examples" / f"{target}.efi"
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_bytes(f"MZ efi image for {target} #{len(self.calls)}".encode())
        return CmdResult(argv=argv, returncode=0)


class FakeEmulator:
    def __init__(self, returncode: int = 0) -> None:
        self.returncode = returncode
        self.calls: List[List[str]] = []

    def __call__(self, argv, **kwargs) -> int:
        self.calls.append(list(argv))
        return self.returncode


@pytest.fixture
def fake_cargo(monkeypatch) -> FakeCargo:
    fake = FakeCargo()
    monkeypatch.setattr("esp_runner.steps.step_10_build.run_cmd", fake)
    return fake


@pytest.fixture
def fake_emulator(monkeypatch) -> FakeEmulator:
    fake = FakeEmulator()
    monkeypatch.setattr("esp_runner.steps.step_30_launch.run_foreground", fake)
    return fake


@pytest.fixture(autouse=True)
def _reset_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for attr in ("_esp_runner_configured", "_esp_runner_log_path"):
        if hasattr(root, attr):
            delattr(root, attr)
