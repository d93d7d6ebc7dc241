from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class WorkflowError(Exception):
    """A fatal condition that aborts the build/stage/launch sequence."""

    exit_code: int = 1

    def __init__(self, message: str, *, exit_code: Optional[int] = None) -> None:
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code
        self.step: Optional[str] = None


class UsageError(WorkflowError):
    exit_code = 2


class ConfigError(WorkflowError):
    exit_code = 2


class BuildError(WorkflowError):
    pass


class StagingError(WorkflowError):
    pass


class LaunchError(WorkflowError):
    pass


@dataclass(frozen=True)
class GuestExit:
    """Exit status of the emulator session.

    Not an error: a non-zero value only means the booted application (or
    QEMU itself) exited non-zero, and is relayed as the run's exit code.
    """

    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def exit_status(self) -> int:
        """Shell-style status: death by signal N (returncode -N) becomes 128 + N."""

        if self.returncode < 0:
            return 128 - self.returncode
        return self.returncode
