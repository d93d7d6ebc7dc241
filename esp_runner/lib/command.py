from __future__ import annotations

import logging
import shlex
import signal
import subprocess
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Sequence

logger = logging.getLogger(__name__)

TERMINATE_GRACE_S = 5.0

CANCEL_SIGNALS = tuple(
    s for s in (getattr(signal, "SIGTERM", None), getattr(signal, "SIGHUP", None)) if s is not None
)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int


class CommandError(RuntimeError):
    def __init__(self, result: CmdResult) -> None:
        super().__init__(f"Command failed ({result.returncode}): {fmt_argv(result.argv)}")
        self.result = result

    @property
    def returncode(self) -> int:
        return self.result.returncode


class Cancelled(BaseException):
    """The runner itself was asked to stop (SIGTERM/SIGHUP) while a child ran."""

    def __init__(self, signum: int) -> None:
        super().__init__(f"received signal {signum}")
        self.signum = signum


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(a)) for a in argv)


def run_cmd(
    argv: Sequence[str],
    *,
    cwd: str | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command to completion with consistent logging.

    - Always logs the command.
    - Output goes straight to the terminal; the environment is inherited.
    - A non-zero exit raises CommandError.
    - dry_run logs but does not execute.

    A missing executable surfaces as FileNotFoundError from subprocess.
    """

    argv_list = [str(a) for a in argv]
    logger.info("CMD %s", fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0)

    p = subprocess.run(argv_list, cwd=cwd)

    result = CmdResult(argv=argv_list, returncode=p.returncode)
    if p.returncode != 0:
        raise CommandError(result)
    return result


@contextmanager
def cancel_on_signals() -> Iterator[None]:
    """Turn SIGTERM/SIGHUP into a Cancelled exception for the enclosed block.

    Handlers can only be installed from the main thread; elsewhere this is a
    no-op. Previous handlers are restored on exit.
    """

    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _raise(signum, frame):
        raise Cancelled(signum)

    previous = {s: signal.signal(s, _raise) for s in CANCEL_SIGNALS}
    try:
        yield
    finally:
        for s, handler in previous.items():
            if handler is not None:
                signal.signal(s, handler)


def run_foreground(
    argv: Sequence[str],
    *,
    cwd: str | None = None,
    grace_s: float = TERMINATE_GRACE_S,
) -> int:
    """Run an interactive child on the inherited terminal and wait for it.

    No timeout. If the wait is interrupted (Ctrl-C, SIGTERM, SIGHUP), the
    child is terminated (then killed after ``grace_s``) before the interrupt
    is re-raised, so it is never left orphaned.
    """

    argv_list = [str(a) for a in argv]
    logger.info("CMD %s", fmt_argv(argv_list))

    with cancel_on_signals():
        proc = subprocess.Popen(argv_list, cwd=cwd)
        try:
            return proc.wait()
        except BaseException:
            logger.warning("Interrupted; terminating pid %s", proc.pid)
            proc.terminate()
            try:
                proc.wait(timeout=grace_s)
            except subprocess.TimeoutExpired:
                logger.warning("pid %s did not exit after %.1fs; killing", proc.pid, grace_s)
                proc.kill()
                proc.wait()
            raise
