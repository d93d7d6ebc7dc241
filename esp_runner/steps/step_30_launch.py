from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import GuestExit, LaunchError
from ..lib.command import fmt_argv, run_foreground
from ..lib.qemu import qemu_argv
from ..pipeline import StepCtx

logger = logging.getLogger(__name__)

EXIT_EMULATOR_MISSING = 127


class LaunchStep:
    step_id = "30_launch"

    def run(self, ctx: StepCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        argv = qemu_argv(ctx.cfg)
        state["emulator_argv"] = argv

        if ctx.dry_run:
            logger.info("Would launch: %s", fmt_argv(argv))
            state["guest_exit"] = GuestExit(returncode=0)
            return state

        try:
            rc = run_foreground(argv)
        except FileNotFoundError as e:
            raise LaunchError(
                f"Emulator not found: {ctx.cfg.emulator}", exit_code=EXIT_EMULATOR_MISSING
            ) from e
        except OSError as e:
            raise LaunchError(f"Cannot start {ctx.cfg.emulator}: {e}") from e

        state["guest_exit"] = GuestExit(returncode=rc)
        logger.info("Emulator exited with %s", rc)
        return state
