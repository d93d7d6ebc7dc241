from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..config import RunnerConfig
from ..errors import BuildError
from ..lib.command import CommandError, run_cmd
from ..pipeline import StepCtx

logger = logging.getLogger(__name__)

# Shell convention for "command not found".
EXIT_TOOL_MISSING = 127


def cargo_build_argv(cfg: RunnerConfig, target: str) -> List[str]:
    argv = [cfg.cargo, "build", "--target", cfg.triple, "--example", target]
    if cfg.profile == "release":
        argv.append("--release")
    elif cfg.profile != "debug":
        argv += ["--profile", cfg.profile]
    return argv


class BuildStep:
    step_id = "10_build"

    def run(self, ctx: StepCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = ctx.cfg
        artifact = cfg.artifact_path(ctx.target)

        try:
            run_cmd(
                cargo_build_argv(cfg, ctx.target),
                cwd=str(cfg.work_path),
                dry_run=ctx.dry_run,
            )
        except CommandError as e:
            raise BuildError(
                f"Build of '{ctx.target}' failed (exit {e.returncode})", exit_code=e.returncode
            ) from e
        except OSError as e:
            raise BuildError(f"Cannot run {cfg.cargo}: {e}", exit_code=EXIT_TOOL_MISSING) from e

        if not ctx.dry_run and not artifact.is_file():
            raise BuildError(f"Build succeeded but artifact is missing: {artifact}")

        state["artifact"] = str(artifact)
        logger.info("Built %s", str(artifact))
        return state
