from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG_PATH, RunnerConfig, load_config
from .errors import UsageError, WorkflowError
from .lib.command import Cancelled
from .logging_utils import configure_logging
from .pipeline import PipelineResult, StepCtx, run_pipeline
from .steps import BuildStep, LaunchStep, StageEspStep

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


def build_steps():
    return [
        BuildStep(),
        StageEspStep(),
        LaunchStep(),
    ]


def validate_target(target: Optional[str]) -> str:
    """A target is a cargo example name: non-empty, no path components."""

    if target is None or not target.strip():
        raise UsageError("target name must not be empty")
    if target != target.strip():
        raise UsageError(f"target name has surrounding whitespace: {target!r}")
    if target.startswith("-") or "/" in target or "\\" in target or target in {".", ".."}:
        raise UsageError(f"invalid target name: {target!r}")
    return target


def run(
    *,
    cfg: RunnerConfig,
    target: str,
    dry_run: bool = False,
    launch: bool = True,
) -> PipelineResult:
    """Build, stage and (unless ``launch`` is False) boot ``target``."""

    ctx = StepCtx(cfg=cfg, target=target, dry_run=dry_run)
    logger.info("=== Target: %s (%s/%s) ===", target, cfg.triple, cfg.profile)

    result = run_pipeline(
        ctx=ctx,
        steps=build_steps(),
        stop_after=None if launch else StageEspStep.step_id,
    )

    if result.error is not None:
        logger.error("Aborted at %s (exit %s)", result.failed_step, result.exit_code)
    elif result.guest is not None and not result.guest.ok:
        logger.info("Guest exited with %s", result.guest.returncode)
    return result


def _split_passthrough(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    argv = list(argv)
    if "--" in argv:
        i = argv.index("--")
        return argv[:i], argv[i + 1 :]
    return argv, []


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="esp-runner",
        description="Build a UEFI example, stage it as the ESP boot loader and boot it in QEMU.",
        epilog="Arguments after -- are appended to the emulator command line.",
    )
    p.add_argument("target", help="cargo example to build and boot (e.g. hello)")
    p.add_argument("-c", "--config", default=None, help=f"YAML config (default: ./{DEFAULT_CONFIG_PATH} if present)")
    p.add_argument("--workdir", default=None, help="Project directory (cargo root, ESP and firmware copies)")
    prof = p.add_mutually_exclusive_group()
    prof.add_argument("--profile", default=None, help="cargo profile (debug|release|custom)")
    prof.add_argument("--release", action="store_true", help="Shortcut for --profile release")
    p.add_argument("--firmware-dir", default=None, help="Directory holding the reference OVMF files")
    p.add_argument("--emulator", default=None, help="Emulator binary")
    p.add_argument("--log", default=None, help="Also write the log to this file")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    p.add_argument("--dry-run", action="store_true", help="Log every action without performing it")
    p.add_argument("--no-launch", action="store_true", help="Stop after staging the ESP")
    return p


def config_from_args(args: argparse.Namespace, emulator_args: Sequence[str] = ()) -> RunnerConfig:
    if args.config:
        cfg = load_config(args.config)
    else:
        cfg = load_config(DEFAULT_CONFIG_PATH, required=False)

    return cfg.with_overrides(
        workdir=args.workdir,
        profile="release" if args.release else args.profile,
        firmware_dir=args.firmware_dir,
        emulator=args.emulator,
        emulator_args=(tuple(cfg.emulator_args) + tuple(emulator_args)) if emulator_args else None,
    )


def main(argv: Optional[list[str]] = None) -> int:
    own_argv, emulator_args = _split_passthrough(sys.argv[1:] if argv is None else argv)
    args = build_parser().parse_args(own_argv)

    # Nothing is touched until the invocation is known to be valid.
    try:
        target = validate_target(args.target)
        cfg = config_from_args(args, emulator_args)
    except WorkflowError as e:
        sys.stderr.write(f"esp-runner: error: {e}\n")
        return e.exit_code

    configure_logging(log_path=args.log, level=logging.DEBUG if args.verbose else logging.INFO)
    logger.debug("Config: %s (cwd=%s)", cfg, Path.cwd())

    try:
        result = run(
            cfg=cfg,
            target=target,
            dry_run=bool(args.dry_run),
            launch=not args.no_launch,
        )
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED
    except Cancelled as e:
        logger.warning("Cancelled by signal %s", e.signum)
        return 128 + e.signum
    return result.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
