from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from ..errors import StagingError
from ..lib.firmware import refresh_firmware
from ..lib.fs import replace_file, same_file
from ..pipeline import StepCtx

logger = logging.getLogger(__name__)


class StageEspStep:
    step_id = "20_stage_esp"

    def run(self, ctx: StepCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = ctx.cfg
        artifact = Path(state.get("artifact") or cfg.artifact_path(ctx.target))
        slot = cfg.boot_slot_path
        reference = cfg.reference_firmware
        local = cfg.local_firmware

        # Check every input before the first mutation.
        if not ctx.dry_run:
            if not artifact.is_file():
                raise StagingError(f"Built artifact not found: {artifact}")
            missing = reference.missing()
            if missing:
                raise StagingError(
                    "Reference firmware missing: " + ", ".join(str(p) for p in missing)
                )
            if same_file(artifact, slot):
                raise StagingError(f"Boot slot {slot} is the built artifact itself")
            clashing = reference.collisions(local)
            if clashing:
                raise StagingError(
                    "Reference firmware would be overwritten by its working copy: "
                    + ", ".join(str(p) for p in clashing)
                )

        try:
            replace_file(artifact, slot, dry_run=ctx.dry_run)
            refresh_firmware(reference, local, dry_run=ctx.dry_run)
        except OSError as e:
            raise StagingError(f"Staging failed: {e}") from e

        state["boot_slot"] = str(slot)
        state["firmware"] = {"code": str(local.code), "vars": str(local.vars)}
        logger.info("Staged %s as %s", artifact.name, str(slot))
        return state
