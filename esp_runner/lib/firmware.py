from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from .fs import replace_file, same_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FirmwarePair:
    """OVMF code store (ROM) and variable store (NVRAM), in flash order."""

    code: Path
    vars: Path

    def missing(self) -> list[Path]:
        return [p for p in (self.code, self.vars) if not p.is_file()]

    def collisions(self, other: "FirmwarePair") -> list[Path]:
        """Paths of this pair that are the very same file as their counterpart in ``other``."""

        return [a for a, b in ((self.code, other.code), (self.vars, other.vars)) if same_file(a, b)]


def refresh_firmware(reference: FirmwarePair, local: FirmwarePair, *, dry_run: bool = False) -> None:
    """Reset the working firmware copies to pristine reference copies.

    Both references are checked before either local copy is touched, so a
    missing reference never leaves a half-refreshed pair behind.
    """

    missing = [] if dry_run else reference.missing()
    if missing:
        raise FileNotFoundError(", ".join(str(p) for p in missing))

    # Copying a reference onto itself would delete it first.
    clashing = reference.collisions(local)
    if clashing:
        raise shutil.SameFileError(
            "Reference firmware is also the working copy: " + ", ".join(str(p) for p in clashing)
        )

    replace_file(reference.code, local.code, dry_run=dry_run)
    replace_file(reference.vars, local.vars, dry_run=dry_run)
    logger.info("Firmware refreshed from %s", str(reference.code.parent))
