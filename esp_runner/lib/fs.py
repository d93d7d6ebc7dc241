from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def remove_if_present(path: Path, *, dry_run: bool = False) -> bool:
    """Delete a file if it exists. Returns True when something was removed.

    Only "does not exist" is tolerated; permission problems or a directory
    in the file's place still raise.
    """

    if dry_run:
        if path.exists():
            logger.info("Would remove %s", str(path))
        return False

    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.debug("Removed %s", str(path))
    return True


def same_file(a: Path, b: Path) -> bool:
    """True when both paths name the same file (symlinks and hard links included)."""

    if a.exists() and b.exists():
        return a.samefile(b)
    return a.resolve() == b.resolve()


def replace_file(src: Path, dst: Path, *, dry_run: bool = False) -> None:
    """Put a fresh copy of ``src`` at ``dst``, deleting whatever was there."""

    if dry_run:
        logger.info("Would copy %s -> %s", str(src), str(dst))
        return

    if not src.is_file():
        raise FileNotFoundError(str(src))
    if same_file(src, dst):
        raise shutil.SameFileError(f"{src} and {dst} are the same file")

    dst.parent.mkdir(parents=True, exist_ok=True)
    remove_if_present(dst)
    # Content only: a read-only reference must still yield a writable copy.
    shutil.copyfile(src, dst)
    logger.info("Copied %s -> %s", str(src), str(dst))
