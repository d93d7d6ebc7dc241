from __future__ import annotations

from typing import List

from ..config import RunnerConfig


def qemu_argv(cfg: RunnerConfig) -> List[str]:
    """Emulator command line: code flash, vars flash, then the ESP as a FAT disk."""

    fw = cfg.local_firmware
    return [
        cfg.emulator,
        "-machine",
        cfg.machine,
        "-drive",
        f"if=pflash,format=raw,file={fw.code}",
        "-drive",
        f"if=pflash,format=raw,file={fw.vars}",
        "-drive",
        f"format=raw,file=fat:rw:{cfg.esp_path}",
        *cfg.emulator_args,
    ]
