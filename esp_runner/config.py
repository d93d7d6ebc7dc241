from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ConfigError
from .lib.firmware import FirmwarePair

DEFAULT_CONFIG_PATH = "esp-runner.yaml"


@dataclass(frozen=True)
class RunnerConfig:
    """Tools and path conventions for one build/stage/launch run.

    Relative paths resolve against ``workdir``; absolute ones are used as-is.
    """

    workdir: str = "."

    cargo: str = "cargo"
    build_root: str = "target"
    triple: str = "x86_64-unknown-uefi"
    profile: str = "debug"
    boot_extension: str = "efi"

    esp_dir: str = "esp"
    boot_loader_name: str = "BOOTX64.EFI"

    firmware_dir: str = "/usr/share/ovmf/x64"
    firmware_code: str = "OVMF_CODE.fd"
    firmware_vars: str = "OVMF_VARS.fd"

    emulator: str = "qemu-system-x86_64"
    machine: str = "q35"
    emulator_args: Tuple[str, ...] = ()

    def _resolve(self, p: str) -> Path:
        path = Path(p).expanduser()
        if path.is_absolute():
            return path
        return Path(self.workdir) / path

    @property
    def work_path(self) -> Path:
        return Path(self.workdir)

    @property
    def esp_path(self) -> Path:
        return self._resolve(self.esp_dir)

    @property
    def boot_slot_path(self) -> Path:
        return self.esp_path / "EFI" / "BOOT" / self.boot_loader_name

    def artifact_path(self, target: str) -> Path:
        return (
            self._resolve(self.build_root)
            / self.triple
            / self.profile
            / "examples"
            / f"{target}.{self.boot_extension}"
        )

    @property
    def reference_firmware(self) -> FirmwarePair:
        d = self._resolve(self.firmware_dir)
        return FirmwarePair(code=d / self.firmware_code, vars=d / self.firmware_vars)

    @property
    def local_firmware(self) -> FirmwarePair:
        return FirmwarePair(
            code=self.work_path / self.firmware_code,
            vars=self.work_path / self.firmware_vars,
        )

    def with_overrides(self, **overrides: Any) -> "RunnerConfig":
        """Return a copy with every non-None override applied."""

        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"Unknown config field(s): {', '.join(sorted(unknown))}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "emulator_args" in changes:
            changes["emulator_args"] = tuple(str(a) for a in changes["emulator_args"])
        return replace(self, **changes)


# YAML section -> {yaml key: RunnerConfig field}
_SECTIONS: Dict[str, Dict[str, str]] = {
    "build": {
        "cargo": "cargo",
        "build_root": "build_root",
        "triple": "triple",
        "profile": "profile",
        "boot_extension": "boot_extension",
    },
    "esp": {
        "dir": "esp_dir",
        "boot_loader_name": "boot_loader_name",
    },
    "firmware": {
        "dir": "firmware_dir",
        "code": "firmware_code",
        "vars": "firmware_vars",
    },
    "emulator": {
        "binary": "emulator",
        "machine": "machine",
        "args": "emulator_args",
    },
}


def config_from_mapping(raw: Mapping[str, Any]) -> RunnerConfig:
    values: Dict[str, Any] = {}
    if raw.get("workdir") is not None:
        values["workdir"] = str(raw["workdir"])

    for section, keys in _SECTIONS.items():
        sub = raw.get(section) or {}
        if not isinstance(sub, Mapping):
            raise ConfigError(f"config section '{section}' must be a mapping")
        for key, field_name in keys.items():
            if sub.get(key) is None:
                continue
            if field_name == "emulator_args":
                args = sub[key]
                if isinstance(args, str) or not isinstance(args, (list, tuple)):
                    raise ConfigError("emulator.args must be a list of strings")
                values[field_name] = tuple(str(a) for a in args)
            else:
                values[field_name] = str(sub[key])

    return RunnerConfig(**values)


def load_config(path: Optional[str], *, required: bool = True) -> RunnerConfig:
    """Load a YAML config file.

    ``required=False`` returns the defaults when the file is absent, which is
    how the implicit ``esp-runner.yaml`` in the working directory is read.
    """

    if path is None:
        return RunnerConfig()

    p = Path(path)
    if not p.exists():
        if required:
            raise ConfigError(f"Config file not found: {path}")
        return RunnerConfig()

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ConfigError("config must be YAML (.yaml/.yml)")

    try:
        import yaml  # type: ignore
    except ImportError as e:
        raise ConfigError("PyYAML is required to read the config file") from e

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping/object")

    return config_from_mapping(raw)
