"""Engine configuration: YAML files, dotted overrides and typed settings.

A config file looks like::

    lib_path: ~/ale/build/libale_c.so   # optional, else $ALE_C_LIB
    roms_dir: ~/roms                    # optional, else $ALE_ROMS_DIR
    logger_mode: error                  # info | warning | error
    settings:
      random_seed: 123
      repeat_action_probability: 0.0
      color_averaging: false

``settings`` are passed verbatim to the engine's typed setters; they take
effect on the next ROM load.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional, Union

import yaml

from .native import LoggerMode, NativeEngine

SettingValue = Union[str, int, bool, float]


@dataclass(slots=True)
class EngineConfig:
    lib_path: Optional[str] = None
    roms_dir: Optional[str] = None
    logger_mode: Optional[LoggerMode] = None
    settings: Dict[str, SettingValue] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EngineConfig":
        unknown = set(data) - {"lib_path", "roms_dir", "logger_mode", "settings"}
        if unknown:
            raise ValueError(f"Unknown engine config keys: {sorted(unknown)}")
        settings = data.get("settings") or {}
        if not isinstance(settings, Mapping):
            raise TypeError(f"'settings' must be a mapping, received {type(settings)!r}")
        for key, value in settings.items():
            _check_setting_type(str(key), value)
        lib_path = data.get("lib_path")
        roms_dir = data.get("roms_dir")
        return cls(
            lib_path=str(lib_path) if lib_path else None,
            roms_dir=str(roms_dir) if roms_dir else None,
            logger_mode=parse_logger_mode(data.get("logger_mode")),
            settings={str(k): v for k, v in settings.items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lib_path": self.lib_path,
            "roms_dir": self.roms_dir,
            "logger_mode": None if self.logger_mode is None else self.logger_mode.name.lower(),
            "settings": dict(self.settings),
        }


def parse_logger_mode(value: Any) -> Optional[LoggerMode]:
    if value is None:
        return None
    if isinstance(value, LoggerMode):
        return value
    if isinstance(value, str):
        try:
            return LoggerMode[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Invalid logger_mode {value!r}, expected info/warning/error") from None
    return LoggerMode(int(value))


def _check_setting_type(key: str, value: Any) -> None:
    if not isinstance(value, (str, int, bool, float)):
        raise TypeError(f"Setting {key!r} has unsupported type {type(value).__name__}")


def apply_setting(native: NativeEngine, handle: int, key: str, value: SettingValue) -> None:
    """Dispatch to the engine setter matching the Python type of ``value``."""

    # bool first: bool is a subclass of int.
    if isinstance(value, bool):
        native.set_bool(handle, key, value)
    elif isinstance(value, int):
        native.set_int(handle, key, value)
    elif isinstance(value, float):
        native.set_float(handle, key, value)
    elif isinstance(value, str):
        native.set_string(handle, key, value)
    else:
        raise TypeError(f"Setting {key!r} has unsupported type {type(value).__name__}")


def _merge_dicts(base: MutableMapping[str, Any], overlay: Mapping[str, Any]) -> MutableMapping[str, Any]:
    for key, value in overlay.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), MutableMapping):
            _merge_dicts(base[key], value)  # type: ignore[index]
        else:
            base[key] = copy.deepcopy(value)
    return base


def load_yaml(path: str | Path) -> Dict[str, Any]:
    with Path(path).open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise TypeError(f"Configuration root must be a mapping, received {type(data)!r}")
    return data


def apply_dot_overrides(cfg: MutableMapping[str, Any], overrides: str | None) -> None:
    if not overrides:
        return
    for item in overrides.split(","):
        if not item:
            continue
        if "=" not in item:
            raise ValueError(f"Invalid override '{item}', expected key=value")
        key, raw_value = item.split("=", 1)
        target = cfg
        parts = key.strip().split(".")
        for part in parts[:-1]:
            if part not in target or not isinstance(target[part], MutableMapping):
                target[part] = {}
            target = target[part]  # type: ignore[assignment]
        target[parts[-1]] = _parse_override_value(raw_value.strip())


def _parse_override_value(token: str) -> Any:
    lowered = token.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    try:
        if token.startswith("0x"):
            return int(token, 16)
        if "." in token or "e" in lowered:
            return float(token)
        return int(token)
    except ValueError:
        return token


def load_engine_config(*paths: str | Path, overrides: str | None = None) -> EngineConfig:
    """Merge one or more YAML files (later wins), then dotted overrides."""

    cfg: Dict[str, Any] = {}
    for path in paths:
        if path is None:
            continue
        _merge_dicts(cfg, load_yaml(path))
    apply_dot_overrides(cfg, overrides)
    return EngineConfig.from_mapping(cfg)


__all__ = [
    "EngineConfig",
    "SettingValue",
    "parse_logger_mode",
    "apply_setting",
    "load_yaml",
    "apply_dot_overrides",
    "load_engine_config",
]
