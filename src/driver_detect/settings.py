"""
driver-detect settings.

Settings come from ~/.config/driver-detect/settings.json (if present),
then environment variables:

    DRIVER_DETECT_BACKEND      udev | sysfs
    DRIVER_DETECT_SYSFS_ROOT   PCI device directory for the sysfs backend
    DRIVER_DETECT_PROVIDERS    provider table JSON file
    DRIVER_DETECT_LOG_LEVEL    debug | info | warning | error
    DRIVER_DETECT_LOG_FILE     also log to this file (rotated)
    DRIVER_DETECT_JSON_LOGS    1 | 0, write the log file as JSON lines
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from common.exceptions import InvalidConfigError
from common.logging_config import parse_level

logger = logging.getLogger(__name__)

BACKENDS = ("udev", "sysfs")

ENV_VARS = {
    "backend": "DRIVER_DETECT_BACKEND",
    "sysfs_root": "DRIVER_DETECT_SYSFS_ROOT",
    "providers_path": "DRIVER_DETECT_PROVIDERS",
    "log_level": "DRIVER_DETECT_LOG_LEVEL",
    "log_file": "DRIVER_DETECT_LOG_FILE",
    "json_logs": "DRIVER_DETECT_JSON_LOGS",
}

PATH_KEYS = ("sysfs_root", "providers_path", "log_file")
STRING_KEYS = ("backend", "log_level")
FLAG_KEYS = ("json_logs",)

_FLAG_WORDS = {
    "1": True, "true": True, "yes": True, "on": True,
    "0": False, "false": False, "no": False, "off": False,
}


def default_settings_path() -> Path:
    return Path.home() / ".config/driver-detect/settings.json"


def _coerce(key: str, value: Any) -> Any:
    """Check a raw setting value and convert it to the field's type."""
    if key in PATH_KEYS:
        if not isinstance(value, (str, os.PathLike)):
            raise InvalidConfigError(key, value, "expected a path")
        return Path(value).expanduser()
    if key in STRING_KEYS:
        if not isinstance(value, str):
            raise InvalidConfigError(key, value, "expected a string")
        return value
    if key in FLAG_KEYS:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _FLAG_WORDS:
            return _FLAG_WORDS[value.strip().lower()]
        raise InvalidConfigError(key, value, "expected true or false")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime configuration."""
    backend: str = "sysfs"
    sysfs_root: Path = Path("/sys/bus/pci/devices")
    providers_path: Optional[Path] = None
    log_level: str = "warning"
    log_file: Optional[Path] = None
    json_logs: bool = False

    def validate(self) -> "Settings":
        """Raise InvalidConfigError if any value is unusable."""
        if self.backend not in BACKENDS:
            raise InvalidConfigError("backend", self.backend,
                                     f"must be one of {', '.join(BACKENDS)}")
        try:
            parse_level(self.log_level)
        except ValueError as e:
            raise InvalidConfigError("log_level", self.log_level, str(e))
        return self

    def merged(self, values: Mapping[str, Any]) -> "Settings":
        """
        Return a copy with the known, non-empty keys of values applied.

        Raises:
            InvalidConfigError: if a value has the wrong type.
        """
        known = {f.name for f in fields(self)}
        changes: Dict[str, Any] = {}

        for key, value in values.items():
            if key not in known:
                logger.warning(f"Ignoring unknown setting: {key}")
                continue
            if value is None or value == "":
                continue
            changes[key] = _coerce(key, value)

        return replace(self, **changes)


def load_settings(path: Optional[Path] = None,
                  environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        path: Settings JSON file (default: ~/.config/driver-detect/settings.json)
        environ: Environment mapping (default: os.environ)

    Raises:
        InvalidConfigError: on unreadable files or invalid values.
    """
    environ = os.environ if environ is None else environ
    path = Path(path) if path else default_settings_path()
    settings = Settings()

    if path.exists():
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise InvalidConfigError("settings_file", str(path), f"unreadable: {e}")
        if not isinstance(data, dict):
            raise InvalidConfigError("settings_file", str(path), "expected a JSON object")
        settings = settings.merged(data)
        logger.debug(f"Loaded settings from {path}")

    overrides = {key: environ.get(var) for key, var in ENV_VARS.items()}
    return settings.merged(overrides).validate()
