"""Persistent settings for stack signature logging.

Stores settings as a JSON file inside a config directory.  Nothing is
written until a setting changes; a missing file means all defaults.

Typical location::

    ~/.config/stackhash/stackhash.json

Usage::

    from stackhash.core.config import StackHashConfig

    cfg = StackHashConfig(config_dir)
    cfg.default_value        # rendered when a record has no exception
    cfg.max_chain_depth = 64 # persists immediately
    cfg.as_dict()
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from stackhash.core.defaults import (
    CONFIG_FILENAME,
    DEFAULT_LOG_FORMAT,
    DEFAULT_MAX_CHAIN_DEPTH,
    DEFAULT_STACK_HASH_FALLBACK,
)

logger = logging.getLogger(__name__)

_KNOWN_KEYS = ("default_value", "max_chain_depth", "log_format")


def _check_max_chain_depth(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"max_chain_depth must be an integer, got {value!r}")
    if value < 1:
        raise ValueError(f"max_chain_depth must be >= 1, got {value}")
    return value


def _check_log_format(value: Any) -> str:
    value = str(value)
    if not value.strip():
        raise ValueError("log_format must not be empty")
    return value


class StackHashConfig:
    """Read/write access to ``stackhash.json`` in a config directory.

    All mutations are validated and persisted immediately.  The file is
    plain JSON so it can be hand-edited; unknown keys are kept as-is.
    """

    def __init__(self, config_dir: Path | str) -> None:
        self._path = Path(config_dir) / CONFIG_FILENAME
        self._data: dict[str, Any] = self._load()

    @classmethod
    def from_path(cls, config_dir: Path | str) -> StackHashConfig:
        return cls(config_dir)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if self._path.exists():
            try:
                data = json.loads(self._path.read_text("utf-8"))
            except (json.JSONDecodeError, OSError):
                logger.warning("Corrupt config at %s, using defaults", self._path)
                return {}
            if isinstance(data, dict):
                return data
            logger.warning("Config at %s is not a JSON object, using defaults", self._path)
        return {}

    def _persist(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._data, indent=2) + "\n", "utf-8")

    # -- default_value (fallback for records without an exception) ------------

    @property
    def default_value(self) -> str:
        return str(self._data.get("default_value", DEFAULT_STACK_HASH_FALLBACK))

    @default_value.setter
    def default_value(self, value: str) -> None:
        self._data["default_value"] = str(value)
        self._persist()

    # -- max_chain_depth ------------------------------------------------------

    @property
    def max_chain_depth(self) -> int:
        value = self._data.get("max_chain_depth", DEFAULT_MAX_CHAIN_DEPTH)
        try:
            return _check_max_chain_depth(value)
        except ValueError:
            logger.warning("Invalid max_chain_depth %r in %s, using default", value, self._path)
            return DEFAULT_MAX_CHAIN_DEPTH

    @max_chain_depth.setter
    def max_chain_depth(self, value: int) -> None:
        self._data["max_chain_depth"] = _check_max_chain_depth(value)
        self._persist()

    # -- log_format -----------------------------------------------------------

    @property
    def log_format(self) -> str:
        return str(self._data.get("log_format", DEFAULT_LOG_FORMAT))

    @log_format.setter
    def log_format(self, value: str) -> None:
        self._data["log_format"] = _check_log_format(value)
        self._persist()

    # -- generic helpers -------------------------------------------------------

    def as_dict(self) -> dict[str, Any]:
        return {
            "default_value": self.default_value,
            "max_chain_depth": self.max_chain_depth,
            "log_format": self.log_format,
            **{k: v for k, v in self._data.items() if k not in _KNOWN_KEYS},
        }

    def update(self, patch: dict[str, Any]) -> dict[str, Any]:
        """Validate and merge *patch* into the config, then persist.  Returns the full config.

        Nothing is written if any value in *patch* is invalid.
        """
        staged = dict(self._data)
        for key, val in patch.items():
            if key == "max_chain_depth":
                staged[key] = _check_max_chain_depth(val)
            elif key == "log_format":
                staged[key] = _check_log_format(val)
            elif key == "default_value":
                staged[key] = str(val)
            else:
                staged[key] = val
        self._data = staged
        self._persist()
        return self.as_dict()
