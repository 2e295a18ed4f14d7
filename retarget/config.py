"""
Configuration helpers for the retarget engine.

The config loader prefers deterministic defaults, then merges user provided JSON
configuration files and environment overrides prefixed with ``RETARGET_``.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from .core.difficulty import HIGHEST_TARGET_BITS, DifficultyError, compact_to_target


class ConfigError(Exception):
    """Raised when configuration validation fails."""


def _expand_path(value: str) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(value))).resolve()


@dataclass(slots=True)
class ConsensusConfig:
    window_size: int = 17  # blocks
    desired_block_time: int = 180_000  # milliseconds
    future_time_limit: int = 540_000  # milliseconds
    max_target_bits: int = HIGHEST_TARGET_BITS

    @property
    def max_target(self) -> int:
        return compact_to_target(self.max_target_bits)

    @property
    def max_solve_time(self) -> int:
        return 6 * self.desired_block_time

    def validate(self) -> None:
        if self.window_size < 1:
            raise ConfigError("window_size must be >= 1")
        if self.desired_block_time <= 0:
            raise ConfigError("desired_block_time must be > 0")
        if self.future_time_limit < 0:
            raise ConfigError("future_time_limit must be >= 0")
        try:
            max_target = self.max_target
        except DifficultyError as exc:
            raise ConfigError(f"Invalid max_target_bits {self.max_target_bits:#x}") from exc
        if max_target <= 0:
            raise ConfigError("max_target_bits must decode to a positive target")


@dataclass(slots=True)
class AppConfig:
    consensus: ConsensusConfig = field(default_factory=ConsensusConfig)
    log_file: Path | None = None
    log_level: str = "info"

    def validate(self) -> None:
        self.consensus.validate()
        if self.log_file is not None and not isinstance(self.log_file, Path):
            raise ConfigError("log_file must be a Path")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.log_file is not None:
            data["log_file"] = str(self.log_file)
        return data


def load_config(path: Path | None = None, *, overrides: dict[str, Any] | None = None) -> AppConfig:
    """Load configuration from disk and environment overrides."""

    def _merge(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
        for key, value in extra.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                base[key] = _merge(dict(base[key]), value)
            else:
                base[key] = value
        return base

    env_path = os.getenv("RETARGET_CONFIG")
    cfg_path = path or (_expand_path(env_path) if env_path else None)
    base: dict[str, Any] = {}
    if cfg_path is not None and Path(cfg_path).exists():
        try:
            with open(cfg_path, "rb") as fh:
                base = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Config file {cfg_path} is not valid JSON") from exc
        if not isinstance(base, dict):
            raise ConfigError("Config file must contain a JSON object")

    env_overrides: dict[str, Any] = {}
    prefix = "RETARGET_"
    for key, value in os.environ.items():
        if not key.startswith(prefix) or key == "RETARGET_CONFIG":
            continue
        trimmed = key[len(prefix) :]
        parts = trimmed.lower().split("__")
        target = env_overrides
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value

    if overrides:
        env_overrides = _merge(env_overrides, overrides)

    merged = _merge(base, env_overrides)
    config = AppConfig()
    _apply_dict(config, merged)
    config.validate()
    return config


def _apply_dict(obj: Any, data: dict[str, Any]) -> None:
    for key, value in data.items():
        if not hasattr(obj, key) or isinstance(getattr(type(obj), key, None), property):
            raise ConfigError(f"Unknown config field {key}")
        current = getattr(obj, key)
        if isinstance(current, ConsensusConfig):
            if not isinstance(value, dict):
                raise ConfigError(f"{key} must be a mapping")
            _apply_dict(current, value)
        elif key.endswith("file"):
            setattr(obj, key, _expand_path(str(value)) if value else None)
        else:
            setattr(obj, key, _coerce_value(current, value))


def _coerce_value(current: Any, value: Any) -> Any:
    target_type = type(current)
    if target_type is int:
        if isinstance(value, bool):
            raise ConfigError(f"Invalid integer value {value!r}")
        if isinstance(value, float) and not value.is_integer():
            raise ConfigError(f"Non-integral value {value!r}")
        try:
            if isinstance(value, str):
                return int(value.strip(), 0)
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid numeric value {value!r}") from exc
    if target_type is str:
        return str(value)
    return value
