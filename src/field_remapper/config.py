from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

ENV_METADATA = "FIELD_REMAPPER_METADATA"
ENV_PRESERVE_TARGET = "FIELD_REMAPPER_PRESERVE_TARGET"
ENV_LOG_LEVEL = "FIELD_REMAPPER_LOG_LEVEL"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE = {"1", "true", "yes", "y", "on"}
_FALSE = {"0", "false", "no", "n", "off"}


@dataclass(frozen=True)
class Settings:
    metadata_path: Path | None = None
    # Keep a user-chosen FK display target when foreign mode is selected again.
    preserve_explicit_target: bool = True
    log_level: str = "INFO"


def _parse_bool(value: Any, what: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"{what} must be a boolean, got {value!r}")


def _parse_level(value: Any, what: str) -> str:
    level = str(value).strip().upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"{what} must be one of {', '.join(LOG_LEVELS)}")
    return level


def load_settings(path: Path | None = None, *, environ: dict[str, str] | None = None) -> Settings:
    """
    Load settings from an optional YAML file, then apply environment overrides.

    Relative `metadata_path` values in the file resolve against the file's directory.
    """
    env = os.environ if environ is None else environ
    settings = Settings()

    if path is not None:
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except Exception as e:
            raise ConfigError(f"Failed to read settings YAML: {path}") from e
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError("Settings YAML must be a mapping at top level")

        unknown = set(raw) - {"metadata_path", "preserve_explicit_target", "log_level"}
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")

        metadata_path = raw.get("metadata_path")
        if metadata_path is not None:
            if not isinstance(metadata_path, str) or not metadata_path:
                raise ConfigError("settings.metadata_path must be a non-empty string")
            resolved = Path(metadata_path).expanduser()
            if not resolved.is_absolute():
                resolved = path.parent / resolved
            settings = replace(settings, metadata_path=resolved)
        if "preserve_explicit_target" in raw:
            settings = replace(
                settings,
                preserve_explicit_target=_parse_bool(
                    raw["preserve_explicit_target"], "settings.preserve_explicit_target"
                ),
            )
        if "log_level" in raw:
            settings = replace(settings, log_level=_parse_level(raw["log_level"], "settings.log_level"))

    if env.get(ENV_METADATA):
        settings = replace(settings, metadata_path=Path(env[ENV_METADATA]).expanduser())
    if env.get(ENV_PRESERVE_TARGET):
        settings = replace(
            settings,
            preserve_explicit_target=_parse_bool(env[ENV_PRESERVE_TARGET], ENV_PRESERVE_TARGET),
        )
    if env.get(ENV_LOG_LEVEL):
        settings = replace(settings, log_level=_parse_level(env[ENV_LOG_LEVEL], ENV_LOG_LEVEL))

    return settings
