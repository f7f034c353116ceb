from __future__ import annotations

from pathlib import Path

import pytest

from field_remapper.config import Settings, load_settings
from field_remapper.errors import ConfigError


def test_defaults_without_file_or_env() -> None:
    assert load_settings(environ={}) == Settings()


def test_file_values_and_relative_metadata_path(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(
        "metadata_path: meta/metadata.yaml\npreserve_explicit_target: false\nlog_level: debug\n",
        encoding="utf-8",
    )
    settings = load_settings(path, environ={})
    assert settings.metadata_path == tmp_path / "meta" / "metadata.yaml"
    assert settings.preserve_explicit_target is False
    assert settings.log_level == "DEBUG"


def test_environment_overrides_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("preserve_explicit_target: false\n", encoding="utf-8")
    settings = load_settings(
        path,
        environ={
            "FIELD_REMAPPER_METADATA": "/data/meta.yaml",
            "FIELD_REMAPPER_PRESERVE_TARGET": "yes",
            "FIELD_REMAPPER_LOG_LEVEL": "warning",
        },
    )
    assert settings.metadata_path == Path("/data/meta.yaml")
    assert settings.preserve_explicit_target is True
    assert settings.log_level == "WARNING"


def test_empty_settings_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("", encoding="utf-8")
    assert load_settings(path, environ={}) == Settings()


@pytest.mark.parametrize(
    "text, match",
    [
        ("- a\n", "top level"),
        ("colour: blue\n", "Unknown settings"),
        ("preserve_explicit_target: maybe\n", "boolean"),
        ("log_level: loud\n", "log_level"),
        ("metadata_path: 3\n", "metadata_path"),
    ],
)
def test_invalid_settings(tmp_path: Path, text: str, match: str) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match=match):
        load_settings(path, environ={})


def test_invalid_environment_value() -> None:
    with pytest.raises(ConfigError, match="FIELD_REMAPPER_PRESERVE_TARGET"):
        load_settings(environ={"FIELD_REMAPPER_PRESERVE_TARGET": "sometimes"})
