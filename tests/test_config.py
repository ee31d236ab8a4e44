"""Tests for archive settings loading."""

from __future__ import annotations

from pathlib import Path

import pydantic
import pytest

from session_archive.config.base import BaseArchiveSettings, get_settings, lazy_settings
from session_archive.config.cli import CliSettings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv('LOAD_ENV_FILE', raising=False)

    config = get_settings(BaseArchiveSettings)

    assert config.FORMAT_VERSION == '1-0-4'
    assert config.CONFIG_CREATOR == 'Gemini Toolbox'
    assert config.MANIFEST_CREATOR == 'Gemini Toolbox Session Exporter'
    assert config.COMPRESSION_LEVEL == 6


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv('LOAD_ENV_FILE', raising=False)
    monkeypatch.setenv('COMPRESSION_LEVEL', '9')
    monkeypatch.setenv('FORMAT_VERSION', '2-0-0')

    config = get_settings(BaseArchiveSettings)

    assert config.COMPRESSION_LEVEL == 9
    assert config.FORMAT_VERSION == '2-0-0'


def test_env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv('GITHUB_TOKEN', raising=False)
    env_file = tmp_path / 'archive.env'
    env_file.write_text('MANIFEST_CREATOR=Nightly Export\nGITHUB_TOKEN=abc\n', encoding='utf-8')

    config = get_settings(CliSettings, env_file=str(env_file))

    assert config.MANIFEST_CREATOR == 'Nightly Export'
    assert config.GITHUB_TOKEN == 'abc'


def test_missing_env_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        get_settings(BaseArchiveSettings, env_file=str(tmp_path / 'missing.env'))


def test_lazy_settings_validate_on_first_read(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv('LOAD_ENV_FILE', raising=False)
    monkeypatch.setenv('COMPRESSION_LEVEL', '12')

    config = lazy_settings(BaseArchiveSettings)

    with pytest.raises(pydantic.ValidationError, match='COMPRESSION_LEVEL'):
        config.COMPRESSION_LEVEL  # noqa: B018
