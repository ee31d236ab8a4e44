"""
Archive format settings.

BEJSON header values and the zip deflate level the writer stamps into every
archive, read from the environment (or a .env file) and exposed as a lazy
proxy so importing the CLI never touches the environment.
"""

from __future__ import annotations

import os
import pathlib
from typing import TypeVar

import lazy_object_proxy
import pydantic
import pydantic_settings


T = TypeVar('T', bound='BaseArchiveSettings')


class BaseArchiveSettings(pydantic_settings.BaseSettings):
    """Format header values and compression shared by the writer and the CLI."""

    model_config = pydantic_settings.SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,  # Fail fast on misconfiguration
        extra='forbid',  # Reject unknown environment variables
    )

    # Application metadata
    APP_NAME: str = 'session-archive'
    VERSION: str = '0.1.0'

    # Tabular document header values
    FORMAT_VERSION: str = '1-0-4'
    CONFIG_CREATOR: str = 'Gemini Toolbox'
    MANIFEST_CREATOR: str = 'Gemini Toolbox Session Exporter'

    # Zip deflate level for archive entries
    COMPRESSION_LEVEL: int = 6

    @pydantic.field_validator('COMPRESSION_LEVEL')
    @classmethod
    def validate_compression_level(cls, v: int) -> int:
        """Validate compression level is within deflate bounds."""
        if not 0 <= v <= 9:
            raise ValueError('COMPRESSION_LEVEL must be between 0-9')
        return v


def get_settings(settings_class: type[T], env_file: str | None = None) -> T:
    """
    Build archive settings, optionally from a .env file.

    The file comes from `env_file`, else from LOAD_ENV_FILE. Without either,
    only process environment variables (FORMAT_VERSION, COMPRESSION_LEVEL, ...)
    override the defaults.

    Args:
        settings_class: Settings class to instantiate
        env_file: Optional path to .env file (overrides LOAD_ENV_FILE)

    Returns:
        Settings instance

    Raises:
        FileNotFoundError: If specified .env file doesn't exist
    """
    env_file_path = env_file or os.getenv('LOAD_ENV_FILE')

    if not env_file_path:
        return settings_class()  # No .env file, load from environment only

    resolved_path = pathlib.Path(env_file_path).resolve()
    if not resolved_path.exists():
        raise FileNotFoundError(f'Environment file not found: {resolved_path}')

    return settings_class(_env_file=resolved_path)


def lazy_settings(settings_class: type[T]) -> T:
    """
    Proxy that builds the settings the first time an attribute is read.

    Invalid values (e.g. COMPRESSION_LEVEL=12) surface on that first read,
    not at import.

    Args:
        settings_class: Settings class to instantiate

    Returns:
        Proxy that instantiates settings on first access
    """
    return lazy_object_proxy.Proxy(lambda: get_settings(settings_class))
