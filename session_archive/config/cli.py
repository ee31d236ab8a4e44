"""
CLI configuration.

Extends base configuration with command-line specific settings.
"""

from __future__ import annotations

from session_archive.config.base import BaseArchiveSettings, lazy_settings


class CliSettings(BaseArchiveSettings):
    """Command-line configuration."""

    GITHUB_TOKEN: str | None = None  # Used for gist:// archives when --gist-token is not given


# Module-level singleton (lazy-loaded)
settings = lazy_settings(CliSettings)
