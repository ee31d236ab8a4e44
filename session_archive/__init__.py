"""Session persistence for chat conversations: archive export, import, and code-block extraction."""

from __future__ import annotations

__version__ = '0.1.0'
