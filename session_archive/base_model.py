"""
Pydantic base models for session-archive.

In-memory session records inherit from StrictModel. Rows decoded from archive
tables inherit from TolerantModel, which keeps strict typing but skips
columns and header keys the model does not declare.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Base model with strict validation settings."""

    model_config = ConfigDict(
        extra='forbid',  # Raise error on unexpected fields
        strict=True,  # Strict type validation
        frozen=True,  # Immutable; edits go through model_copy
    )


class TolerantModel(StrictModel):
    """Strict, frozen model that ignores undeclared keys."""

    model_config = ConfigDict(extra='ignore', populate_by_name=True)
