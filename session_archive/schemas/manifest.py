"""
Typed rows of the configuration and manifest tables.

The manifest is a tagged union: every row shares one column set and the
`record_type` cell selects the variant (Message or File). Rows are decoded by
inspecting the discriminator first, then validating the variant's fields.
"""

from __future__ import annotations

from typing import Annotated, Literal

import pydantic

from session_archive.base_model import StrictModel, TolerantModel
from session_archive.schemas.bejson import BejsonField
from session_archive.types import JsonDatetime, Role

__all__ = [
    'CONFIG_FIELDS',
    'MANIFEST_FIELDS',
    'MANIFEST_RECORD_TYPES',
    'ConfigRecord',
    'FileRecord',
    'ManifestRecord',
    'ManifestRecordAdapter',
    'MessageRecord',
]


# ==============================================================================
# Configuration table
# ==============================================================================

CONFIG_FIELDS = [
    BejsonField(name='setting_key', type='string'),
    BejsonField(name='setting_value', type='string'),
]


class ConfigRecord(StrictModel):
    """One setting; the value is itself a serialized JSON scalar."""

    setting_key: str
    setting_value: str


# ==============================================================================
# Manifest table
# ==============================================================================

MANIFEST_RECORD_TYPES = ['Message', 'File']

MANIFEST_FIELDS = [
    BejsonField(name='record_type', type='string'),
    BejsonField(name='message_index', type='integer'),
    BejsonField(name='role', type='string'),
    BejsonField(name='timestamp', type='string'),
    BejsonField(name='content_path', type='string'),
    BejsonField(name='file_path', type='string'),
    BejsonField(name='file_size', type='integer'),
    # Appended columns; archives written without them still load
    BejsonField(name='message_id', type='string'),
    BejsonField(name='is_alert', type='boolean'),
]


class _ManifestRow(TolerantModel):
    """Columns shared by both variants; each variant ignores the other's cells."""

    message_index: int = pydantic.Field(ge=0)
    role: Role
    timestamp: JsonDatetime
    message_id: str | None = None
    is_alert: bool = False


class MessageRecord(_ManifestRow):
    """Manifest row for one message."""

    record_type: Literal['Message']
    content_path: str


class FileRecord(_ManifestRow):
    """Manifest row for one attachment. `file_size` is advisory only."""

    record_type: Literal['File']
    file_path: str
    file_size: int | None = None


ManifestRecord = Annotated[MessageRecord | FileRecord, pydantic.Field(discriminator='record_type')]

ManifestRecordAdapter: pydantic.TypeAdapter[MessageRecord | FileRecord] = pydantic.TypeAdapter(ManifestRecord)
