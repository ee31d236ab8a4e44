"""
Schema definitions for session-archive.

This package contains Pydantic models for the archive's wire formats:
- bejson: the self-describing tabular document (schema + records)
- manifest: typed views of configuration and manifest rows
"""

from __future__ import annotations

from session_archive.schemas.bejson import BejsonDocument, BejsonField
from session_archive.schemas.manifest import (
    CONFIG_FIELDS,
    MANIFEST_FIELDS,
    ConfigRecord,
    FileRecord,
    ManifestRecord,
    ManifestRecordAdapter,
    MessageRecord,
)

__all__ = [
    'BejsonDocument',
    'BejsonField',
    'CONFIG_FIELDS',
    'ConfigRecord',
    'FileRecord',
    'MANIFEST_FIELDS',
    'ManifestRecord',
    'ManifestRecordAdapter',
    'MessageRecord',
]
