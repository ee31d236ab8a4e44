"""
Tabular document (BEJSON) codec - framework-agnostic domain logic.

Generic encode/decode of the self-describing schema + records format, plus
builders and parsers for the two tables a session archive carries:

- configuration table: one row per setting, value stored as a nested JSON scalar
- manifest table: one Message row per message, each followed by its File rows
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

import pydantic

from session_archive.exceptions import MalformedDocument, SchemaViolation
from session_archive.models import Message
from session_archive.paths import message_content_path, message_file_path
from session_archive.schemas.bejson import BEJSON_FORMAT, BejsonDocument, BejsonField
from session_archive.schemas.manifest import (
    CONFIG_FIELDS,
    MANIFEST_FIELDS,
    MANIFEST_RECORD_TYPES,
    ConfigRecord,
    FileRecord,
    ManifestRecordAdapter,
    MessageRecord,
)

__all__ = [
    'build_config_document',
    'build_manifest_document',
    'decode_document',
    'encode_document',
    'parse_manifest',
    'parse_settings',
]

DEFAULT_FORMAT_VERSION = '1-0-4'


# ==============================================================================
# Generic codec
# ==============================================================================


def encode_document(
    fields: Sequence[BejsonField],
    records: Sequence[Mapping[str, Any]],
    *,
    parent_hierarchy: str,
    records_type: Sequence[str],
    format_creator: str,
    format_version: str = DEFAULT_FORMAT_VERSION,
) -> str:
    """
    Serialize a schema and its records to canonical BEJSON text.

    Field order and record order are kept exactly as given.

    Raises:
        SchemaViolation: If the field list is empty or has duplicates, or a
            record's keys are not exactly the declared fields
    """
    names = [f.name for f in fields]
    if not names:
        raise SchemaViolation('Declared field list is empty')
    if len(set(names)) != len(names):
        raise SchemaViolation(f'Declared field list has duplicate names: {names}')

    declared = set(names)
    for position, record in enumerate(records):
        if set(record) != declared:
            missing = sorted(declared - set(record))
            unexpected = sorted(set(record) - declared)
            raise SchemaViolation(f'Record {position} does not match schema (missing={missing}, unexpected={unexpected})')

    document = BejsonDocument(
        format=BEJSON_FORMAT,
        format_version=format_version,
        format_creator=format_creator,
        parent_hierarchy=parent_hierarchy,
        records_type=list(records_type),
        schema_fields=list(fields),
        # Emit cells in schema order regardless of the mapping's own order
        records=[{name: record[name] for name in names} for record in records],
    )
    return json.dumps(document.model_dump(by_alias=True, mode='json'), indent=2, ensure_ascii=False)


def decode_document(text: str | bytes) -> BejsonDocument:
    """
    Parse BEJSON text into schema metadata and ordered records.

    Only structure is checked here; record contents are the caller's concern.

    Raises:
        MalformedDocument: If the text is not a well-formed JSON object
        SchemaViolation: If `Fields` or `Values` is absent, or a record omits a declared field
    """
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedDocument(f'Not well-formed JSON: {e}') from e

    if not isinstance(raw, dict):
        raise MalformedDocument(f'Expected a JSON object at top level, got {type(raw).__name__}')

    if not isinstance(raw.get('Fields'), list) or not raw['Fields']:
        raise SchemaViolation("Declared field list 'Fields' is absent or empty")
    if not isinstance(raw.get('Values'), list):
        raise SchemaViolation("Record list 'Values' is absent")

    try:
        document = BejsonDocument.model_validate(raw)
    except pydantic.ValidationError as e:
        raise SchemaViolation(f'Invalid document structure: {e}') from e

    names = document.field_names
    for position, record in enumerate(document.records):
        missing = [name for name in names if name not in record]
        if missing:
            raise SchemaViolation(f'Record {position} is missing declared field(s): {missing}')

    return document


# ==============================================================================
# Configuration table
# ==============================================================================


def build_config_document(
    settings: Mapping[str, Any],
    session_id: str,
    *,
    format_creator: str,
    format_version: str = DEFAULT_FORMAT_VERSION,
) -> str:
    """One row per setting; values are JSON-serialized so the column type stays uniform."""
    records = []
    for key, value in settings.items():
        try:
            serialized = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SchemaViolation(f'Setting {key!r} is not JSON-serializable: {e}') from e
        records.append({'setting_key': key, 'setting_value': serialized})

    return encode_document(
        CONFIG_FIELDS,
        records,
        parent_hierarchy=f'session_config_for_{session_id}',
        records_type=['AppSetting'],
        format_creator=format_creator,
        format_version=format_version,
    )


def parse_settings(document: BejsonDocument) -> dict[str, Any]:
    """
    Rebuild the settings map from a decoded configuration table.

    Unknown keys are kept as-is. A repeated key keeps its last value.

    Raises:
        SchemaViolation: If a row lacks a string key or value
        MalformedDocument: If a nested value is not well-formed JSON
    """
    settings: dict[str, Any] = {}
    for position, row in enumerate(document.records):
        try:
            record = ConfigRecord.model_validate(row)
        except pydantic.ValidationError as e:
            raise SchemaViolation(f'Config record {position}: {e}') from e
        try:
            settings[record.setting_key] = json.loads(record.setting_value)
        except json.JSONDecodeError as e:
            raise MalformedDocument(f'Setting {record.setting_key!r} has a malformed value: {e}') from e
    return settings


# ==============================================================================
# Manifest table
# ==============================================================================


def build_manifest_rows(messages: Sequence[Message]) -> list[dict[str, Any]]:
    """
    Manifest rows in message order, each Message row followed by its File rows.

    Every row carries every column; cells that do not apply are null.
    """
    rows: list[dict[str, Any]] = []
    for index, message in enumerate(messages):
        shared = message.model_dump(mode='json', include={'role', 'timestamp'})
        rows.append(
            {
                'record_type': 'Message',
                'message_index': index,
                'role': shared['role'],
                'timestamp': shared['timestamp'],
                'content_path': message_content_path(index),
                'file_path': None,
                'file_size': None,
                'message_id': message.id,
                'is_alert': message.is_alert,
            }
        )
        for attachment in message.files:
            rows.append(
                {
                    'record_type': 'File',
                    'message_index': index,
                    'role': shared['role'],
                    'timestamp': shared['timestamp'],
                    'content_path': None,
                    'file_path': message_file_path(index, attachment.path),
                    'file_size': attachment.size,
                    'message_id': message.id,
                    'is_alert': message.is_alert,
                }
            )
    return rows


def build_manifest_document(
    messages: Sequence[Message],
    session_id: str,
    *,
    format_creator: str,
    format_version: str = DEFAULT_FORMAT_VERSION,
) -> str:
    return encode_document(
        MANIFEST_FIELDS,
        build_manifest_rows(messages),
        parent_hierarchy=session_id,
        records_type=MANIFEST_RECORD_TYPES,
        format_creator=format_creator,
        format_version=format_version,
    )


def parse_manifest(document: BejsonDocument) -> list[MessageRecord | FileRecord]:
    """
    Decode manifest rows into their variants, in document order.

    Raises:
        SchemaViolation: If a row has an unknown record_type or ill-typed cells
    """
    records: list[MessageRecord | FileRecord] = []
    for position, row in enumerate(document.records):
        try:
            records.append(ManifestRecordAdapter.validate_python(row))
        except pydantic.ValidationError as e:
            raise SchemaViolation(f'Manifest record {position}: {e}') from e
    return records
