"""Tests for SessionArchiveReader: round-trip, recomputed fields, and every failure kind."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from conftest import CONFIG_TEXT, T0, build_zip, manifest_row, manifest_text, zip_entries
from session_archive.exceptions import (
    CorruptArchive,
    IndexConflict,
    MalformedDocument,
    MissingConfig,
    MissingManifest,
    MissingPayload,
    OrphanFileRecord,
    SchemaViolation,
    SparseManifest,
)
from session_archive.mime import GENERIC_MIME_TYPE
from session_archive.models import Attachment, Message, Session, encode_base64
from session_archive.services.archive import SessionArchiveWriter
from session_archive.services.restore import SessionArchiveReader
from session_archive.storage.local import LocalFileSystemStorage


def _archive(rows: list[dict[str, object]], payloads: dict[str, bytes | str]) -> bytes:
    return build_zip({'config.bejson': CONFIG_TEXT, 'manifest.bejson': manifest_text(rows), **payloads})


# ==============================================================================
# Round-trip
# ==============================================================================


def test_round_trip_identity(
    writer: SessionArchiveWriter, reader: SessionArchiveReader, sample_session: Session
) -> None:
    restored = reader.read(writer.write(sample_session, 'RT'))

    assert restored.model_dump() == sample_session.model_dump()


def test_round_trip_preserves_message_and_attachment_order(
    writer: SessionArchiveWriter, reader: SessionArchiveReader
) -> None:
    files = [Attachment.from_bytes(f'f{i}.txt', f'file {i}'.encode()) for i in (3, 1, 2, 0)]
    messages = [
        Message(id=f'id-{i}', role='user' if i % 2 else 'model', content=f'message {i}', timestamp=T0)
        for i in range(12)
    ]
    messages[7] = messages[7].model_copy(update={'files': files})

    restored = reader.read(writer.write(Session(messages=messages), 'ORDER'))

    assert [m.content for m in restored.messages] == [f'message {i}' for i in range(12)]
    assert [f.path for f in restored.messages[7].files] == ['f3.txt', 'f1.txt', 'f2.txt', 'f0.txt']


def test_concrete_export_import_scenario(writer: SessionArchiveWriter, reader: SessionArchiveReader) -> None:
    fenced = '```ts:src/a.ts\nconsole.log(1)\n```'
    session = Session(
        settings={'model': 'X', 'temperature': 0.7},
        messages=[
            Message(id='1', role='user', content='Hello', timestamp=T0),
            Message(id='2', role='model', content=fenced, timestamp=T0),
        ],
    )

    restored = reader.read(writer.write(session, 'SCENARIO'))

    assert restored.settings == {'model': 'X', 'temperature': 0.7}
    assert restored.messages[0].content == 'Hello'
    assert fenced in restored.messages[1].content
    # Code-block extraction is opt-in, never applied by write/read
    assert restored.messages[0].files == []
    assert restored.messages[1].files == []


def test_mime_type_and_size_are_recomputed(writer: SessionArchiveWriter, reader: SessionArchiveReader) -> None:
    payload = b'\x00\x01\x02\x03\x04'
    stale = Attachment(path='photo.png', content=encode_base64(payload), size=999, mime_type='text/plain')
    session = Session(messages=[Message(id='m', role='user', content='', timestamp=T0, files=[stale])])

    restored = reader.read(writer.write(session, 'S')).messages[0].files[0]

    assert restored.size == len(payload)
    assert restored.mime_type == 'image/png'
    assert restored.decoded() == payload


def test_unresolvable_mime_type_is_lost_on_round_trip(
    writer: SessionArchiveWriter, reader: SessionArchiveReader
) -> None:
    custom = Attachment.from_bytes('model.weights', b'\x01\x02', mime_type='application/x-custom')
    session = Session(messages=[Message(id='m', role='user', content='', timestamp=T0, files=[custom])])

    restored = reader.read(writer.write(session, 'S')).messages[0].files[0]

    assert restored.mime_type == GENERIC_MIME_TYPE


def test_stale_manifest_file_size_is_ignored(reader: SessionArchiveReader) -> None:
    rows = [
        manifest_row('Message', 0),
        manifest_row('File', 0, file_path='messages/message_0/files/a.txt', file_size=1_000_000),
    ]
    data = _archive(rows, {'messages/message_0/content.md': 'hi', 'messages/message_0/files/a.txt': b'abc'})

    attachment = reader.read(data).messages[0].files[0]

    assert attachment.size == 3
    assert attachment.path == 'a.txt'
    assert attachment.mime_type == 'text/plain'


def test_manifest_index_order_wins_over_row_order(reader: SessionArchiveReader) -> None:
    rows = [
        manifest_row('Message', 1, role='model'),
        manifest_row('File', 1, file_path='messages/message_1/files/b.txt'),
        manifest_row('Message', 0),
        manifest_row('File', 0, file_path='messages/message_0/files/a.txt'),
    ]
    payloads = {
        'messages/message_0/content.md': 'first',
        'messages/message_1/content.md': 'second',
        'messages/message_0/files/a.txt': b'a',
        'messages/message_1/files/b.txt': b'b',
    }

    session = reader.read(_archive(rows, payloads))

    assert [m.content for m in session.messages] == ['first', 'second']
    assert [m.files[0].path for m in session.messages] == ['a.txt', 'b.txt']


def test_archives_without_id_columns_load(reader: SessionArchiveReader) -> None:
    legacy_manifest = json.dumps(
        {
            'Format': 'BEJson',
            'Format_Version': '1-0-4',
            'Format_Creator': 'Gemini Toolbox Session Exporter',
            'Parent_Hierarchy': 'LEGACY',
            'Records_Type': ['Message', 'File'],
            'Fields': [
                {'name': n, 'type': 'string'}
                for n in ['record_type', 'message_index', 'role', 'timestamp', 'content_path', 'file_path', 'file_size']
            ],
            'Values': [
                {
                    'record_type': 'Message',
                    'message_index': 0,
                    'role': 'user',
                    'timestamp': '2024-05-01T12:00:00.000Z',
                    'content_path': 'messages/message_0/content.md',
                    'file_path': None,
                    'file_size': None,
                }
            ],
        }
    )
    data = build_zip(
        {'config.bejson': CONFIG_TEXT, 'manifest.bejson': legacy_manifest, 'messages/message_0/content.md': 'Hello'}
    )

    message = reader.read(data).messages[0]

    assert message.id == '2024-05-01T12:00:00.000Z0'
    assert message.is_alert is False
    assert message.timestamp == T0


def test_imports_do_not_share_state(writer: SessionArchiveWriter, reader: SessionArchiveReader) -> None:
    first = Session(settings={'model': 'A'}, messages=[Message(id='a', role='user', content='one', timestamp=T0)])
    second = Session(settings={'model': 'B'}, messages=[])

    loaded_first = reader.read(writer.write(first, 'A'))
    loaded_second = reader.read(writer.write(second, 'B'))

    assert loaded_first.settings == {'model': 'A'}
    assert loaded_second.settings == {'model': 'B'}
    assert loaded_second.messages == []
    assert loaded_first.settings is not loaded_second.settings


# ==============================================================================
# Failure kinds
# ==============================================================================


def test_not_a_zip(reader: SessionArchiveReader) -> None:
    with pytest.raises(CorruptArchive):
        reader.read(b'definitely not a zip file')


def test_missing_config(reader: SessionArchiveReader) -> None:
    data = build_zip({'manifest.bejson': manifest_text([])})

    with pytest.raises(MissingConfig):
        reader.read(data)


def test_missing_manifest(reader: SessionArchiveReader) -> None:
    with pytest.raises(MissingManifest):
        reader.read(build_zip({'config.bejson': CONFIG_TEXT}))


def test_malformed_config(reader: SessionArchiveReader) -> None:
    data = build_zip({'config.bejson': '{oops', 'manifest.bejson': manifest_text([])})

    with pytest.raises(MalformedDocument, match='config.bejson'):
        reader.read(data)


def test_manifest_schema_violation(reader: SessionArchiveReader) -> None:
    data = build_zip({'config.bejson': CONFIG_TEXT, 'manifest.bejson': json.dumps({'Values': []})})

    with pytest.raises(SchemaViolation, match='manifest.bejson'):
        reader.read(data)


def test_sparse_manifest(reader: SessionArchiveReader) -> None:
    rows = [manifest_row('Message', 0), manifest_row('Message', 2)]
    payloads = {'messages/message_0/content.md': 'a', 'messages/message_2/content.md': 'c'}

    with pytest.raises(SparseManifest) as exc_info:
        reader.read(_archive(rows, payloads))

    assert exc_info.value.indices == [0, 2]


def test_manifest_not_starting_at_zero_is_sparse(reader: SessionArchiveReader) -> None:
    rows = [manifest_row('Message', 1)]

    with pytest.raises(SparseManifest):
        reader.read(_archive(rows, {'messages/message_1/content.md': 'b'}))


def test_index_conflict(reader: SessionArchiveReader) -> None:
    rows = [manifest_row('Message', 0), manifest_row('Message', 0, role='model')]

    with pytest.raises(IndexConflict) as exc_info:
        reader.read(_archive(rows, {'messages/message_0/content.md': 'a'}))

    assert exc_info.value.message_index == 0


def test_orphan_file_record(reader: SessionArchiveReader) -> None:
    rows = [
        manifest_row('Message', 0),
        manifest_row('File', 5, file_path='messages/message_5/files/x.txt'),
    ]
    payloads = {'messages/message_0/content.md': 'a', 'messages/message_5/files/x.txt': b'x'}

    with pytest.raises(OrphanFileRecord) as exc_info:
        reader.read(_archive(rows, payloads))

    assert exc_info.value.message_index == 5


def test_missing_message_content(reader: SessionArchiveReader) -> None:
    with pytest.raises(MissingPayload) as exc_info:
        reader.read(_archive([manifest_row('Message', 0)], {}))

    assert exc_info.value.path == 'messages/message_0/content.md'


def test_missing_file_payload(reader: SessionArchiveReader) -> None:
    rows = [manifest_row('Message', 0), manifest_row('File', 0, file_path='messages/message_0/files/gone.png')]

    with pytest.raises(MissingPayload) as exc_info:
        reader.read(_archive(rows, {'messages/message_0/content.md': 'a'}))

    assert exc_info.value.path == 'messages/message_0/files/gone.png'


def test_file_outside_its_message_directory(reader: SessionArchiveReader) -> None:
    rows = [
        manifest_row('Message', 0),
        manifest_row('Message', 1),
        manifest_row('File', 0, file_path='messages/message_1/files/x.txt'),
    ]
    payloads = {
        'messages/message_0/content.md': 'a',
        'messages/message_1/content.md': 'b',
        'messages/message_1/files/x.txt': b'x',
    }

    with pytest.raises(MissingPayload):
        reader.read(_archive(rows, payloads))


def test_failures_share_a_base_with_distinct_kinds(reader: SessionArchiveReader) -> None:
    with pytest.raises(SparseManifest) as exc_info:
        reader.read(_archive([manifest_row('Message', 3)], {'messages/message_3/content.md': 'x'}))

    assert exc_info.value.kind == 'SparseManifest'


# ==============================================================================
# Storage
# ==============================================================================


def test_load_from_local_storage(
    writer: SessionArchiveWriter, reader: SessionArchiveReader, sample_session: Session, tmp_path: Path
) -> None:
    (tmp_path / 'saved.zip').write_bytes(writer.write(sample_session, 'S'))

    restored = asyncio.run(reader.load(LocalFileSystemStorage(tmp_path), 'saved.zip'))

    assert restored.model_dump() == sample_session.model_dump()
    assert list(zip_entries((tmp_path / 'saved.zip').read_bytes()))[0] == 'config.bejson'
