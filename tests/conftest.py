"""
Shared fixtures for session-archive tests.

Archives are built in memory; hand-made archives (for corruption cases) are
assembled from raw entries with `build_zip`.
"""

from __future__ import annotations

import io
import zipfile
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import pytest

from session_archive.config.base import BaseArchiveSettings
from session_archive.models import Attachment, Message, Session
from session_archive.schemas.manifest import MANIFEST_FIELDS
from session_archive.services.archive import SessionArchiveWriter
from session_archive.services.bejson import encode_document
from session_archive.services.restore import SessionArchiveReader

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)
T1 = datetime(2024, 5, 1, 12, 0, 5, tzinfo=UTC)
T2 = datetime(2024, 5, 1, 12, 1, 0, tzinfo=UTC)

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + bytes(range(32))


def build_zip(entries: Mapping[str, bytes | str]) -> bytes:
    """Zip raw entries in the given order."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as zf:
        for name, payload in entries.items():
            zf.writestr(name, payload)
    return buffer.getvalue()


def zip_entries(data: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {info.filename: zf.read(info) for info in zf.infolist()}


def manifest_row(
    record_type: str,
    message_index: int,
    *,
    role: str = 'user',
    timestamp: str = '2024-05-01T12:00:00Z',
    content_path: str | None = None,
    file_path: str | None = None,
    file_size: int | None = None,
    message_id: str | None = None,
    is_alert: bool = False,
) -> dict[str, Any]:
    """One manifest row with every column present."""
    if record_type == 'Message' and content_path is None:
        content_path = f'messages/message_{message_index}/content.md'
    return {
        'record_type': record_type,
        'message_index': message_index,
        'role': role,
        'timestamp': timestamp,
        'content_path': content_path,
        'file_path': file_path,
        'file_size': file_size,
        'message_id': message_id,
        'is_alert': is_alert,
    }


def manifest_text(rows: Sequence[Mapping[str, Any]]) -> str:
    return encode_document(
        MANIFEST_FIELDS,
        rows,
        parent_hierarchy='TEST',
        records_type=['Message', 'File'],
        format_creator='tests',
    )


CONFIG_TEXT = """{
  "Format": "BEJson",
  "Format_Version": "1-0-4",
  "Format_Creator": "tests",
  "Parent_Hierarchy": "session_config_for_TEST",
  "Records_Type": ["AppSetting"],
  "Fields": [{"name": "setting_key", "type": "string"}, {"name": "setting_value", "type": "string"}],
  "Values": [{"setting_key": "model", "setting_value": "\\"X\\""}]
}"""


@pytest.fixture
def archive_config() -> BaseArchiveSettings:
    return BaseArchiveSettings()


@pytest.fixture
def writer(archive_config: BaseArchiveSettings) -> SessionArchiveWriter:
    return SessionArchiveWriter(archive_config)


@pytest.fixture
def reader() -> SessionArchiveReader:
    return SessionArchiveReader()


@pytest.fixture
def sample_session() -> Session:
    """Three messages; the model reply carries two attachments, one nested."""
    return Session(
        settings={'model': 'gemini-2.5-flash', 'temperature': 0.7, 'topK': 40, 'usePrepend': False, 'extra': None},
        messages=[
            Message(id='m-0', role='user', content='Draw a logo and write the page', timestamp=T0),
            Message(
                id='m-1',
                role='model',
                content='Here you go:\n```html:site/index.html\n<h1>Hi</h1>\n```',
                timestamp=T1,
                files=[
                    Attachment.from_bytes('logo.png', PNG_BYTES),
                    Attachment.from_bytes('site/index.html', b'<h1>Hi</h1>'),
                ],
            ),
            Message(
                id='m-2', role='system', content='API ERROR - quota exceeded', timestamp=T2, is_alert=True
            ),
        ],
    )
