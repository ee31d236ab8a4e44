"""
Session archive reader - reconstructs a Session from an archive byte stream.

The reader is all-or-nothing: every failure raises a distinct
ArchiveReadError/DocumentError kind and no partially built session escapes.
MIME types and attachment sizes are always recomputed from the archive itself;
the manifest's file_size is advisory.
"""

from __future__ import annotations

import io
import zipfile
import zlib
from typing import Any

import pydantic

from session_archive.exceptions import (
    CorruptArchive,
    DocumentError,
    IndexConflict,
    MissingConfig,
    MissingManifest,
    MissingPayload,
    OrphanFileRecord,
    SchemaViolation,
    SparseManifest,
)
from session_archive.models import Attachment, Message, Session
from session_archive.paths import CONFIG_ENTRY, MANIFEST_ENTRY, attachment_path_from_entry
from session_archive.protocols import LoggerProtocol, NullLogger
from session_archive.schemas.bejson import BejsonDocument
from session_archive.schemas.manifest import FileRecord, MessageRecord
from session_archive.services.bejson import decode_document, parse_manifest, parse_settings
from session_archive.storage.protocol import StorageBackend

__all__ = ['SessionArchiveReader']


class _ArchiveEntries:
    """Read-only view of the non-directory entries of a zip archive."""

    def __init__(self, data: bytes) -> None:
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, zlib.error, ValueError) as e:
            raise CorruptArchive(f'Not a readable zip archive: {e}') from e
        self.names = {info.filename for info in self._zip.infolist() if not info.is_dir()}

    def __contains__(self, name: str) -> bool:
        return name in self.names

    def read(self, name: str) -> bytes:
        try:
            return self._zip.read(name)
        except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as e:
            raise CorruptArchive(f'Cannot read archive entry {name}: {e}') from e

    def close(self) -> None:
        self._zip.close()


class SessionArchiveReader:
    """
    Validates and decodes an archive back into a Session.

    Stateless: each call builds a new, independently owned Session.
    """

    def read(self, data: bytes, logger: LoggerProtocol | None = None) -> Session:
        """
        Reconstruct a session from archive bytes.

        Args:
            data: Zip archive bytes
            logger: Optional logger instance

        Returns:
            Session with settings and messages in manifest index order

        Raises:
            CorruptArchive: If the bytes are not a readable zip archive
            MissingConfig: If config.bejson is absent
            MissingManifest: If manifest.bejson is absent
            MalformedDocument: If either table is not well-formed JSON
            SchemaViolation: If either table breaks its schema
            IndexConflict: If two Message records share a message_index
            SparseManifest: If Message indices are not contiguous from 0
            OrphanFileRecord: If a File record has no matching Message record
            MissingPayload: If a referenced content or file entry is absent
        """
        logger = logger or NullLogger()
        entries = _ArchiveEntries(data)
        try:
            return self._read_entries(entries, logger)
        finally:
            entries.close()

    async def load(self, storage: StorageBackend, filename: str, logger: LoggerProtocol | None = None) -> Session:
        """Fetch archive bytes from a storage backend and reconstruct the session."""
        logger = logger or NullLogger()
        logger.info(f'Loading archive: {filename}')
        data = await storage.load(filename)
        logger.info(f'Loaded {len(data):,} bytes')
        return self.read(data, logger)

    # --------------------------------------------------------------------------
    # Steps
    # --------------------------------------------------------------------------

    def _read_entries(self, entries: _ArchiveEntries, logger: LoggerProtocol) -> Session:
        # (a) configuration table
        if CONFIG_ENTRY not in entries:
            raise MissingConfig(CONFIG_ENTRY)
        config_document = self._decode_table(entries, CONFIG_ENTRY)
        try:
            settings = parse_settings(config_document)
        except DocumentError as e:
            raise e.in_entry(CONFIG_ENTRY) from e
        logger.info(f'Loaded {len(settings)} settings')

        # (b) manifest table
        if MANIFEST_ENTRY not in entries:
            raise MissingManifest(MANIFEST_ENTRY)
        manifest_document = self._decode_table(entries, MANIFEST_ENTRY)
        try:
            records = parse_manifest(manifest_document)
        except DocumentError as e:
            raise e.in_entry(MANIFEST_ENTRY) from e

        # (c) Message records: collect by index, check contiguity, then materialize in order
        slots: dict[int, tuple[MessageRecord, dict[str, Any]]] = {}
        for row, record in zip(manifest_document.records, records, strict=True):
            if isinstance(record, MessageRecord):
                if record.message_index in slots:
                    raise IndexConflict(record.message_index)
                slots[record.message_index] = (record, row)

        indices = sorted(slots)
        if indices != list(range(len(indices))):
            raise SparseManifest(indices)

        contents = {index: self._read_content(entries, slots[index][0]) for index in indices}

        # (d) File records: attach in manifest order to their message
        files: dict[int, list[Attachment]] = {index: [] for index in indices}
        for record in records:
            if isinstance(record, FileRecord):
                if record.message_index not in slots:
                    raise OrphanFileRecord(record.message_index, record.file_path)
                files[record.message_index].append(self._read_attachment(entries, record, logger))

        messages = [
            self._build_message(slots[index][0], slots[index][1], contents[index], files[index]) for index in indices
        ]
        logger.info(
            f'Reconstructed {len(messages)} messages with {sum(len(f) for f in files.values())} attachments'
        )
        return Session(settings=settings, messages=messages)

    def _decode_table(self, entries: _ArchiveEntries, entry: str) -> BejsonDocument:
        try:
            return decode_document(entries.read(entry))
        except DocumentError as e:
            raise e.in_entry(entry) from e

    def _read_content(self, entries: _ArchiveEntries, record: MessageRecord) -> str:
        if record.content_path not in entries:
            raise MissingPayload(record.content_path, record.message_index)
        raw = entries.read(record.content_path)
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise CorruptArchive(f'{record.content_path} is not valid UTF-8 text') from e

    def _read_attachment(self, entries: _ArchiveEntries, record: FileRecord, logger: LoggerProtocol) -> Attachment:
        short_path = attachment_path_from_entry(record.message_index, record.file_path)
        if short_path is None:
            raise MissingPayload(
                record.file_path, record.message_index, reason=f'not under message {record.message_index} files'
            )
        if record.file_path not in entries:
            raise MissingPayload(record.file_path, record.message_index)

        data = entries.read(record.file_path)
        if record.file_size is not None and record.file_size != len(data):
            logger.warning(
                f'{record.file_path}: manifest file_size {record.file_size} disagrees with payload '
                f'({len(data)} bytes); using payload length'
            )

        try:
            # Size and mime type come from the payload and path, never from the manifest
            return Attachment.from_bytes(short_path, data)
        except pydantic.ValidationError as e:
            raise SchemaViolation(f'Invalid attachment path {short_path!r}: {e}', entry=MANIFEST_ENTRY) from e

    def _build_message(
        self, record: MessageRecord, row: dict[str, Any], content: str, files: list[Attachment]
    ) -> Message:
        # Archives without a message_id column get the timestamp + index id
        message_id = record.message_id or f'{row["timestamp"]}{record.message_index}'
        return Message(
            id=message_id,
            role=record.role,
            content=content,
            timestamp=record.timestamp,
            files=files,
            is_alert=record.is_alert,
        )
