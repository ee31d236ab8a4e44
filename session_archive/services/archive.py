"""
Session archive writer - framework-agnostic domain logic.

Composes the configuration table, the manifest table, and the raw message and
attachment payloads into one zip archive:

    config.bejson
    manifest.bejson
    messages/message_<i>/content.md
    messages/message_<i>/files/<attachment path>
"""

from __future__ import annotations

import binascii
import io
import zipfile

from session_archive.base_model import StrictModel
from session_archive.config.base import BaseArchiveSettings
from session_archive.exceptions import DuplicatePayloadPath, MalformedAttachment
from session_archive.models import Session
from session_archive.paths import (
    CONFIG_ENTRY,
    MANIFEST_ENTRY,
    archive_filename,
    message_content_path,
    message_file_path,
)
from session_archive.protocols import LoggerProtocol, NullLogger
from session_archive.services.bejson import build_config_document, build_manifest_document
from session_archive.storage.protocol import StorageBackend

__all__ = ['ArchiveMetadata', 'SessionArchiveWriter', 'write_zip_entries']

# Fixed entry timestamp so identical sessions produce identical bytes
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


# ==============================================================================
# Output Models
# ==============================================================================


class ArchiveMetadata(StrictModel):
    """Metadata about a saved archive."""

    file_path: str  # Final path or URL reported by the storage backend
    session_id: str
    size_bytes: int
    message_count: int
    attachment_count: int


# ==============================================================================
# Zip container helpers
# ==============================================================================


def write_zip_entries(entries: list[tuple[str, bytes]], compression_level: int) -> bytes:
    """Write (name, payload) pairs, in order, to a deterministic zip blob."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as zf:
        for name, payload in entries:
            info = zipfile.ZipInfo(name, date_time=ZIP_EPOCH)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            zf.writestr(info, payload, compresslevel=compression_level)
    return buffer.getvalue()


# ==============================================================================
# Session Archive Writer
# ==============================================================================


class SessionArchiveWriter:
    """
    Serializes a Session into an archive byte stream.

    Output is deterministic for a given session and session id. The session id
    is only a label inside the tables; it is never used for addressing.
    """

    def __init__(self, config: BaseArchiveSettings | None = None) -> None:
        """
        Initialize archive writer.

        Args:
            config: Format header and compression settings (defaults from environment)
        """
        self.config = config if config is not None else BaseArchiveSettings()

    def write(self, session: Session, session_id: str, logger: LoggerProtocol | None = None) -> bytes:
        """
        Produce the archive for a session.

        Args:
            session: Settings and ordered messages to export
            session_id: Label embedded in the tables' Parent_Hierarchy
            logger: Optional logger instance

        Returns:
            Zip archive bytes

        Raises:
            MalformedAttachment: If an attachment's content is not valid base64
            DuplicatePayloadPath: If two attachments of one message share a path
            SchemaViolation: If a setting value is not JSON-serializable
        """
        logger = logger or NullLogger()
        logger.info(f'Exporting session {session_id}: {len(session.messages)} messages')

        # Decode every payload before producing anything
        payloads: list[tuple[str, bytes]] = []
        for index, message in enumerate(session.messages):
            payloads.append((message_content_path(index), message.content.encode('utf-8')))

            seen_paths: set[str] = set()
            for attachment in message.files:
                if attachment.path in seen_paths:
                    raise DuplicatePayloadPath(index, attachment.path)
                seen_paths.add(attachment.path)

                try:
                    data = attachment.decoded()
                except (binascii.Error, ValueError) as e:
                    raise MalformedAttachment(index, attachment.path) from e

                if len(data) != attachment.size:
                    logger.warning(
                        f'Attachment {attachment.path} of message {index} declares size {attachment.size}, '
                        f'payload is {len(data)} bytes'
                    )
                payloads.append((message_file_path(index, attachment.path), data))

        config_text = build_config_document(
            session.settings,
            session_id,
            format_creator=self.config.CONFIG_CREATOR,
            format_version=self.config.FORMAT_VERSION,
        )
        manifest_text = build_manifest_document(
            session.messages,
            session_id,
            format_creator=self.config.MANIFEST_CREATOR,
            format_version=self.config.FORMAT_VERSION,
        )
        logger.info(f'Built config ({len(session.settings)} settings) and manifest tables')

        entries = [
            (CONFIG_ENTRY, config_text.encode('utf-8')),
            (MANIFEST_ENTRY, manifest_text.encode('utf-8')),
            *payloads,
        ]
        data = write_zip_entries(entries, self.config.COMPRESSION_LEVEL)
        logger.info(f'Archive written: {len(entries)} entries, {len(data):,} bytes')
        return data

    async def save(
        self,
        session: Session,
        session_id: str,
        storage: StorageBackend,
        filename: str | None = None,
        logger: LoggerProtocol | None = None,
    ) -> ArchiveMetadata:
        """
        Write the archive and hand it to a storage backend.

        Args:
            session: Session to export
            session_id: Session label
            storage: Storage backend (call-time parameter!)
            filename: Archive filename (default: session_<session_id>.zip)
            logger: Optional logger instance

        Returns:
            Archive metadata
        """
        logger = logger or NullLogger()
        data = self.write(session, session_id, logger)
        final_path = await storage.save(filename or archive_filename(session_id), data)
        logger.info(f'Archive saved: {final_path}')

        return ArchiveMetadata(
            file_path=final_path,
            session_id=session_id,
            size_bytes=len(data),
            message_count=len(session.messages),
            attachment_count=sum(len(m.files) for m in session.messages),
        )
