"""
Generic zip helpers outside the session archive format.

- create_zip: arbitrary (path, text-or-base64) entries into one zip
- decompress_zip: every file entry of a zip as an Attachment
- bundle_message_files: one message's attachments plus its text
"""

from __future__ import annotations

import io
import zipfile
import zlib
from collections.abc import Iterable, Sequence

import pydantic

from session_archive.base_model import StrictModel
from session_archive.exceptions import CorruptArchive
from session_archive.models import Attachment, Message, decode_base64
from session_archive.services.archive import write_zip_entries

__all__ = ['ZipEntry', 'bundle_message_files', 'create_zip', 'decompress_zip']

DEFAULT_COMPRESSION_LEVEL = 6


class ZipEntry(StrictModel):
    """One file to place in a zip: text content, or base64 when `is_base64`."""

    path: str
    content: str
    is_base64: bool = False

    def payload(self) -> bytes:
        return decode_base64(self.content) if self.is_base64 else self.content.encode('utf-8')


def create_zip(entries: Iterable[ZipEntry], compression_level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
    """Zip the given entries in order."""
    return write_zip_entries([(entry.path, entry.payload()) for entry in entries], compression_level)


def decompress_zip(data: bytes) -> list[Attachment]:
    """
    Turn every file entry of a zip into an Attachment.

    Sizes are the true decoded lengths and mime types come from the entry
    paths. Directory entries are skipped; entry order is preserved.

    Raises:
        CorruptArchive: If the bytes are not a readable zip, or an entry name
            is not a safe relative attachment path
    """
    attachments: list[Attachment] = []
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                try:
                    attachments.append(Attachment.from_bytes(info.filename, zf.read(info)))
                except pydantic.ValidationError as e:
                    raise CorruptArchive(f'Unsafe entry name {info.filename!r}') from e
    except (zipfile.BadZipFile, zlib.error, EOFError) as e:
        raise CorruptArchive(f'Not a readable zip archive: {e}') from e
    return attachments


def bundle_message_files(
    message: Message,
    paths: Sequence[str] | None = None,
    compression_level: int = DEFAULT_COMPRESSION_LEVEL,
) -> bytes | None:
    """
    Zip a message's attachments together with its text.

    The bundle holds the selected attachments (all when `paths` is None),
    `message.md` with the raw content, and `message.txt` with fence markers
    removed.

    Returns:
        Zip bytes, or None when no attachment is selected
    """
    selected = [f for f in message.files if paths is None or f.path in paths]
    if not selected:
        return None

    entries = [ZipEntry(path=f.path, content=f.content, is_base64=True) for f in selected]
    entries.append(ZipEntry(path='message.md', content=message.content))
    entries.append(ZipEntry(path='message.txt', content=message.content.replace('```', '')))
    return create_zip(entries, compression_level)
