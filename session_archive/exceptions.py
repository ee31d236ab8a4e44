"""
Shared exceptions for session-archive.

Every failure of the codec, writer, and reader is a distinct kind so callers
can render a specific diagnostic instead of a generic "import failed".

Exception Hierarchy:
    SessionArchiveError (base)
    ├── DocumentError (tabular document decode/encode failures)
    │   ├── MalformedDocument (text is not well-formed JSON object)
    │   └── SchemaViolation (declared fields absent, record missing a field)
    ├── ArchiveReadError (archive reconstruction failures)
    │   ├── CorruptArchive (byte stream is not a readable zip container)
    │   ├── MissingConfig (config.bejson absent)
    │   ├── MissingManifest (manifest.bejson absent)
    │   ├── MissingPayload (manifest references an absent entry)
    │   ├── IndexConflict (duplicate message_index)
    │   ├── SparseManifest (message indices not contiguous from 0)
    │   └── OrphanFileRecord (File record without a Message record)
    └── ArchiveWriteError (archive production failures)
        ├── MalformedAttachment (attachment content is not base64)
        └── DuplicatePayloadPath (two attachments of a message share a path)
"""

from __future__ import annotations

from collections.abc import Sequence


class SessionArchiveError(Exception):
    """Base exception for all session-archive errors."""

    @property
    def kind(self) -> str:
        """Name of the failure kind, for diagnostics."""
        return type(self).__name__


# ==============================================================================
# Tabular document errors
# ==============================================================================


class DocumentError(SessionArchiveError):
    """Base exception for tabular document failures."""

    def __init__(self, message: str, entry: str | None = None) -> None:
        self.entry = entry
        prefix = f'{entry}: ' if entry else ''
        super().__init__(f'{prefix}{message}')

    def in_entry(self, entry: str) -> DocumentError:
        """Return a copy of this error attributed to an archive entry."""
        return type(self)(str(self), entry=entry)


class MalformedDocument(DocumentError):
    """Raised when document text is not well-formed structured data."""


class SchemaViolation(DocumentError):
    """Raised when the declared field list is absent or a record does not fit it."""


# ==============================================================================
# Archive read errors
# ==============================================================================


class ArchiveReadError(SessionArchiveError):
    """Base exception for archive reconstruction failures."""


class CorruptArchive(ArchiveReadError):
    """Raised when the byte stream is not a readable archive container."""


class MissingConfig(ArchiveReadError):
    """Raised when the configuration table entry is absent."""

    def __init__(self, entry: str) -> None:
        self.entry = entry
        super().__init__(f'{entry} not found in archive.')


class MissingManifest(ArchiveReadError):
    """Raised when the manifest table entry is absent."""

    def __init__(self, entry: str) -> None:
        self.entry = entry
        super().__init__(f'{entry} not found in archive.')


class MissingPayload(ArchiveReadError):
    """Raised when a manifest record references a path not present in the archive."""

    def __init__(self, path: str, message_index: int, reason: str | None = None) -> None:
        self.path = path
        self.message_index = message_index
        detail = f' ({reason})' if reason else ''
        super().__init__(f'File not found in archive for message {message_index}: {path}{detail}')


class IndexConflict(ArchiveReadError):
    """Raised when two Message records claim the same message_index."""

    def __init__(self, message_index: int) -> None:
        self.message_index = message_index
        super().__init__(f'Duplicate Message record for message_index {message_index}')


class SparseManifest(ArchiveReadError):
    """Raised when Message indices are not exactly the contiguous range starting at 0."""

    def __init__(self, indices: Sequence[int]) -> None:
        self.indices = list(indices)
        expected = len(self.indices)
        missing = sorted(set(range(expected)) - set(self.indices))
        shown = ', '.join(str(i) for i in missing[:10]) or 'none'
        super().__init__(
            f'Message indices must be contiguous from 0; found {self.indices[:10]} '
            f'(missing within 0..{expected - 1}: {shown})'
        )


class OrphanFileRecord(ArchiveReadError):
    """Raised when a File record's message_index has no matching Message record."""

    def __init__(self, message_index: int, file_path: str) -> None:
        self.message_index = message_index
        self.file_path = file_path
        super().__init__(f'File record {file_path} references message_index {message_index} with no Message record')


# ==============================================================================
# Archive write errors
# ==============================================================================


class ArchiveWriteError(SessionArchiveError):
    """Base exception for archive production failures."""


class MalformedAttachment(ArchiveWriteError):
    """Raised when an attachment's content is not valid base64."""

    def __init__(self, message_index: int, path: str) -> None:
        self.message_index = message_index
        self.path = path
        super().__init__(f'Attachment {path} of message {message_index} is not valid base64')


class DuplicatePayloadPath(ArchiveWriteError):
    """Raised when two attachments of the same message would be placed at one path."""

    def __init__(self, message_index: int, path: str) -> None:
        self.message_index = message_index
        self.path = path
        super().__init__(f'Message {message_index} has more than one attachment at path {path}')
