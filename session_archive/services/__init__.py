"""Service layer for session archive operations."""

from session_archive.services.archive import ArchiveMetadata, SessionArchiveWriter
from session_archive.services.extract import ExtractedFile, extract_code_blocks
from session_archive.services.restore import SessionArchiveReader

__all__ = [
    'ArchiveMetadata',
    'ExtractedFile',
    'SessionArchiveReader',
    'SessionArchiveWriter',
    'extract_code_blocks',
]
