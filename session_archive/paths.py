"""
Canonical archive layout.

    config.bejson
    manifest.bejson
    messages/message_<i>/content.md
    messages/message_<i>/files/<attachment path>

`<i>` is the zero-based position of the message at export time.
"""

from __future__ import annotations

__all__ = [
    'CONFIG_ENTRY',
    'MANIFEST_ENTRY',
    'MESSAGES_DIR',
    'archive_filename',
    'attachment_path_from_entry',
    'message_content_path',
    'message_file_path',
    'message_files_prefix',
]

CONFIG_ENTRY = 'config.bejson'
MANIFEST_ENTRY = 'manifest.bejson'
MESSAGES_DIR = 'messages'


def message_dir(index: int) -> str:
    return f'{MESSAGES_DIR}/message_{index}'


def message_content_path(index: int) -> str:
    """Entry name holding the raw text of message `index`."""
    return f'{message_dir(index)}/content.md'


def message_files_prefix(index: int) -> str:
    """Directory prefix (with trailing slash) for attachments of message `index`."""
    return f'{message_dir(index)}/files/'


def message_file_path(index: int, attachment_path: str) -> str:
    """Entry name holding the decoded payload of one attachment."""
    return f'{message_files_prefix(index)}{attachment_path}'


def attachment_path_from_entry(index: int, entry: str) -> str | None:
    """
    Recover an attachment's relative path from its entry name.

    Returns None when the entry is not under message `index`'s files directory.

    Examples:
        >>> attachment_path_from_entry(0, 'messages/message_0/files/src/a.ts')
        'src/a.ts'

        >>> attachment_path_from_entry(1, 'messages/message_0/files/src/a.ts') is None
        True
    """
    prefix = message_files_prefix(index)
    if not entry.startswith(prefix) or len(entry) == len(prefix):
        return None
    return entry[len(prefix) :]


def archive_filename(session_id: str) -> str:
    """Default download name for a session archive."""
    return f'session_{session_id}.zip'
