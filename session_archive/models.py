"""
Session data model.

Attachments hold their binary payload as base64 text. Mutations never happen
in place: every edit returns a new frozen instance.
"""

from __future__ import annotations

import base64
from typing import Self

import pydantic
import uuid6

from session_archive.base_model import StrictModel
from session_archive.mime import get_mime_type_from_path
from session_archive.types import JsonDatetime, Role, SettingsMap

__all__ = [
    'DEFAULT_SETTINGS',
    'DEFAULT_SYSTEM_INSTRUCTION',
    'Attachment',
    'Message',
    'Session',
    'VersionedAttachment',
    'decode_base64',
    'encode_base64',
]


DEFAULT_SYSTEM_INSTRUCTION = (
    'You are a helpful and expert software development assistant. When asked to generate code, '
    'you will provide the file contents in a markdown block, and specify the file path. '
    'For example: ```typescript:src/utils.ts\n// code here\n```'
)

DEFAULT_SETTINGS: SettingsMap = {
    'model': 'gemini-2.5-flash',
    'systemInstruction': DEFAULT_SYSTEM_INSTRUCTION,
    'temperature': 0.7,
    'topK': 40,
    'topP': 0.95,
    'prependMessage': '',
    'appendMessage': '',
    'usePrepend': False,
    'useAppend': False,
    'parseCodeBlocks': True,
    'conversationMode': True,
    'persistAttachments': False,
}


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


def decode_base64(content: str) -> bytes:
    """Strict base64 decode; raises binascii.Error on invalid input."""
    return base64.b64decode(content, validate=True)


# ==============================================================================
# Attachments
# ==============================================================================


class Attachment(StrictModel):
    """A named binary payload associated with a message."""

    path: str  # Display name and archive placement key
    content: str  # base64
    size: int  # Decoded byte length
    mime_type: str

    @pydantic.field_validator('path')
    @classmethod
    def validate_path(cls, v: str) -> str:
        """
        Paths name a single zip file entry: non-empty, relative, no parent
        traversal, no empty segments (so no trailing separator), no NUL.
        """
        if not v.strip():
            raise ValueError('Attachment path must be non-empty')
        if '\x00' in v:
            raise ValueError(f'Attachment path must not contain NUL characters: {v!r}')
        if v.startswith('/') or v.startswith('\\'):
            raise ValueError(f'Attachment path must be relative: {v}')
        segments = v.replace('\\', '/').split('/')
        if '..' in segments:
            raise ValueError(f'Attachment path must not contain parent segments: {v}')
        if '' in segments:
            raise ValueError(f'Attachment path must not contain empty segments or a trailing separator: {v}')
        return v

    @classmethod
    def from_bytes(cls, path: str, data: bytes, mime_type: str | None = None) -> Self:
        """Build an attachment with size and mime type derived from the payload and path."""
        return cls(
            path=path,
            content=encode_base64(data),
            size=len(data),
            mime_type=mime_type or get_mime_type_from_path(path),
        )

    def decoded(self) -> bytes:
        return decode_base64(self.content)

    def with_content(self, content: str) -> Self:
        """Replace the base64 content, recomputing size from the decoded payload."""
        return self.model_copy(update={'content': content, 'size': len(decode_base64(content))})


class VersionedAttachment(Attachment):
    """
    An attachment with stable identity across edits.

    `version` starts at 1 and grows by exactly one on every content change.
    """

    id: str
    version: int = 1

    @pydantic.field_validator('version')
    @classmethod
    def validate_version(cls, v: int) -> int:
        if v < 1:
            raise ValueError('version must be a positive integer')
        return v

    @classmethod
    def create(cls, path: str, data: bytes, mime_type: str | None = None) -> Self:
        """New versioned attachment with a fresh time-ordered id (UUIDv7)."""
        return cls(
            id=str(uuid6.uuid7()),
            version=1,
            path=path,
            content=encode_base64(data),
            size=len(data),
            mime_type=mime_type or get_mime_type_from_path(path),
        )

    def with_content(self, content: str) -> Self:
        return self.model_copy(
            update={'content': content, 'size': len(decode_base64(content)), 'version': self.version + 1}
        )


# ==============================================================================
# Messages and sessions
# ==============================================================================


class Message(StrictModel):
    """One conversation turn."""

    id: str
    role: Role
    content: str  # May embed fenced code blocks
    timestamp: JsonDatetime
    files: list[Attachment] = pydantic.Field(default_factory=list)
    is_alert: bool = False  # Error/system notice

    def with_content(self, content: str) -> Self:
        return self.model_copy(update={'content': content})

    def with_file_content(self, path: str, content: str) -> Self:
        """
        Replace the content of the attachment at `path`.

        Raises:
            KeyError: If the message has no attachment at `path`
        """
        if not any(f.path == path for f in self.files):
            raise KeyError(path)
        files = [f.with_content(content) if f.path == path else f for f in self.files]
        return self.model_copy(update={'files': files})


class Session(StrictModel):
    """Settings plus the ordered message list - the unit of export and import."""

    settings: SettingsMap = pydantic.Field(default_factory=dict)
    messages: list[Message] = pydantic.Field(default_factory=list)
