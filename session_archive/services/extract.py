"""
Code-block extraction - turns response text into file artifacts.

Recognizes fenced blocks whose opening fence names a language and a file path:

    ```ts:src/a.ts
    console.log(1)
    ```

Blocks without a path token are not files and are skipped.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from session_archive.base_model import StrictModel
from session_archive.models import Attachment

__all__ = ['CODE_BLOCK_PATTERN', 'CodeBlockScan', 'ExtractedFile', 'extract_code_blocks']

# Opening fence: ``` + language token + optional (':' or blank) + path token, all on the fence line
CODE_BLOCK_PATTERN = re.compile(r'```(\w+)(?:[: \t]+([\w./-]+))?[ \t]*\n(.*?)```', re.DOTALL)


class ExtractedFile(StrictModel):
    """A (path, content) pair lifted from a fenced code block."""

    path: str
    content: str

    def to_attachment(self) -> Attachment:
        """Apply the size/mime step: UTF-8 byte length and resolver label."""
        return Attachment.from_bytes(self.path, self.content.encode('utf-8'))


class CodeBlockScan:
    """
    Lazy, restartable scan of one text for path-bearing code blocks.

    Each iteration rescans the text from the start and yields fresh
    ExtractedFile instances in document order.
    """

    def __init__(self, text: str) -> None:
        self.text = text

    def __iter__(self) -> Iterator[ExtractedFile]:
        for match in CODE_BLOCK_PATTERN.finditer(self.text):
            _language, file_path, code = match.groups()
            if not file_path:
                continue
            # Content drops the newline before the closing fence, then surrounding whitespace
            yield ExtractedFile(path=file_path.strip(), content=code.removesuffix('\n').strip())

    def attachments(self) -> list[Attachment]:
        return [extracted.to_attachment() for extracted in self]


def extract_code_blocks(text: str) -> CodeBlockScan:
    """
    Scan text for fenced code blocks that carry an explicit file path.

    The path must sit on the opening fence line. Unlike the Gemini Toolbox
    response parser, a bare first content line (```bash\\nls\\n```) is never
    taken as a file name.

    Args:
        text: Arbitrary text, typically a model response

    Returns:
        Iterable of ExtractedFile in order of appearance; never raises

    Examples:
        >>> [f.path for f in extract_code_blocks('```py:a.py\\nx = 1\\n```')]
        ['a.py']
    """
    return CodeBlockScan(text)
