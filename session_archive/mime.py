"""
Path to content-type resolution.

MIME types are never persisted in the archive manifest, so the reader derives
them from attachment paths with this resolver.
"""

from __future__ import annotations

import math

__all__ = ['GENERIC_MIME_TYPE', 'format_bytes', 'get_mime_type_from_path', 'is_image_mime_type']

GENERIC_MIME_TYPE = 'application/octet-stream'

EXTENSION_MIME_TYPES = {
    'png': 'image/png',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'gif': 'image/gif',
    'svg': 'image/svg+xml',
    'webp': 'image/webp',
    'html': 'text/html',
    'css': 'text/css',
    'js': 'application/javascript',
    'ts': 'application/typescript',
    'tsx': 'application/typescript',
    'json': 'application/json',
    'txt': 'text/plain',
    'md': 'text/markdown',
}


def get_mime_type_from_path(path: str) -> str:
    """
    Map a file name's extension to a content-type label.

    Total function: unrecognized or missing extensions map to the generic
    binary label.

    Examples:
        >>> get_mime_type_from_path('src/App.TSX')
        'application/typescript'

        >>> get_mime_type_from_path('Makefile')
        'application/octet-stream'
    """
    name = path.rsplit('/', 1)[-1]
    if '.' not in name:
        return GENERIC_MIME_TYPE
    extension = name.rsplit('.', 1)[-1].lower()
    return EXTENSION_MIME_TYPES.get(extension, GENERIC_MIME_TYPE)


def is_image_mime_type(mime_type: str) -> bool:
    return mime_type.startswith('image/')


def format_bytes(size: int, decimals: int = 2) -> str:
    """Human-readable byte count (e.g. '1.5 KB')."""
    if size == 0:
        return '0 Bytes'
    k = 1024
    digits = max(decimals, 0)
    units = ['Bytes', 'KB', 'MB', 'GB', 'TB']
    i = min(int(math.floor(math.log(size, k))), len(units) - 1)
    value = round(size / k**i, digits)
    # Drop trailing zeros the way a float repr would ('1.50' -> '1.5')
    text = f'{value:.{digits}f}'.rstrip('0').rstrip('.') if digits else f'{value:.0f}'
    return f'{text} {units[i]}'
