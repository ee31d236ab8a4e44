"""Storage backends for session archives."""

from session_archive.storage.gist import GistStorage
from session_archive.storage.local import LocalFileSystemStorage
from session_archive.storage.protocol import StorageBackend

__all__ = ['GistStorage', 'LocalFileSystemStorage', 'StorageBackend']
