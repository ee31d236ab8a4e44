"""
GitHub Gist storage backend for session archives.

Gists only hold UTF-8 text, so zip archives are stored base64-encoded under a
`.b64` suffixed filename and decoded again on load.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Literal

import httpx

B64_SUFFIX = '.b64'


class GistStorage:
    """
    GitHub Gist storage backend.

    Stores session archives as GitHub Gists. Supports creating new gists
    or updating existing ones.
    """

    # GitHub API limits: 100MB hard limit, 50MB warning threshold
    MAX_FILE_SIZE_MB = 100
    WARNING_FILE_SIZE_MB = 50

    def __init__(
        self,
        token: str,
        gist_id: str | None = None,
        visibility: Literal['public', 'secret'] = 'secret',
        description: str = 'Chat Session Archive',
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize Gist storage backend.

        Args:
            token: GitHub Personal Access Token with 'gist' scope (empty string allowed for read-only)
            gist_id: Optional existing gist ID (if None, creates new gist on save)
            visibility: 'public' or 'secret' (default: secret)
            description: Gist description
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.token = token
        self.gist_id = gist_id
        self.visibility = visibility
        self.description = description
        self.transport = transport
        self.base_url = 'https://api.github.com'

    def _headers(self) -> dict[str, str]:
        headers = {
            'Accept': 'application/vnd.github.v3+json',
            'X-GitHub-Api-Version': '2022-11-28',
        }
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport)

    async def save(self, filename: str, data: bytes) -> str:
        """
        Save archive to GitHub Gist.

        Args:
            filename: Archive filename (stored as <filename>.b64)
            data: Zip archive bytes

        Returns:
            Gist URL (e.g., https://gist.github.com/{user}/{gist_id})

        Raises:
            ValueError: If file too large (>100MB) or token missing
            httpx.HTTPStatusError: If GitHub API call fails
        """
        # Check token
        if not self.token:
            raise ValueError('GitHub token is required to save to Gist')

        content = base64.b64encode(data).decode('ascii')

        # Check encoded size (100MB hard limit)
        size_mb = len(content) / (1024 * 1024)
        if size_mb > self.MAX_FILE_SIZE_MB:
            raise ValueError(
                f'File too large for Gist: {size_mb:.2f}MB. '
                f'GitHub Gist files are limited to {self.MAX_FILE_SIZE_MB}MB. '
                f'Consider using local storage.'
            )

        stored_name = filename if filename.endswith(B64_SUFFIX) else filename + B64_SUFFIX

        # Create or update gist
        if self.gist_id:
            return await self._update_gist(stored_name, content)
        else:
            return await self._create_gist(stored_name, content)

    async def _create_gist(self, filename: str, content: str) -> str:
        """Create new gist."""
        async with self._client() as client:
            response = await client.post(
                f'{self.base_url}/gists',
                headers=self._headers(),
                json={
                    'description': self.description,
                    'public': self.visibility == 'public',
                    'files': {filename: {'content': content}},
                },
            )
            response.raise_for_status()

            gist_data = response.json()
            self.gist_id = gist_data['id']  # Store for future updates
            return gist_data['html_url']  # Return web URL

    async def _update_gist(self, filename: str, content: str) -> str:
        """Update existing gist."""
        async with self._client() as client:
            response = await client.patch(
                f'{self.base_url}/gists/{self.gist_id}',
                headers=self._headers(),
                json={'files': {filename: {'content': content}}},
            )
            response.raise_for_status()

            gist_data = response.json()
            return gist_data['html_url']

    async def _get_gist(self, client: httpx.AsyncClient) -> dict[str, Any]:
        response = await client.get(f'{self.base_url}/gists/{self.gist_id}', headers=self._headers())
        response.raise_for_status()
        return response.json()

    async def exists(self, filename: str) -> bool:
        """
        Check if gist exists and contains the archive (plain or .b64 name).

        Args:
            filename: Archive filename to check

        Returns:
            True if gist exists and contains the file
        """
        if not self.gist_id:
            return False

        try:
            async with self._client() as client:
                gist_data = await self._get_gist(client)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return False
            raise

        files = gist_data.get('files', {})
        return filename in files or filename + B64_SUFFIX in files

    async def find_archive(self) -> str:
        """
        Name of the first session archive stored in the gist.

        Returns the logical name (without the .b64 suffix).

        Raises:
            ValueError: If gist_id not set or the gist holds no archive
        """
        if not self.gist_id:
            raise ValueError('Cannot search gist: no gist_id provided')

        async with self._client() as client:
            gist_data = await self._get_gist(client)

        files = list(gist_data.get('files', {}))
        for name in files:
            logical = name.removesuffix(B64_SUFFIX)
            if logical.endswith('.zip'):
                return logical

        raise ValueError(f'No archive file found in gist {self.gist_id}. Available files: {", ".join(files)}')

    async def load(self, filename: str) -> bytes:
        """
        Load archive from GitHub Gist.

        Args:
            filename: Archive filename to load (the .b64 variant is found automatically)

        Returns:
            Archive data as bytes

        Raises:
            ValueError: If gist_id not set, file not found, or stored content is not base64
            httpx.HTTPStatusError: If GitHub API call fails
        """
        if not self.gist_id:
            raise ValueError('Cannot load from gist: no gist_id provided')

        async with self._client() as client:
            gist_data = await self._get_gist(client)
            files = gist_data.get('files', {})

            if filename + B64_SUFFIX in files:
                stored_name = filename + B64_SUFFIX
            elif filename in files:
                stored_name = filename
            else:
                raise ValueError(f"File '{filename}' not found in gist {self.gist_id}")

            # Get file content (must fetch from raw_url for truncated files)
            file_data = files[stored_name]
            if file_data.get('truncated', False) or 'content' not in file_data:
                # Truncated or missing content - fetch full content from raw_url
                raw_url = file_data.get('raw_url')
                if not raw_url:
                    raise ValueError(
                        f"File '{stored_name}' is truncated but no raw_url available. "
                        f'File size: {file_data.get("size", "unknown")} bytes'
                    )
                raw_response = await client.get(raw_url)
                raw_response.raise_for_status()
                content = raw_response.text
            else:
                content = file_data['content']

        if not stored_name.endswith(B64_SUFFIX):
            return content.encode('utf-8')

        try:
            return base64.b64decode(content, validate=True)
        except binascii.Error as e:
            raise ValueError(f"File '{stored_name}' in gist {self.gist_id} is not valid base64") from e
