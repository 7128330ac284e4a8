"""
Buzzheavier backend.

Uploads the whole file with a single PUT, anonymously or with a bearer
account ID.
"""
import asyncio
from pathlib import Path
from typing import AsyncIterator, Optional, Union
from urllib.parse import quote

import aiofiles
import aiohttp

from ..config import BackendKind, UploadTarget
from ..exceptions import ConfigError, TransportError
from ..http import describe_error, is_ok
from ..logging import get_logger
from ..upload.services import SaveArchiveValidator
from .base import BaseBackend, ProgressCallback

logger = get_logger('savebackup.backends.buzzheavier')

DEFAULT_PUBLIC_BASE_URL = 'https://buzzheavier.com/f'
STREAM_BLOCK_SIZE = 1024 * 1024  # 1MB


class BuzzheavierBackend(BaseBackend):
    """Simple object PUT backend."""

    kind = BackendKind.SIMPLE_OBJECT_STORE
    CONTENT_TYPE = 'application/zip'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._validator = SaveArchiveValidator()

    @staticmethod
    async def stream_file(path: Path) -> AsyncIterator[bytes]:
        """Yield the file in blocks so large saves are never held in memory."""
        async with aiofiles.open(path, 'rb') as f:
            while True:
                block = await f.read(STREAM_BLOCK_SIZE)
                if not block:
                    break
                yield block

    def build_upload_url(self, file_name: str, target: UploadTarget) -> str:
        """Destination URL; authenticated uploads may target a location folder."""
        url = target.endpoint.rstrip('/')
        if target.is_authenticated and target.location_id:
            url += f"/{quote(target.location_id, safe='')}"
        return f"{url}/{quote(file_name)}"

    @staticmethod
    def check_credentials(target: UploadTarget) -> None:
        """
        Raises:
            ConfigError: If authentication is required but no credential is set
        """
        if target.is_authenticated and not target.credentials:
            raise ConfigError("Buzzheavier account ID is missing in config")

    def build_headers(self, target: UploadTarget, content_length: int) -> dict:
        """Request headers for the PUT, with the bearer credential when authenticated."""
        self.check_credentials(target)
        headers = {
            'Content-Type': self.CONTENT_TYPE,
            'Content-Length': str(content_length),
        }
        if target.is_authenticated:
            headers['Authorization'] = f"Bearer {target.credentials}"
        return headers

    async def upload(
        self,
        file_path: Union[str, Path],
        file_name: str,
        target: UploadTarget,
        progress_callback: Optional[ProgressCallback] = None
    ) -> str:
        self.check_credentials(target)
        path, file_size = self._validator.validate(file_path)
        headers = self.build_headers(target, file_size)
        url = self.build_upload_url(file_name, target)

        mode = 'Authenticated' if target.is_authenticated else 'Anonymous'
        logger.info(f"Uploading to {self.label} ({mode}): {url}")

        session = await self._get_session()
        try:
            async with session.request(
                'PUT',
                url,
                data=self.stream_file(path),
                headers=headers
            ) as response:
                status = response.status
                text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Upload failed: {describe_error(e)}") from e

        if not is_ok(status):
            raise TransportError("Upload failed", status=status, body=text)

        public_base = (target.public_base_url or DEFAULT_PUBLIC_BASE_URL).rstrip('/')
        download_url = f"{public_base}/{quote(file_name)}"
        logger.info(f"Upload successful! Link: {download_url}")
        return download_url
