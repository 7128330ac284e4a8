"""
Part upload service.

Handles uploading individual multipart parts to presigned URLs.
"""
from typing import Optional
import time
import asyncio
import aiohttp

from ...exceptions import TransportError
from ...http import create_session, describe_error, is_ok
from ...logging import get_logger
from ..models import PartResult


class PartUploader:
    """
    Uploads parts to presigned object-store URLs.

    Reuses HTTP session for all parts (critical for performance).

    Responsibilities:
    - PUT part bytes to its presigned URL
    - Map HTTP failures to TransportError
    - Extract the ETag proof of receipt
    """

    CONTENT_TYPE = 'application/octet-stream'

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None
    ):
        """
        Initialize part uploader.

        Args:
            session: Optional shared session (RECOMMENDED for performance)
            timeout: Optional per-request timeout override
        """
        self._session = session
        self._timeout = timeout
        self._owns_session = False
        self._logger = get_logger('savebackup.upload.part')

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None:
            self._session = create_session()
            self._owns_session = True
        return self._session

    async def close(self):
        """Close session if we own it."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    async def upload_part(self, part_number: int, url: str, data: bytes) -> PartResult:
        """
        Upload a single part.

        Args:
            part_number: 1-based part number
            url: Presigned PUT URL
            data: Part bytes

        Returns:
            PartResult with the unquoted ETag

        Raises:
            ValueError: If the part is empty
            TransportError: On network failure, timeout, non-2xx status or missing ETag
        """
        if not data:
            raise ValueError(f"Cannot upload empty part {part_number}")

        part_size_kb = len(data) / 1024
        session = await self._get_session()
        kwargs = {'timeout': self._timeout} if self._timeout else {}

        upload_start = time.time()
        self._logger.debug(f"Uploading part {part_number} ({part_size_kb:.1f} KB)")

        try:
            async with session.request(
                'PUT',
                url,
                data=data,
                headers={'Content-Type': self.CONTENT_TYPE},
                **kwargs
            ) as response:
                if not is_ok(response.status):
                    body = await response.text()
                    raise TransportError(
                        f"Part {part_number} upload failed",
                        status=response.status,
                        body=body
                    )
                etag = response.headers.get('ETag')
        except asyncio.TimeoutError as e:
            upload_time = time.time() - upload_start
            self._logger.error(f"Part {part_number} upload timeout after {upload_time:.2f}s")
            raise TransportError(f"Part {part_number} upload timed out") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Part {part_number} upload failed: {describe_error(e)}") from e

        if not etag:
            raise TransportError(f"Part {part_number} upload returned no ETag")

        upload_time = time.time() - upload_start
        speed_kbps = (part_size_kb / upload_time) if upload_time > 0 else 0
        self._logger.debug(
            f"Part {part_number} uploaded in {upload_time:.2f}s ({speed_kbps:.1f} KB/s)"
        )
        return PartResult(part_number=part_number, etag=etag.replace('"', ''))
