"""
Rootz backend.

Small files go up in a single form POST; files at or above the target's
multipart threshold go through the multipart coordinator.
"""
from pathlib import Path
from typing import Optional, Union

import aiofiles
import aiohttp

from ..config import BackendKind, RetryConfig, UploadTarget
from ..exceptions import ProtocolError
from ..http import check_success, send_json
from ..logging import get_logger
from ..retry import ExponentialBackoffStrategy, RetryStrategy
from ..upload import MultipartUploadCoordinator, ParallelismStrategy
from ..upload.services import SaveArchiveValidator
from .base import BaseBackend, ProgressCallback

logger = get_logger('savebackup.backends.rootz')

DEFAULT_MULTIPART_THRESHOLD = 4 * 1024 * 1024  # 4MB


class RootzBackend(BaseBackend):
    """
    Multipart-capable object store backend.

    Example:
        >>> backend = RootzBackend(session)
        >>> url = await backend.upload(path, "save.zip", config.to_target())
    """

    kind = BackendKind.MULTIPART_OBJECT_STORE
    UPLOAD_PATH = '/api/files/upload'

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        retry: Optional[RetryConfig] = None,
        retry_strategy: Optional[RetryStrategy] = None,
        parallelism_strategy: Optional[ParallelismStrategy] = None
    ):
        """
        Initialize Rootz backend.

        Args:
            session: Optional shared HTTP session
            timeout: Timeout for a session created by the backend
            retry: Part retry settings
            retry_strategy: Overrides the backoff built from ``retry``
            parallelism_strategy: Overrides the size-tiered default
        """
        super().__init__(session, timeout)
        self._retry = retry or RetryConfig()
        self._retry_strategy = retry_strategy or ExponentialBackoffStrategy(
            base_delay=self._retry.base_delay
        )
        self._parallelism_strategy = parallelism_strategy
        self._validator = SaveArchiveValidator()

    async def upload(
        self,
        file_path: Union[str, Path],
        file_name: str,
        target: UploadTarget,
        progress_callback: Optional[ProgressCallback] = None
    ) -> str:
        path, file_size = self._validator.validate(file_path)
        threshold = target.multipart_threshold or DEFAULT_MULTIPART_THRESHOLD
        logger.info(f"File size: {file_size / 1024 / 1024:.2f} MB")

        if file_size < threshold:
            return await self._upload_small(path, file_name, target)
        return await self._upload_multipart(path, file_name, target, progress_callback)

    async def _upload_small(self, path: Path, file_name: str, target: UploadTarget) -> str:
        """Upload the whole file in one multipart/form-data POST."""
        async with aiofiles.open(path, 'rb') as f:
            content = await f.read()

        form = aiohttp.FormData()
        form.add_field('file', content, filename=file_name, content_type='application/zip')

        session = await self._get_session()
        status, data = await send_json(
            session,
            'POST',
            f"{target.endpoint}{self.UPLOAD_PATH}",
            'Upload',
            require_ok=False,
            data=form
        )
        body = check_success(data, 'Upload', status=status)

        file_info = body.get('data')
        short_id = file_info.get('shortId') if isinstance(file_info, dict) else None
        if not short_id:
            raise ProtocolError(f"Upload response has no file ID: {body!r}")

        url = f"{target.endpoint}/d/{short_id}"
        logger.info(f"Upload completed: {url}")
        return url

    async def _upload_multipart(
        self,
        path: Path,
        file_name: str,
        target: UploadTarget,
        progress_callback: Optional[ProgressCallback]
    ) -> str:
        session = await self._get_session()
        coordinator = MultipartUploadCoordinator(
            session,
            target.endpoint,
            parallelism_strategy=self._parallelism_strategy,
            retry_strategy=self._retry_strategy,
            max_attempts=self._retry.max_attempts,
            progress_callback=progress_callback
        )
        return await coordinator.upload(path, file_name)
