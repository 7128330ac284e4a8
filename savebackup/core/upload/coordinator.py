"""
Multipart upload coordinator.

Orchestrates a chunked upload against a presigned-URL object store:
session init, one batched presigned URL request, windowed parallel part
uploads with per-part retry, and an ordered finalize call.
Depends on abstractions (strategies, reader, uploader) injected at construction.
"""
import asyncio
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import aiohttp

from ..exceptions import PartialUploadError, ProtocolError, SaveBackupError
from ..http import check_success, send_json
from ..logging import get_logger
from ..retry import ExponentialBackoffStrategy, RetryStrategy, retry_async
from .models import (
    MultipartSession,
    PartRange,
    PartResult,
    UploadProgress,
    UploadState,
    order_parts,
)
from .protocols import (
    PartReaderProtocol,
    FileValidatorProtocol,
    ParallelismStrategy,
    PartUploaderProtocol
)
from .services import PartReader, PartUploader, SaveArchiveValidator
from .strategies import FixedSizeChunkingStrategy, SizeTieredParallelismStrategy

logger = get_logger('savebackup.upload.multipart')

MB = 1024 * 1024


class MultipartUploadCoordinator:
    """
    Coordinates a multipart upload for a single file.

    State advances INIT -> URLS_ACQUIRED -> PARTS_UPLOADING -> FINALIZING -> DONE,
    and any failure moves it to FAILED. Parts are uploaded in windows of
    ``parallelism`` concurrent requests; a window must fully settle before the
    next one starts. A part that exhausts its retries fails the whole upload
    and finalize is never attempted.

    The remote session is not aborted on failure (the provider exposes no
    abort endpoint); the upload ID is logged so the orphan can be traced.

    Example:
        >>> coordinator = MultipartUploadCoordinator(session, "https://www.rootz.so")
        >>> url = await coordinator.upload(Path("save.zip"), "save_20240101_000000.zip")
    """

    CONTENT_TYPE = 'application/octet-stream'
    INIT_PATH = '/api/files/multipart/init'
    BATCH_URLS_PATH = '/api/files/multipart/batch-urls'
    COMPLETE_PATH = '/api/files/multipart/complete'

    def __init__(
        self,
        session: aiohttp.ClientSession,
        endpoint: str,
        parallelism_strategy: Optional[ParallelismStrategy] = None,
        retry_strategy: Optional[RetryStrategy] = None,
        max_attempts: int = 3,
        part_reader: Optional[PartReaderProtocol] = None,
        part_uploader: Optional[PartUploaderProtocol] = None,
        file_validator: Optional[FileValidatorProtocol] = None,
        progress_callback: Optional[Callable[[UploadProgress], None]] = None
    ):
        """
        Initialize multipart coordinator.

        Args:
            session: HTTP session used for API calls and part uploads
            endpoint: Provider base URL
            parallelism_strategy: Chooses concurrent part uploads by file size
            retry_strategy: Backoff policy for part uploads
            max_attempts: Attempts per part, including the first
            part_reader: Reads part bytes from the save
            part_uploader: Part uploader implementation
            file_validator: File validator implementation
            progress_callback: Called after each window completes
        """
        self._session = session
        self._endpoint = endpoint.rstrip('/')
        self._parallelism = parallelism_strategy or SizeTieredParallelismStrategy()
        self._retry = retry_strategy or ExponentialBackoffStrategy()
        self._max_attempts = max_attempts
        self._part_reader = part_reader or PartReader()
        self._part_uploader = part_uploader or PartUploader(session)
        self._progress_callback = progress_callback
        self._validator = file_validator or SaveArchiveValidator()
        self._state = UploadState.INIT
        self._multipart: Optional[MultipartSession] = None

    @property
    def state(self) -> UploadState:
        """Current upload state."""
        return self._state

    @property
    def multipart_session(self) -> Optional[MultipartSession]:
        """Session of the current or last upload, if init succeeded."""
        return self._multipart

    def _url(self, path: str) -> str:
        return f"{self._endpoint}{path}"

    async def upload(self, file_path: Union[str, Path], file_name: str) -> str:
        """
        Execute the complete multipart upload.

        Args:
            file_path: Local file to upload
            file_name: Remote file name

        Returns:
            Public download URL

        Raises:
            FileNotFoundError: If file doesn't exist
            TransportError: If init fails or a part exhausts its retries
            ProtocolError: If the provider reports failure for session or URLs
            PartialUploadError: If all parts succeeded but finalize was rejected
        """
        self._state = UploadState.INIT
        self._multipart = None
        path, file_size = self._validator.validate(file_path)

        try:
            logger.info(f"Initializing upload for {file_name} ({file_size / MB:.2f} MB)")
            multipart = await self._init_session(file_name, file_size)
            self._multipart = multipart

            await self._acquire_part_urls(multipart)
            self._state = UploadState.URLS_ACQUIRED

            self._state = UploadState.PARTS_UPLOADING
            parts = await self._upload_parts(path, file_size, multipart)

            self._state = UploadState.FINALIZING
            url = await self._complete(multipart, parts, file_name, file_size)
        except Exception as e:
            self._state = UploadState.FAILED
            if self._multipart is not None:
                logger.warning(
                    f"Multipart upload {self._multipart.upload_id} for {file_name} "
                    f"left unfinished on the server: {e}"
                )
            raise

        self._state = UploadState.DONE
        logger.info(f"Upload completed: {url}")
        return url

    async def _init_session(self, file_name: str, file_size: int) -> MultipartSession:
        """Open the remote multipart session. Not retried."""
        _, data = await send_json(
            self._session,
            'POST',
            self._url(self.INIT_PATH),
            'Multipart init',
            json={
                'fileName': file_name,
                'fileSize': file_size,
                'fileType': self.CONTENT_TYPE,
            }
        )
        multipart = MultipartSession.from_init_response(data)

        expected_parts = FixedSizeChunkingStrategy(multipart.chunk_size).count_parts(file_size)
        if multipart.total_parts != expected_parts:
            raise ProtocolError(
                f"Provider announced {multipart.total_parts} parts, "
                f"expected {expected_parts} for {file_size} bytes"
            )

        logger.info(
            f"Upload initialized: {multipart.total_parts} parts x "
            f"{multipart.chunk_size / MB:.1f} MB"
        )
        return multipart

    async def _acquire_part_urls(self, multipart: MultipartSession) -> None:
        """Request every presigned part URL in a single call."""
        logger.info(f"Getting presigned URLs for {multipart.total_parts} parts")
        status, data = await send_json(
            self._session,
            'POST',
            self._url(self.BATCH_URLS_PATH),
            'Presigned URL request',
            require_ok=False,
            json={
                'key': multipart.object_key,
                'uploadId': multipart.upload_id,
                'totalParts': multipart.total_parts,
            }
        )
        body = check_success(data, 'Presigned URL request', status=status)
        multipart.set_part_urls(body.get('urls'))

    async def _upload_parts(
        self,
        path: Path,
        file_size: int,
        multipart: MultipartSession
    ) -> List[PartResult]:
        """
        Upload all parts in fixed-width windows.

        Returns:
            Part results in completion order
        """
        ranges = FixedSizeChunkingStrategy(multipart.chunk_size).calculate_parts(file_size)
        width = max(1, self._parallelism.parallelism(file_size))
        progress = UploadProgress(total_parts=len(ranges), total_bytes=file_size)

        logger.info(f"Uploading {len(ranges)} parts with {width}x parallelism")
        start_time = time.time()
        results: List[PartResult] = []

        for offset in range(0, len(ranges), width):
            window = ranges[offset:offset + width]
            outcomes = await asyncio.gather(
                *(self._upload_part(path, part, multipart.part_urls[part.part_number])
                  for part in window),
                return_exceptions=True
            )

            errors = [o for o in outcomes if isinstance(o, BaseException)]
            if errors:
                failed = [p.part_number for p, o in zip(window, outcomes) if isinstance(o, BaseException)]
                logger.error(f"Parts {failed} failed; aborting upload")
                raise errors[0]

            results.extend(outcomes)
            progress.uploaded_parts += len(window)
            progress.uploaded_bytes += sum(p.size for p in window)
            logger.info(
                f"Progress: {progress.percentage:.1f}% "
                f"({progress.uploaded_parts}/{progress.total_parts})"
            )
            if self._progress_callback:
                self._progress_callback(progress)

        elapsed = time.time() - start_time
        logger.info(f"All parts uploaded in {elapsed:.1f}s")
        return results

    async def _upload_part(self, path: Path, part: PartRange, url: str) -> PartResult:
        """Read one part and upload it under the retry policy."""
        data = await self._part_reader.read_part(path, part)
        return await retry_async(
            lambda: self._part_uploader.upload_part(part.part_number, url, data),
            strategy=self._retry,
            max_attempts=self._max_attempts,
            description=f"Part {part.part_number}"
        )

    async def _complete(
        self,
        multipart: MultipartSession,
        parts: List[PartResult],
        file_name: str,
        file_size: int
    ) -> str:
        """Finalize the upload with parts ordered by part number."""
        ordered = order_parts(parts, multipart.total_parts)
        logger.info("Finalizing upload")

        try:
            status, data = await send_json(
                self._session,
                'POST',
                self._url(self.COMPLETE_PATH),
                'Multipart complete',
                require_ok=False,
                json={
                    'key': multipart.object_key,
                    'uploadId': multipart.upload_id,
                    'parts': [p.to_dict() for p in ordered],
                    'fileName': file_name,
                    'fileSize': file_size,
                    'contentType': self.CONTENT_TYPE,
                }
            )
            body = check_success(data, 'Multipart complete', status=status)
            short_id = self._extract_short_id(body)
        except SaveBackupError as e:
            raise PartialUploadError(
                f"All {len(ordered)} parts uploaded but finalize was rejected: {e}",
                upload_id=multipart.upload_id,
                object_key=multipart.object_key,
                parts=ordered,
                body=e.body
            ) from e

        return f"{self._endpoint}/d/{short_id}"

    @staticmethod
    def _extract_short_id(body: Dict[str, Any]) -> str:
        file_info = body.get('file') or {}
        short_id = file_info.get('shortId') if isinstance(file_info, dict) else None
        if not short_id:
            raise ProtocolError(f"Completion response has no file ID: {body!r}")
        return str(short_id)
