"""
Upload orchestration.

Ties change detection to the selected backend: find the latest save,
fingerprint it, upload it when it changed, and notify. Every failure is
contained here so one bad check cycle never stops monitoring.
"""
import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

import aiohttp

from .backends import BackendRegistry, ProgressCallback
from .config import BackupConfig, UploadTarget
from .exceptions import SaveBackupError
from .logging import get_logger
from .notify import Notifier
from .saves import ChangeDetector, SaveCandidate, default_save_directory, format_upload_name

logger = get_logger('savebackup.orchestrator')

# Failures that end one check cycle but never the monitor
CYCLE_ERRORS = (SaveBackupError, aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError)


class CheckStatus(str, Enum):
    """Outcome of a single check cycle."""
    NO_CANDIDATE = 'no_candidate'
    UNCHANGED = 'unchanged'
    UPLOADED = 'uploaded'
    FAILED = 'failed'


@dataclass
class CheckResult:
    """
    Result of a check cycle.

    Attributes:
        status: Outcome
        candidate: Save that was considered, if any
        file_name: Remote file name used for the upload
        url: Download URL on success
        error: Failure cause when status is FAILED
    """
    status: CheckStatus
    candidate: Optional[SaveCandidate] = None
    file_name: Optional[str] = None
    url: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status != CheckStatus.FAILED


@dataclass
class BackupContext:
    """
    Explicit orchestration state for one monitoring session.

    ``last_fingerprint`` is only written by the orchestrator, and only after
    a successful upload.
    """
    target: UploadTarget
    save_dir: Path
    session_start: float = field(default_factory=time.time)
    name_prefix: Optional[str] = None
    notify_target: Optional[str] = None
    last_fingerprint: Optional[str] = None

    @classmethod
    def from_config(
        cls,
        config: BackupConfig,
        save_dir: Optional[Path] = None,
        session_start: Optional[float] = None
    ) -> 'BackupContext':
        """Build a context, falling back to the platform's save directory."""
        return cls(
            target=config.to_target(),
            save_dir=Path(save_dir or config.save_dir or default_save_directory()),
            session_start=time.time() if session_start is None else session_start,
            name_prefix=config.name_prefix,
            notify_target=config.discord_webhook,
        )


class UploadOrchestrator:
    """
    Coordinates detection, upload and notification.

    Example:
        >>> orchestrator = UploadOrchestrator(registry, notifier=DiscordNotifier(session))
        >>> context = BackupContext.from_config(config)
        >>> result = await orchestrator.check(context)
    """

    def __init__(
        self,
        registry: BackendRegistry,
        detector: Optional[ChangeDetector] = None,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self._registry = registry
        self._detector = detector or ChangeDetector()
        self._notifier = notifier
        self._clock = clock

    @property
    def detector(self) -> ChangeDetector:
        return self._detector

    async def check(
        self,
        context: BackupContext,
        progress_callback: Optional[ProgressCallback] = None
    ) -> CheckResult:
        """
        Run one check cycle.

        Never raises for upload failures; they are logged and returned as
        a FAILED result.
        """
        candidate = self._detector.latest(context.save_dir, since=context.session_start)
        if candidate is None:
            logger.debug(f"No new saves in {context.save_dir}")
            return CheckResult(CheckStatus.NO_CANDIDATE)

        try:
            fingerprint = await self._detector.fingerprint(candidate.path)
        except OSError as e:
            logger.error(f"Could not read {candidate.name}: {e}")
            return CheckResult(CheckStatus.FAILED, candidate=candidate, error=e)

        if not self._detector.should_upload(fingerprint, context.last_fingerprint):
            logger.info("No changes detected")
            return CheckResult(CheckStatus.UNCHANGED, candidate=candidate)

        logger.info(f"Change detected in: {candidate.name}")
        return await self._process(candidate, context, fingerprint, progress_callback)

    async def process(
        self,
        candidate: SaveCandidate,
        context: BackupContext,
        fingerprint: str,
        progress_callback: Optional[ProgressCallback] = None
    ) -> Optional[str]:
        """
        Upload a changed candidate.

        Returns:
            Download URL, or None if the upload failed
        """
        result = await self._process(candidate, context, fingerprint, progress_callback)
        return result.url

    async def upload_file(
        self,
        file_path: Union[str, Path],
        context: BackupContext,
        progress_callback: Optional[ProgressCallback] = None
    ) -> CheckResult:
        """Upload an explicit file regardless of change detection."""
        path = Path(file_path)
        try:
            stat = path.stat()
            fingerprint = await self._detector.fingerprint(path)
        except OSError as e:
            logger.error(f"Could not read {path}: {e}")
            return CheckResult(CheckStatus.FAILED, error=e)

        candidate = SaveCandidate(path=path, name=path.name, modified_at=stat.st_mtime)
        return await self._process(candidate, context, fingerprint, progress_callback)

    async def _process(
        self,
        candidate: SaveCandidate,
        context: BackupContext,
        fingerprint: str,
        progress_callback: Optional[ProgressCallback]
    ) -> CheckResult:
        file_name = format_upload_name(candidate.name, context.name_prefix, now=self._clock())
        target = context.target

        try:
            backend = self._registry.get(target.kind)
            logger.info(f"Uploading {file_name} to {target.label}")
            url = await backend.upload(candidate.path, file_name, target, progress_callback)
        except CYCLE_ERRORS as e:
            logger.error(f"Upload of {candidate.name} to {target.label} failed: {e}")
            return CheckResult(CheckStatus.FAILED, candidate=candidate, file_name=file_name, error=e)
        except Exception as e:
            logger.exception(f"Unexpected error uploading {candidate.name} to {target.label}: {e}")
            return CheckResult(CheckStatus.FAILED, candidate=candidate, file_name=file_name, error=e)

        context.last_fingerprint = fingerprint
        await self._notify(context, file_name, url)
        return CheckResult(CheckStatus.UPLOADED, candidate=candidate, file_name=file_name, url=url)

    async def _notify(self, context: BackupContext, file_name: str, url: str) -> None:
        if self._notifier is None or not context.notify_target:
            return
        try:
            await self._notifier.notify(context.notify_target, file_name, url, context.target.label)
        except Exception as e:
            logger.warning(f"Failed to send notification: {e}")
