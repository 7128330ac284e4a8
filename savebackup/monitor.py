"""
BackupMonitor - High-level async save monitor.

Example:
    >>> async with BackupMonitor(config) as monitor:
    ...     result = await monitor.check()
    ...     await monitor.run()
"""
import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

import aiohttp

from .core.backends import BackendRegistry, ProgressCallback, create_default_registry
from .core.config import BackupConfig
from .core.http import create_session
from .core.logging import get_logger
from .core.notify import DiscordNotifier, Notifier
from .core.orchestrator import BackupContext, CheckResult, CheckStatus, UploadOrchestrator
from .core.saves import ChangeDetector

logger = get_logger('savebackup.monitor')


class BackupMonitor:
    """
    Periodically uploads the latest save of the current session.

    Owns the HTTP session, the backend adapters and the orchestrator.
    Checks are serialised: a manual check waits for a running periodic one,
    so only one file is ever being uploaded.
    """

    def __init__(
        self,
        config: BackupConfig,
        save_dir: Optional[Union[str, Path]] = None,
        session: Optional[aiohttp.ClientSession] = None,
        registry: Optional[BackendRegistry] = None,
        notifier: Optional[Notifier] = None,
        detector: Optional[ChangeDetector] = None,
        session_start: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize monitor.

        Args:
            config: Validated backup configuration
            save_dir: Save directory override
            session: Optional shared HTTP session
            registry: Backend registry (built-in backends by default)
            notifier: Notification sink (Discord by default)
            detector: Change detector
            session_start: Unix timestamp; older saves are ignored (now by default)
            sleep: Sleep function used between periodic checks
        """
        self._config = config.validate()
        self._context = BackupContext.from_config(config, save_dir, session_start)
        self._session = session
        self._owns_session = False
        self._registry = registry
        self._notifier = notifier
        self._detector = detector
        self._sleep = sleep
        self._orchestrator: Optional[UploadOrchestrator] = None
        self._lock = asyncio.Lock()

    @property
    def config(self) -> BackupConfig:
        return self._config

    @property
    def context(self) -> BackupContext:
        return self._context

    async def __aenter__(self) -> 'BackupMonitor':
        await self._ensure_ready()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_ready(self) -> UploadOrchestrator:
        if self._orchestrator is None:
            if self._session is None:
                self._session = create_session(timeout=self._config.timeout.to_aiohttp_timeout())
                self._owns_session = True
            if self._registry is None:
                self._registry = create_default_registry(self._session, self._config)
            if self._notifier is None:
                self._notifier = DiscordNotifier(self._session)
            self._orchestrator = UploadOrchestrator(
                self._registry,
                detector=self._detector,
                notifier=self._notifier
            )
        return self._orchestrator

    async def close(self):
        """Close client and release resources."""
        if self._registry is not None:
            await self._registry.close()
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            self._session = None
        self._orchestrator = None

    async def check(self, progress_callback: Optional[ProgressCallback] = None) -> CheckResult:
        """Run one check cycle now."""
        orchestrator = await self._ensure_ready()
        async with self._lock:
            return await orchestrator.check(self._context, progress_callback)

    async def upload_file(
        self,
        file_path: Union[str, Path],
        progress_callback: Optional[ProgressCallback] = None
    ) -> CheckResult:
        """Upload an explicit file through the configured backend."""
        orchestrator = await self._ensure_ready()
        async with self._lock:
            return await orchestrator.upload_file(file_path, self._context, progress_callback)

    async def run(
        self,
        iterations: Optional[int] = None,
        on_result: Optional[Callable[[CheckResult], None]] = None
    ) -> None:
        """
        Check every ``check_interval_minutes`` until cancelled.

        Args:
            iterations: Stop after this many checks (forever by default)
            on_result: Called with each check result
        """
        interval = self._config.check_interval_minutes * 60
        logger.info(
            f"Monitoring {self._context.save_dir} every "
            f"{self._config.check_interval_minutes} minutes ({self._context.target.label})"
        )

        completed = 0
        while iterations is None or completed < iterations:
            await self._sleep(interval)
            try:
                result = await self.check()
            except Exception as e:
                logger.exception(f"Check failed: {e}")
                result = CheckResult(CheckStatus.FAILED, error=e)
            completed += 1
            if on_result:
                on_result(result)
