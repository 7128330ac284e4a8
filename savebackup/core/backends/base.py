"""
Backend adapter contract.

Every storage provider implements ``upload(file_path, file_name, target) -> url``.
Providers are added by registering a new backend class, never by branching
on service names at call sites.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional, Protocol, Union, runtime_checkable

import aiohttp

from ..config import BackendKind, UploadTarget
from ..http import create_session
from ..upload.models import UploadProgress

ProgressCallback = Callable[[UploadProgress], None]


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for storage backend adapters."""

    kind: BackendKind

    async def upload(
        self,
        file_path: Union[str, Path],
        file_name: str,
        target: UploadTarget,
        progress_callback: Optional[ProgressCallback] = None
    ) -> str:
        """
        Upload a file.

        Args:
            file_path: Local file
            file_name: Remote file name
            target: Upload target configuration
            progress_callback: Optional progress observer (multipart only)

        Returns:
            Public download URL

        Raises:
            SaveBackupError: On configuration, transport or protocol failure
        """
        ...

    async def close(self) -> None:
        ...


class BaseBackend(ABC):
    """
    Base class for HTTP backends.

    Reuses a shared session when given one, otherwise creates and owns
    its own.
    """

    kind: BackendKind

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None
    ):
        self._session = session
        self._timeout = timeout
        self._owns_session = False

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None:
            self._session = create_session(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close session if we own it."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    @property
    def label(self) -> str:
        return self.kind.label

    @abstractmethod
    async def upload(
        self,
        file_path: Union[str, Path],
        file_name: str,
        target: UploadTarget,
        progress_callback: Optional[ProgressCallback] = None
    ) -> str:
        pass
