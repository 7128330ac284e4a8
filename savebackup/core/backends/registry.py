"""Backend registry keyed by BackendKind."""
from typing import Dict, List, Optional

import aiohttp

from ..config import BackendKind, BackupConfig
from ..exceptions import ConfigError
from .base import StorageBackend
from .buzzheavier import BuzzheavierBackend
from .rootz import RootzBackend


class BackendRegistry:
    """
    Maps backend kinds to adapter instances.

    Example:
        >>> registry = BackendRegistry().register(RootzBackend(session))
        >>> backend = registry.get(BackendKind.MULTIPART_OBJECT_STORE)
    """

    def __init__(self):
        self._backends: Dict[BackendKind, StorageBackend] = {}

    def register(self, backend: StorageBackend) -> 'BackendRegistry':
        """Register an adapter under its kind, replacing any previous one."""
        self._backends[backend.kind] = backend
        return self

    def get(self, kind: BackendKind) -> StorageBackend:
        """
        Get the adapter for a kind.

        Raises:
            ConfigError: If no adapter is registered for the kind
        """
        try:
            return self._backends[kind]
        except KeyError:
            raise ConfigError(f"Service {kind!r} not implemented or supported") from None

    def kinds(self) -> List[BackendKind]:
        return list(self._backends)

    async def close(self) -> None:
        """Close every registered adapter."""
        for backend in self._backends.values():
            await backend.close()


def create_default_registry(
    session: Optional[aiohttp.ClientSession] = None,
    config: Optional[BackupConfig] = None
) -> BackendRegistry:
    """Registry with every built-in backend, sharing one session."""
    config = config or BackupConfig()
    timeout = config.timeout.to_aiohttp_timeout()
    return (
        BackendRegistry()
        .register(RootzBackend(session, timeout=timeout, retry=config.retry))
        .register(BuzzheavierBackend(session, timeout=timeout))
    )
