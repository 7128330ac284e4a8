"""Storage backend adapters."""
from .base import StorageBackend, BaseBackend, ProgressCallback
from .rootz import RootzBackend
from .buzzheavier import BuzzheavierBackend
from .registry import BackendRegistry, create_default_registry

__all__ = [
    'StorageBackend',
    'BaseBackend',
    'ProgressCallback',
    'RootzBackend',
    'BuzzheavierBackend',
    'BackendRegistry',
    'create_default_registry',
]
