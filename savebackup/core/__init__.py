"""Core components: configuration, detection, upload, backends and orchestration."""
from .config import (
    BackendKind,
    AuthMode,
    UploadTarget,
    BackupConfig,
    RootzSettings,
    BuzzheavierSettings,
    TimeoutConfig,
    RetryConfig,
    JSONConfigStore
)
from .exceptions import (
    SaveBackupError,
    ConfigError,
    TransportError,
    ProtocolError,
    PartialUploadError
)
from .orchestrator import UploadOrchestrator, BackupContext, CheckResult, CheckStatus

__all__ = [
    'BackendKind',
    'AuthMode',
    'UploadTarget',
    'BackupConfig',
    'RootzSettings',
    'BuzzheavierSettings',
    'TimeoutConfig',
    'RetryConfig',
    'JSONConfigStore',
    'SaveBackupError',
    'ConfigError',
    'TransportError',
    'ProtocolError',
    'PartialUploadError',
    'UploadOrchestrator',
    'BackupContext',
    'CheckResult',
    'CheckStatus',
]
