"""
SaveBackup - Async game save watcher and uploader.

Usage:
    >>> from savebackup import BackupMonitor, JSONConfigStore
    >>>
    >>> config = JSONConfigStore("config.json").load()
    >>> async with BackupMonitor(config) as monitor:
    ...     result = await monitor.check()
    ...     print(result.url)
"""
import logging
from .monitor import BackupMonitor
from .core.logging import ROOT_LOGGER_NAME

# Configuration
from .core.config import (
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

# Errors
from .core.exceptions import (
    SaveBackupError,
    ConfigError,
    TransportError,
    ProtocolError,
    PartialUploadError
)

# Orchestration
from .core.orchestrator import UploadOrchestrator, BackupContext, CheckResult, CheckStatus
from .core.resolver import LinkResolver

__version__ = '1.0.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for savebackup modules.

    This ensures that all savebackup loggers are properly configured
    to show log messages at the specified level, including module loggers
    that were pinned to WARNING at import time.

    Args:
        level: Logging level (default: logging.INFO)
    """
    names = [ROOT_LOGGER_NAME] + [
        name for name in list(logging.root.manager.loggerDict)
        if name.startswith(ROOT_LOGGER_NAME + '.')
    ]

    for logger_name in names:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'BackupMonitor',
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
    'LinkResolver',
    'setup_logging',
]
