"""
Backup configuration module.

Dataclasses describing the selected backend, check cadence, notification
target and transport settings, plus JSON persistence compatible with the
``config.json`` layout written by earlier versions of the tool.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, Union
import json

from .exceptions import ConfigError
from .logging import get_logger

logger = get_logger('savebackup.config')

DEFAULT_CONFIG_FILE = 'config.json'
DEFAULT_CHECK_INTERVAL = 6


class BackendKind(str, Enum):
    """Storage backend variants, keyed by the service name used in config files."""
    SIMPLE_OBJECT_STORE = 'buzzheavier'
    MULTIPART_OBJECT_STORE = 'rootz'

    @property
    def label(self) -> str:
        """Human readable service name."""
        return self.value.capitalize()


class AuthMode(str, Enum):
    """Whether requests carry a bearer credential."""
    ANONYMOUS = 'anonymous'
    AUTHENTICATED = 'authenticated'


@dataclass(frozen=True)
class UploadTarget:
    """
    Immutable description of where uploads go for one run.

    Attributes:
        kind: Backend variant
        endpoint: Base URL of the upload API
        auth_mode: Anonymous or authenticated
        credentials: Bearer credential (account ID) when authenticated
        location_id: Optional destination folder for object PUT providers
        public_base_url: Base of public download links, when it differs from endpoint
        multipart_threshold: Files at or above this size use multipart upload
    """
    kind: BackendKind
    endpoint: str
    auth_mode: AuthMode = AuthMode.ANONYMOUS
    credentials: Optional[str] = None
    location_id: Optional[str] = None
    public_base_url: Optional[str] = None
    multipart_threshold: Optional[int] = None

    @property
    def label(self) -> str:
        return self.kind.label

    @property
    def is_authenticated(self) -> bool:
        return self.auth_mode == AuthMode.AUTHENTICATED


@dataclass
class RootzSettings:
    """Rootz (multipart object store) settings."""
    endpoint: str = 'https://www.rootz.so'
    multipart_threshold: int = 4 * 1024 * 1024  # 4MB

    def to_dict(self) -> Dict[str, Any]:
        return {
            'endpoint': self.endpoint,
            'multipartThreshold': self.multipart_threshold,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'RootzSettings':
        data = data or {}
        defaults = cls()
        return cls(
            endpoint=data.get('endpoint') or defaults.endpoint,
            multipart_threshold=int(data.get('multipartThreshold', defaults.multipart_threshold)),
        )


@dataclass
class BuzzheavierSettings:
    """Buzzheavier (object PUT) settings."""
    endpoint: str = 'https://w.buzzheavier.com'
    public_base_url: str = 'https://buzzheavier.com/f'
    anonymous: bool = True
    account_id: Optional[str] = None
    location_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'endpoint': self.endpoint,
            'publicBaseUrl': self.public_base_url,
            'anonymous': self.anonymous,
            'accountId': self.account_id,
            'locationId': self.location_id,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'BuzzheavierSettings':
        data = data or {}
        defaults = cls()
        return cls(
            endpoint=data.get('endpoint') or defaults.endpoint,
            public_base_url=data.get('publicBaseUrl') or defaults.public_base_url,
            anonymous=bool(data.get('anonymous', defaults.anonymous)),
            account_id=data.get('accountId') or None,
            location_id=data.get('locationId') or None,
        )


@dataclass
class TimeoutConfig:
    """
    Timeout configuration.

    Upload requests can run for a long time on slow links, so the total
    timeout is left unset by default and only connection setup is bounded.
    """
    total: Optional[float] = None
    connect: float = 30.0
    sock_read: Optional[float] = None

    def to_aiohttp_timeout(self):
        """Convert to aiohttp ClientTimeout."""
        import aiohttp
        return aiohttp.ClientTimeout(
            total=self.total,
            connect=self.connect,
            sock_read=self.sock_read
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'total': self.total, 'connect': self.connect, 'sockRead': self.sock_read}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'TimeoutConfig':
        data = data or {}
        defaults = cls()
        return cls(
            total=data.get('total', defaults.total),
            connect=data.get('connect', defaults.connect),
            sock_read=data.get('sockRead', defaults.sock_read),
        )


@dataclass
class RetryConfig:
    """
    Retry configuration for multipart part uploads.

    Attempt ``n`` (zero based) waits ``base_delay * 2 ** n`` seconds before
    the next one.
    """
    max_attempts: int = 3
    base_delay: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {'maxAttempts': self.max_attempts, 'baseDelay': self.base_delay}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'RetryConfig':
        data = data or {}
        defaults = cls()
        return cls(
            max_attempts=int(data.get('maxAttempts', defaults.max_attempts)),
            base_delay=float(data.get('baseDelay', defaults.base_delay)),
        )


@dataclass
class BackupConfig:
    """
    Complete backup configuration.

    Attributes:
        backend: Selected storage backend
        check_interval_minutes: Minutes between periodic checks
        discord_webhook: Optional Discord webhook URL for notifications
        name_prefix: Optional token prepended to uploaded file names
        save_dir: Optional explicit save directory (auto-detected otherwise)
        rootz: Rootz settings
        buzzheavier: Buzzheavier settings
        timeout: HTTP timeout settings
        retry: Part upload retry settings
    """
    backend: BackendKind = BackendKind.MULTIPART_OBJECT_STORE
    check_interval_minutes: float = DEFAULT_CHECK_INTERVAL
    discord_webhook: Optional[str] = None
    name_prefix: Optional[str] = None
    save_dir: Optional[Path] = None
    rootz: RootzSettings = field(default_factory=RootzSettings)
    buzzheavier: BuzzheavierSettings = field(default_factory=BuzzheavierSettings)
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    def __post_init__(self):
        if isinstance(self.save_dir, str):
            self.save_dir = Path(self.save_dir)

    def validate(self) -> 'BackupConfig':
        """
        Validate configuration values.

        Returns:
            self, for chaining

        Raises:
            ConfigError: If a value is out of range
        """
        if not isinstance(self.backend, BackendKind):
            raise ConfigError(f"Unsupported cloud service: {self.backend!r}")
        interval = self.check_interval_minutes
        if isinstance(interval, bool) or not isinstance(interval, (int, float)) or interval <= 0:
            raise ConfigError("Check interval must be a number greater than 0")
        if self.retry.max_attempts < 1:
            raise ConfigError("Retry attempts must be at least 1")
        return self

    def to_target(self) -> UploadTarget:
        """Build the immutable upload target for the selected backend."""
        if self.backend == BackendKind.MULTIPART_OBJECT_STORE:
            return UploadTarget(
                kind=self.backend,
                endpoint=self.rootz.endpoint.rstrip('/'),
                multipart_threshold=self.rootz.multipart_threshold,
            )

        settings = self.buzzheavier
        return UploadTarget(
            kind=self.backend,
            endpoint=settings.endpoint.rstrip('/'),
            auth_mode=AuthMode.ANONYMOUS if settings.anonymous else AuthMode.AUTHENTICATED,
            credentials=settings.account_id,
            location_id=settings.location_id,
            public_base_url=settings.public_base_url.rstrip('/'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the config.json layout."""
        return {
            'cloudService': self.backend.value,
            'checkInterval': self.check_interval_minutes,
            'discordWebhook': self.discord_webhook,
            'namePrefix': self.name_prefix,
            'saveDir': str(self.save_dir) if self.save_dir else None,
            'buzzheavier': self.buzzheavier.to_dict(),
            'rootz': self.rootz.to_dict(),
            'timeout': self.timeout.to_dict(),
            'retry': self.retry.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BackupConfig':
        """
        Create from a config.json dictionary.

        Raises:
            ConfigError: If the service name is unknown
        """
        service = data.get('cloudService', BackendKind.MULTIPART_OBJECT_STORE.value)
        try:
            backend = BackendKind(service)
        except ValueError:
            raise ConfigError(f"Unsupported cloud service: {service!r}") from None

        return cls(
            backend=backend,
            check_interval_minutes=data.get('checkInterval', DEFAULT_CHECK_INTERVAL),
            discord_webhook=data.get('discordWebhook') or None,
            name_prefix=data.get('namePrefix') or None,
            save_dir=data.get('saveDir') or None,
            rootz=RootzSettings.from_dict(data.get('rootz')),
            buzzheavier=BuzzheavierSettings.from_dict(data.get('buzzheavier')),
            timeout=TimeoutConfig.from_dict(data.get('timeout')),
            retry=RetryConfig.from_dict(data.get('retry')),
        )


class JSONConfigStore:
    """
    JSON file storage for BackupConfig.

    Example:
        >>> store = JSONConfigStore("config.json")
        >>> config = store.load() or BackupConfig()
        >>> store.save(config)
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_CONFIG_FILE):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> Optional[BackupConfig]:
        """
        Load configuration from disk.

        Returns:
            BackupConfig, or None if the file does not exist

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        if not self.exists():
            return None

        try:
            data = json.loads(self._path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            raise ConfigError(f"Could not load configuration from {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration in {self._path} must be a JSON object")

        config = BackupConfig.from_dict(data).validate()
        logger.info(f"Configuration loaded from {self._path}")
        return config

    def save(self, config: BackupConfig) -> None:
        """
        Write configuration to disk.

        Raises:
            ConfigError: If the file cannot be written
        """
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(config.to_dict(), indent=2), encoding='utf-8')
        except OSError as e:
            raise ConfigError(f"Could not save configuration to {self._path}: {e}") from e
        logger.info(f"Configuration saved to {self._path}")
