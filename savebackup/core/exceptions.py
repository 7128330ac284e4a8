"""
Custom exceptions for save backup operations.

Every failure raised by a backend, the multipart coordinator or the
configuration layer derives from SaveBackupError, so the orchestrator
can catch a single type at its boundary.
"""
from typing import Optional, Any, List


class SaveBackupError(Exception):
    """Base exception for all savebackup errors."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            status: HTTP status code (if available)
            body: Remote error body (if available)
        """
        self.status = status
        self.body = body
        super().__init__(message)


class ConfigError(SaveBackupError):
    """Configuration is missing, invalid or lacks a required credential."""
    pass


class TransportError(SaveBackupError):
    """Non-2xx HTTP response or network failure."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None
    ) -> None:
        if status is not None:
            message = f"{message} (HTTP {status})"
        if body:
            message = f"{message}: {body[:500]}"
        super().__init__(message, status, body)


class ProtocolError(SaveBackupError):
    """Provider reported failure in its JSON body, or replied with malformed data."""
    pass


class PartialUploadError(ProtocolError):
    """
    All parts were uploaded but the provider rejected the finalize call.

    The remote multipart session is left behind; it cannot be resumed.
    """

    def __init__(
        self,
        message: str,
        upload_id: Optional[str] = None,
        object_key: Optional[str] = None,
        parts: Optional[List[Any]] = None,
        body: Optional[str] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            upload_id: Remote multipart upload ID
            object_key: Remote object key
            parts: Part results that were sent to finalize
            body: Remote error body (if available)
        """
        self.upload_id = upload_id
        self.object_key = object_key
        self.parts = list(parts or [])
        super().__init__(message, body=body)
