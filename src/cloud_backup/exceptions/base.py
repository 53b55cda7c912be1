"""Exception taxonomy for cloud backup operations.

Every error carries structured information:
- code: Machine-readable error identifier
- message: Human-readable error description
- details: Additional context (user id, remote path, underlying error)
"""

from typing import Any, Dict, Optional


class CloudBackupError(Exception):
    """Base exception for all backup/restore errors.

    Attributes:
        code: Machine-readable error code (e.g., "TRANSPORT_ERROR")
        message: Human-readable error message
        details: Optional additional context for debugging/recovery
    """

    default_code: str = "CLOUD_BACKUP_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize error with structured information.

        Args:
            message: Human-readable error message
            code: Error code, defaults to the class default_code
            details: Optional additional context
        """
        self.code = code or self.default_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.code}: {self.message} (details: {self.details})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotAuthenticatedError(CloudBackupError):
    """Raised when an operation needs a session and none is present.

    Recoverable by authenticating again.
    """

    default_code = "NOT_AUTHENTICATED"


class TransportError(CloudBackupError):
    """Raised when the remote storage cannot be reached or refuses a transfer."""

    default_code = "TRANSPORT_ERROR"


class RemoteNotFoundError(CloudBackupError):
    """Raised when no backup exists at the remote path."""

    default_code = "REMOTE_NOT_FOUND"


class SerializationError(CloudBackupError):
    """Raised when the local database cannot be snapshotted."""

    default_code = "SERIALIZATION_ERROR"


class ReplaceError(CloudBackupError):
    """Raised when the downloaded backup cannot be swapped in.

    The original local database is left untouched.
    """

    default_code = "REPLACE_ERROR"


class BackupOperationError(CloudBackupError):
    """Wraps an unexpected failure inside a backup or restore operation."""

    default_code = "OPERATION_FAILED"


class ConfigurationError(CloudBackupError):
    """Raised when settings are invalid or incomplete."""

    default_code = "CONFIGURATION_ERROR"
