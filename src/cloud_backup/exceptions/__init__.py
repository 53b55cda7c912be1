"""Exceptions raised by cloud backup components.

Usage:
    from cloud_backup.exceptions import (
        CloudBackupError,
        NotAuthenticatedError,
        TransportError,
        RemoteNotFoundError,
    )
"""

from cloud_backup.exceptions.base import (
    BackupOperationError,
    CloudBackupError,
    ConfigurationError,
    NotAuthenticatedError,
    RemoteNotFoundError,
    ReplaceError,
    SerializationError,
    TransportError,
)

__all__ = [
    "CloudBackupError",
    "NotAuthenticatedError",
    "TransportError",
    "RemoteNotFoundError",
    "SerializationError",
    "ReplaceError",
    "BackupOperationError",
    "ConfigurationError",
]
