"""Cloud Backup - Backup and restore of a local database to per-user cloud storage.

This package provides:
- orchestrator: Backup state machine published to the presentation layer
- engine: Snapshot/upload and download/verify/swap operations
- scheduler: Periodic background backup job on APScheduler
- auth: Session port with in-memory and JWT providers
- preferences: Persisted backup flags (in-memory and JSON file)
- storage: Cloud storage port with a directory-backed implementation
- database: Application database port with a SQLite implementation
- config: Typed settings with environment overrides
- logger: Structured logging
- exceptions: Typed backup errors with structured info
"""

__version__ = "1.0.0"

# Re-export commonly used items for convenience
from cloud_backup.logger import (
    Logger,
    StructuredLogger,
    get_logger,
    create_logger,
)

from cloud_backup.config import (
    BackupSettings,
    EnvLoader,
)

from cloud_backup.exceptions import (
    CloudBackupError,
    NotAuthenticatedError,
    TransportError,
    RemoteNotFoundError,
    SerializationError,
    ReplaceError,
    BackupOperationError,
    ConfigurationError,
)

from cloud_backup.auth import (
    Auth,
    CurrentUser,
    JwtAuth,
    MemoryAuth,
)

from cloud_backup.preferences import (
    Preferences,
    MemoryPreferences,
    JsonPreferences,
)

from cloud_backup.storage import (
    CloudStorage,
    FileCloudStorage,
    FileMetaData,
)

from cloud_backup.database import (
    Database,
    SqliteDatabase,
)

from cloud_backup.engine import (
    BackupEngine,
    BackupResult,
    RestoreResult,
)

from cloud_backup.scheduler import (
    Scheduler,
    APSchedulerBackupScheduler,
    ScheduledBackupJob,
)

from cloud_backup.orchestrator import (
    BackupOrchestrator,
    BackupCloudStorageState,
)

__all__ = [
    "__version__",
    # Logger
    "Logger",
    "StructuredLogger",
    "get_logger",
    "create_logger",
    # Config
    "BackupSettings",
    "EnvLoader",
    # Exceptions
    "CloudBackupError",
    "NotAuthenticatedError",
    "TransportError",
    "RemoteNotFoundError",
    "SerializationError",
    "ReplaceError",
    "BackupOperationError",
    "ConfigurationError",
    # Auth
    "Auth",
    "CurrentUser",
    "JwtAuth",
    "MemoryAuth",
    # Preferences
    "Preferences",
    "MemoryPreferences",
    "JsonPreferences",
    # Storage
    "CloudStorage",
    "FileCloudStorage",
    "FileMetaData",
    # Database
    "Database",
    "SqliteDatabase",
    # Engine
    "BackupEngine",
    "BackupResult",
    "RestoreResult",
    # Scheduler
    "Scheduler",
    "APSchedulerBackupScheduler",
    "ScheduledBackupJob",
    # Orchestrator
    "BackupOrchestrator",
    "BackupCloudStorageState",
]
