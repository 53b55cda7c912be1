"""Backup orchestrator, its published states and pure transition functions."""

from .orchestrator import BackupOrchestrator
from .reducer import (
    DEFAULT_FRESHNESS_WINDOW,
    AuthChanged,
    BackupFinished,
    BackupStarted,
    LoggedOut,
    OrchestratorContext,
    OrchestratorEvent,
    PreferencesLoaded,
    RestorationFinished,
    RestorationStarted,
    is_backup_now_available,
    project,
    reduce,
)
from .states import (
    Activated,
    AuthenticatingState,
    BackupCloudStorageState,
    BackupInProgress,
    NotActivated,
    NotAuthenticatedState,
    RestorationInProgress,
)

__all__ = [
    "BackupOrchestrator",
    # States
    "BackupCloudStorageState",
    "NotAuthenticatedState",
    "AuthenticatingState",
    "NotActivated",
    "Activated",
    "BackupInProgress",
    "RestorationInProgress",
    # Reducer
    "OrchestratorContext",
    "OrchestratorEvent",
    "AuthChanged",
    "PreferencesLoaded",
    "BackupStarted",
    "BackupFinished",
    "RestorationStarted",
    "RestorationFinished",
    "LoggedOut",
    "reduce",
    "project",
    "is_backup_now_available",
    "DEFAULT_FRESHNESS_WINDOW",
]
