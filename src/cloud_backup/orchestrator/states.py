"""Published backup status.

Exactly one of these values is current at any time; observers receive them
on ``BackupOrchestrator.state``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from cloud_backup.auth import CurrentUser


@dataclass(frozen=True)
class NotAuthenticatedState:
    pass


@dataclass(frozen=True)
class AuthenticatingState:
    pass


@dataclass(frozen=True)
class NotActivated:
    user: CurrentUser


@dataclass(frozen=True)
class Activated:
    user: CurrentUser
    last_backup_date: Optional[datetime]
    backup_now_available: bool


@dataclass(frozen=True)
class BackupInProgress:
    user: CurrentUser


@dataclass(frozen=True)
class RestorationInProgress:
    user: CurrentUser


BackupCloudStorageState = Union[
    NotAuthenticatedState,
    AuthenticatingState,
    NotActivated,
    Activated,
    BackupInProgress,
    RestorationInProgress,
]
