"""Pure state transitions for the orchestrator.

``reduce`` folds one event into the context; ``project`` maps a context to
the published status. Neither touches I/O, so the same inputs always give
the same outputs.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from cloud_backup.auth import Authenticated, Authenticating, AuthState, NotAuthenticated

from .states import (
    Activated,
    AuthenticatingState,
    BackupCloudStorageState,
    BackupInProgress,
    NotActivated,
    NotAuthenticatedState,
    RestorationInProgress,
)

DEFAULT_FRESHNESS_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class OrchestratorContext:
    """Everything the published status is derived from."""

    auth_state: AuthState = NotAuthenticated()
    backup_enabled: bool = False
    last_backup_date: Optional[datetime] = None
    backup_in_progress: bool = False
    restoration_in_progress: bool = False

    @property
    def operation_in_progress(self) -> bool:
        return self.backup_in_progress or self.restoration_in_progress


@dataclass(frozen=True)
class AuthChanged:
    auth_state: AuthState


@dataclass(frozen=True)
class PreferencesLoaded:
    backup_enabled: bool
    last_backup_date: Optional[datetime]


@dataclass(frozen=True)
class BackupStarted:
    pass


@dataclass(frozen=True)
class BackupFinished:
    pass


@dataclass(frozen=True)
class RestorationStarted:
    pass


@dataclass(frozen=True)
class RestorationFinished:
    pass


@dataclass(frozen=True)
class LoggedOut:
    pass


OrchestratorEvent = Union[
    AuthChanged,
    PreferencesLoaded,
    BackupStarted,
    BackupFinished,
    RestorationStarted,
    RestorationFinished,
    LoggedOut,
]


def reduce(context: OrchestratorContext, event: OrchestratorEvent) -> OrchestratorContext:
    """Return the context after applying event.

    Starting an operation while either operation is in flight leaves the
    context unchanged, so both flags are never set together.
    """
    if isinstance(event, AuthChanged):
        return replace(context, auth_state=event.auth_state)
    if isinstance(event, PreferencesLoaded):
        return replace(
            context,
            backup_enabled=event.backup_enabled,
            last_backup_date=event.last_backup_date,
        )
    if isinstance(event, BackupStarted):
        if context.operation_in_progress:
            return context
        return replace(context, backup_in_progress=True)
    if isinstance(event, BackupFinished):
        return replace(context, backup_in_progress=False)
    if isinstance(event, RestorationStarted):
        if context.operation_in_progress:
            return context
        return replace(context, restoration_in_progress=True)
    if isinstance(event, RestorationFinished):
        return replace(context, restoration_in_progress=False)
    if isinstance(event, LoggedOut):
        return replace(context, backup_enabled=False, last_backup_date=None)
    raise TypeError(f"Unknown orchestrator event: {event!r}")


def _as_utc(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


def is_backup_now_available(
    last_backup_date: Optional[datetime],
    now: datetime,
    freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW,
) -> bool:
    """True when no backup is recorded or the last one is older than the window."""
    if last_backup_date is None:
        return True
    return _as_utc(last_backup_date) < _as_utc(now) - freshness_window


def project(
    context: OrchestratorContext,
    now: datetime,
    freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW,
) -> BackupCloudStorageState:
    """Map a context to the published status."""
    auth_state = context.auth_state
    if isinstance(auth_state, Authenticating):
        return AuthenticatingState()
    if not isinstance(auth_state, Authenticated):
        return NotAuthenticatedState()

    user = auth_state.user
    if context.backup_in_progress:
        return BackupInProgress(user)
    if context.restoration_in_progress:
        return RestorationInProgress(user)
    if context.backup_enabled:
        return Activated(
            user=user,
            last_backup_date=context.last_backup_date,
            backup_now_available=is_backup_now_available(
                context.last_backup_date, now, freshness_window
            ),
        )
    return NotActivated(user)
