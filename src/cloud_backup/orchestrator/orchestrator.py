"""Backup orchestrator

Fuses the auth session, the persisted preferences, background job outcomes
and the in-flight operation flags into one published status, and runs user
initiated backups and restores against the engine.

All mutation happens under a single asyncio.Lock on the orchestrator's event
loop: each step folds events into the context with ``reduce`` and publishes
``project(context)``. Engine I/O runs on worker threads with the lock
released; completions take the lock again before touching the context.
Preference reads and writes also run on worker threads, but with the lock
held, so no other step observes them half done.
Upstream callbacks may arrive on any thread and are marshalled onto the loop.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Set

from cloud_backup.auth import Auth, Authenticated, AuthState, CurrentUser
from cloud_backup.config import BackupSettings
from cloud_backup.engine import BackupEngine, BackupResult, RestoreResult
from cloud_backup.exceptions import (
    BackupOperationError,
    CloudBackupError,
    RemoteNotFoundError,
)
from cloud_backup.logger import Logger, create_logger
from cloud_backup.preferences import Preferences
from cloud_backup.scheduler import JobConstraints, JobOutcome, Periodicity, Scheduler
from cloud_backup.streams import EventStream, StateStream, Subscription

from .reducer import (
    AuthChanged,
    BackupFinished,
    BackupStarted,
    LoggedOut,
    OrchestratorContext,
    OrchestratorEvent,
    PreferencesLoaded,
    RestorationFinished,
    RestorationStarted,
    project,
    reduce,
)
from .states import Activated, BackupCloudStorageState, NotActivated


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BackupOrchestrator:
    """State machine behind the backup settings surface.

    Streams:
        state: current BackupCloudStorageState (replayed to new subscribers)
        backup_error: CloudBackupError of a failed backup_now()
        restoration_error: CloudBackupError of a failed restore_previous_backup()
        previous_backup_available: datetime of an existing backup, offered on enable
        restart_required: RestoreResult; the host must reopen the database

    Example:
        async with BackupOrchestrator(engine, auth, scheduler, preferences) as orchestrator:
            orchestrator.state.subscribe(render)
            await orchestrator.enable_backup()
            await orchestrator.backup_now()
    """

    def __init__(
        self,
        engine: BackupEngine,
        auth: Auth,
        scheduler: Scheduler,
        preferences: Preferences,
        settings: Optional[BackupSettings] = None,
        clock: Callable[[], datetime] = _utcnow,
        logger: Optional[Logger] = None,
    ):
        self.engine = engine
        self.auth = auth
        self.scheduler = scheduler
        self.preferences = preferences
        self.settings = settings or engine.settings
        self.logger = logger or create_logger("cloud-backup-orchestrator")
        self._clock = clock

        self.state: StateStream[BackupCloudStorageState] = StateStream()
        self.backup_error: EventStream[CloudBackupError] = EventStream()
        self.restoration_error: EventStream[CloudBackupError] = EventStream()
        self.previous_backup_available: EventStream[datetime] = EventStream()
        self.restart_required: EventStream[RestoreResult] = EventStream()

        self._context = OrchestratorContext()
        self._lock = asyncio.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._subscriptions: List[Subscription] = []
        self._tasks: Set[asyncio.Task] = set()
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def context(self) -> OrchestratorContext:
        return self._context

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Subscribe to upstream streams and publish the initial status."""
        if self._started:
            return
        self._started = True
        self._loop = asyncio.get_running_loop()

        self._subscriptions.append(self.auth.state.subscribe(self._on_auth_state, replay=False))
        self._subscriptions.append(self.scheduler.outcomes.subscribe(self._on_job_outcome))

        auth_state = self.auth.current_state
        async with self._lock:
            await self._apply(AuthChanged(auth_state))

        if isinstance(auth_state, Authenticated):
            self._spawn(self._refresh_remote_metadata(auth_state.user))

    def close(self) -> None:
        """Release upstream subscriptions and stop publishing.

        In-flight engine calls are not aborted; their completion is no
        longer observable.
        """
        if self._closed:
            return
        self._closed = True
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        self.logger.debug("Orchestrator closed")

    async def wait_idle(self) -> None:
        """Wait until every background task spawned so far has finished."""
        await asyncio.sleep(0)
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await asyncio.sleep(0)

    async def __aenter__(self) -> "BackupOrchestrator":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Serialized core
    # ------------------------------------------------------------------

    def _load_preferences(self) -> PreferencesLoaded:
        return PreferencesLoaded(
            backup_enabled=self.preferences.is_backup_enabled(),
            last_backup_date=self.preferences.get_last_backup_date(),
        )

    async def _apply(self, *events: OrchestratorEvent) -> BackupCloudStorageState:
        """Reload preferences, fold events into the context and publish.

        Caller holds the lock.
        """
        loaded = await asyncio.to_thread(self._load_preferences)
        context = reduce(self._context, loaded)
        for event in events:
            context = reduce(context, event)
        self._context = context

        status = self._project()
        if not self._closed:
            self.logger.debug("Publishing backup state", state=type(status).__name__)
            self.state.emit(status)
        return status

    def _project(self) -> BackupCloudStorageState:
        return project(self._context, self._clock(), self.settings.freshness_window)

    def _spawn(self, coro) -> None:
        assert self._loop is not None
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.logger.error("Orchestrator task failed", error=str(task.exception()))

    def _submit(self, handler: Callable[..., Any], *args: Any) -> None:
        """Run handler(*args) as a task on the orchestrator loop, from any thread."""
        if self._closed or self._loop is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._spawn(handler(*args))
        else:
            self._loop.call_soon_threadsafe(self._spawn_if_open, handler, *args)

    def _spawn_if_open(self, handler: Callable[..., Any], *args: Any) -> None:
        if not self._closed:
            self._spawn(handler(*args))

    # ------------------------------------------------------------------
    # Upstream events
    # ------------------------------------------------------------------

    def _on_auth_state(self, auth_state: AuthState) -> None:
        self._submit(self._handle_auth_state, auth_state)

    def _on_job_outcome(self, outcome: JobOutcome) -> None:
        self._submit(self._handle_job_outcome, outcome)

    async def _handle_auth_state(self, auth_state: AuthState) -> None:
        async with self._lock:
            if self._closed:
                return
            await self._apply(AuthChanged(auth_state))

        if isinstance(auth_state, Authenticated):
            await self._refresh_remote_metadata(auth_state.user)

    async def _refresh_remote_metadata(self, user: CurrentUser) -> None:
        metadata = None
        try:
            metadata = await asyncio.to_thread(self.engine.fetch_remote_metadata)
        except RemoteNotFoundError:
            self.logger.info("No remote backup found", user_id=user.id)
        except CloudBackupError as e:
            self.logger.warning("Error getting last backup date", user_id=user.id, error=str(e))

        async with self._lock:
            if self._closed:
                return
            # Skip stale results if the session changed while fetching
            if metadata is not None:
                await asyncio.to_thread(
                    self.preferences.save_last_backup_date_if,
                    metadata.last_update_date,
                    lambda: self.auth.current_user == user,
                )
            await self._apply()

    async def _handle_job_outcome(self, outcome: JobOutcome) -> None:
        self.logger.debug("Background job outcome", status=outcome.status, error=outcome.error)
        async with self._lock:
            if self._closed:
                return
            await self._apply()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def start_authentication(self, host_context: Any) -> None:
        self.auth.start_authentication(host_context)

    def handle_external_auth_result(self, request_code: Any, result_code: Any, payload: Any) -> bool:
        return self.auth.handle_external_result(request_code, result_code, payload)

    async def enable_backup(self) -> bool:
        """Turn backup on. Only valid from NotActivated.

        If the job cannot be scheduled the preference is rolled back and
        False is returned.

        Returns:
            True if backup was enabled
        """
        async with self._lock:
            if self._closed or not isinstance(self._project(), NotActivated):
                self.logger.debug("Enable backup ignored", state=type(self._project()).__name__)
                return False

            await asyncio.to_thread(self.preferences.set_backup_enabled, True)
            try:
                self.scheduler.schedule(
                    Periodicity(interval=self.settings.schedule_interval),
                    JobConstraints(requires_network=self.settings.requires_network),
                )
            except Exception as e:
                self.logger.error("Failed to schedule background backup", error=str(e))
                await asyncio.to_thread(self.preferences.set_backup_enabled, False)
                await self._apply()
                return False

            status = await self._apply()
            if isinstance(status, Activated) and status.last_backup_date is not None:
                self.previous_backup_available.emit(status.last_backup_date)
        self.logger.info("Backup enabled")
        return True

    async def disable_backup(self) -> bool:
        """Turn backup off. Only valid from Activated.

        Returns:
            True if backup was disabled
        """
        async with self._lock:
            if self._closed or not isinstance(self._project(), Activated):
                self.logger.debug("Disable backup ignored", state=type(self._project()).__name__)
                return False

            await asyncio.to_thread(self.preferences.set_backup_enabled, False)
            await self._apply()
            self.scheduler.unschedule()
        self.logger.info("Backup disabled")
        return True

    def ignore_previous_backup(self) -> None:
        """Dismiss the previous-backup prompt. Nothing to do."""
        self.logger.debug("Previous backup ignored")

    async def backup_now(self) -> Optional[BackupResult]:
        """Run one backup immediately.

        Returns:
            The BackupResult, or None if the backup did not run or failed.
            Failures are emitted once on ``backup_error``.
        """
        async with self._lock:
            if self._closed or self._context.operation_in_progress:
                self.logger.info("Backup request ignored: operation in progress")
                return None
            await self._apply(BackupStarted())

        result: Optional[BackupResult] = None
        error: Optional[CloudBackupError] = None
        try:
            result = await asyncio.to_thread(self.engine.perform_backup)
        except CloudBackupError as e:
            error = e
        except Exception as e:
            error = BackupOperationError(f"Unexpected backup failure: {e}")
            error.__cause__ = e
        finally:
            async with self._lock:
                await self._apply(BackupFinished())

        if error is not None:
            self.logger.error("Error while backup now", code=error.code, error=error.message)
            if not self._closed:
                self.backup_error.emit(error)
        return result

    async def restore_previous_backup(self) -> Optional[RestoreResult]:
        """Replace the local database with the remote backup.

        Returns:
            The RestoreResult, or None if the restore did not run or failed.
            Success emits ``restart_required`` once; failures are emitted once
            on ``restoration_error``.
        """
        async with self._lock:
            if self._closed or self._context.operation_in_progress:
                self.logger.info("Restore request ignored: operation in progress")
                return None
            await self._apply(RestorationStarted())

        result: Optional[RestoreResult] = None
        error: Optional[CloudBackupError] = None
        try:
            result = await asyncio.to_thread(self.engine.perform_restore)
        except CloudBackupError as e:
            error = e
        except Exception as e:
            error = BackupOperationError(f"Unexpected restore failure: {e}")
            error.__cause__ = e
        finally:
            async with self._lock:
                await self._apply(RestorationFinished())

        if error is not None:
            self.logger.error("Error while restoring", code=error.code, error=error.message)
            if not self._closed:
                self.restoration_error.emit(error)
            return None

        if not self._closed:
            self.restart_required.emit(result)
        return result

    async def logout(self) -> None:
        """Sign out and forget local backup state.

        The session ends first, so an in-flight backup can no longer record
        its timestamp. Preferences are then reset in one write and the job is
        unscheduled before the next status is published. Provider failures
        do not stop a local logout.
        """
        async with self._lock:
            try:
                self.auth.logout()
            except Exception as e:
                self.logger.warning("Auth provider logout failed", error=str(e))
            await asyncio.to_thread(self.preferences.reset_backup_state)
            try:
                self.scheduler.unschedule()
            except Exception as e:
                self.logger.error("Failed to unschedule backup on logout", error=str(e))
            await self._apply(LoggedOut(), AuthChanged(self.auth.current_state))
        self.logger.info("Logged out")
