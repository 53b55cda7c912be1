"""Backup/restore engine.

Performs one full backup (snapshot, upload, record timestamp) or one full
restore (download, verify, swap) as a single unit: callers either get a
result or a typed CloudBackupError, never a half-applied state.

The engine is synchronous; the orchestrator runs it on a worker thread and
the background scheduler calls it directly from its own worker.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from cloud_backup.auth import Auth, CurrentUser
from cloud_backup.config import BackupSettings
from cloud_backup.database import Database, SnapshotVerifier, SqliteDatabase
from cloud_backup.exceptions import (
    CloudBackupError,
    NotAuthenticatedError,
    RemoteNotFoundError,
    ReplaceError,
    SerializationError,
    TransportError,
)
from cloud_backup.logger import Logger, create_logger
from cloud_backup.preferences import JsonPreferences, Preferences
from cloud_backup.storage import CloudStorage, FileCloudStorage, FileMetaData, ProgressCallback

from .results import BackupResult, RestoreResult

T = TypeVar("T")

# Files SQLite may leave next to the database; stale once the file is swapped
SQLITE_SIDECAR_SUFFIXES = ("-wal", "-shm", "-journal")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BackupEngine:
    """Runs backups and restores against one database and one storage.

    Example:
        engine = BackupEngine(
            database=SqliteDatabase(Path("data/app.db")),
            storage=FileCloudStorage("/mnt/backups"),
            auth=auth,
            preferences=JsonPreferences("data/backup-preferences.json"),
        )
        result = engine.perform_backup()
        print(result.backed_up_at)
    """

    def __init__(
        self,
        database: Database,
        storage: CloudStorage,
        auth: Auth,
        preferences: Preferences,
        settings: Optional[BackupSettings] = None,
        verifier: Optional[SnapshotVerifier] = None,
        clock: Callable[[], datetime] = _utcnow,
        logger: Optional[Logger] = None,
    ):
        self.database = database
        self.storage = storage
        self.auth = auth
        self.preferences = preferences
        self.settings = settings or BackupSettings()
        self.logger = logger or create_logger("cloud-backup-engine")
        self.verifier = verifier or SnapshotVerifier(logger=self.logger)
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        auth: Auth,
        settings: Optional[BackupSettings] = None,
        logger: Optional[Logger] = None,
    ) -> "BackupEngine":
        """Build an engine on the local paths named in settings.

        Uses SqliteDatabase(database_path), FileCloudStorage(storage_root)
        and JsonPreferences(preferences_path).
        """
        settings = settings or BackupSettings.from_env()
        return cls(
            database=SqliteDatabase(settings.database_path, logger=logger),
            storage=FileCloudStorage(settings.storage_root, logger=logger),
            auth=auth,
            preferences=JsonPreferences(settings.preferences_path, logger=logger),
            settings=settings,
            logger=logger,
        )

    def remote_path_for(self, user: CurrentUser) -> str:
        """Remote path of the backup object inside the user's namespace"""
        return f"{user.id}/{self.settings.remote_file_name}"

    def _require_user(self, operation: str) -> CurrentUser:
        user = self.auth.current_user
        if user is None:
            self.logger.warning("Operation requires an authenticated session", operation=operation)
            raise NotAuthenticatedError(f"Cannot {operation} without an authenticated session")
        return user

    def _ensure_still_signed_in(self, user: CurrentUser, operation: str) -> None:
        if self.auth.current_user != user:
            self.logger.warning("Session ended during operation", operation=operation, user_id=user.id)
            raise NotAuthenticatedError(
                f"Session ended during {operation}", details={"user_id": user.id}
            )

    def _transport(self, remote_path: str, fn: Callable[..., T], *args: Any) -> T:
        try:
            return fn(*args)
        except CloudBackupError:
            raise
        except Exception as e:
            raise TransportError(
                f"Storage call failed: {e}", details={"remote_path": remote_path}
            ) from e

    def perform_backup(self, on_progress: Optional[ProgressCallback] = None) -> BackupResult:
        """Snapshot the database, upload it and record the upload's timestamp.

        Args:
            on_progress: Optional callback receiving the uploaded fraction

        Returns:
            BackupResult describing the uploaded object

        Raises:
            NotAuthenticatedError: No session, or the session ended mid-backup
            SerializationError: The database could not be snapshotted
            TransportError: The upload or the follow-up metadata fetch failed
        """
        user = self._require_user("back up")
        remote_path = self.remote_path_for(user)
        self.logger.info("Backup started", user_id=user.id, remote_path=remote_path)

        with tempfile.TemporaryDirectory(prefix="cloud-backup-") as tmp_dir:
            snapshot_file = Path(tmp_dir) / self.settings.remote_file_name
            try:
                self.database.snapshot(snapshot_file)
            except CloudBackupError:
                raise
            except Exception as e:
                raise SerializationError(f"Failed to snapshot database: {e}") from e

            self._transport(remote_path, self.storage.upload, snapshot_file, remote_path, on_progress)

        try:
            metadata: FileMetaData = self._transport(
                remote_path, self.storage.get_file_metadata, remote_path
            )
        except RemoteNotFoundError as e:
            raise TransportError(
                "Uploaded backup is not visible remotely", details={"remote_path": remote_path}
            ) from e

        # Checked under the preferences lock so a concurrent logout reset wins
        saved = self.preferences.save_last_backup_date_if(
            metadata.last_update_date, lambda: self.auth.current_user == user
        )
        if not saved:
            self.logger.warning("Session ended during operation", operation="backup", user_id=user.id)
            raise NotAuthenticatedError("Session ended during backup", details={"user_id": user.id})

        self.logger.info(
            "Backup completed",
            user_id=user.id,
            remote_path=remote_path,
            backed_up_at=metadata.last_update_date.isoformat(),
        )
        return BackupResult(
            user_id=user.id,
            remote_path=remote_path,
            backed_up_at=metadata.last_update_date,
            size=metadata.size,
        )

    def perform_restore(self) -> RestoreResult:
        """Download the remote backup and swap it in place of the local database.

        The download lands in a temp file next to the database, is verified,
        and only then renamed over the database file. Any failure before the
        rename leaves the original file untouched.

        Raises:
            NotAuthenticatedError: No session, or the session ended mid-restore
            RemoteNotFoundError: There is no backup to restore
            TransportError: The download failed
            ReplaceError: The download is not a valid database or the swap failed
        """
        user = self._require_user("restore")
        remote_path = self.remote_path_for(user)
        db_path = self.database.path
        self.logger.info("Restore started", user_id=user.id, remote_path=remote_path)

        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=db_path.parent, prefix=f".{db_path.name}.restore-")
            os.close(fd)
        except OSError as e:
            raise ReplaceError(
                f"Cannot stage restore next to {db_path.name}: {e}", details={"path": str(db_path)}
            ) from e
        staged = Path(tmp_name)

        try:
            self._transport(remote_path, self.storage.download, remote_path, staged)

            valid, report = self.verifier.verify_snapshot(staged)
            if not valid:
                raise ReplaceError(
                    "Downloaded backup is not a valid database",
                    details={"remote_path": remote_path, "errors": report["errors"]},
                )

            self._ensure_still_signed_in(user, "restore")

            try:
                self.database.close()
                os.replace(staged, db_path)
            except (OSError, RuntimeError) as e:
                raise ReplaceError(
                    f"Failed to replace local database: {e}", details={"path": str(db_path)}
                ) from e
        finally:
            staged.unlink(missing_ok=True)

        self._remove_sidecars(db_path)
        self.logger.info("Restore completed", user_id=user.id, remote_path=remote_path)
        return RestoreResult(user_id=user.id, remote_path=remote_path, restored_at=self._clock())

    def _remove_sidecars(self, db_path: Path) -> None:
        for suffix in SQLITE_SIDECAR_SUFFIXES:
            sidecar = db_path.with_name(db_path.name + suffix)
            try:
                sidecar.unlink(missing_ok=True)
            except OSError as e:
                self.logger.warning("Could not remove stale database file", path=str(sidecar), error=str(e))

    def fetch_remote_metadata(self) -> FileMetaData:
        """Learn the remote backup's descriptor without downloading it.

        Raises:
            NotAuthenticatedError: No session
            RemoteNotFoundError: No backup exists yet
            TransportError: The storage could not be queried
        """
        user = self._require_user("fetch backup metadata")
        remote_path = self.remote_path_for(user)
        metadata = self._transport(remote_path, self.storage.get_file_metadata, remote_path)
        self.logger.debug(
            "Remote backup metadata fetched",
            user_id=user.id,
            last_update_date=metadata.last_update_date.isoformat(),
        )
        return metadata
