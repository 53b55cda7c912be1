"""
SQLite implementation of the database port
"""

import sqlite3
import threading
from pathlib import Path
from typing import Optional

from cloud_backup.exceptions import SerializationError
from cloud_backup.logger import Logger, create_logger

from .base import Database


class SqliteDatabase(Database):
    """SQLite database file with a lazily opened shared connection"""

    def __init__(self, db_path: Path, logger: Optional[Logger] = None):
        self._path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        self.logger = logger or create_logger("cloud-backup-database")

    @property
    def path(self) -> Path:
        return self._path

    @property
    def connection(self) -> sqlite3.Connection:
        """Open (or reuse) the application connection"""
        with self._lock:
            if self._conn is None:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                # Snapshots run on worker threads
                self._conn = sqlite3.connect(self._path, check_same_thread=False)
            return self._conn

    def snapshot(self, destination: Path) -> None:
        if not self._path.exists():
            raise SerializationError(
                "Database file does not exist", details={"path": str(self._path)}
            )

        try:
            source = self.connection
            target = sqlite3.connect(destination)
            try:
                with self._lock:
                    source.backup(target)
            finally:
                target.close()
        except (sqlite3.Error, OSError) as e:
            self.logger.error("Database snapshot failed", path=str(self._path), error=str(e))
            raise SerializationError(
                f"Failed to snapshot database: {e}", details={"path": str(self._path)}
            ) from e

        self.logger.debug("Database snapshot written", destination=str(destination))

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
