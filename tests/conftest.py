"""Shared fixtures for cloud_backup tests."""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import pytest

from cloud_backup.auth import CurrentUser, MemoryAuth
from cloud_backup.config import BackupSettings
from cloud_backup.database import SqliteDatabase
from cloud_backup.engine import BackupEngine
from cloud_backup.preferences import MemoryPreferences
from cloud_backup.scheduler import JobConstraints, JobOutcome, Periodicity, Scheduler
from cloud_backup.storage import FileCloudStorage

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class RecordingScheduler(Scheduler):
    """Scheduler double that records calls and lets tests publish outcomes."""

    def __init__(self):
        super().__init__()
        self.scheduled = []
        self.unschedule_calls = 0
        self.fail_schedule = False
        self.fail_unschedule = False
        self._active = False

    @property
    def is_scheduled(self) -> bool:
        return self._active

    def schedule(self, periodicity: Periodicity, constraints: JobConstraints) -> None:
        if self.fail_schedule:
            raise RuntimeError("scheduler unavailable")
        self.scheduled.append((periodicity, constraints))
        self._active = True

    def unschedule(self) -> None:
        self.unschedule_calls += 1
        if self.fail_unschedule:
            raise RuntimeError("scheduler unavailable")
        self._active = False

    def emit(self, outcome: JobOutcome) -> None:
        self._publish(outcome)


def create_sample_database(path: Path, rows=(("Rent", -800.0), ("Salary", 2500.0))) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    try:
        conn.execute("CREATE TABLE expense (id INTEGER PRIMARY KEY, title TEXT, amount REAL)")
        conn.executemany("INSERT INTO expense (title, amount) VALUES (?, ?)", rows)
        conn.commit()
    finally:
        conn.close()


def read_titles(path: Path) -> list:
    conn = sqlite3.connect(path)
    try:
        return [row[0] for row in conn.execute("SELECT title FROM expense ORDER BY id")]
    finally:
        conn.close()


@pytest.fixture
def user():
    return CurrentUser(id="user-1", email="user@example.com", display_name="User One")


@pytest.fixture
def other_user():
    return CurrentUser(id="user-2")


@pytest.fixture
def auth():
    return MemoryAuth()


@pytest.fixture
def preferences():
    return MemoryPreferences()


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "data" / "app.db"
    create_sample_database(path)
    return path


@pytest.fixture
def database(db_path):
    db = SqliteDatabase(db_path)
    yield db
    db.close()


@pytest.fixture
def settings(tmp_path, db_path):
    return BackupSettings(
        database_path=db_path,
        preferences_path=tmp_path / "data" / "backup-preferences.json",
        storage_root=tmp_path / "remote",
    )


@pytest.fixture
def storage(settings):
    return FileCloudStorage(settings.storage_root, clock=lambda: FIXED_NOW)


@pytest.fixture
def engine(database, storage, auth, preferences, settings):
    return BackupEngine(
        database=database,
        storage=storage,
        auth=auth,
        preferences=preferences,
        settings=settings,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def scheduler():
    return RecordingScheduler()
