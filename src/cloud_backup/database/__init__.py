"""Application database port and SQLite implementation."""

from .base import Database
from .sqlite import SqliteDatabase
from .verify import SnapshotVerifier

__all__ = ["Database", "SqliteDatabase", "SnapshotVerifier"]
