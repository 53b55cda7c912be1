"""Backup/restore engine."""

from .engine import BackupEngine
from .results import BackupResult, RestoreResult

__all__ = ["BackupEngine", "BackupResult", "RestoreResult"]
