"""Outcomes of engine operations."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class BackupResult:
    """A completed backup.

    Attributes:
        user_id: Namespace the backup was written to
        remote_path: Full remote path of the backup object
        backed_up_at: Provider timestamp of the uploaded object
        size: Uploaded size in bytes, if reported
    """

    user_id: str
    remote_path: str
    backed_up_at: datetime
    size: Optional[int] = None


@dataclass(frozen=True)
class RestoreResult:
    """A completed restore. The in-memory database handle is now stale."""

    user_id: str
    remote_path: str
    restored_at: datetime
    restart_required: bool = True
