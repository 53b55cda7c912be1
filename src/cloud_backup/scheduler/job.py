"""Background backup job.

Runs in the scheduler's worker and must not assume any orchestrator is alive:
it decides from persisted preferences and the current session only.
"""

import socket
from typing import Optional, Union

from cloud_backup.engine import BackupEngine, BackupResult
from cloud_backup.logger import Logger, create_logger
from cloud_backup.preferences import Preferences

JOB_SKIPPED = "skipped"


def has_network_connectivity(host: str, port: int, timeout: float) -> bool:
    """Return True if a TCP connection to host:port can be opened."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


class ScheduledBackupJob:
    """Callable unit of work handed to the scheduler.

    Returns the BackupResult, or JOB_SKIPPED when backup is disabled or no
    session exists. Engine errors propagate so the scheduler records a failure.
    """

    def __init__(
        self,
        engine: BackupEngine,
        preferences: Preferences,
        logger: Optional[Logger] = None,
    ):
        self.engine = engine
        self.preferences = preferences
        self.logger = logger or create_logger("cloud-backup-job")

    def __call__(self) -> Union[BackupResult, str]:
        if not self.preferences.is_backup_enabled():
            self.logger.info("Background backup skipped: backup disabled")
            return JOB_SKIPPED

        if self.engine.auth.current_user is None:
            self.logger.info("Background backup skipped: not authenticated")
            return JOB_SKIPPED

        self.logger.info("=== Background backup started ===")
        result = self.engine.perform_backup()
        self.logger.info("=== Background backup completed ===", remote_path=result.remote_path)
        return result
