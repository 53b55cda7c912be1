"""Background scheduling of the backup job."""

from .apscheduler_scheduler import BACKUP_JOB_ID, RETRY_JOB_ID, APSchedulerBackupScheduler
from .base import JobConstraints, JobOutcome, JobStatus, Periodicity, Scheduler
from .job import JOB_SKIPPED, ScheduledBackupJob, has_network_connectivity

__all__ = [
    "Scheduler",
    "Periodicity",
    "JobConstraints",
    "JobOutcome",
    "JobStatus",
    "APSchedulerBackupScheduler",
    "ScheduledBackupJob",
    "has_network_connectivity",
    "JOB_SKIPPED",
    "BACKUP_JOB_ID",
    "RETRY_JOB_ID",
]
