"""APScheduler implementation of the scheduler port

The backup job runs on a BackgroundScheduler worker thread with an interval
trigger. Outcomes are collected through APScheduler job listeners and
republished on the port's outcome stream. Transport failures are retried
with one-shot date triggers, up to ``max_retries`` per failure streak.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from cloud_backup.config import BackupSettings
from cloud_backup.exceptions import TransportError
from cloud_backup.logger import Logger, create_logger

from .base import JobConstraints, JobOutcome, Periodicity, Scheduler
from .job import JOB_SKIPPED, has_network_connectivity

BACKUP_JOB_ID = "cloud_backup_job"
RETRY_JOB_ID = "cloud_backup_retry"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class APSchedulerBackupScheduler(Scheduler):
    """Scheduler port backed by APScheduler.

    Example:
        scheduler = APSchedulerBackupScheduler(ScheduledBackupJob(engine, prefs), settings)
        scheduler.outcomes.subscribe(print)
        scheduler.schedule(Periodicity(timedelta(days=1)), JobConstraints())
    """

    def __init__(
        self,
        job: Callable[[], Any],
        settings: Optional[BackupSettings] = None,
        scheduler: Optional[BaseScheduler] = None,
        connectivity_probe: Optional[Callable[[], bool]] = None,
        autostart: bool = True,
        clock: Callable[[], datetime] = _utcnow,
        logger: Optional[Logger] = None,
    ):
        """
        Args:
            job: Callable run on each trigger (normally a ScheduledBackupJob)
            settings: Backup settings (retries, grace time, connectivity target)
            scheduler: APScheduler instance, a BackgroundScheduler by default
            connectivity_probe: Returns True when the network is reachable
            autostart: Start the APScheduler instance on first schedule()
            clock: Source of outcome timestamps
            logger: Optional logger
        """
        super().__init__()
        self._job = job
        self.settings = settings or BackupSettings()
        self._scheduler = scheduler or BackgroundScheduler(timezone=timezone.utc)
        self._probe = connectivity_probe or self._default_probe
        self._autostart = autostart
        self._clock = clock
        self.logger = logger or create_logger("cloud-backup-scheduler")
        self._constraints = JobConstraints()
        self._failed_attempts = 0
        # Shared by the interval job and the retry job
        self._run_lock = threading.Lock()

        self._scheduler.add_listener(self._on_job_event, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    def _default_probe(self) -> bool:
        return has_network_connectivity(
            self.settings.connectivity_host,
            self.settings.connectivity_port,
            self.settings.connectivity_timeout,
        )

    @property
    def is_scheduled(self) -> bool:
        return self._scheduler.get_job(BACKUP_JOB_ID) is not None

    def schedule(self, periodicity: Periodicity, constraints: JobConstraints) -> None:
        self._constraints = constraints
        self._failed_attempts = 0

        delay = periodicity.initial_delay if periodicity.initial_delay is not None else periodicity.interval
        trigger = IntervalTrigger(
            seconds=periodicity.interval.total_seconds(),
            start_date=self._clock() + delay,
            timezone=timezone.utc,
        )
        self._scheduler.add_job(
            self._run,
            trigger=trigger,
            id=BACKUP_JOB_ID,
            name="Cloud Backup",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=self.settings.misfire_grace_seconds,
        )
        self.logger.info(
            "Backup scheduled",
            interval_seconds=periodicity.interval.total_seconds(),
            requires_network=constraints.requires_network,
        )

        if self._autostart and not self._scheduler.running:
            self._scheduler.start()

    def unschedule(self) -> None:
        removed = False
        for job_id in (BACKUP_JOB_ID, RETRY_JOB_ID):
            if self._scheduler.get_job(job_id) is not None:
                self._scheduler.remove_job(job_id)
                removed = True
        self._failed_attempts = 0
        if removed:
            self.logger.info("Backup unscheduled")

    def shutdown(self, wait: bool = False) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)

    def _run(self) -> Any:
        if not self._run_lock.acquire(blocking=False):
            self.logger.info("Background backup skipped: another run in progress")
            return JOB_SKIPPED
        try:
            if self._constraints.requires_network and not self._probe():
                self.logger.info("Background backup skipped: no network")
                return JOB_SKIPPED
            return self._job()
        finally:
            self._run_lock.release()

    def _schedule_retry(self) -> None:
        run_date = self._clock() + timedelta(seconds=self.settings.retry_delay_seconds)
        self._scheduler.add_job(
            self._run,
            trigger=DateTrigger(run_date=run_date, timezone=timezone.utc),
            id=RETRY_JOB_ID,
            name="Cloud Backup Retry",
            replace_existing=True,
            misfire_grace_time=self.settings.misfire_grace_seconds,
        )
        self.logger.info(
            "Background backup retry scheduled",
            attempt=self._failed_attempts,
            run_date=run_date.isoformat(),
        )

    def _on_job_event(self, event: JobExecutionEvent) -> None:
        if event.job_id not in (BACKUP_JOB_ID, RETRY_JOB_ID):
            return

        if event.exception is not None:
            outcome = JobOutcome(status="failure", finished_at=self._clock(), error=str(event.exception))
            self._failed_attempts += 1
            self.logger.error("Background backup failed", error=str(event.exception))
            if (
                isinstance(event.exception, TransportError)
                and self._failed_attempts <= self.settings.max_retries
                and self.is_scheduled
            ):
                self._schedule_retry()
        elif event.retval == JOB_SKIPPED:
            outcome = JobOutcome(status="skipped", finished_at=self._clock())
        else:
            self._failed_attempts = 0
            outcome = JobOutcome(status="success", finished_at=self._clock())

        self._publish(outcome)
