"""Tests for the background backup job and its APScheduler driver."""

import threading
from datetime import timedelta, timezone
from unittest import mock

import pytest
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.background import BackgroundScheduler

from cloud_backup.config import BackupSettings
from cloud_backup.engine import BackupResult
from cloud_backup.exceptions import NotAuthenticatedError, TransportError
from cloud_backup.scheduler import (
    BACKUP_JOB_ID,
    JOB_SKIPPED,
    RETRY_JOB_ID,
    APSchedulerBackupScheduler,
    JobConstraints,
    JobOutcome,
    Periodicity,
    ScheduledBackupJob,
    has_network_connectivity,
)

from conftest import FIXED_NOW


def executed(job_id=BACKUP_JOB_ID, retval=None):
    return JobExecutionEvent(EVENT_JOB_EXECUTED, job_id, "default", FIXED_NOW, retval=retval)


def failed(exception, job_id=BACKUP_JOB_ID):
    return JobExecutionEvent(EVENT_JOB_ERROR, job_id, "default", FIXED_NOW, exception=exception)


class TestNetworkProbe:
    """Tests for has_network_connectivity."""

    def test_reachable(self):
        with mock.patch("cloud_backup.scheduler.job.socket.create_connection") as connect:
            assert has_network_connectivity("1.1.1.1", 53, 1.0) is True

        connect.assert_called_once_with(("1.1.1.1", 53), timeout=1.0)

    def test_unreachable(self):
        with mock.patch(
            "cloud_backup.scheduler.job.socket.create_connection", side_effect=OSError("down")
        ):
            assert has_network_connectivity("1.1.1.1", 53, 1.0) is False


class TestScheduledBackupJob:
    """Tests for ScheduledBackupJob decisions."""

    @pytest.fixture
    def engine(self, user):
        engine = mock.Mock()
        engine.auth.current_user = user
        engine.perform_backup.return_value = BackupResult(
            user_id=user.id, remote_path="user-1/database-backup.db", backed_up_at=FIXED_NOW
        )
        return engine

    def test_skipped_when_disabled(self, engine, preferences):
        job = ScheduledBackupJob(engine, preferences)

        assert job() == JOB_SKIPPED
        engine.perform_backup.assert_not_called()

    def test_skipped_when_signed_out(self, engine, preferences):
        preferences.set_backup_enabled(True)
        engine.auth.current_user = None

        assert ScheduledBackupJob(engine, preferences)() == JOB_SKIPPED
        engine.perform_backup.assert_not_called()

    def test_runs_backup(self, engine, preferences):
        preferences.set_backup_enabled(True)

        result = ScheduledBackupJob(engine, preferences)()

        assert result.backed_up_at == FIXED_NOW
        engine.perform_backup.assert_called_once_with()

    def test_engine_errors_propagate(self, engine, preferences):
        preferences.set_backup_enabled(True)
        engine.perform_backup.side_effect = TransportError("offline")

        with pytest.raises(TransportError):
            ScheduledBackupJob(engine, preferences)()


class TestScheduledBackupJobIntegration:
    """ScheduledBackupJob against a real engine."""

    def test_background_backup_updates_preferences(self, engine, auth, user, preferences):
        preferences.set_backup_enabled(True)
        auth.sign_in(user)

        result = ScheduledBackupJob(engine, preferences)()

        assert isinstance(result, BackupResult)
        assert preferences.get_last_backup_date() == FIXED_NOW


class TestAPSchedulerBackupScheduler:
    """Tests for APSchedulerBackupScheduler."""

    @pytest.fixture
    def ap_scheduler(self):
        scheduler = BackgroundScheduler(timezone=timezone.utc)
        yield scheduler
        if scheduler.running:
            scheduler.shutdown(wait=False)

    @pytest.fixture
    def job(self):
        return mock.Mock(return_value="done")

    @pytest.fixture
    def probe(self):
        return mock.Mock(return_value=True)

    @pytest.fixture
    def backup_scheduler(self, job, ap_scheduler, probe):
        return APSchedulerBackupScheduler(
            job,
            settings=BackupSettings(max_retries=2, retry_delay_seconds=60),
            scheduler=ap_scheduler,
            connectivity_probe=probe,
            autostart=False,
            clock=lambda: FIXED_NOW,
        )

    @pytest.fixture
    def outcomes(self, backup_scheduler):
        received = []
        backup_scheduler.outcomes.subscribe(received.append)
        return received

    def test_schedule_adds_interval_job(self, backup_scheduler, ap_scheduler):
        backup_scheduler.schedule(Periodicity(interval=timedelta(hours=24)), JobConstraints())

        job = ap_scheduler.get_job(BACKUP_JOB_ID)
        assert job is not None
        assert job.trigger.interval == timedelta(hours=24)
        assert job.trigger.start_date == FIXED_NOW + timedelta(hours=24)
        assert backup_scheduler.is_scheduled is True

    def test_initial_delay(self, backup_scheduler, ap_scheduler):
        backup_scheduler.schedule(
            Periodicity(interval=timedelta(hours=24), initial_delay=timedelta(minutes=5)),
            JobConstraints(),
        )

        job = ap_scheduler.get_job(BACKUP_JOB_ID)
        assert job.trigger.start_date == FIXED_NOW + timedelta(minutes=5)

    def test_unschedule(self, backup_scheduler):
        backup_scheduler.schedule(Periodicity(interval=timedelta(hours=24)), JobConstraints())

        backup_scheduler.unschedule()
        backup_scheduler.unschedule()

        assert backup_scheduler.is_scheduled is False

    def test_autostart_starts_scheduler(self, job, ap_scheduler, probe):
        backup_scheduler = APSchedulerBackupScheduler(
            job, scheduler=ap_scheduler, connectivity_probe=probe
        )

        backup_scheduler.schedule(Periodicity(interval=timedelta(hours=24)), JobConstraints())

        assert ap_scheduler.running
        backup_scheduler.shutdown()
        assert not ap_scheduler.running

    def test_run_checks_network(self, backup_scheduler, job, probe):
        backup_scheduler.schedule(Periodicity(interval=timedelta(hours=1)), JobConstraints())
        probe.return_value = False

        assert backup_scheduler._run() == JOB_SKIPPED
        job.assert_not_called()

    def test_run_without_network_constraint(self, backup_scheduler, job, probe):
        backup_scheduler.schedule(
            Periodicity(interval=timedelta(hours=1)), JobConstraints(requires_network=False)
        )
        probe.return_value = False

        assert backup_scheduler._run() == "done"

    def test_overlapping_runs_are_skipped(self, backup_scheduler, job):
        backup_scheduler.schedule(Periodicity(interval=timedelta(hours=1)), JobConstraints())
        entered = threading.Event()
        release = threading.Event()

        def slow_job():
            entered.set()
            release.wait(5)
            return "done"

        job.side_effect = slow_job
        results = []
        first = threading.Thread(target=lambda: results.append(backup_scheduler._run()))
        first.start()
        assert entered.wait(5)

        # The retry job firing while the interval run is still going
        assert backup_scheduler._run() == JOB_SKIPPED

        release.set()
        first.join(5)
        assert results == ["done"]
        assert job.call_count == 1
        assert backup_scheduler._run() == "done"

    def test_success_outcome(self, backup_scheduler, outcomes):
        backup_scheduler._on_job_event(executed(retval="done"))

        assert outcomes == [JobOutcome(status="success", finished_at=FIXED_NOW)]
        assert outcomes[0].succeeded

    def test_skipped_outcome(self, backup_scheduler, outcomes):
        backup_scheduler._on_job_event(executed(retval=JOB_SKIPPED))

        assert [o.status for o in outcomes] == ["skipped"]

    def test_failure_outcome(self, backup_scheduler, outcomes):
        backup_scheduler._on_job_event(failed(NotAuthenticatedError("signed out")))

        assert outcomes[0].status == "failure"
        assert "signed out" in outcomes[0].error

    def test_foreign_jobs_ignored(self, backup_scheduler, outcomes):
        backup_scheduler._on_job_event(executed(job_id="someone-else"))
        assert outcomes == []

    def test_transport_failure_schedules_retry(self, backup_scheduler, ap_scheduler):
        backup_scheduler.schedule(Periodicity(interval=timedelta(hours=24)), JobConstraints())

        backup_scheduler._on_job_event(failed(TransportError("offline")))

        retry = ap_scheduler.get_job(RETRY_JOB_ID)
        assert retry is not None
        assert retry.trigger.run_date == FIXED_NOW + timedelta(seconds=60)

    def test_retries_are_bounded(self, backup_scheduler):
        backup_scheduler.schedule(Periodicity(interval=timedelta(hours=24)), JobConstraints())

        with mock.patch.object(backup_scheduler, "_schedule_retry") as schedule_retry:
            for _ in range(4):
                backup_scheduler._on_job_event(failed(TransportError("offline"), job_id=RETRY_JOB_ID))

        assert schedule_retry.call_count == 2

    def test_success_resets_retry_budget(self, backup_scheduler):
        backup_scheduler.schedule(Periodicity(interval=timedelta(hours=24)), JobConstraints())

        with mock.patch.object(backup_scheduler, "_schedule_retry") as schedule_retry:
            backup_scheduler._on_job_event(failed(TransportError("offline")))
            backup_scheduler._on_job_event(failed(TransportError("offline")))
            backup_scheduler._on_job_event(executed(retval="done"))
            backup_scheduler._on_job_event(failed(TransportError("offline")))

        assert schedule_retry.call_count == 3

    def test_no_retry_for_other_errors(self, backup_scheduler):
        backup_scheduler.schedule(Periodicity(interval=timedelta(hours=24)), JobConstraints())

        with mock.patch.object(backup_scheduler, "_schedule_retry") as schedule_retry:
            backup_scheduler._on_job_event(failed(NotAuthenticatedError("signed out")))

        schedule_retry.assert_not_called()

    def test_no_retry_when_unscheduled(self, backup_scheduler):
        with mock.patch.object(backup_scheduler, "_schedule_retry") as schedule_retry:
            backup_scheduler._on_job_event(failed(TransportError("offline")))

        schedule_retry.assert_not_called()
