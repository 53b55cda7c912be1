"""Scheduler port

Runs the backup job in the background, independent of the orchestrator's
lifetime. Run outcomes are broadcast on ``outcomes``; anything durable the
job produces goes through the persisted preferences.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal, Optional

from cloud_backup.streams import EventStream

JobStatus = Literal["success", "failure", "skipped"]


@dataclass(frozen=True)
class Periodicity:
    """How often the job runs.

    Attributes:
        interval: Time between runs
        initial_delay: Delay before the first run (defaults to one interval)
    """

    interval: timedelta
    initial_delay: Optional[timedelta] = None


@dataclass(frozen=True)
class JobConstraints:
    """Conditions a run must meet before it starts."""

    requires_network: bool = True


@dataclass(frozen=True)
class JobOutcome:
    """Result of one background run."""

    status: JobStatus
    finished_at: datetime
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class Scheduler(ABC):
    """Abstract background scheduler for the backup job"""

    def __init__(self) -> None:
        # Outcomes nobody listens to are dropped
        self._outcomes: EventStream[JobOutcome] = EventStream(buffer=False)

    @property
    def outcomes(self) -> EventStream[JobOutcome]:
        return self._outcomes

    def _publish(self, outcome: JobOutcome) -> None:
        self._outcomes.emit(outcome)

    @abstractmethod
    def schedule(self, periodicity: Periodicity, constraints: JobConstraints) -> None:
        """Install (or replace) the periodic backup job"""
        pass

    @abstractmethod
    def unschedule(self) -> None:
        """Remove the backup job. No-op when nothing is scheduled."""
        pass

    @property
    @abstractmethod
    def is_scheduled(self) -> bool:
        pass
