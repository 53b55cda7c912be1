"""Preferences port

Two persisted fields drive backup behaviour: whether backup is enabled and
when the last backup happened. Both the orchestrator and the background job
read and write them, so implementations must be thread-safe.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional


class Preferences(ABC):
    """Abstract base class for persisted backup preferences"""

    @abstractmethod
    def is_backup_enabled(self) -> bool:
        pass

    @abstractmethod
    def set_backup_enabled(self, enabled: bool) -> None:
        pass

    @abstractmethod
    def get_last_backup_date(self) -> Optional[datetime]:
        pass

    @abstractmethod
    def save_last_backup_date(self, date: Optional[datetime]) -> None:
        """Record the last backup time; None clears it."""
        pass

    @abstractmethod
    def save_last_backup_date_if(self, date: datetime, condition: Callable[[], bool]) -> bool:
        """Record the last backup time only if condition() holds.

        The check and the write are atomic with respect to every other write,
        reset_backup_state() included.

        Returns:
            True if the date was written
        """
        pass

    def reset_backup_state(self) -> None:
        """Disable backup and clear the last backup date together.

        Implementations with a persistent store should override this to write
        both fields in a single operation.
        """
        self.save_last_backup_date(None)
        self.set_backup_enabled(False)
