"""In-memory preferences for tests and embedding."""

import threading
from datetime import datetime
from typing import Callable, Optional

from .base import Preferences


class MemoryPreferences(Preferences):
    """Preferences held in memory, lost when the instance goes away."""

    def __init__(self, backup_enabled: bool = False, last_backup_date: Optional[datetime] = None):
        self._lock = threading.Lock()
        self._backup_enabled = backup_enabled
        self._last_backup_date = last_backup_date

    def is_backup_enabled(self) -> bool:
        with self._lock:
            return self._backup_enabled

    def set_backup_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._backup_enabled = enabled

    def get_last_backup_date(self) -> Optional[datetime]:
        with self._lock:
            return self._last_backup_date

    def save_last_backup_date(self, date: Optional[datetime]) -> None:
        with self._lock:
            self._last_backup_date = date

    def save_last_backup_date_if(self, date: datetime, condition: Callable[[], bool]) -> bool:
        with self._lock:
            if not condition():
                return False
            self._last_backup_date = date
            return True

    def reset_backup_state(self) -> None:
        with self._lock:
            self._backup_enabled = False
            self._last_backup_date = None
