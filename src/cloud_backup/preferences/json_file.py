"""JSON file-backed preferences

Layout:
    {"backup_enabled": true, "last_backup_date": "2024-05-01T02:00:00+00:00"}

Every write replaces the whole document through a temp file and os.replace,
so readers never see a half-written file.
"""

import json
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from cloud_backup.logger import Logger, create_logger

from .base import Preferences


class JsonPreferences(Preferences):
    """Preferences persisted to a single JSON document"""

    def __init__(self, path: str | Path, logger: Optional[Logger] = None):
        self.path = Path(path)
        self._lock = threading.Lock()
        self.logger = logger or create_logger("cloud-backup-preferences")

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            self.logger.warning("Ignoring unreadable preferences file", path=str(self.path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".prefs-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _update(self, **changes: Any) -> None:
        with self._lock:
            data = self._load()
            data.update(changes)
            self._save(data)

    def is_backup_enabled(self) -> bool:
        with self._lock:
            return bool(self._load().get("backup_enabled", False))

    def set_backup_enabled(self, enabled: bool) -> None:
        self._update(backup_enabled=bool(enabled))

    def get_last_backup_date(self) -> Optional[datetime]:
        with self._lock:
            raw = self._load().get("last_backup_date")
        if not raw:
            return None
        try:
            date = datetime.fromisoformat(raw)
        except (TypeError, ValueError):
            self.logger.warning("Ignoring invalid last backup date", value=raw)
            return None
        if date.tzinfo is None:
            date = date.replace(tzinfo=timezone.utc)
        return date

    def save_last_backup_date(self, date: Optional[datetime]) -> None:
        self._update(last_backup_date=date.isoformat() if date else None)

    def save_last_backup_date_if(self, date: datetime, condition: Callable[[], bool]) -> bool:
        with self._lock:
            if not condition():
                return False
            data = self._load()
            data["last_backup_date"] = date.isoformat()
            self._save(data)
        return True

    def reset_backup_state(self) -> None:
        self._update(backup_enabled=False, last_backup_date=None)
