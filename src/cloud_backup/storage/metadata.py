"""Remote file metadata

FileMetaData describes a remote object; JsonMetadataRepository persists
descriptors for the file-backed storage next to the stored objects.
"""

import json
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class FileMetaData:
    """Descriptor of a remote object.

    Attributes:
        path: Remote path of the object
        last_update_date: Provider-assigned last modification time (UTC)
        size: Size in bytes, when the provider reports it
    """

    path: str
    last_update_date: datetime
    size: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"last_update_date": self.last_update_date.isoformat()}
        if self.size is not None:
            data["size"] = self.size
        return data

    @classmethod
    def from_dict(cls, path: str, data: Dict[str, Any]) -> "FileMetaData":
        last_update = datetime.fromisoformat(data["last_update_date"])
        if last_update.tzinfo is None:
            last_update = last_update.replace(tzinfo=timezone.utc)
        return cls(path=path, last_update_date=last_update, size=data.get("size"))


class JsonMetadataRepository:
    """JSON file-based metadata repository keyed by remote path"""

    def __init__(self, metadata_file: Path):
        self.metadata_file = metadata_file
        self._lock = threading.Lock()
        self._ensure_file()

    def _ensure_file(self) -> None:
        if not self.metadata_file.exists():
            self.metadata_file.parent.mkdir(parents=True, exist_ok=True)
            self._save_all({})

    def _load(self) -> Dict[str, Dict[str, Any]]:
        try:
            with open(self.metadata_file, "r") as f:
                return json.load(f)
        except (json.JSONDecodeError, FileNotFoundError):
            return {}

    def _save_all(self, data: Dict[str, Dict[str, Any]]) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self.metadata_file.parent, prefix=".metadata-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.metadata_file)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def save(self, metadata: FileMetaData) -> None:
        with self._lock:
            data = self._load()
            data[metadata.path] = metadata.to_dict()
            self._save_all(data)

    def get(self, path: str) -> Optional[FileMetaData]:
        with self._lock:
            data = self._load()
        if path in data:
            return FileMetaData.from_dict(path, data[path])
        return None

    def delete(self, path: str) -> bool:
        with self._lock:
            data = self._load()
            if path not in data:
                return False
            del data[path]
            self._save_all(data)
            return True
