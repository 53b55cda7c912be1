"""File-backed cloud storage

Maps remote paths onto a local directory tree (a mounted share, a synced
folder, or a test fixture). Objects are written through a temp file and an
atomic rename; descriptors live in a JSON metadata repository.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from cloud_backup.exceptions import RemoteNotFoundError, TransportError
from cloud_backup.logger import Logger, create_logger

from .base import CloudStorage, ProgressCallback
from .metadata import FileMetaData, JsonMetadataRepository

METADATA_FILE_NAME = ".metadata.json"
DEFAULT_CHUNK_SIZE = 64 * 1024


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FileCloudStorage(CloudStorage):
    """
    Directory-backed implementation of the CloudStorage port

    Example:
        storage = FileCloudStorage("/mnt/backups")
        storage.upload(Path("app.db"), "user-1/database-backup.db")
        storage.get_file_metadata("user-1/database-backup.db").last_update_date
    """

    def __init__(
        self,
        root: str | Path,
        clock: Callable[[], datetime] = _utcnow,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        logger: Optional[Logger] = None,
    ):
        """
        Args:
            root: Directory holding the remote objects
            clock: Source of last-modified timestamps
            chunk_size: Copy chunk size, also the progress granularity
            logger: Optional logger
        """
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.metadata_repo = JsonMetadataRepository(self.root / METADATA_FILE_NAME)
        self._clock = clock
        self._chunk_size = chunk_size
        self.logger = logger or create_logger("cloud-backup-storage")

    def _resolve(self, remote_path: str) -> Path:
        target = (self.root / remote_path.lstrip("/")).resolve()
        if target == self.root or self.root not in target.parents:
            raise TransportError(
                "Remote path escapes the storage root",
                details={"remote_path": remote_path},
            )
        return target

    def upload(
        self,
        local_file: Path,
        remote_path: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        target = self._resolve(remote_path)
        local_file = Path(local_file)

        try:
            total = local_file.stat().st_size
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
        except OSError as e:
            self.logger.error("Upload failed", remote_path=remote_path, error=str(e))
            raise TransportError(
                f"Failed to upload {local_file.name}", details={"remote_path": remote_path}
            ) from e

        try:
            sent = 0
            with os.fdopen(fd, "wb") as dst, open(local_file, "rb") as src:
                for chunk in iter(lambda: src.read(self._chunk_size), b""):
                    dst.write(chunk)
                    sent += len(chunk)
                    if on_progress is not None and total:
                        on_progress(sent / total)
            os.replace(tmp_name, target)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            self.logger.error("Upload failed", remote_path=remote_path, error=str(e))
            raise TransportError(
                f"Failed to upload {local_file.name}", details={"remote_path": remote_path}
            ) from e

        if on_progress is not None and not total:
            on_progress(1.0)

        metadata = FileMetaData(path=remote_path, last_update_date=self._clock(), size=sent)
        try:
            self.metadata_repo.save(metadata)
        except OSError as e:
            raise TransportError(
                "Failed to record upload metadata", details={"remote_path": remote_path}
            ) from e
        self.logger.info("Object uploaded", remote_path=remote_path, size=sent)

    def get_file_metadata(self, remote_path: str) -> FileMetaData:
        target = self._resolve(remote_path)
        if not target.is_file():
            raise RemoteNotFoundError(
                "No remote object at path", details={"remote_path": remote_path}
            )

        metadata = self.metadata_repo.get(remote_path)
        if metadata is not None:
            return metadata

        # Object placed without going through upload(): fall back to the file itself
        stat = target.stat()
        return FileMetaData(
            path=remote_path,
            last_update_date=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            size=stat.st_size,
        )

    def download(self, remote_path: str, local_file: Path) -> None:
        source = self._resolve(remote_path)
        if not source.is_file():
            raise RemoteNotFoundError(
                "No remote object at path", details={"remote_path": remote_path}
            )

        try:
            with open(source, "rb") as src, open(local_file, "wb") as dst:
                for chunk in iter(lambda: src.read(self._chunk_size), b""):
                    dst.write(chunk)
        except OSError as e:
            self.logger.error("Download failed", remote_path=remote_path, error=str(e))
            raise TransportError(
                "Failed to download remote object", details={"remote_path": remote_path}
            ) from e
        self.logger.debug("Object downloaded", remote_path=remote_path, target=str(local_file))

    def delete(self, remote_path: str) -> bool:
        """Remove a remote object and its descriptor. Returns False if absent."""
        target = self._resolve(remote_path)
        if not target.is_file():
            return False
        try:
            target.unlink()
            self.metadata_repo.delete(remote_path)
        except OSError as e:
            raise TransportError(
                "Failed to delete remote object", details={"remote_path": remote_path}
            ) from e
        return True
