"""Cloud storage port

Defines the transport contract the backup engine relies on. Implementations
move whole files; they carry no backup policy.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

from .metadata import FileMetaData

# Receives the transferred fraction, from 0.0 to 1.0
ProgressCallback = Callable[[float], None]


class CloudStorage(ABC):
    """Abstract base class for remote blob storage"""

    @abstractmethod
    def upload(
        self,
        local_file: Path,
        remote_path: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        """
        Upload a local file, replacing any object at remote_path

        Args:
            local_file: File to upload
            remote_path: Destination path, e.g. "<user_id>/database-backup.db"
            on_progress: Optional callback receiving the uploaded fraction

        Raises:
            TransportError: If the upload fails
        """
        pass

    @abstractmethod
    def get_file_metadata(self, remote_path: str) -> FileMetaData:
        """
        Fetch the descriptor of a remote object without downloading it

        Raises:
            RemoteNotFoundError: If nothing exists at remote_path
            TransportError: If the storage cannot be queried
        """
        pass

    @abstractmethod
    def download(self, remote_path: str, local_file: Path) -> None:
        """
        Download a remote object into local_file (overwritten)

        Raises:
            RemoteNotFoundError: If nothing exists at remote_path
            TransportError: If the download fails
        """
        pass
