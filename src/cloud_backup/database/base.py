"""Database port

The engine needs three things from the application database: where its file
lives, a consistent snapshot of it, and a way to release the open handle
before the file is replaced by a restore.
"""

from abc import ABC, abstractmethod
from pathlib import Path


class Database(ABC):
    """Abstract application database"""

    @property
    @abstractmethod
    def path(self) -> Path:
        """Location of the canonical database file"""
        pass

    @abstractmethod
    def snapshot(self, destination: Path) -> None:
        """
        Write a consistent copy of the database to destination

        Raises:
            SerializationError: If the snapshot cannot be taken
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release any open handle on the database file"""
        pass
