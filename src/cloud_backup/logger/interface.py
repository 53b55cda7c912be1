"""
Logger interface for cloud backup components.

Every component (engine, orchestrator, adapters) logs through this contract
so callers can inject their own implementation.
"""

from abc import ABC, abstractmethod
from typing import Any


class Logger(ABC):
    """Abstract logging interface with structured key-value context.

    Example:
        logger.info("Backup uploaded", user_id="u-1", remote_path="u-1/database-backup.db")
    """

    @abstractmethod
    def debug(self, message: str, **kwargs: Any) -> None:
        """Log a debug message with optional context pairs."""
        pass

    @abstractmethod
    def info(self, message: str, **kwargs: Any) -> None:
        """Log an info message with optional context pairs."""
        pass

    @abstractmethod
    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning message with optional context pairs."""
        pass

    @abstractmethod
    def error(self, message: str, **kwargs: Any) -> None:
        """Log an error message with optional context pairs."""
        pass

    @abstractmethod
    def critical(self, message: str, **kwargs: Any) -> None:
        """Log a critical message with optional context pairs."""
        pass

    @abstractmethod
    def get_session_id(self) -> str:
        """Return the identifier shared by every record of this logger instance."""
        pass
