"""Backup settings with environment variable overrides

Every field can be overridden with ``{prefix}_{FIELD_NAME}`` (default prefix
CLOUD_BACKUP), e.g. CLOUD_BACKUP_FRESHNESS_HOURS=12.
"""

from datetime import timedelta
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from cloud_backup.config.env_loader import EnvLoader
from cloud_backup.exceptions import ConfigurationError

DEFAULT_ENV_PREFIX = "CLOUD_BACKUP"


class BackupSettings(BaseModel):
    """Settings shared by the engine, the orchestrator and the scheduler."""

    # Remote layout
    remote_file_name: str = Field(
        default="database-backup.db",
        description="Object name of the backup inside the user's namespace",
    )

    # Freshness window for "backup now" availability
    freshness_hours: float = Field(
        default=24,
        description="A backup younger than this makes 'backup now' unavailable",
        gt=0,
    )

    # Background scheduling
    schedule_interval_hours: float = Field(
        default=24,
        description="Interval between background backups",
        gt=0,
    )
    requires_network: bool = Field(
        default=True,
        description="Skip background runs when the connectivity probe fails",
    )
    connectivity_host: str = Field(default="1.1.1.1")
    connectivity_port: int = Field(default=53, ge=1, le=65535)
    connectivity_timeout: float = Field(default=3.0, gt=0)
    max_retries: int = Field(
        default=3,
        description="One-shot retries after a transport failure of a background run",
        ge=0,
    )
    retry_delay_seconds: int = Field(default=900, ge=1)
    misfire_grace_seconds: int = Field(
        default=3600,
        description="How late a missed background run may still start",
        ge=1,
    )

    # Local paths
    database_path: Path = Field(default=Path("data/app.db"))
    preferences_path: Path = Field(default=Path("data/backup-preferences.json"))
    storage_root: Path = Field(
        default=Path("data/remote"),
        description="Root directory used by the file-backed cloud storage",
    )

    @field_validator("remote_file_name")
    @classmethod
    def validate_remote_file_name(cls, v: str) -> str:
        v = v.strip()
        if not v or "/" in v or v in (".", ".."):
            raise ValueError("remote_file_name must be a plain file name")
        return v

    @property
    def freshness_window(self) -> timedelta:
        return timedelta(hours=self.freshness_hours)

    @property
    def schedule_interval(self) -> timedelta:
        return timedelta(hours=self.schedule_interval_hours)

    @classmethod
    def from_env(
        cls,
        prefix: str = DEFAULT_ENV_PREFIX,
        env_file: Optional[Path | str] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> "BackupSettings":
        """Create settings from a .env file, the environment and overrides.

        Args:
            prefix: Environment variable prefix
            env_file: Optional .env file (defaults to ./.env when present)
            overrides: Highest-precedence raw values, keyed like the environment

        Raises:
            ConfigurationError: If any value fails validation
        """
        values = EnvLoader(env_file).load_prefixed(prefix, overrides)
        known = {k: v for k, v in values.items() if k in cls.model_fields}

        try:
            return cls(**known)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid backup settings for prefix {prefix}",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e
