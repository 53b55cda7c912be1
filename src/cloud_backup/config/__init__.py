"""Configuration for cloud backup components.

Example:
    from cloud_backup.config import BackupSettings

    settings = BackupSettings.from_env()
    settings.freshness_window  # timedelta(hours=24)
"""

from cloud_backup.config.env_loader import EnvLoader
from cloud_backup.config.settings import DEFAULT_ENV_PREFIX, BackupSettings

__all__ = [
    "BackupSettings",
    "DEFAULT_ENV_PREFIX",
    "EnvLoader",
]
