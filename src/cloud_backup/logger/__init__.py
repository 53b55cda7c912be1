"""
Cloud Backup Logger Module

Structured logging shared by every cloud backup component.

Usage:
    from cloud_backup.logger import get_logger, create_logger

    logger = get_logger("cloud-backup-engine")
    logger.info("Backup uploaded", user_id="u-1")

    logger = create_logger(
        name="cloud-backup",
        level=logging.DEBUG,
        json_format=True,
        log_file="/var/log/cloud-backup.log",
    )

Environment Variables:
    {PREFIX}_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    {PREFIX}_LOG_FILE: Optional file path for log output
    {PREFIX}_LOG_JSON: Set to "true" for JSON output format

    {PREFIX} is derived from the logger's root name, e.g. CLOUD_BACKUP for
    "cloud-backup-engine".
"""

import logging
import os
from typing import Optional

from .interface import Logger
from .structured_logger import JsonFormatter, StructuredLogger, TextFormatter

ROOT_LOGGER_NAME = "cloud-backup"


def _get_env_prefix(name: str) -> str:
    """Convert a logger name to its environment variable prefix.

    Component loggers share the root prefix:
        "cloud-backup" -> "CLOUD_BACKUP"
        "cloud-backup-engine" -> "CLOUD_BACKUP"
        "other-service" -> "OTHER_SERVICE"
    """
    if name.startswith(ROOT_LOGGER_NAME):
        name = ROOT_LOGGER_NAME
    return name.upper().replace("-", "_")


def create_logger(
    name: str = ROOT_LOGGER_NAME,
    level: Optional[int] = None,
    log_file: Optional[str] = None,
    json_format: Optional[bool] = None,
) -> Logger:
    """Create a logger, filling unset options from the environment.

    Args:
        name: Logger name (e.g., "cloud-backup-orchestrator")
        level: Logging level (defaults to INFO or {PREFIX}_LOG_LEVEL)
        log_file: Optional file path for log output
        json_format: If True, output logs as JSON

    Returns:
        A configured Logger instance
    """
    env_prefix = _get_env_prefix(name)

    if level is None:
        level_str = os.environ.get(f"{env_prefix}_LOG_LEVEL", "INFO").upper()
        level = getattr(logging, level_str, logging.INFO)

    if log_file is None:
        log_file = os.environ.get(f"{env_prefix}_LOG_FILE")

    if json_format is None:
        json_format = os.environ.get(f"{env_prefix}_LOG_JSON", "false").lower() == "true"

    return StructuredLogger(
        name=name,
        level=level,
        log_file=log_file,
        json_format=json_format,
    )


def get_logger(name: str = ROOT_LOGGER_NAME) -> Logger:
    """Get a logger configured entirely from environment variables."""
    return create_logger(name=name)


__all__ = [
    "Logger",
    "StructuredLogger",
    "JsonFormatter",
    "TextFormatter",
    "create_logger",
    "get_logger",
]
