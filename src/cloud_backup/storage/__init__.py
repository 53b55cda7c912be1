"""Storage module

Cloud storage port used by the backup engine and a file-backed implementation.
"""

from .base import CloudStorage, ProgressCallback
from .file_storage import FileCloudStorage
from .metadata import FileMetaData, JsonMetadataRepository

__all__ = [
    "CloudStorage",
    "ProgressCallback",
    "FileCloudStorage",
    "FileMetaData",
    "JsonMetadataRepository",
]
