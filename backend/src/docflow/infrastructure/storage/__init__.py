"""Object storage adapters."""

from .s3_storage_adapter import S3StorageAdapter, StorageError
from .storage_config import StorageConfig, get_object_storage, storage_config_from_settings

__all__ = [
    "S3StorageAdapter",
    "StorageError",
    "StorageConfig",
    "get_object_storage",
    "storage_config_from_settings",
]
