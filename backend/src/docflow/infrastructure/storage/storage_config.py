"""Storage configuration for S3-compatible object storage.

Built from the application Settings so MinIO (development) and AWS S3
(production) differ only in environment variables.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from ...config import Settings, get_settings
from ...domain.documents.ports.object_storage_port import ObjectStoragePort
from .s3_storage_adapter import S3StorageAdapter


@dataclass
class StorageConfig:
    """Configuration for S3-compatible object storage.

    Attributes:
        endpoint_url: S3 endpoint URL (None for AWS S3 regional endpoints)
        access_key: S3 access key ID
        secret_key: S3 secret access key
        bucket_name: Bucket holding uploaded documents
        region: AWS region
        public_base_url: Base URL prepended to storage keys for file_url
    """
    endpoint_url: Optional[str]
    access_key: str
    secret_key: str
    bucket_name: str
    region: str = "us-east-1"
    public_base_url: Optional[str] = None


def storage_config_from_settings(settings: Settings) -> StorageConfig:
    """Build and validate a StorageConfig.

    Raises:
        ValueError: If configuration is invalid
    """
    config = StorageConfig(
        endpoint_url=settings.S3_ENDPOINT_URL or None,
        access_key=settings.S3_ACCESS_KEY_ID,
        secret_key=settings.S3_SECRET_ACCESS_KEY,
        bucket_name=settings.S3_BUCKET_NAME,
        region=settings.S3_REGION,
        public_base_url=settings.FILE_BASE_URL,
    )
    validate_storage_config(config)
    return config


def validate_storage_config(config: StorageConfig) -> None:
    """Validate storage configuration.

    Raises:
        ValueError: If configuration is invalid
    """
    if not config.access_key:
        raise ValueError("Storage access_key is required")

    if not config.secret_key:
        raise ValueError("Storage secret_key is required")

    if not config.bucket_name:
        raise ValueError("Storage bucket_name is required")

    if config.endpoint_url:
        if not config.endpoint_url.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid endpoint_url: {config.endpoint_url}. "
                "Must start with http:// or https://"
            )
    elif not config.region:
        raise ValueError("AWS region is required when S3_ENDPOINT_URL is not set")


@lru_cache()
def get_object_storage() -> ObjectStoragePort:
    """FastAPI dependency returning the process-wide storage adapter."""
    config = storage_config_from_settings(get_settings())
    return S3StorageAdapter(
        endpoint_url=config.endpoint_url,
        access_key=config.access_key,
        secret_key=config.secret_key,
        bucket_name=config.bucket_name,
        region=config.region,
        public_base_url=config.public_base_url,
    )
