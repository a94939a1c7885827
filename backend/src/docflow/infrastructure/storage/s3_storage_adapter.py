"""boto3-backed ObjectStoragePort for uploaded documents.

Talks to AWS S3 in production and to MinIO in development; the only
difference is the endpoint URL.
"""

import hashlib
import logging
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Optional, Tuple
from uuid import UUID

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

from ...domain.documents.ports.object_storage_port import (
    ObjectStoragePort,
    StoredFile,
)

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 8192
MISSING_CODES = ("404", "NoSuchKey")


class StorageError(Exception):
    """Raised when the object store rejects or cannot serve a request."""
    pass


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "Unknown")


def _read_stream(file: BinaryIO) -> Tuple[bytes, str]:
    """Drain a file object, returning its bytes and SHA-256 hex digest."""
    digest = hashlib.sha256()
    buffer = BytesIO()
    for chunk in iter(lambda: file.read(READ_CHUNK_SIZE), b""):
        digest.update(chunk)
        buffer.write(chunk)
    return buffer.getvalue(), digest.hexdigest()


class S3StorageAdapter(ObjectStoragePort):
    """Content-addressed document storage in a single bucket.

    Keys look like {org_id}/{year}/{month}/{sha256}{ext}, so the same bytes
    uploaded twice by one org in the same month land on one object.
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
        public_base_url: Optional[str] = None,
    ):
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
            )
        except NoCredentialsError as e:
            raise StorageError(f"Invalid S3 credentials: {e}")
        except Exception as e:
            raise StorageError(f"Could not create S3 client: {e}")

        self.bucket_name = bucket_name
        self.region = region
        self.public_base_url = (public_base_url or f"s3://{bucket_name}").rstrip("/")

        logger.info(
            f"Document storage ready: bucket={bucket_name}, "
            f"endpoint={endpoint_url or 'aws'}, region={region}"
        )

    async def store_file(
        self,
        file: BinaryIO,
        org_id: UUID,
        filename: str,
        mime_type: str,
    ) -> StoredFile:
        content, sha256 = _read_stream(file)
        if not content:
            raise ValueError("Cannot store empty file")

        storage_key = self.build_storage_key(org_id, sha256, filename)
        stored = StoredFile(
            storage_key=storage_key,
            sha256=sha256,
            size_bytes=len(content),
            mime_type=mime_type,
        )

        if await self.file_exists(storage_key):
            logger.info(f"Reusing stored document object: storage_key={storage_key}")
            stored.created = False
            return stored

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=storage_key,
                Body=content,
                ContentType=mime_type,
                Metadata={
                    "sha256": sha256,
                    "original_filename": filename,
                    "org_id": str(org_id),
                },
            )
        except ClientError as e:
            code = _error_code(e)
            logger.error(f"Document upload to S3 failed: storage_key={storage_key}, code={code}")
            raise StorageError(f"Failed to upload file: {code}")

        logger.info(f"Stored document object: storage_key={storage_key}, size={stored.size_bytes}")
        return stored

    async def retrieve_file(self, storage_key: str) -> BinaryIO:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=storage_key)
        except ClientError as e:
            code = _error_code(e)
            if code in MISSING_CODES:
                raise FileNotFoundError(f"File not found: {storage_key}")
            logger.error(f"Document download from S3 failed: storage_key={storage_key}, code={code}")
            raise StorageError(f"Failed to retrieve file: {code}")
        return response["Body"]

    async def delete_file(self, storage_key: str) -> bool:
        # Orphan cleanup after a failed upload calls this; a missing key is not an error.
        if not await self.file_exists(storage_key):
            return False

        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=storage_key)
        except ClientError as e:
            code = _error_code(e)
            logger.error(f"Document delete in S3 failed: storage_key={storage_key}, code={code}")
            raise StorageError(f"Failed to delete file: {code}")

        logger.info(f"Deleted document object: storage_key={storage_key}")
        return True

    async def file_exists(self, storage_key: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=storage_key)
        except ClientError as e:
            code = _error_code(e)
            if code not in MISSING_CODES:
                logger.warning(f"HEAD on document object failed: storage_key={storage_key}, code={code}")
            return False
        return True

    def file_url(self, storage_key: str) -> str:
        return f"{self.public_base_url}/{storage_key}"

    @staticmethod
    def build_storage_key(org_id: UUID, sha256: str, filename: str) -> str:
        now = datetime.now(timezone.utc)
        ext = Path(filename).suffix.lower()
        return f"{org_id}/{now.year}/{now.month:02d}/{sha256}{ext}"

    async def verify_bucket_exists(self) -> bool:
        """Startup check that the configured bucket is reachable.

        Raises:
            StorageError: If the bucket is missing or cannot be checked
        """
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            code = _error_code(e)
            if code in MISSING_CODES:
                raise StorageError(
                    f"Bucket '{self.bucket_name}' does not exist; "
                    "create it or point S3_BUCKET_NAME at an existing one"
                )
            raise StorageError(f"Failed to verify bucket: {code}")
        logger.info(f"Document bucket verified: {self.bucket_name}")
        return True
