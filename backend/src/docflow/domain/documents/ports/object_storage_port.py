"""Object Storage Port - Domain interface for uploaded document files.

Adapters implement this to keep document bytes in S3, MinIO or, in tests,
memory. The document service only ever sees StoredFile metadata and the
public file URL.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO
from uuid import UUID


@dataclass
class StoredFile:
    """Metadata for a file stored in object storage.

    Attributes:
        storage_key: Unique key in object storage ({org_id}/{year}/{month}/{sha256}.{ext})
        sha256: SHA256 hash of file content (hex format)
        size_bytes: File size in bytes
        mime_type: MIME type of the file
        created: False when an identical file already existed for the org
    """
    storage_key: str
    sha256: str
    size_bytes: int
    mime_type: str
    created: bool = True


class ObjectStoragePort(ABC):
    """Port interface for document file storage.

    - Storage keys include org_id for tenant isolation
    - Identical content within one org is stored once
    - delete_file is idempotent
    """

    @abstractmethod
    async def store_file(
        self,
        file: BinaryIO,
        org_id: UUID,
        filename: str,
        mime_type: str,
    ) -> StoredFile:
        """Store a file, returning the existing object for duplicate content.

        Raises:
            StorageError: If upload fails or storage is unavailable
            ValueError: If file is empty
        """

    @abstractmethod
    async def retrieve_file(self, storage_key: str) -> BinaryIO:
        """Retrieve a file by storage key.

        Raises:
            FileNotFoundError: If file doesn't exist in storage
            StorageError: If retrieval fails
        """

    @abstractmethod
    async def delete_file(self, storage_key: str) -> bool:
        """Delete a file; False if it did not exist."""

    @abstractmethod
    async def file_exists(self, storage_key: str) -> bool:
        """Check if a file exists in object storage."""

    @abstractmethod
    def file_url(self, storage_key: str) -> str:
        """Public URL recorded on the document for a storage key."""
