"""Ports (interfaces) the document domain depends on."""

from .object_storage_port import ObjectStoragePort, StoredFile

__all__ = ["ObjectStoragePort", "StoredFile"]
