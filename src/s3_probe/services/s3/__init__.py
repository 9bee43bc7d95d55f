"""Object storage interface."""

from .base import ListedObject, StorageClient, StorageError

__all__ = ["ListedObject", "StorageClient", "StorageError"]
