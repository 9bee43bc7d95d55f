"""Base object storage interface consumed by the probe."""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Iterator, Protocol


class StorageError(Exception):
    """An object storage call failed (including timeouts)."""


@dataclass(frozen=True)
class ListedObject:
    """One entry of an object listing; ``error`` is set when listing failed."""

    name: str
    error: Exception | None = None


class StorageClient(Protocol):
    """Protocol defining the storage operations the probe performs.

    Implementations must be safe to call from several threads at once:
    detached checks of one worker share a single client.
    """

    def bucket_exists(self, bucket: str, timeout: float | None = None) -> bool:
        """Check if a bucket exists."""
        ...

    def make_bucket(self, bucket: str, timeout: float | None = None) -> None:
        """Create a bucket."""
        ...

    def set_bucket_expiry(self, bucket: str, days: int, timeout: float | None = None) -> None:
        """Expire every object of the bucket after the given number of days."""
        ...

    def list_buckets(self, timeout: float | None = None) -> list[str]:
        """List all buckets."""
        ...

    def put_object(self, bucket: str, name: str, data: bytes, timeout: float | None = None) -> None:
        """Write an object."""
        ...

    def get_object(self, bucket: str, name: str, timeout: float | None = None) -> BinaryIO:
        """Open an object for reading; the caller drains and closes the stream."""
        ...

    def remove_object(self, bucket: str, name: str, timeout: float | None = None) -> None:
        """Delete an object."""
        ...

    def list_objects(self, bucket: str, timeout: float | None = None) -> Iterator[ListedObject]:
        """Iterate over every object of a bucket."""
        ...
