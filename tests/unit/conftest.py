"""Shared fixtures and fakes for unit tests."""

from __future__ import annotations

import io
import threading
from typing import Iterator

import pytest
from prometheus_client import CollectorRegistry

from s3_probe.metrics import ProbeMetrics
from s3_probe.services.s3.base import ListedObject, StorageError


class FakeStorageClient:
    """In-memory storage client.

    Clients built on the same ``buckets`` dict see the same objects, which
    stands in for replication between a gateway and its replicas.
    """

    def __init__(
        self,
        buckets: dict[str, dict[str, bytes]] | None = None,
        fail_operations: set[str] | None = None,
        put_failures: int = 0,
    ) -> None:
        self.buckets = buckets if buckets is not None else {}
        self.expiry: dict[str, int] = {}
        self.fail_operations = fail_operations or set()
        self.put_failures = put_failures
        self.calls: list[tuple[str, ...]] = []
        self._lock = threading.Lock()

    def _call(self, operation: str, *args: str) -> None:
        with self._lock:
            self.calls.append((operation, *args))
        if operation in self.fail_operations:
            raise StorageError(f"{operation} failed")

    def operations(self) -> list[str]:
        return [call[0] for call in self.calls]

    def bucket_exists(self, bucket: str, timeout: float | None = None) -> bool:
        self._call("bucket_exists", bucket)
        return bucket in self.buckets

    def make_bucket(self, bucket: str, timeout: float | None = None) -> None:
        self._call("make_bucket", bucket)
        if bucket in self.buckets:
            raise StorageError(f"bucket {bucket} already exists")
        self.buckets[bucket] = {}

    def set_bucket_expiry(self, bucket: str, days: int, timeout: float | None = None) -> None:
        self._call("set_bucket_expiry", bucket)
        self.expiry[bucket] = days

    def list_buckets(self, timeout: float | None = None) -> list[str]:
        self._call("list_buckets")
        return sorted(self.buckets)

    def put_object(self, bucket: str, name: str, data: bytes, timeout: float | None = None) -> None:
        self._call("put_object", bucket, name)
        with self._lock:
            if self.put_failures > 0:
                self.put_failures -= 1
                raise StorageError("put_object transiently failed")
        if bucket not in self.buckets:
            raise StorageError(f"no such bucket {bucket}")
        self.buckets[bucket][name] = data

    def get_object(self, bucket: str, name: str, timeout: float | None = None) -> io.BytesIO:
        self._call("get_object", bucket, name)
        try:
            return io.BytesIO(self.buckets[bucket][name])
        except KeyError:
            raise StorageError(f"no such object {bucket}/{name}") from None

    def remove_object(self, bucket: str, name: str, timeout: float | None = None) -> None:
        self._call("remove_object", bucket, name)
        self.buckets.get(bucket, {}).pop(name, None)

    def list_objects(self, bucket: str, timeout: float | None = None) -> Iterator[ListedObject]:
        with self._lock:
            self.calls.append(("list_objects", bucket))
        if "list_objects" in self.fail_operations:
            yield ListedObject(name="", error=StorageError("list_objects failed"))
            return
        for name in list(self.buckets.get(bucket, {})):
            yield ListedObject(name=name)


@pytest.fixture
def registry() -> CollectorRegistry:
    """Fresh metrics registry per test."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> ProbeMetrics:
    """Probe metrics bound to the per-test registry."""
    return ProbeMetrics(registry)


@pytest.fixture
def storage() -> FakeStorageClient:
    """Empty in-memory storage."""
    return FakeStorageClient()


@pytest.fixture
def storage_factory() -> type[FakeStorageClient]:
    """The fake storage class, for tests needing several clients."""
    return FakeStorageClient
