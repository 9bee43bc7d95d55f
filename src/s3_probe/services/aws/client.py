"""boto3 implementation of the probe's object storage client."""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterator

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...constants import LIFECYCLE_RULE_ID
from ...utils.errors import sanitize_exception
from ..s3.base import ListedObject, StorageError

logger = logging.getLogger(__name__)

_MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}


class ObjectStream:
    """Readable object body whose read failures surface as StorageError."""

    def __init__(self, body: Any, description: str) -> None:
        self._body = body
        self._description = description

    def read(self, amt: int | None = None) -> bytes:
        try:
            return self._body.read(amt)
        except (BotoCoreError, OSError) as e:
            raise StorageError(f"reading {self._description}: {sanitize_exception(e)}") from e

    def close(self) -> None:
        self._body.close()


class BotoStorageClient:
    """S3 client for one resolved endpoint."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        region: str = "us-east-1",
        path_style: bool = True,
    ) -> None:
        """Initialize the storage client.

        Args:
            endpoint: Endpoint URL including the scheme
            access_key: Access key ID
            secret_key: Secret access key
            region: Signing region
            path_style: Use path-style addressing
        """
        self.endpoint = endpoint
        self.region = region
        self.path_style = path_style
        self._access_key = access_key
        self._secret_key = secret_key
        self._lock = threading.Lock()
        self._timeout_clients: dict[float, Any] = {}
        # boto3 sessions are not thread-safe; each client owns one and only uses it under _lock
        self._session = boto3.session.Session()

        with self._lock:
            self.client = self._make_client(None)

    def _make_client(self, timeout: float | None) -> Any:
        config_kwargs: dict[str, Any] = {
            "signature_version": "s3v4",
            "s3": {"addressing_style": "path" if self.path_style else "auto"},
        }
        if timeout is not None:
            # A single attempt, so the timeout bounds the whole call
            config_kwargs["connect_timeout"] = timeout
            config_kwargs["read_timeout"] = timeout
            config_kwargs["retries"] = {"max_attempts": 1, "mode": "standard"}

        return self._session.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self._access_key,
            aws_secret_access_key=self._secret_key,
            config=Config(**config_kwargs),
        )

    def _client_for(self, timeout: float | None) -> Any:
        if timeout is None:
            return self.client
        with self._lock:
            client = self._timeout_clients.get(timeout)
            if client is None:
                client = self._make_client(timeout)
                self._timeout_clients[timeout] = client
            return client

    def bucket_exists(self, bucket: str, timeout: float | None = None) -> bool:
        """Check if bucket exists."""
        try:
            self._client_for(timeout).head_bucket(Bucket=bucket)
            return True
        except ClientError as e:
            if str(e.response.get("Error", {}).get("Code")) in _MISSING_BUCKET_CODES:
                return False
            logger.error(f"Failed to check bucket {bucket} on {self.endpoint}: {sanitize_exception(e)}")
            raise StorageError(f"head_bucket {bucket}: {sanitize_exception(e)}") from e
        except BotoCoreError as e:
            logger.error(f"Failed to check bucket {bucket} on {self.endpoint}: {sanitize_exception(e)}")
            raise StorageError(f"head_bucket {bucket}: {sanitize_exception(e)}") from e

    def make_bucket(self, bucket: str, timeout: float | None = None) -> None:
        """Create a bucket."""
        create_params: dict[str, Any] = {"Bucket": bucket}
        if self.region and self.region != "us-east-1":
            create_params["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            self._client_for(timeout).create_bucket(**create_params)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to create bucket {bucket} on {self.endpoint}: {sanitize_exception(e)}")
            raise StorageError(f"create_bucket {bucket}: {sanitize_exception(e)}") from e

    def set_bucket_expiry(self, bucket: str, days: int, timeout: float | None = None) -> None:
        """Install a lifecycle rule expiring every object after ``days`` days."""
        lifecycle_config = {
            "Rules": [
                {
                    "ID": LIFECYCLE_RULE_ID,
                    "Status": "Enabled",
                    "Filter": {"Prefix": ""},
                    "Expiration": {"Days": days},
                }
            ]
        }
        try:
            self._client_for(timeout).put_bucket_lifecycle_configuration(
                Bucket=bucket,
                LifecycleConfiguration=lifecycle_config,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"put_bucket_lifecycle_configuration {bucket}: {sanitize_exception(e)}") from e

    def list_buckets(self, timeout: float | None = None) -> list[str]:
        """List all buckets."""
        try:
            response = self._client_for(timeout).list_buckets()
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"list_buckets: {sanitize_exception(e)}") from e
        return [bucket["Name"] for bucket in response.get("Buckets", [])]

    def put_object(self, bucket: str, name: str, data: bytes, timeout: float | None = None) -> None:
        """Write an object."""
        try:
            self._client_for(timeout).put_object(
                Bucket=bucket,
                Key=name,
                Body=data,
                ContentLength=len(data),
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"put_object {bucket}/{name}: {sanitize_exception(e)}") from e

    def get_object(self, bucket: str, name: str, timeout: float | None = None) -> ObjectStream:
        """Open an object for reading."""
        try:
            response = self._client_for(timeout).get_object(Bucket=bucket, Key=name)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"get_object {bucket}/{name}: {sanitize_exception(e)}") from e
        return ObjectStream(response["Body"], f"{bucket}/{name}")

    def remove_object(self, bucket: str, name: str, timeout: float | None = None) -> None:
        """Delete an object."""
        try:
            self._client_for(timeout).delete_object(Bucket=bucket, Key=name)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"delete_object {bucket}/{name}: {sanitize_exception(e)}") from e

    def list_objects(self, bucket: str, timeout: float | None = None) -> Iterator[ListedObject]:
        """Iterate over every object of a bucket, page by page.

        A failure yields a single entry carrying the error and ends the listing.
        """
        paginator = self._client_for(timeout).get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=bucket):
                for obj in page.get("Contents", []):
                    yield ListedObject(name=obj["Key"])
        except (ClientError, BotoCoreError) as e:
            yield ListedObject(
                name="",
                error=StorageError(f"list_objects_v2 {bucket}: {sanitize_exception(e)}"),
            )
