"""Unit tests for the boto3 storage client."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, ReadTimeoutError

from s3_probe.services.aws.client import BotoStorageClient, ObjectStream
from s3_probe.services.s3.base import StorageError

SESSION = "s3_probe.services.aws.client.boto3.session.Session"


def client_error(code: str, operation: str = "HeadBucket") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "error"}}, operation)


@pytest.fixture
def s3_client():
    """Storage client whose boto3 client is a mock."""
    with patch(SESSION):
        client = BotoStorageClient("http://10.0.0.1", "access", "secret")
    client.client = MagicMock()
    return client


class TestBucketOperations:
    """Test bucket level calls."""

    def test_bucket_exists(self, s3_client):
        """Test an accessible bucket exists."""
        assert s3_client.bucket_exists("monitoring-latency") is True
        s3_client.client.head_bucket.assert_called_once_with(Bucket="monitoring-latency")

    @pytest.mark.parametrize("code", ["404", "NoSuchBucket", "NotFound"])
    def test_bucket_missing(self, s3_client, code):
        """Test not found responses mean the bucket is absent."""
        s3_client.client.head_bucket.side_effect = client_error(code)

        assert s3_client.bucket_exists("monitoring-latency") is False

    def test_bucket_exists_forbidden(self, s3_client):
        """Test other errors are raised."""
        s3_client.client.head_bucket.side_effect = client_error("403")

        with pytest.raises(StorageError):
            s3_client.bucket_exists("monitoring-latency")

    def test_bucket_exists_unreachable(self, s3_client):
        """Test connection failures are raised."""
        s3_client.client.head_bucket.side_effect = EndpointConnectionError(endpoint_url="http://10.0.0.1")

        with pytest.raises(StorageError):
            s3_client.bucket_exists("monitoring-latency")

    def test_make_bucket_default_region(self, s3_client):
        """Test no location constraint is sent for us-east-1."""
        s3_client.make_bucket("monitoring-latency")

        s3_client.client.create_bucket.assert_called_once_with(Bucket="monitoring-latency")

    def test_make_bucket_other_region(self):
        """Test the location constraint follows the configured region."""
        with patch(SESSION):
            client = BotoStorageClient("http://10.0.0.1", "access", "secret", region="eu-west-1")
        client.client = MagicMock()

        client.make_bucket("monitoring-latency")

        client.client.create_bucket.assert_called_once_with(
            Bucket="monitoring-latency",
            CreateBucketConfiguration={"LocationConstraint": "eu-west-1"},
        )

    def test_make_bucket_conflict(self, s3_client):
        """Test creation failures are raised."""
        s3_client.client.create_bucket.side_effect = client_error("BucketAlreadyOwnedByYou", "CreateBucket")

        with pytest.raises(StorageError):
            s3_client.make_bucket("monitoring-latency")

    def test_set_bucket_expiry(self, s3_client):
        """Test the lifecycle rule expires every object after the given days."""
        s3_client.set_bucket_expiry("monitoring-latency", 1)

        kwargs = s3_client.client.put_bucket_lifecycle_configuration.call_args.kwargs
        assert kwargs["Bucket"] == "monitoring-latency"
        rule = kwargs["LifecycleConfiguration"]["Rules"][0]
        assert rule["ID"] == "expire-bucket"
        assert rule["Status"] == "Enabled"
        assert rule["Filter"] == {"Prefix": ""}
        assert rule["Expiration"] == {"Days": 1}

    def test_list_buckets(self, s3_client):
        """Test bucket names are returned."""
        s3_client.client.list_buckets.return_value = {"Buckets": [{"Name": "a"}, {"Name": "b"}]}

        assert s3_client.list_buckets() == ["a", "b"]


class TestObjectOperations:
    """Test object level calls."""

    def test_put_object(self, s3_client):
        """Test objects are written with their length."""
        s3_client.put_object("bucket", "name", b"12345")

        s3_client.client.put_object.assert_called_once_with(
            Bucket="bucket", Key="name", Body=b"12345", ContentLength=5
        )

    def test_put_object_error(self, s3_client):
        """Test write failures are raised."""
        s3_client.client.put_object.side_effect = client_error("InternalError", "PutObject")

        with pytest.raises(StorageError, match="put_object bucket/name"):
            s3_client.put_object("bucket", "name", b"x")

    def test_get_object_stream(self, s3_client):
        """Test the object body is returned as a stream."""
        body = MagicMock()
        body.read.return_value = b"data"
        s3_client.client.get_object.return_value = {"Body": body}

        stream = s3_client.get_object("bucket", "name")

        assert stream.read(1024) == b"data"
        stream.close()
        body.close.assert_called_once()

    def test_get_object_missing(self, s3_client):
        """Test a missing object is raised."""
        s3_client.client.get_object.side_effect = client_error("NoSuchKey", "GetObject")

        with pytest.raises(StorageError):
            s3_client.get_object("bucket", "name")

    def test_stream_read_error(self):
        """Test a failure while reading the body is raised as StorageError."""
        body = MagicMock()
        body.read.side_effect = ReadTimeoutError(endpoint_url="http://10.0.0.1")

        with pytest.raises(StorageError, match="bucket/name"):
            ObjectStream(body, "bucket/name").read(1024)

    def test_remove_object(self, s3_client):
        """Test objects are deleted."""
        s3_client.remove_object("bucket", "name")

        s3_client.client.delete_object.assert_called_once_with(Bucket="bucket", Key="name")


class TestListObjects:
    """Test paginated listing."""

    def test_lists_every_page(self, s3_client):
        """Test objects of every page are yielded."""
        paginator = MagicMock()
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "fake-item-0"}, {"Key": "fake-item-1"}]},
            {"Contents": [{"Key": "fake-item-2"}]},
            {},
        ]
        s3_client.client.get_paginator.return_value = paginator

        listed = list(s3_client.list_objects("bucket"))

        assert [item.name for item in listed] == ["fake-item-0", "fake-item-1", "fake-item-2"]
        assert all(item.error is None for item in listed)
        s3_client.client.get_paginator.assert_called_once_with("list_objects_v2")

    def test_error_ends_listing(self, s3_client):
        """Test a failing page yields one error entry after the objects already listed."""

        def pages(**_kwargs):
            yield {"Contents": [{"Key": "fake-item-0"}]}
            raise client_error("AccessDenied", "ListObjectsV2")

        paginator = MagicMock()
        paginator.paginate.side_effect = pages
        s3_client.client.get_paginator.return_value = paginator

        listed = list(s3_client.list_objects("bucket"))

        assert listed[0].name == "fake-item-0"
        assert isinstance(listed[1].error, StorageError)
        assert len(listed) == 2


class TestTimeouts:
    """Test per-timeout client configuration."""

    def test_timeout_clients_are_cached(self):
        """Test one client is built per distinct timeout."""
        with patch(SESSION) as mock_session:
            session_client = mock_session.return_value.client
            session_client.side_effect = lambda *args, **kwargs: MagicMock()
            client = BotoStorageClient("http://10.0.0.1", "access", "secret")

            first = client._client_for(30.0)
            second = client._client_for(30.0)
            other = client._client_for(60.0)

        assert first is second
        assert first is not other
        assert client._client_for(None) is client.client
        assert session_client.call_count == 3

    def test_timeout_configuration(self):
        """Test a timed client uses the timeout and a single attempt."""
        with patch(SESSION) as mock_session:
            client = BotoStorageClient("http://10.0.0.1", "access", "secret")
            client._client_for(12.5)

        call = mock_session.return_value.client.call_args
        config = call.kwargs["config"]
        assert config.connect_timeout == 12.5
        assert config.read_timeout == 12.5
        assert config.retries == {"max_attempts": 1, "mode": "standard"}
        assert config.signature_version == "s3v4"
        assert config.s3 == {"addressing_style": "path"}
        assert call.kwargs["endpoint_url"] == "http://10.0.0.1"


class TestSessions:
    """Test boto3 session ownership."""

    def test_each_client_owns_a_session(self):
        """Test storage clients never share a boto3 session."""
        with patch(SESSION) as mock_session:
            mock_session.side_effect = lambda *args, **kwargs: MagicMock()
            first = BotoStorageClient("http://10.0.0.1", "access", "secret")
            second = BotoStorageClient("http://10.0.0.2", "access", "secret")

        assert mock_session.call_count == 2
        assert first._session is not second._session

    def test_timed_clients_come_from_own_session(self):
        """Test clients built later, from any thread, use the client's own session."""
        with patch(SESSION) as mock_session:
            client = BotoStorageClient("http://10.0.0.1", "access", "secret")

        with patch("s3_probe.services.aws.client.boto3.client") as default_client:
            built = []
            thread = threading.Thread(target=lambda: built.append(client._client_for(30.0)))
            thread.start()
            thread.join(timeout=5)

        default_client.assert_not_called()
        assert built == [mock_session.return_value.client.return_value]
        assert mock_session.return_value.client.call_count == 2
