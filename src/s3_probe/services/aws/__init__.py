"""boto3-backed object storage."""

from .client import BotoStorageClient

__all__ = ["BotoStorageClient"]
