"""Builders for S3 probe resources."""

from .storage import create_storage_client, endpoint_url_from_address

__all__ = ["create_storage_client", "endpoint_url_from_address"]
