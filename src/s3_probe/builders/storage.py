"""Builder for storage clients from discovered addresses."""

from __future__ import annotations

import re

from ..config import ProbeConfig
from ..services.aws.client import BotoStorageClient

_SCHEME_RE = re.compile(r"^(https?://)?(.*)$")


def endpoint_url_from_address(address: str) -> str:
    """Turn a discovered address into an endpoint URL.

    Addresses published without a scheme are plain HTTP.

    Raises:
        ValueError: If the address is empty
    """
    match = _SCHEME_RE.match(address.strip())
    host = match.group(2) if match else ""
    if not host:
        raise ValueError(f"Invalid endpoint address: {address!r}")
    scheme = "https://" if match.group(1) == "https://" else "http://"
    return f"{scheme}{host}"


def create_storage_client(address: str, config: ProbeConfig) -> BotoStorageClient:
    """Create a storage client for one discovered address.

    Args:
        address: Resolved endpoint address, with or without scheme
        config: Probe configuration holding credentials and region

    Returns:
        Configured storage client
    """
    return BotoStorageClient(
        endpoint=endpoint_url_from_address(address),
        access_key=config.access_key,
        secret_key=config.secret_key,
        region=config.region,
    )
