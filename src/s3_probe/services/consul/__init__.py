"""Consul-backed service discovery."""

from .base import DestinationParseError, RegistryError, ServiceRegistry
from .client import ConsulRegistry, Destination, extract_destinations, get_endpoint_from_entries

__all__ = [
    "ConsulRegistry",
    "Destination",
    "DestinationParseError",
    "RegistryError",
    "ServiceRegistry",
    "extract_destinations",
    "get_endpoint_from_entries",
]
