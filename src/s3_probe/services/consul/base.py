"""Service registry interface consumed by the watcher."""

from __future__ import annotations

from typing import Protocol


class RegistryError(Exception):
    """The registry could not be queried or returned unusable metadata."""


class DestinationParseError(RegistryError):
    """A gateway destination list is malformed."""


class ServiceRegistry(Protocol):
    """Protocol defining the discovery operations the watcher performs."""

    def list_matching_services(self) -> dict[str, bool]:
        """Map every matching service name to whether it has the gateway role."""
        ...

    def resolve_endpoint(self, name: str, is_gateway: bool) -> tuple[str, list[str]]:
        """Resolve a service to its address and, for gateways, its replica addresses."""
        ...
