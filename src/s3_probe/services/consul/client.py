"""Consul HTTP API client used for endpoint discovery."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from ...constants import META_EXTERNAL_CLUSTER_FQDN, META_GATEWAY_DESTINATIONS, META_PROXY_ADDRESS
from ...utils.errors import sanitize_exception
from .base import DestinationParseError, RegistryError

logger = logging.getLogger(__name__)

_DESTINATION_RE = re.compile(r"^(.*):(.*)$")


@dataclass(frozen=True)
class Destination:
    """One gateway replica, as published in the gateway's metadata."""

    datacenter: str
    service: str
    raw: str


def _entry_meta(entry: dict[str, Any]) -> dict[str, str]:
    service = entry.get("Service") or {}
    return service.get("Meta") or {}


def get_endpoint_from_entries(name: str, entries: list[dict[str, Any]]) -> str:
    """Pick the address of a service from its health entries.

    A ``proxy_address`` on any entry wins over ``external_cluster_fqdn``.

    Raises:
        RegistryError: If no entry carries either field
    """
    for entry in entries:
        proxy = _entry_meta(entry).get(META_PROXY_ADDRESS)
        if proxy is not None:
            return proxy
    for entry in entries:
        fqdn = _entry_meta(entry).get(META_EXTERNAL_CLUSTER_FQDN)
        if fqdn is not None:
            return fqdn
    raise RegistryError(f"Endpoint name not found for {name}")


def extract_destinations(entries: list[dict[str, Any]]) -> list[Destination]:
    """Parse the ``gateway_destinations`` metadata of a gateway service.

    The field is a ``;`` separated list of ``datacenter:service`` pairs. If
    several entries carry it, the last one wins.

    Raises:
        DestinationParseError: If the field is missing or any pair lacks ``:``
    """
    raw_destinations = ""
    for entry in entries:
        value = _entry_meta(entry).get(META_GATEWAY_DESTINATIONS)
        if value is not None:
            raw_destinations = value

    logger.info(f"Processing gateway destinations: {raw_destinations}")
    destinations = []
    for raw in raw_destinations.split(";"):
        match = _DESTINATION_RE.match(raw)
        if match is None:
            logger.error(f"Failed to match gateway destination: {raw!r}")
            raise DestinationParseError(f"Failed to extract destinations from {raw_destinations!r}")
        destinations.append(
            Destination(datacenter=match.group(1), service=match.group(2), raw=match.group(0))
        )
    return destinations


class ConsulRegistry:
    """Discovers S3 endpoints registered in Consul."""

    def __init__(
        self,
        consul_addr: str,
        tag: str,
        gateway_tag: str,
        token: str | None = None,
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the registry client.

        Args:
            consul_addr: Consul agent address (``host:port`` or URL)
            tag: Tag marking simple S3 services
            gateway_tag: Tag marking gateway S3 services
            token: Optional ACL token
            timeout: Timeout of each HTTP request in seconds
            http_client: Preconfigured client, used instead of building one
        """
        self.tag = tag
        self.gateway_tag = gateway_tag

        if http_client is None:
            base_url = consul_addr if "://" in consul_addr else f"http://{consul_addr}"
            headers = {"X-Consul-Token": token} if token else {}
            http_client = httpx.Client(base_url=base_url, headers=headers, timeout=timeout)
        self.http = http_client

    def close(self) -> None:
        self.http.close()

    def _get(self, path: str, params: dict[str, str] | None = None) -> Any:
        try:
            response = self.http.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise RegistryError(f"Consul query {path} failed: {sanitize_exception(e)}") from e
        except ValueError as e:
            raise RegistryError(f"Consul query {path} returned invalid JSON: {e}") from e

    def _health_entries(self, service: str, datacenter: str | None = None) -> list[dict[str, Any]]:
        params = {"dc": datacenter} if datacenter else None
        entries = self._get(f"/v1/health/service/{service}", params=params)
        return entries or []

    def list_matching_services(self) -> dict[str, bool]:
        """Return every registered service tagged with ``tag`` or ``gateway_tag``.

        A service carrying both is classified by whichever comes first in its
        tag list.

        Returns:
            Mapping of service name to whether it is a gateway
        """
        services = self._get("/v1/catalog/services") or {}

        results: dict[str, bool] = {}
        for service_name, tags in services.items():
            for tag in tags or []:
                if tag == self.gateway_tag or tag == self.tag:
                    results[service_name] = tag == self.gateway_tag
                    break
        return results

    def resolve_endpoint(self, name: str, is_gateway: bool) -> tuple[str, list[str]]:
        """Resolve the address of a service and, for gateways, of its replicas.

        Args:
            name: Consul service name
            is_gateway: Whether the service has the gateway role

        Returns:
            The service address and the ordered replica addresses

        Raises:
            RegistryError: If a query fails or metadata is missing or malformed
        """
        logger.info(f"Fetching endpoints for service: {name}")
        entries = self._health_entries(name)
        endpoint = get_endpoint_from_entries(name, entries)

        if not is_gateway:
            return endpoint, []

        replicas = []
        for destination in extract_destinations(entries):
            destination_entries = self._health_entries(
                destination.service, datacenter=destination.datacenter
            )
            replica = get_endpoint_from_entries(destination.service, destination_entries)
            logger.info(f"Added gateway destination: {replica}")
            replicas.append(replica)
        return endpoint, replicas
