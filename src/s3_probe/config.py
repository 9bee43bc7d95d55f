"""Configuration for the S3 probe, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .constants import DEFAULT_SEED_RETRY_DELAY, MAX_RATE_PER_MINUTE


@dataclass(frozen=True)
class ProbeConfig:
    """Settings shared by the watcher and every probe worker."""

    consul_addr: str = "localhost:8500"
    consul_token: str | None = None
    tag: str = "s3"
    gateway_tag: str = "s3-gateway"
    latency_bucket_name: str = "monitoring-latency"
    gateway_bucket_name: str = "monitoring-gateway"
    durability_bucket_name: str = "monitoring-durability"
    interval: float = 600.0
    durability_timeout: float = 60.0
    latency_timeout: float = 30.0
    listen_address: str = ":8080"
    access_key: str = ""
    secret_key: str = ""
    region: str = "us-east-1"
    probe_rate_per_min: int = 120
    durability_probe_rate_per_min: int = 1
    latency_item_size: int = 1024 * 10
    durability_item_size: int = 1024 * 10
    durability_item_total: int = 100_000
    seed_retry_delay: float = DEFAULT_SEED_RETRY_DELAY

    def __post_init__(self) -> None:
        for name in ("probe_rate_per_min", "durability_probe_rate_per_min"):
            rate = getattr(self, name)
            if rate < 0 or rate > MAX_RATE_PER_MINUTE:
                raise ValueError(f"{name} must be between 0 and {MAX_RATE_PER_MINUTE}, got {rate}")
        for name in ("latency_item_size", "durability_item_size", "durability_item_total"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        for name in ("interval", "durability_timeout", "latency_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.seed_retry_delay < 0:
            raise ValueError("seed_retry_delay must not be negative")

    @property
    def listen_host_port(self) -> tuple[str, int]:
        """Split ``listen_address`` into host and port; empty host means all interfaces."""
        host, sep, port = self.listen_address.rpartition(":")
        if not sep:
            raise ValueError(f"listen_address must be host:port, got {self.listen_address!r}")
        try:
            return host, int(port)
        except ValueError:
            raise ValueError(f"Invalid port in listen_address: {self.listen_address!r}") from None


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_config_from_env(env: Mapping[str, str] | None = None) -> ProbeConfig:
    """Build a ProbeConfig from environment variables.

    Args:
        env: Mapping to read from (defaults to ``os.environ``)

    Returns:
        Validated configuration

    Raises:
        ValueError: If a variable cannot be parsed or is out of range
    """
    if env is None:
        env = os.environ
    defaults = ProbeConfig()

    return ProbeConfig(
        consul_addr=env.get("CONSUL_ADDR", defaults.consul_addr),
        consul_token=env.get("CONSUL_TOKEN") or None,
        tag=env.get("CONSUL_TAG", defaults.tag),
        gateway_tag=env.get("CONSUL_GATEWAY_TAG", defaults.gateway_tag),
        latency_bucket_name=env.get("LATENCY_BUCKET", defaults.latency_bucket_name),
        gateway_bucket_name=env.get("GATEWAY_BUCKET", defaults.gateway_bucket_name),
        durability_bucket_name=env.get("DURABILITY_BUCKET", defaults.durability_bucket_name),
        interval=_get_float(env, "DISCOVERY_INTERVAL_SECONDS", defaults.interval),
        durability_timeout=_get_float(env, "DURABILITY_TIMEOUT_SECONDS", defaults.durability_timeout),
        latency_timeout=_get_float(env, "LATENCY_TIMEOUT_SECONDS", defaults.latency_timeout),
        listen_address=env.get("LISTEN_ADDRESS", defaults.listen_address),
        access_key=env.get("S3_ACCESS_KEY", defaults.access_key),
        secret_key=env.get("S3_SECRET_KEY", defaults.secret_key),
        region=env.get("S3_REGION", defaults.region),
        probe_rate_per_min=_get_int(env, "PROBE_RATE", defaults.probe_rate_per_min),
        durability_probe_rate_per_min=_get_int(
            env, "DURABILITY_PROBE_RATE", defaults.durability_probe_rate_per_min
        ),
        latency_item_size=_get_int(env, "LATENCY_ITEM_SIZE", defaults.latency_item_size),
        durability_item_size=_get_int(env, "DURABILITY_ITEM_SIZE", defaults.durability_item_size),
        durability_item_total=_get_int(env, "DURABILITY_ITEM_TOTAL", defaults.durability_item_total),
        seed_retry_delay=_get_float(env, "SEED_RETRY_DELAY_SECONDS", defaults.seed_retry_delay),
    )
