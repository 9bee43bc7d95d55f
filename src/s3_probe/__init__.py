"""Discovers S3 endpoints in Consul and probes their latency, durability and gateway replication."""

__version__ = "0.1.0"
