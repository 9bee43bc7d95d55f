"""Main entry point for the S3 probe."""

from __future__ import annotations

import logging
import os
import signal
from typing import Any

from prometheus_client import CollectorRegistry

from . import health
from . import logging as structured_logging
from .config import load_config_from_env
from .metrics import ProbeMetrics
from .services.consul.client import ConsulRegistry
from .tracing import initialize_tracing
from .watcher import Watcher

logger = logging.getLogger(__name__)


def main() -> None:
    """Discover S3 endpoints and probe them until terminated."""
    structured_logging.setup_structured_logging(os.getenv("LOG_LEVEL", "INFO"))
    config = load_config_from_env()
    initialize_tracing()

    registry = CollectorRegistry()
    metrics = ProbeMetrics(registry)
    host, port = config.listen_host_port
    server = health.start_http_server(host, port, registry)
    logger.info(f"Serving metrics and health checks on {config.listen_address}")

    consul = ConsulRegistry(
        config.consul_addr,
        tag=config.tag,
        gateway_tag=config.gateway_tag,
        token=config.consul_token,
    )
    watcher = Watcher(consul, config, metrics)

    def handle_signal(signum: int, _frame: Any) -> None:
        logger.info(f"Received signal {signum}, shutting down")
        watcher.stop()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    try:
        watcher.watch_pools(config.interval)
    finally:
        consul.close()
        server.shutdown()


if __name__ == "__main__":
    main()
