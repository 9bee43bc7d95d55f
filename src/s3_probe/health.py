"""Metrics and health check endpoints for the probe."""

from __future__ import annotations

import threading
from typing import Any

from prometheus_client import CollectorRegistry, make_wsgi_app
from werkzeug.serving import BaseWSGIServer, make_server
from werkzeug.wrappers import Response


def create_combined_wsgi_app(registry: CollectorRegistry) -> Any:
    """Create a WSGI app that combines metrics and health check endpoints.

    Args:
        registry: Registry holding the probe metrics

    Returns:
        Combined WSGI application
    """
    metrics_app = make_wsgi_app(registry)

    def combined_app(environ: dict[str, Any], start_response: Any) -> Any:
        """WSGI app that routes /healthz and /ready, delegates everything else to prometheus."""
        path = environ.get("PATH_INFO", "")

        if path == "/healthz":
            response = Response('{"status":"ok"}', mimetype="application/json", status=200)
            return response(environ, start_response)
        elif path in ("/ready", "/readyz"):
            response = Response('{"status":"ready"}', mimetype="application/json", status=200)
            return response(environ, start_response)
        else:
            return metrics_app(environ, start_response)

    return combined_app


def start_http_server(host: str, port: int, registry: CollectorRegistry) -> BaseWSGIServer:
    """Serve metrics and health endpoints from a background thread.

    Args:
        host: Interface to bind (empty string for all interfaces)
        port: Port to bind
        registry: Registry holding the probe metrics

    Returns:
        The running server, so callers can shut it down
    """
    server = make_server(host or "0.0.0.0", port, create_combined_wsgi_app(registry), threaded=True)
    thread = threading.Thread(target=server.serve_forever, name="http-server", daemon=True)
    thread.start()
    return server
