"""Structured logging configuration for the S3 probe."""

import json
import logging
import sys
from typing import Any

from .constants import CONTROLLER


def setup_structured_logging(level: str = "INFO") -> None:
    """Configure logging to stdout at the given level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def log_probe_event(
    logger: logging.Logger,
    target: str,
    event: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured probe lifecycle event as one JSON line."""
    log_data = {
        "controller": CONTROLLER,
        "target": target,
        "event": event,
        "message": message,
    }
    log_data.update(kwargs)
    logger.log(level, json.dumps(sanitize_secrets(log_data), default=str))


def sanitize_secrets(log_data: dict[str, Any]) -> dict[str, Any]:
    """Remove secret fields from log data."""
    secret_fields = {"access_key", "secret_key", "consul_token", "token"}
    sanitized = log_data.copy()
    for field in secret_fields:
        if field in sanitized:
            sanitized[field] = "***REDACTED***"
    return sanitized
