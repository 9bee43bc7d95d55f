"""Utility functions for the S3 probe."""

from .errors import sanitize_error_message, sanitize_exception
from .objects import random_hex, random_object

__all__ = [
    "sanitize_error_message",
    "sanitize_exception",
    "random_hex",
    "random_object",
]
