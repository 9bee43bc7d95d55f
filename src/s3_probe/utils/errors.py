"""Error sanitization utilities to keep credentials out of logs."""

import re

# Patterns that might expose credentials
SENSITIVE_PATTERNS = [
    r"(access[_\s]?key[_\s]?id[:=\s]+)([A-Za-z0-9]{16,})",
    r"(secret[_\s]?(?:access[_\s]?)?key[:=\s]+)([A-Za-z0-9/+=]{16,})",
    r"(X-Amz-Signature=)([0-9a-fA-F]+)",
    r"(X-Amz-Credential=)([^&\s]+)",
    r"(X-Consul-Token[:=\s]+)([^\s,;]+)",
    r"(token=)([^&\s]+)",
]


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove credentials.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with credential values redacted
    """
    sanitized = message
    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, r"\1[REDACTED]", sanitized, flags=re.IGNORECASE)
    return sanitized


def sanitize_exception(error: BaseException) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))
