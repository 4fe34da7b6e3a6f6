"""
Log sanitization utilities to prevent log injection attacks.

Service names, cluster names and registry responses come from configuration
files and remote APIs, so they are cleaned before they reach a log line.
"""

import re
from typing import Any


def sanitize_for_log(value: Any, max_length: int = 100) -> str:
    """
    Sanitize a value for safe logging.

    Removes control characters, newlines, and other potentially dangerous characters
    that could be used for log injection attacks.

    Args:
        value: The value to sanitize
        max_length: Maximum length of the output (default 100)

    Returns:
        Sanitized string safe for logging
    """
    str_value = str(value)

    # Keep only printable ASCII and common unicode
    sanitized = re.sub(r"[\x00-\x1f\x7f-\x9f\r\n\t]", "", str_value)

    # Limit length to prevent log flooding
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."

    return sanitized


def sanitize_service_name(name: str) -> str:
    """
    Sanitize an ECS service or cluster name for logging.

    ECS names only contain letters, numbers, hyphens and underscores. ARNs are
    reduced to their final path segment.

    Args:
        name: The service name or ARN to sanitize

    Returns:
        Sanitized service name
    """
    if "/" in name:
        name = name.rstrip("/").split("/")[-1]

    sanitized = re.sub(r"[^a-zA-Z0-9_-]", "", name)

    # ECS caps names at 255 characters
    return sanitized[:255]
