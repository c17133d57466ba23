"""
Log Redaction Utilities
=======================

Keeps secrets and bulky payloads out of the logs.

API keys are masked before configuration is logged, and base64 image data
URLs embedded in request/response bodies are cut down to a short prefix so
every screenshot round trip does not add megabytes to the run log.

Usage:
    from browser_agent.utils.security import mask_sensitive, truncate_data_urls

    mask_sensitive("sk-abcdef123456")   # 'sk-********'
    truncate_data_urls({"image_url": "data:image/png;base64,iVBOR..."})
"""

import copy
import re
from typing import Any

DATA_URL_PREFIX_LENGTH = 100

_SENSITIVE_KEY = re.compile(
    r"password|secret|token|api[_-]?key|access[_-]?key|authorization|credential",
    re.IGNORECASE,
)


def mask_sensitive(value: str, visible_chars: int = 3) -> str:
    """
    Mask a sensitive string, showing only first few characters.

    Args:
        value: The string to mask.
        visible_chars: Number of characters to show at start.

    Returns:
        Masked string with asterisks.

    Examples:
        >>> mask_sensitive("password123")
        'pas********'
        >>> mask_sensitive("abc")
        '***'
    """
    if not value:
        return ""
    if len(value) <= visible_chars:
        return "*" * len(value)
    return f"{value[:visible_chars]}{'*' * 8}"


def sanitize_for_logging(data: dict[str, Any]) -> dict[str, Any]:
    """
    Sanitize a dictionary for safe logging.

    Masks common sensitive fields like keys, tokens and authorization headers.

    Args:
        data: Dictionary that may contain sensitive data.

    Returns:
        New dictionary with sensitive values masked.
    """
    result: dict[str, Any] = {}
    for key, value in data.items():
        if _SENSITIVE_KEY.search(str(key)):
            result[key] = mask_sensitive(value) if isinstance(value, str) else "********"
        elif isinstance(value, dict):
            result[key] = sanitize_for_logging(value)
        else:
            result[key] = value
    return result


def _truncate(value: Any, limit: int) -> Any:
    if isinstance(value, str):
        if value.startswith("data:") and len(value) > limit:
            return value[:limit] + "..."
        return value
    if isinstance(value, dict):
        return {key: _truncate(item, limit) for key, item in value.items()}
    if isinstance(value, list):
        return [_truncate(item, limit) for item in value]
    return value


def truncate_data_urls(payload: Any, limit: int = DATA_URL_PREFIX_LENGTH) -> Any:
    """
    Return a copy of ``payload`` with every data URL cut to ``limit`` chars.

    Walks nested dicts and lists. Truncated values keep their first
    ``limit`` characters followed by ``...``; the input is not modified.

    Args:
        payload: JSON-like structure (dict, list, str, scalars).
        limit: Number of leading characters to keep.

    Returns:
        The truncated copy.
    """
    return _truncate(copy.deepcopy(payload), limit)
