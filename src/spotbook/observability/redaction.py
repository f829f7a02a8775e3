"""Redaction helpers for safe logging.

Reservation notes and cancellation reasons are typed by sales staff and
routinely contain contact details, so free-text fields are never logged
verbatim: only their length is recorded.
"""

import re
from datetime import date, datetime
from typing import Any

_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"

FREE_TEXT_KEYS = frozenset({"notes", "reason", "note", "comment"})


def redact_string(value: str) -> str:
    """Redact PII patterns from a string."""
    result = _EMAIL_PATTERN.sub(_REDACTED, value)
    result = _PHONE_PATTERN.sub(_REDACTED, result)
    return result


def redact_value(value: Any) -> str:
    """Redact any value for safe logging. Returns string representation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        return f"dict(keys={sorted(value.keys())})"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging.

    Free-text keys (notes, reason, ...) are reduced to their length; every
    other value goes through redact_value().
    """
    context: dict[str, str] = {}
    for key, value in kwargs.items():
        if key in FREE_TEXT_KEYS and isinstance(value, str):
            context[key] = f"text(len={len(value)})"
        else:
            context[key] = redact_value(value)
    return context
