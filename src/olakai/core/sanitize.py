# src/olakai/core/sanitize.py
"""Redaction of sensitive substrings in reported prompts and responses.

Applied only when a wrapper or monitor option asks for it. The table is
ordered: specific patterns run before the generic ``name=value`` rule
so a secret key is redacted whole.
"""

from __future__ import annotations

import re
from typing import Any

import structlog

from olakai.contracts.jsonable import JsonValue, to_json_value

logger = structlog.get_logger(__name__)

REDACTED = "[REDACTED]"

SANITIZE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),  # email
    re.compile(r"\b(?:\d[ -]?){13,19}\b"),  # card number
    re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),  # SSN
    re.compile(r"\bsk-[A-Za-z0-9_-]{16,}\b"),  # provider secret key
    re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/=-]+"),
    re.compile(r"(?i)\b(password|passwd|secret|token|api[_-]?key)\s*[:=]\s*\S+"),
)


def sanitize_text(text: str) -> str:
    """Replace every match of the sanitization table with a marker."""
    for pattern in SANITIZE_PATTERNS:
        text = pattern.sub(REDACTED, text)
    return text


def prepare_body(value: Any, *, sanitize: bool = False) -> JsonValue:
    """Convert a prompt or response to JSON, redacting strings if requested.

    Objects that cannot be rendered at all are reported as an empty string.
    """
    try:
        return to_json_value(value, transform_str=sanitize_text if sanitize else None)
    except Exception as e:
        logger.warning("body_conversion_failed", value_type=type(value).__name__, error=str(e))
        return ""
