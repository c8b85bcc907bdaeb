# src/olakai/contracts/enums.py
"""Kinds, providers and states shared across subsystem boundaries."""

from enum import StrEnum


class EndpointKind(StrEnum):
    """Remote endpoint a payload is delivered to.

    Each kind owns its own URL and its own circuit breaker.
    """

    MONITORING = "monitoring"
    CONTROL = "control"


class Provider(StrEnum):
    """Provider client families the SDK knows how to wrap."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    CUSTOM = "custom"


class BreakerState(StrEnum):
    """Circuit breaker state for one endpoint kind."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CompletionReason(StrEnum):
    """Why a streamed response was considered finished.

    Recorded on the completion outcome so logs show which consumer
    path terminated the stream.
    """

    EXHAUSTED = "exhausted"
    TERMINAL_RECORD = "terminal_record"
    FINAL_RESULT = "final_result"
    EVENT = "event"
    CLOSED = "closed"
    ERROR = "error"
    DISCARDED = "discarded"
