# src/olakai/contracts/errors.py
"""Exceptions raised by the Olakai SDK.

Only two of these ever reach code that calls a wrapped function:
ExecutionBlockedError (the control service denied the call) and
NotInitializedError (an operation that needs the runtime ran before
initialize()). Delivery errors are raised by the delivery client and
handled by the reporting layer, which logs them.
"""

from __future__ import annotations

from collections.abc import Sequence

from olakai.contracts.enums import EndpointKind


class OlakaiError(Exception):
    """Base class for all SDK errors."""


class NotInitializedError(OlakaiError):
    """Raised when an operation needs the SDK runtime before initialize()."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Olakai SDK not initialized; call initialize() before {operation}")


class ExecutionBlockedError(OlakaiError):
    """Raised when the control service denies a call before it executes.

    Attributes:
        detected_sensitivity: Sensitivity labels reported by the control service
        is_allowed_persona: Whether the caller's persona was allowed
        reason: Human-readable reason (service message or local failure)
    """

    def __init__(
        self,
        reason: str,
        *,
        detected_sensitivity: Sequence[str] = (),
        is_allowed_persona: bool = True,
    ) -> None:
        self.reason = reason
        self.detected_sensitivity = tuple(detected_sensitivity)
        self.is_allowed_persona = is_allowed_persona
        super().__init__(f"Execution blocked: {reason}")


class DeliveryError(OlakaiError):
    """Raised when a payload could not be delivered.

    Attributes:
        endpoint: Endpoint kind the payload was addressed to
        attempts: Number of HTTP attempts made (0 when no request was sent)
        status_code: HTTP status of the final answer, if one was received
        retryable: Whether a later send may succeed
    """

    def __init__(
        self,
        endpoint: EndpointKind,
        message: str,
        *,
        attempts: int = 0,
        status_code: int | None = None,
        retryable: bool = True,
    ) -> None:
        self.endpoint = endpoint
        self.message = message
        self.attempts = attempts
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(f"Delivery to {endpoint} endpoint failed: {message}")


class OfflineError(DeliveryError):
    """Raised without touching the network while connectivity is down."""

    def __init__(self, endpoint: EndpointKind) -> None:
        super().__init__(endpoint, "client is offline", attempts=0, retryable=True)


class CircuitOpenError(DeliveryError):
    """Raised while the endpoint's circuit breaker rejects calls.

    Attributes:
        retry_after_seconds: Time left until a half-open trial is allowed
    """

    def __init__(self, endpoint: EndpointKind, retry_after_seconds: float) -> None:
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            endpoint,
            f"circuit open, next trial in {retry_after_seconds:.1f}s",
            attempts=0,
            retryable=True,
        )
