"""Shared types: enums, errors, metadata envelope and wire payloads."""

from olakai.contracts.enums import BreakerState, CompletionReason, EndpointKind, Provider
from olakai.contracts.errors import (
    CircuitOpenError,
    DeliveryError,
    ExecutionBlockedError,
    NotInitializedError,
    OfflineError,
    OlakaiError,
)
from olakai.contracts.jsonable import JsonValue, to_json_value
from olakai.contracts.metadata import (
    LLMMetadata,
    PartialMetadata,
    Timing,
    TokenCounts,
    TokenUsage,
    mask_api_key,
    merge_partial,
)
from olakai.contracts.payloads import (
    ANONYMOUS_EMAIL,
    ControlDetails,
    ControlPayload,
    ControlResponse,
    MonitoringResponse,
    MonitoringResult,
    MonitorPayload,
)

__all__ = [
    "ANONYMOUS_EMAIL",
    "BreakerState",
    "CircuitOpenError",
    "CompletionReason",
    "ControlDetails",
    "ControlPayload",
    "ControlResponse",
    "DeliveryError",
    "EndpointKind",
    "ExecutionBlockedError",
    "JsonValue",
    "LLMMetadata",
    "MonitorPayload",
    "MonitoringResponse",
    "MonitoringResult",
    "NotInitializedError",
    "OfflineError",
    "OlakaiError",
    "PartialMetadata",
    "Provider",
    "Timing",
    "TokenCounts",
    "TokenUsage",
    "mask_api_key",
    "merge_partial",
    "to_json_value",
]
