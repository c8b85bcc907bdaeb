# src/olakai/contracts/payloads.py
"""Wire payloads exchanged with the Olakai monitoring and control services.

Outbound payloads are frozen dataclasses built by the SDK itself and
serialized with ``to_wire()`` (camelCase keys, None fields omitted).
Inbound responses come from a remote service and are validated with
pydantic at the boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from olakai.contracts.jsonable import JsonValue, to_json_value
from olakai.contracts.metadata import LLMMetadata

ANONYMOUS_EMAIL = "anonymous@olakai.ai"


@dataclass(frozen=True, slots=True)
class ControlPayload:
    """Pre-execution policy check request."""

    prompt: JsonValue
    chat_id: str
    email: str = ANONYMOUS_EMAIL
    task: str | None = None
    sub_task: str | None = None
    tokens: int = 0
    override_criteria: tuple[str, ...] = ()

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "prompt": self.prompt,
            "chatId": self.chat_id,
            "email": self.email,
            "tokens": self.tokens,
        }
        if self.task is not None:
            wire["task"] = self.task
        if self.sub_task is not None:
            wire["subTask"] = self.sub_task
        if self.override_criteria:
            wire["overrideControlCriteria"] = list(self.override_criteria)
        return wire


@dataclass(frozen=True, slots=True)
class MonitorPayload:
    """Record of one completed (or blocked, or failed) call."""

    prompt: JsonValue
    response: JsonValue
    chat_id: str
    email: str = ANONYMOUS_EMAIL
    user_id: str | None = None
    task: str | None = None
    sub_task: str | None = None
    tokens: int = 0
    request_time_ms: float = 0.0
    blocked: bool = False
    error_message: str | None = None
    sensitivity: tuple[str, ...] = ()
    should_score: bool | None = None
    custom_data: dict[str, Any] | None = None
    llm_metadata: LLMMetadata | None = None

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "prompt": self.prompt,
            "response": self.response,
            "chatId": self.chat_id,
            "email": self.email,
            "tokens": self.tokens,
            "requestTime": round(self.request_time_ms),
            "blocked": self.blocked,
            "sensitivity": list(self.sensitivity),
        }
        optional = {
            "userId": self.user_id,
            "task": self.task,
            "subTask": self.sub_task,
            "errorMessage": self.error_message,
            "shouldScore": self.should_score,
            "customData": to_json_value(self.custom_data) if self.custom_data else None,
            "llmMetadata": to_json_value(self.llm_metadata.to_wire()) if self.llm_metadata else None,
        }
        wire.update({key: value for key, value in optional.items() if value is not None})
        return wire


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class ControlDetails(_WireModel):
    detected_sensitivity: tuple[str, ...] = Field(default=(), alias="detectedSensitivity")
    is_allowed_persona: bool = Field(default=True, alias="isAllowedPersona")


class ControlResponse(_WireModel):
    """Allow/deny verdict from the control endpoint."""

    allowed: bool
    details: ControlDetails = Field(default_factory=ControlDetails)
    message: str | None = None


class MonitoringResult(_WireModel):
    index: int = 0
    success: bool
    prompt_request_id: str | None = Field(default=None, alias="promptRequestId")
    error: str | None = None


class MonitoringResponse(_WireModel):
    """Acknowledgement from the monitoring endpoint."""

    success: bool = True
    message: str | None = None
    total_requests: int = Field(default=1, alias="totalRequests")
    success_count: int = Field(default=1, alias="successCount")
    failure_count: int = Field(default=0, alias="failureCount")
    results: tuple[MonitoringResult, ...] = ()

    @property
    def fully_accepted(self) -> bool:
        return self.success and self.failure_count == 0
