# tests/unit/olakai/contracts/test_payloads.py
"""Tests for wire payload serialization and response validation."""

import pytest
from pydantic import ValidationError

from olakai.contracts.jsonable import to_json_value
from olakai.contracts.metadata import LLMMetadata
from olakai.contracts.payloads import (
    ANONYMOUS_EMAIL,
    ControlPayload,
    ControlResponse,
    MonitoringResponse,
    MonitorPayload,
)


class TestMonitorPayload:
    def test_required_fields_on_wire(self) -> None:
        wire = MonitorPayload(prompt="hi", response="hello", chat_id="c1", request_time_ms=12.6).to_wire()

        assert wire == {
            "prompt": "hi",
            "response": "hello",
            "chatId": "c1",
            "email": ANONYMOUS_EMAIL,
            "tokens": 0,
            "requestTime": 13,
            "blocked": False,
            "sensitivity": [],
        }

    def test_optional_fields_included_when_set(self) -> None:
        payload = MonitorPayload(
            prompt="p",
            response="",
            chat_id="c1",
            user_id="u1",
            task="Support",
            sub_task="triage",
            error_message="boom",
            should_score=True,
            custom_data={"tier": "gold"},
            llm_metadata=LLMMetadata.from_partial({"model": "gpt-4o"}, provider="openai"),
        )

        wire = payload.to_wire()

        assert wire["userId"] == "u1"
        assert wire["subTask"] == "triage"
        assert wire["errorMessage"] == "boom"
        assert wire["shouldScore"] is True
        assert wire["customData"] == {"tier": "gold"}
        assert wire["llmMetadata"]["model"] == "gpt-4o"


class TestControlPayload:
    def test_override_criteria_serialized(self) -> None:
        wire = ControlPayload(prompt="p", chat_id="c1", override_criteria=("pii",)).to_wire()

        assert wire["overrideControlCriteria"] == ["pii"]
        assert "task" not in wire


class TestResponses:
    def test_control_response_parses_aliases(self) -> None:
        response = ControlResponse.model_validate(
            {"allowed": False, "details": {"detectedSensitivity": ["PII"], "isAllowedPersona": False}}
        )

        assert response.allowed is False
        assert response.details.detected_sensitivity == ("PII",)
        assert response.details.is_allowed_persona is False

    def test_control_response_requires_verdict(self) -> None:
        with pytest.raises(ValidationError):
            ControlResponse.model_validate({"details": {}})

    def test_monitoring_response_defaults_to_single_success(self) -> None:
        response = MonitoringResponse.model_validate({})

        assert response.fully_accepted
        assert response.total_requests == 1

    def test_monitoring_response_with_failures_not_fully_accepted(self) -> None:
        response = MonitoringResponse.model_validate({"success": True, "failureCount": 1})

        assert not response.fully_accepted


class TestToJsonValue:
    def test_nested_structures(self) -> None:
        assert to_json_value({"a": (1, 2), "b": {3}}) == {"a": [1, 2], "b": [3]}

    def test_non_finite_floats_become_strings(self) -> None:
        assert to_json_value(float("inf")) == "inf"

    def test_pydantic_models_are_dumped(self) -> None:
        assert to_json_value(ControlResponse(allowed=True))["allowed"] is True

    def test_unknown_objects_use_str(self) -> None:
        class Thing:
            def __str__(self) -> str:
                return "thing"

        assert to_json_value(Thing()) == "thing"

    def test_transform_applies_to_every_string(self) -> None:
        assert to_json_value({"k": ["a", "b"]}, transform_str=str.upper) == {"k": ["A", "B"]}
