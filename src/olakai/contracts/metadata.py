# src/olakai/contracts/metadata.py
"""Canonical LLM metadata envelope.

Normalizers produce PartialMetadata mappings (every key optional).
Partials from the request, the response and individual stream chunks
are merged in order with merge_partial(), and the final LLMMetadata is
built once, when the call is reported.

Token counts merge per field: a later partial that only carries
``completion`` does not erase an earlier ``prompt`` count. When no
total is supplied by the provider, it is derived as prompt + completion.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TypedDict


class TokenCounts(TypedDict, total=False):
    prompt: int
    completion: int
    total: int


class PartialMetadata(TypedDict, total=False):
    """Metadata fragment produced by a single extraction step."""

    provider: str
    model: str
    api_key: str
    tokens: TokenCounts
    parameters: dict[str, Any]
    function_calls: list[Any]
    stream_mode: bool
    finish_reason: str


def merge_partial(base: Mapping[str, Any], update: Mapping[str, Any]) -> PartialMetadata:
    """Merge ``update`` over ``base`` without mutating either.

    None values in ``update`` never overwrite. Token counts and parameters
    merge key by key; every other field is replaced.
    """
    merged: dict[str, Any] = dict(base)
    for key, value in update.items():
        if value is None:
            continue
        if key == "tokens":
            tokens = dict(merged.get("tokens") or {})
            tokens.update({k: v for k, v in value.items() if v is not None})
            merged["tokens"] = tokens
        elif key == "parameters":
            parameters = dict(merged.get("parameters") or {})
            parameters.update(value)
            merged["parameters"] = parameters
        else:
            merged[key] = value
    return merged  # type: ignore[return-value]


def mask_api_key(api_key: str | None) -> str | None:
    """Reduce a provider API key to a recognisable but unusable form."""
    if not api_key:
        return None
    if len(api_key) <= 8:
        return "****"
    return f"{api_key[:3]}...{api_key[-4:]}"


@dataclass(frozen=True, slots=True)
class TokenUsage:
    """Token counts in canonical form. Missing counts are 0."""

    prompt: int = 0
    completion: int = 0
    total: int = 0

    @classmethod
    def from_counts(cls, counts: Mapping[str, Any] | None) -> TokenUsage:
        """Build usage, deriving the total when the provider omitted it."""
        counts = counts or {}
        prompt = _as_count(counts.get("prompt"))
        completion = _as_count(counts.get("completion"))
        total = counts.get("total")
        return cls(
            prompt=prompt,
            completion=completion,
            total=_as_count(total) if total is not None else prompt + completion,
        )

    def to_wire(self) -> dict[str, int]:
        return {"prompt": self.prompt, "completion": self.completion, "total": self.total}


def _as_count(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True, slots=True)
class Timing:
    """Wall-clock timing of a call, epoch milliseconds."""

    start_time_ms: float
    end_time_ms: float

    @property
    def duration_ms(self) -> float:
        return max(0.0, self.end_time_ms - self.start_time_ms)

    def to_wire(self) -> dict[str, float]:
        return {
            "startTime": self.start_time_ms,
            "endTime": self.end_time_ms,
            "duration": self.duration_ms,
        }


@dataclass(frozen=True, slots=True)
class LLMMetadata:
    """Provider-neutral description of one model call."""

    provider: str
    model: str
    tokens: TokenUsage = field(default_factory=TokenUsage)
    parameters: dict[str, Any] = field(default_factory=dict)
    timing: Timing | None = None
    api_key: str | None = None
    function_calls: list[Any] | None = None
    stream_mode: bool = False
    finish_reason: str | None = None

    @classmethod
    def from_partial(
        cls,
        partial: Mapping[str, Any],
        *,
        provider: str,
        timing: Timing | None = None,
    ) -> LLMMetadata:
        """Build the envelope from merged partials.

        Args:
            partial: Result of merging request, response and chunk partials
            provider: Fallback provider name when the partial carries none
            timing: Call timing measured by the caller
        """
        return cls(
            provider=partial.get("provider") or provider,
            model=partial.get("model") or "unknown",
            tokens=TokenUsage.from_counts(partial.get("tokens")),
            parameters=dict(partial.get("parameters") or {}),
            timing=timing,
            api_key=mask_api_key(partial.get("api_key")),
            function_calls=partial.get("function_calls") or None,
            stream_mode=bool(partial.get("stream_mode", False)),
            finish_reason=partial.get("finish_reason"),
        )

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "provider": self.provider,
            "model": self.model,
            "tokens": self.tokens.to_wire(),
            "parameters": self.parameters,
            "streamMode": self.stream_mode,
        }
        if self.timing is not None:
            wire["timing"] = self.timing.to_wire()
        if self.api_key is not None:
            wire["apiKey"] = self.api_key
        if self.function_calls:
            wire["functionCalls"] = self.function_calls
        if self.finish_reason is not None:
            wire["finishReason"] = self.finish_reason
        return wire
