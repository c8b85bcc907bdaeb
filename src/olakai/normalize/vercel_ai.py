# src/olakai/normalize/vercel_ai.py
"""Normalizer for Vercel-AI style generate_text / stream_text calls.

The model is an object (or mapping) carrying ``provider`` and
``model_id``; the concrete provider is inferred from those because the
same call surface fronts many vendors.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from olakai.contracts.enums import Provider
from olakai.contracts.jsonable import to_json_value
from olakai.contracts.metadata import PartialMetadata
from olakai.normalize.base import Normalizer, enum_text, field, pick_parameters, tolerant

_PARAMETERS = {
    "temperature": "temperature",
    "top_p": "top_p",
    "topP": "top_p",
    "top_k": "top_k",
    "topK": "top_k",
    "max_tokens": "max_tokens",
    "maxTokens": "max_tokens",
    "max_output_tokens": "max_tokens",
    "maxOutputTokens": "max_tokens",
    "seed": "seed",
    "stop_sequences": "stop",
    "stopSequences": "stop",
}

_MODEL_HINTS: tuple[tuple[tuple[str, ...], Provider], ...] = (
    (("gpt", "openai", "o1", "o3"), Provider.OPENAI),
    (("claude", "anthropic"), Provider.ANTHROPIC),
    (("gemini", "google"), Provider.GOOGLE),
)


def infer_provider(model: Any) -> str:
    """Name the vendor behind a model object, e.g. ``openai.chat`` -> ``openai``."""
    declared = field(model, "provider")
    if isinstance(declared, str) and declared:
        return declared.split(".", 1)[0].lower()
    model_id = str(field(model, "model_id", "modelId", default=model if isinstance(model, str) else "")).lower()
    for hints, provider in _MODEL_HINTS:
        if any(hint in model_id for hint in hints):
            return str(provider)
    return str(Provider.CUSTOM)


def model_name(model: Any) -> str | None:
    if isinstance(model, str):
        return model
    name = field(model, "model_id", "modelId")
    return str(name) if name else None


def _message_text(message: Any) -> str:
    content = field(message, "content")
    if isinstance(content, str):
        return content
    if content is None:
        return ""
    return " ".join(text for part in content if isinstance(text := field(part, "text"), str))


class VercelAINormalizer(Normalizer):
    provider = Provider.CUSTOM

    @tolerant(dict)
    def extract_request_metadata(self, request: Mapping[str, Any]) -> PartialMetadata:
        model = request.get("model")
        partial: PartialMetadata = {
            "provider": infer_provider(model),
            "parameters": pick_parameters(request, _PARAMETERS),
        }
        name = model_name(model)
        if name:
            partial["model"] = name
        if request.get("tools"):
            partial["function_calls"] = [{"kind": "tools", "definitions": to_json_value(list(request["tools"]))}]
        return partial

    @tolerant(dict)
    def extract_response_metadata(self, response: Any) -> PartialMetadata:
        partial: PartialMetadata = {}
        usage = field(response, "usage", "total_usage", "totalUsage")
        if usage is not None:
            tokens = {}
            for canonical, names in (
                ("prompt", ("input_tokens", "inputTokens", "prompt_tokens", "promptTokens")),
                ("completion", ("output_tokens", "outputTokens", "completion_tokens", "completionTokens")),
                ("total", ("total_tokens", "totalTokens")),
            ):
                value = field(usage, *names)
                if value is not None:
                    tokens[canonical] = value
            partial["tokens"] = tokens  # type: ignore[typeddict-item]
        finish_reason = enum_text(field(response, "finish_reason", "finishReason"))
        if finish_reason:
            partial["finish_reason"] = finish_reason
        tool_calls = field(response, "tool_calls", "toolCalls")
        if tool_calls:
            partial["function_calls"] = [to_json_value(call) for call in tool_calls]
        model_id = field(field(response, "response"), "model_id", "modelId")
        if model_id:
            partial["model"] = str(model_id)
        return partial

    @tolerant(str)
    def extract_prompt(self, request: Mapping[str, Any]) -> str:
        prompt = request.get("prompt")
        system = request.get("system")
        if isinstance(prompt, str):
            return f"{system}\n\n{prompt}" if system else prompt
        messages = request.get("messages")
        if messages:
            return "\n".join(f"{field(m, 'role', default='unknown')}: {_message_text(m)}" for m in messages)
        return system or ""

    @tolerant(str)
    def extract_response_text(self, response: Any) -> str:
        text = field(response, "text")
        return text if isinstance(text, str) else ""

    @tolerant(str)
    def extract_chunk_text(self, chunk: Any) -> str:
        if isinstance(chunk, str):
            return chunk
        if field(chunk, "type") in ("text-delta", "text_delta", "text"):
            text = field(chunk, "text", "delta", "text_delta", "textDelta")
            return text if isinstance(text, str) else ""
        return ""

    @tolerant(dict)
    def extract_chunk_metadata(self, chunk: Any) -> PartialMetadata:
        if field(chunk, "type") in ("finish", "finish-step", "finish_step"):
            return self.extract_response_metadata(chunk)
        return {}
