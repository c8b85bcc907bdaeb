# src/olakai/normalize/openai.py
"""Normalizer for the OpenAI chat and legacy completions APIs."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from olakai.contracts.enums import Provider
from olakai.contracts.jsonable import to_json_value
from olakai.contracts.metadata import PartialMetadata
from olakai.normalize.base import Normalizer, dig, enum_text, field, pick_parameters, tolerant

_PARAMETERS = {
    "temperature": "temperature",
    "max_tokens": "max_tokens",
    "max_completion_tokens": "max_tokens",
    "top_p": "top_p",
    "frequency_penalty": "frequency_penalty",
    "presence_penalty": "presence_penalty",
    "n": "n",
    "seed": "seed",
    "stop": "stop",
}


def _content_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        text = field(part, "text")
        if isinstance(text, str):
            parts.append(text)
    return " ".join(parts)


def _usage(usage: Any) -> dict[str, int]:
    tokens: dict[str, int] = {}
    for source, canonical in (("prompt_tokens", "prompt"), ("completion_tokens", "completion"), ("total_tokens", "total")):
        value = field(usage, source)
        if value is not None:
            tokens[canonical] = value
    return tokens


class OpenAINormalizer(Normalizer):
    provider = Provider.OPENAI

    @tolerant(dict)
    def extract_request_metadata(self, request: Mapping[str, Any]) -> PartialMetadata:
        partial: PartialMetadata = {
            "provider": str(self.provider),
            "parameters": pick_parameters(request, _PARAMETERS),
            "stream_mode": request.get("stream") is True,
        }
        model = request.get("model")
        if model:
            partial["model"] = str(model)
        function_calls = [
            {"kind": kind, "definitions": to_json_value(request[kind])}
            for kind in ("tools", "functions")
            if request.get(kind)
        ]
        if function_calls:
            partial["function_calls"] = function_calls
        return partial

    @tolerant(dict)
    def extract_response_metadata(self, response: Any) -> PartialMetadata:
        partial: PartialMetadata = {}
        model = field(response, "model")
        if model:
            partial["model"] = str(model)
        usage = field(response, "usage")
        if usage is not None:
            partial["tokens"] = _usage(usage)  # type: ignore[typeddict-item]
        finish_reason = enum_text(dig(response, "choices", 0, "finish_reason"))
        if finish_reason:
            partial["finish_reason"] = finish_reason
        tool_calls = dig(response, "choices", 0, "message", "tool_calls")
        if tool_calls:
            partial["function_calls"] = [to_json_value(call) for call in tool_calls]
        return partial

    @tolerant(str)
    def extract_prompt(self, request: Mapping[str, Any]) -> str:
        messages = request.get("messages")
        if messages:
            lines = []
            for message in messages:
                role = field(message, "role", default="unknown")
                lines.append(f"{role}: {_content_text(field(message, 'content'))}")
            return "\n".join(lines)
        prompt = request.get("prompt")
        if isinstance(prompt, str):
            return prompt
        if isinstance(prompt, list):
            return "\n".join(str(p) for p in prompt)
        return ""

    @tolerant(str)
    def extract_response_text(self, response: Any) -> str:
        content = dig(response, "choices", 0, "message", "content")
        if content is not None:
            return _content_text(content)
        text = dig(response, "choices", 0, "text")
        return text if isinstance(text, str) else ""

    @tolerant(str)
    def extract_chunk_text(self, chunk: Any) -> str:
        delta = dig(chunk, "choices", 0, "delta", "content")
        if isinstance(delta, str):
            return delta
        text = dig(chunk, "choices", 0, "text")
        return text if isinstance(text, str) else ""

    @tolerant(dict)
    def extract_chunk_metadata(self, chunk: Any) -> PartialMetadata:
        return self.extract_response_metadata(chunk)
