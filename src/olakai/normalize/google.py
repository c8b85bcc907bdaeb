# src/olakai/normalize/google.py
"""Normalizer for Google Gemini (google-genai) and JS-style shapes.

Requests carry sampling options either in ``config`` (google-genai) or
``generationConfig`` (REST / JS SDK). Responses and stream chunks share
one shape, so chunk extraction reuses response extraction.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from olakai.contracts.enums import Provider
from olakai.contracts.jsonable import to_json_value
from olakai.contracts.metadata import PartialMetadata
from olakai.normalize.base import Normalizer, dig, enum_text, field, pick_parameters, tolerant

_PARAMETERS = {
    "temperature": "temperature",
    "max_output_tokens": "max_tokens",
    "maxOutputTokens": "max_tokens",
    "top_p": "top_p",
    "topP": "top_p",
    "top_k": "top_k",
    "topK": "top_k",
    "candidate_count": "n",
    "candidateCount": "n",
    "stop_sequences": "stop",
    "stopSequences": "stop",
    "seed": "seed",
}

_USAGE_FIELDS = (
    ("prompt", ("prompt_token_count", "promptTokenCount")),
    ("completion", ("candidates_token_count", "candidatesTokenCount")),
    ("total", ("total_token_count", "totalTokenCount")),
)


def _parts_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    parts = field(content, "parts")
    if parts is None:
        return ""
    return "".join(text for part in parts if isinstance(text := field(part, "text"), str))


class GoogleNormalizer(Normalizer):
    provider = Provider.GOOGLE

    @tolerant(dict)
    def extract_request_metadata(self, request: Mapping[str, Any]) -> PartialMetadata:
        config = field(request, "config", "generationConfig", "generation_config", default={})
        partial: PartialMetadata = {
            "provider": str(self.provider),
            "parameters": pick_parameters(config, _PARAMETERS),
        }
        model = request.get("model")
        if model:
            partial["model"] = str(model).removeprefix("models/")
        tools = field(config, "tools") or request.get("tools")
        if tools:
            partial["function_calls"] = [{"kind": "tools", "definitions": to_json_value(tools)}]
        return partial

    @tolerant(dict)
    def extract_response_metadata(self, response: Any) -> PartialMetadata:
        partial: PartialMetadata = {}
        model = field(response, "model_version", "modelVersion")
        if model:
            partial["model"] = str(model)
        usage = field(response, "usage_metadata", "usageMetadata")
        if usage is not None:
            tokens = {}
            for canonical, names in _USAGE_FIELDS:
                value = field(usage, *names)
                if value is not None:
                    tokens[canonical] = value
            partial["tokens"] = tokens  # type: ignore[typeddict-item]
        finish_reason = enum_text(dig(response, "candidates", 0, "finish_reason")) or enum_text(
            dig(response, "candidates", 0, "finishReason")
        )
        if finish_reason:
            partial["finish_reason"] = finish_reason
        function_calls = [
            to_json_value(call)
            for part in dig(response, "candidates", 0, "content", "parts") or ()
            if (call := field(part, "function_call", "functionCall")) is not None
        ]
        if function_calls:
            partial["function_calls"] = function_calls
        return partial

    @tolerant(str)
    def extract_prompt(self, request: Mapping[str, Any]) -> str:
        contents = request.get("contents")
        if contents is None:
            contents = request.get("prompt")
        if isinstance(contents, str):
            return contents
        if contents is None:
            return ""
        if not isinstance(contents, list | tuple):
            contents = [contents]
        return "\n".join(text for item in contents if (text := _parts_text(item)))

    @tolerant(str)
    def extract_response_text(self, response: Any) -> str:
        text = field(response, "text")
        if callable(text):
            text = text()
        if isinstance(text, str):
            return text
        return _parts_text(dig(response, "candidates", 0, "content"))

    @tolerant(str)
    def extract_chunk_text(self, chunk: Any) -> str:
        from_parts = _parts_text(dig(chunk, "candidates", 0, "content"))
        if from_parts:
            return from_parts
        return self.extract_response_text(chunk)

    @tolerant(dict)
    def extract_chunk_metadata(self, chunk: Any) -> PartialMetadata:
        return self.extract_response_metadata(chunk)

    @tolerant(lambda: None)
    def extract_api_key(self, client: Any) -> str | None:
        key = field(client, "api_key") or dig(client, "_api_client", "api_key")
        return key if isinstance(key, str) else None
