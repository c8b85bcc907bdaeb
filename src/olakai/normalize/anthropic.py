# src/olakai/normalize/anthropic.py
"""Normalizer for the Anthropic Messages API, including stream events."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from olakai.contracts.enums import Provider
from olakai.contracts.jsonable import to_json_value
from olakai.contracts.metadata import PartialMetadata
from olakai.normalize.base import Normalizer, enum_text, field, pick_parameters, render_json, tolerant

_PARAMETERS = {
    "temperature": "temperature",
    "max_tokens": "max_tokens",
    "top_p": "top_p",
    "top_k": "top_k",
    "stop_sequences": "stop",
}


def _usage(usage: Any) -> dict[str, int]:
    tokens: dict[str, int] = {}
    prompt = field(usage, "input_tokens")
    completion = field(usage, "output_tokens")
    if prompt is not None:
        tokens["prompt"] = prompt
    if completion is not None:
        tokens["completion"] = completion
    return tokens


def _blocks_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        block_type = field(block, "type")
        if block_type == "text":
            parts.append(field(block, "text", default=""))
        elif block_type == "tool_use":
            parts.append(f"[tool_use: {field(block, 'name')}({render_json(field(block, 'input', default={}))})]")
    return "\n".join(p for p in parts if p)


class AnthropicNormalizer(Normalizer):
    provider = Provider.ANTHROPIC

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
        if request.get("tools"):
            partial["function_calls"] = [{"kind": "tools", "definitions": to_json_value(request["tools"])}]
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
        stop_reason = enum_text(field(response, "stop_reason"))
        if stop_reason:
            partial["finish_reason"] = stop_reason
        tool_uses = [
            {"name": field(block, "name"), "input": to_json_value(field(block, "input"))}
            for block in field(response, "content", default=None) or ()
            if field(block, "type") == "tool_use"
        ]
        if tool_uses:
            partial["function_calls"] = tool_uses
        return partial

    @tolerant(str)
    def extract_prompt(self, request: Mapping[str, Any]) -> str:
        lines = [
            _blocks_text(field(message, "content"))
            for message in request.get("messages") or ()
            if field(message, "role") == "user"
        ]
        return "\n".join(line for line in lines if line)

    @tolerant(str)
    def extract_response_text(self, response: Any) -> str:
        return _blocks_text(field(response, "content"))

    @tolerant(str)
    def extract_chunk_text(self, chunk: Any) -> str:
        chunk_type = field(chunk, "type")
        if chunk_type == "content_block_delta":
            delta = field(chunk, "delta")
            if field(delta, "type") == "text_delta":
                return str(field(delta, "text", default=""))
        return ""

    @tolerant(dict)
    def extract_chunk_metadata(self, chunk: Any) -> PartialMetadata:
        chunk_type = field(chunk, "type")
        if chunk_type == "message_start":
            return self.extract_response_metadata(field(chunk, "message"))
        if chunk_type == "message_delta":
            partial: PartialMetadata = {}
            stop_reason = enum_text(field(field(chunk, "delta"), "stop_reason"))
            if stop_reason:
                partial["finish_reason"] = stop_reason
            usage = field(chunk, "usage")
            if usage is not None:
                partial["tokens"] = _usage(usage)  # type: ignore[typeddict-item]
            return partial
        if chunk_type == "message_stop" and field(chunk, "message") is not None:
            return self.extract_response_metadata(field(chunk, "message"))
        return {}

    @tolerant(lambda: False)
    def is_terminal_chunk(self, chunk: Any) -> bool:
        return field(chunk, "type") == "message_stop"
