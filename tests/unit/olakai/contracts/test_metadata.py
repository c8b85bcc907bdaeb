# tests/unit/olakai/contracts/test_metadata.py
"""Tests for the canonical LLM metadata envelope."""

from olakai.contracts.metadata import LLMMetadata, Timing, TokenUsage, mask_api_key, merge_partial


class TestTokenUsage:
    def test_total_derived_when_missing(self) -> None:
        """prompt=10, completion=5 and no total gives total=15."""
        usage = TokenUsage.from_counts({"prompt": 10, "completion": 5})

        assert usage == TokenUsage(prompt=10, completion=5, total=15)

    def test_provider_total_is_kept(self) -> None:
        usage = TokenUsage.from_counts({"prompt": 10, "completion": 5, "total": 18})

        assert usage.total == 18

    def test_missing_counts_default_to_zero(self) -> None:
        assert TokenUsage.from_counts(None) == TokenUsage(0, 0, 0)
        assert TokenUsage.from_counts({"completion": 7}) == TokenUsage(0, 7, 7)

    def test_garbage_counts_become_zero(self) -> None:
        usage = TokenUsage.from_counts({"prompt": "lots", "completion": -3})

        assert usage == TokenUsage(0, 0, 0)


class TestMergePartial:
    def test_tokens_merge_per_field(self) -> None:
        """A later partial carrying only completion keeps the earlier prompt count."""
        merged = merge_partial({"tokens": {"prompt": 12}}, {"tokens": {"completion": 4}})

        assert merged["tokens"] == {"prompt": 12, "completion": 4}

    def test_none_never_overwrites(self) -> None:
        merged = merge_partial({"model": "gpt-4o"}, {"model": None, "finish_reason": "stop"})

        assert merged == {"model": "gpt-4o", "finish_reason": "stop"}

    def test_parameters_merge_by_key(self) -> None:
        merged = merge_partial({"parameters": {"temperature": 0.2}}, {"parameters": {"top_p": 0.9}})

        assert merged["parameters"] == {"temperature": 0.2, "top_p": 0.9}

    def test_inputs_are_not_mutated(self) -> None:
        base = {"tokens": {"prompt": 1}}
        merge_partial(base, {"tokens": {"prompt": 2}})

        assert base == {"tokens": {"prompt": 1}}


class TestLLMMetadata:
    def test_from_partial_fills_defaults(self) -> None:
        metadata = LLMMetadata.from_partial({}, provider="openai")

        assert metadata.provider == "openai"
        assert metadata.model == "unknown"
        assert metadata.tokens == TokenUsage()
        assert metadata.stream_mode is False

    def test_api_key_is_masked(self) -> None:
        metadata = LLMMetadata.from_partial({"api_key": "sk-abcdefghijklmnop"}, provider="openai")

        assert metadata.api_key == "sk-...mnop"

    def test_to_wire_uses_camel_case(self) -> None:
        metadata = LLMMetadata.from_partial(
            {
                "model": "claude-3",
                "tokens": {"prompt": 3, "completion": 2},
                "stream_mode": True,
                "finish_reason": "end_turn",
            },
            provider="anthropic",
            timing=Timing(start_time_ms=1000.0, end_time_ms=1250.0),
        )

        wire = metadata.to_wire()

        assert wire["streamMode"] is True
        assert wire["finishReason"] == "end_turn"
        assert wire["tokens"] == {"prompt": 3, "completion": 2, "total": 5}
        assert wire["timing"] == {"startTime": 1000.0, "endTime": 1250.0, "duration": 250.0}
        assert "apiKey" not in wire


def test_mask_api_key_short_and_empty() -> None:
    assert mask_api_key(None) is None
    assert mask_api_key("") is None
    assert mask_api_key("abc") == "****"
