# tests/unit/olakai/streaming/test_accumulator.py
"""Tests for StreamAccumulator text/metadata collection and exactly-once completion."""

from typing import Any

from structlog.testing import capture_logs

from olakai.contracts.enums import CompletionReason
from olakai.normalize.anthropic import AnthropicNormalizer
from olakai.normalize.openai import OpenAINormalizer
from olakai.streaming.accumulator import StreamAccumulator, StreamOutcome


def openai_chunk(text: str | None = None, **extra: Any) -> dict[str, Any]:
    delta = {"content": text} if text is not None else {}
    return {"choices": [{"delta": delta, "finish_reason": extra.pop("finish_reason", None)}], **extra}


def make_accumulator(normalizer: Any = None, **kwargs: Any) -> tuple[StreamAccumulator, list[StreamOutcome]]:
    outcomes: list[StreamOutcome] = []
    return StreamAccumulator(normalizer or OpenAINormalizer(), outcomes.append, **kwargs), outcomes


class TestTextAccumulation:
    def test_chunks_concatenate_in_order(self) -> None:
        accumulator, outcomes = make_accumulator()

        for part in ("a", "b", "c"):
            accumulator.on_chunk(openai_chunk(part))
        accumulator.complete(CompletionReason.EXHAUSTED)

        assert outcomes[0].text == "abc"
        assert outcomes[0].reason is CompletionReason.EXHAUSTED

    def test_chunks_without_text_are_ignored(self) -> None:
        accumulator, _ = make_accumulator()

        accumulator.on_chunk(openai_chunk("x"))
        accumulator.on_chunk(openai_chunk())
        accumulator.on_chunk({"unexpected": "shape"})

        assert accumulator.text == "x"

    def test_first_text_source_wins(self) -> None:
        accumulator, _ = make_accumulator()

        accumulator.on_text("one", source="text_stream")
        accumulator.on_text("dup", source="event:text")
        accumulator.on_text(" two", source="text_stream")

        assert accumulator.text == "one two"

    def test_final_text_replaces_deltas(self) -> None:
        accumulator, outcomes = make_accumulator()

        accumulator.on_text("partial", source="chunks")
        accumulator.set_final_text("the full answer")
        accumulator.complete(CompletionReason.FINAL_RESULT)

        assert outcomes[0].text == "the full answer"

    def test_empty_final_text_keeps_deltas(self) -> None:
        accumulator, _ = make_accumulator()

        accumulator.on_text("kept", source="chunks")
        accumulator.set_final_text("")

        assert accumulator.text == "kept"


class TestMetadata:
    def test_chunk_usage_merges_with_initial_metadata(self) -> None:
        accumulator, outcomes = make_accumulator(initial_metadata={"model": "gpt-4o", "stream_mode": True})

        accumulator.on_chunk(openai_chunk("hi"))
        accumulator.on_chunk(openai_chunk(usage={"prompt_tokens": 3, "completion_tokens": 2}, finish_reason="stop"))
        accumulator.complete(CompletionReason.EXHAUSTED)

        metadata = outcomes[0].metadata
        assert metadata["model"] == "gpt-4o"
        assert metadata["stream_mode"] is True
        assert metadata["tokens"] == {"prompt": 3, "completion": 2}
        assert metadata["finish_reason"] == "stop"

    def test_observe_final_takes_text_and_metadata(self) -> None:
        accumulator, _ = make_accumulator(AnthropicNormalizer())

        accumulator.observe_final(
            {
                "model": "claude-3-5-sonnet",
                "content": [{"type": "text", "text": "done"}],
                "usage": {"input_tokens": 4, "output_tokens": 1},
            }
        )

        assert accumulator.text == "done"
        assert accumulator.metadata["tokens"] == {"prompt": 4, "completion": 1}


class TestCompletion:
    def test_completes_exactly_once(self) -> None:
        accumulator, outcomes = make_accumulator()

        assert accumulator.complete(CompletionReason.EXHAUSTED) is True
        assert accumulator.complete(CompletionReason.CLOSED) is False
        assert accumulator.complete(CompletionReason.DISCARDED) is False

        assert len(outcomes) == 1
        assert accumulator.completed

    def test_input_after_completion_is_ignored(self) -> None:
        accumulator, outcomes = make_accumulator()
        accumulator.on_text("before", source="chunks")
        accumulator.complete(CompletionReason.CLOSED)

        accumulator.on_text("after", source="chunks")
        accumulator.set_final_text("replacement")

        assert outcomes[0].text == "before"
        assert accumulator.text == "before"

    def test_terminal_chunk_completes(self) -> None:
        accumulator, outcomes = make_accumulator(AnthropicNormalizer())

        accumulator.on_chunk({"type": "content_block_delta", "delta": {"type": "text_delta", "text": "Hi"}})
        accumulator.on_chunk({"type": "message_delta", "delta": {"stop_reason": "end_turn"}, "usage": {"output_tokens": 7}})
        accumulator.on_chunk({"type": "message_stop"})

        assert len(outcomes) == 1
        assert outcomes[0].reason is CompletionReason.TERMINAL_RECORD
        assert outcomes[0].text == "Hi"
        assert outcomes[0].metadata["finish_reason"] == "end_turn"

    def test_error_outcome_carries_message(self) -> None:
        accumulator, outcomes = make_accumulator()

        accumulator.complete(CompletionReason.ERROR, error=TimeoutError())

        assert outcomes[0].error_message == "TimeoutError"

    def test_callback_failure_is_logged(self) -> None:
        def explode(outcome: StreamOutcome) -> None:
            raise RuntimeError("report failed")

        accumulator = StreamAccumulator(OpenAINormalizer(), explode)

        with capture_logs() as logs:
            assert accumulator.complete(CompletionReason.EXHAUSTED) is True

        assert any(entry["event"] == "stream_completion_callback_failed" for entry in logs)
        assert accumulator.complete(CompletionReason.CLOSED) is False
