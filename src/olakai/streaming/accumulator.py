# src/olakai/streaming/accumulator.py
"""StreamAccumulator: collects streamed output and completes exactly once.

A provider stream can end in many ways: the consumer exhausts the
iterator, awaits a final-result future, receives a terminal event,
closes the handle, hits an error, or simply drops the handle. Every one
of those paths calls complete(); only the first call has any effect.

Accumulation never raises. A chunk the normalizer cannot read adds no
text and is logged by the normalizer.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from olakai.contracts.enums import CompletionReason
from olakai.contracts.metadata import PartialMetadata, merge_partial
from olakai.normalize.base import Normalizer

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class StreamOutcome:
    """Everything known about a stream at the moment it completed."""

    text: str
    metadata: PartialMetadata
    reason: CompletionReason
    error: BaseException | None = None

    @property
    def error_message(self) -> str | None:
        if self.error is None:
            return None
        return str(self.error) or type(self.error).__name__


CompletionCallback = Callable[[StreamOutcome], None]


class StreamAccumulator:
    """Accumulates text and metadata for one stream.

    Text may arrive from several surfaces of the same stream (raw chunks,
    a text-only iterator, text events, injected callbacks). The first
    surface that delivers text owns accumulation; later text from other
    surfaces is ignored so mixed consumption cannot duplicate output.
    """

    def __init__(
        self,
        normalizer: Normalizer,
        on_complete: CompletionCallback,
        *,
        initial_metadata: Mapping[str, Any] | None = None,
    ) -> None:
        self._normalizer = normalizer
        self._on_complete = on_complete
        self._parts: list[str] = []
        self._text_source: str | None = None
        self._final_text: str | None = None
        self._metadata: PartialMetadata = merge_partial({}, initial_metadata or {})
        self._completed = False

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def text(self) -> str:
        return self._final_text or "".join(self._parts)

    @property
    def metadata(self) -> PartialMetadata:
        return self._metadata

    def on_chunk(self, chunk: Any, *, source: str = "chunks") -> None:
        """Feed one provider chunk (text and metadata are both extracted)."""
        if self._completed:
            return
        self.on_text(self._normalizer.extract_chunk_text(chunk), source=source)
        self.merge_metadata(self._normalizer.extract_chunk_metadata(chunk))
        if self._normalizer.is_terminal_chunk(chunk):
            self.complete(CompletionReason.TERMINAL_RECORD)

    def on_text(self, text: Any, *, source: str) -> None:
        """Feed a text delta delivered by ``source``."""
        if self._completed or not isinstance(text, str) or not text:
            return
        if self._text_source is None:
            self._text_source = source
        elif self._text_source != source:
            return
        self._parts.append(text)

    def merge_metadata(self, partial: Mapping[str, Any]) -> None:
        try:
            self._metadata = merge_partial(self._metadata, partial)
        except Exception as e:
            logger.warning("stream_metadata_merge_failed", error=str(e), error_type=type(e).__name__)

    def observe_final(self, final: Any) -> None:
        """Take metadata and text from the provider's final aggregate."""
        if self._completed:
            return
        self.merge_metadata(self._normalizer.extract_response_metadata(final))
        self.set_final_text(self._normalizer.extract_response_text(final))

    def set_final_text(self, text: Any) -> None:
        """Record the authoritative full text; it replaces accumulated deltas."""
        if not self._completed and isinstance(text, str) and text:
            self._final_text = text

    def complete(self, reason: CompletionReason, *, error: BaseException | None = None) -> bool:
        """Fire the completion callback if nothing has fired it yet.

        Returns:
            True if this call fired the completion, False if already completed.
        """
        if self._completed:
            return False
        self._completed = True
        outcome = StreamOutcome(text=self.text, metadata=self._metadata, reason=reason, error=error)
        logger.debug("stream_completed", reason=str(reason), text_length=len(outcome.text))
        try:
            self._on_complete(outcome)
        except Exception as e:
            logger.warning(
                "stream_completion_callback_failed",
                reason=str(reason),
                error=str(e),
                error_type=type(e).__name__,
            )
        return True
