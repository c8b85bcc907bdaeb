# src/olakai/providers/anthropic.py
"""Monitored wrapper for the Anthropic async client.

Intercepted: ``messages.create`` (streaming when ``stream=True``) and
``messages.stream(...)``. The latter is an async context manager in the
Anthropic SDK; the control check runs when the block is entered, before
the underlying stream is opened.
"""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType
from typing import Any

from olakai.contracts.enums import CompletionReason, Provider
from olakai.normalize.anthropic import AnthropicNormalizer
from olakai.providers.base import Passthrough, PendingCall, ProviderAdapter
from olakai.streaming.adapters import StreamHandleProxy, StreamSurface


class AnthropicAdapter(ProviderAdapter):
    provider = Provider.ANTHROPIC
    normalizer = AnthropicNormalizer()
    stream_surface = StreamSurface(
        text_iterables=frozenset({"text_stream"}),
        final_results=frozenset({"get_final_message", "until_done"}),
        final_texts=frozenset({"get_final_text"}),
        subscribe_method="on",
        snapshot_attr="current_message_snapshot",
    )

    def wrap(self, client: Any) -> MonitoredAnthropic:
        self.api_key = self.normalizer.extract_api_key(client)
        return MonitoredAnthropic(client, self)


class MonitoredAnthropic(Passthrough):
    def __init__(self, client: Any, adapter: AnthropicAdapter) -> None:
        super().__init__(client)
        self._adapter = adapter

    @property
    def messages(self) -> _MonitoredMessages:
        return _MonitoredMessages(self._target.messages, self._adapter)


class _MonitoredMessages(Passthrough):
    def __init__(self, messages: Any, adapter: AnthropicAdapter) -> None:
        super().__init__(messages)
        self._adapter = adapter

    async def create(self, **kwargs: Any) -> Any:
        return await self._adapter.call(self._target.create, kwargs, stream=kwargs.get("stream") is True)

    def stream(self, **kwargs: Any) -> MonitoredStreamManager:
        return MonitoredStreamManager(self._adapter, lambda: self._target.stream(**kwargs), kwargs)


class MonitoredStreamManager:
    """Defers opening the provider stream until the control check has passed."""

    def __init__(self, adapter: AnthropicAdapter, open_stream: Callable[[], Any], request: dict[str, Any]) -> None:
        self._adapter = adapter
        self._open_stream = open_stream
        self._request = request
        self._manager: Any = None
        self._pending: PendingCall | None = None

    async def __aenter__(self) -> StreamHandleProxy:
        self._pending = await self._adapter.begin(self._request, stream=True)
        try:
            self._manager = self._open_stream()
            handle = await self._manager.__aenter__()
        except Exception as exc:
            self._pending.fail(exc)
            raise
        return self._pending.stream(handle)

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> Any:
        if self._pending is not None:
            accumulator = self._pending.accumulator()
            if exc is None:
                accumulator.complete(CompletionReason.CLOSED)
            else:
                accumulator.complete(CompletionReason.ERROR, error=exc)
        if self._manager is None:
            return None
        return await self._manager.__aexit__(exc_type, exc, tb)
