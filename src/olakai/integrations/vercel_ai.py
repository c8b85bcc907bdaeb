# src/olakai/integrations/vercel_ai.py
"""Monitoring for Vercel-AI style ``generate_text`` / ``stream_text`` calls.

There is no single Python package behind this call shape, so the
functions doing the work are either injected (VercelAIIntegration) or
taken from a wrapped toolkit object (VercelAIAdapter.wrap). Parameters follow the same
layout as the JS SDK (``model``, ``prompt`` or ``messages``, sampling
options, ``on_chunk`` / ``on_finish`` callbacks), in snake_case.

Streaming results are watched through every surface at once: the
``text_stream`` and ``full_stream`` iterators, the awaitable ``text``,
and the ``on_chunk`` / ``on_finish`` callbacks, which are chained in
front of any the caller supplied.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from olakai.contracts.enums import CompletionReason, Provider
from olakai.core.config import CallContext, WrapperConfig
from olakai.interception.call_monitor import CallMonitor
from olakai.interception.wrapper import invoke
from olakai.normalize.vercel_ai import VercelAINormalizer
from olakai.providers.base import Passthrough, ProviderAdapter
from olakai.streaming.accumulator import StreamAccumulator
from olakai.streaming.adapters import StreamHandleProxy, StreamSurface


class VercelAIAdapter(ProviderAdapter):
    provider = Provider.CUSTOM
    normalizer = VercelAINormalizer()
    stream_surface = StreamSurface(
        text_iterables=frozenset({"text_stream"}),
        chunk_iterables=frozenset({"full_stream"}),
        final_texts=frozenset({"text"}),
    )

    def wrap(self, client: Any) -> MonitoredToolkit:
        """Monitor the ``generate_text`` / ``stream_text`` functions of a toolkit module or object."""
        return MonitoredToolkit(client, self)

    async def generate_text(
        self,
        generate_text_fn: Callable[..., Any],
        params: Mapping[str, Any],
        context: CallContext | None = None,
    ) -> Any:
        return await self.call(generate_text_fn, dict(params), context=context)

    async def stream_text(
        self,
        stream_text_fn: Callable[..., Any],
        params: Mapping[str, Any],
        context: CallContext | None = None,
    ) -> StreamHandleProxy:
        """Start a monitored stream.

        Async because the control check must finish before the stream
        is opened.
        """
        request = dict(params)
        pending = await self.begin(request, stream=True, context=context)
        call_params = _with_callbacks(request, pending.accumulator())
        try:
            result = await invoke(stream_text_fn, (), call_params)
        except Exception as exc:
            pending.fail(exc)
            raise
        return pending.stream(result)


class MonitoredToolkit(Passthrough):
    """A toolkit module or object whose generate_text / stream_text are monitored."""

    def __init__(self, toolkit: Any, adapter: VercelAIAdapter) -> None:
        super().__init__(toolkit)
        self._adapter = adapter

    async def generate_text(self, context: CallContext | None = None, **params: Any) -> Any:
        return await self._adapter.generate_text(self._target.generate_text, params, context)

    async def stream_text(self, context: CallContext | None = None, **params: Any) -> StreamHandleProxy:
        return await self._adapter.stream_text(self._target.stream_text, params, context)


class VercelAIIntegration:
    """Runs injected generate_text / stream_text functions under monitoring.

    Example:
        ai = VercelAIIntegration(call_monitor, generate_text_fn=generate_text, stream_text_fn=stream_text)
        result = await ai.generate_text({"model": model, "prompt": "hi"}, CallContext(task="chat"))

    With ``call_monitor=None`` every call uses the active runtime.
    """

    def __init__(
        self,
        call_monitor: CallMonitor | None,
        *,
        generate_text_fn: Callable[..., Any] | None = None,
        stream_text_fn: Callable[..., Any] | None = None,
        enable_control: bool | None = None,
        sanitize: bool = False,
    ) -> None:
        self._adapter = VercelAIAdapter(
            call_monitor,
            WrapperConfig(provider=Provider.CUSTOM, enable_control=enable_control, sanitize=sanitize),
        )
        self._generate_text_fn = generate_text_fn
        self._stream_text_fn = stream_text_fn

    async def generate_text(self, params: Mapping[str, Any], context: CallContext | None = None) -> Any:
        if self._generate_text_fn is None:
            raise TypeError("generate_text_fn was not provided")
        return await self._adapter.generate_text(self._generate_text_fn, params, context)

    async def stream_text(self, params: Mapping[str, Any], context: CallContext | None = None) -> StreamHandleProxy:
        if self._stream_text_fn is None:
            raise TypeError("stream_text_fn was not provided")
        return await self._adapter.stream_text(self._stream_text_fn, params, context)


def _with_callbacks(params: dict[str, Any], accumulator: StreamAccumulator) -> dict[str, Any]:
    user_on_chunk = params.get("on_chunk")
    user_on_finish = params.get("on_finish")

    def on_chunk(event: Any) -> Any:
        chunk = event.get("chunk", event) if isinstance(event, Mapping) else getattr(event, "chunk", event)
        accumulator.on_chunk(chunk, source="on_chunk")
        if user_on_chunk is not None:
            return user_on_chunk(event)
        return None

    def on_finish(event: Any) -> Any:
        accumulator.observe_final(event)
        accumulator.complete(CompletionReason.EVENT)
        if user_on_finish is not None:
            return user_on_finish(event)
        return None

    return {**params, "on_chunk": on_chunk, "on_finish": on_finish}
