# src/olakai/streaming/adapters.py
"""Adapters that route a provider's stream surfaces into an accumulator.

Three consumption styles are supported and may be mixed on one handle:

* pull iteration: ``async for chunk in stream`` or an iterable
  attribute such as ``stream.text_stream`` (AccumulatingAsyncIterator);
* final-result futures: ``await stream.get_final_message()`` or an
  awaitable ``stream.response`` attribute;
* event subscription: ``stream.on("text", handler)``.

StreamHandleProxy presents the original handle unchanged to the caller.
Attributes it does not recognise are delegated as-is. Anything derived
from the proxy (iterators, final-result awaitables) holds a reference to
it, so the discard hook only fires once the caller has let go of all of
them.
"""

from __future__ import annotations

import inspect
import weakref
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from types import TracebackType
from typing import Any

from olakai.contracts.enums import CompletionReason
from olakai.streaming.accumulator import StreamAccumulator


@dataclass(frozen=True, slots=True)
class StreamSurface:
    """Declares which attributes of a stream handle feed the accumulator.

    Attributes:
        chunk_iterables: Attributes yielding provider chunks
        text_iterables: Attributes yielding plain text deltas
        final_results: Awaitable attributes/methods resolving to the final aggregate
        final_texts: Awaitable attributes/methods resolving to the full text
        close_methods: Methods that end the stream early
        subscribe_method: Event subscription method name, if the handle has one
        text_events: Event names whose first argument is a text delta
        terminal_events: Event names that mark the end of the stream
        snapshot_attr: Attribute holding the aggregate when a final method returns None
    """

    chunk_iterables: frozenset[str] = frozenset()
    text_iterables: frozenset[str] = frozenset()
    final_results: frozenset[str] = frozenset()
    final_texts: frozenset[str] = frozenset()
    close_methods: frozenset[str] = frozenset({"close", "aclose"})
    subscribe_method: str | None = None
    text_events: frozenset[str] = frozenset({"text"})
    terminal_events: frozenset[str] = frozenset({"end", "message", "finalMessage", "final_message"})
    snapshot_attr: str | None = None


class AccumulatingAsyncIterator:
    """Async iterator that feeds every item into an accumulator.

    Exhaustion completes the stream; an error raised by the source
    completes it with the error and is re-raised unchanged. An iterator
    abandoned after it started (``break`` out of ``async for``) completes
    as closed when it is collected, which CPython does as soon as the
    loop exits.
    """

    def __init__(
        self,
        source: AsyncIterable[Any] | AsyncIterator[Any],
        accumulator: StreamAccumulator,
        *,
        source_name: str = "chunks",
        text_only: bool = False,
        owner: object | None = None,
        on_exhausted: Callable[[], None] | None = None,
    ) -> None:
        self._source = source
        self._iterator: AsyncIterator[Any] | None = None
        self._accumulator = accumulator
        self._source_name = source_name
        self._text_only = text_only
        self._owner = owner
        self._on_exhausted = on_exhausted
        self._abandoned: weakref.finalize | None = None

    def __aiter__(self) -> AccumulatingAsyncIterator:
        return self

    async def __anext__(self) -> Any:
        if self._iterator is None:
            self._iterator = aiter(self._source)
            self._abandoned = weakref.finalize(self, self._accumulator.complete, CompletionReason.CLOSED)
            self._abandoned.atexit = False
        try:
            item = await anext(self._iterator)
        except StopAsyncIteration:
            if self._on_exhausted is not None:
                self._on_exhausted()
            self._accumulator.complete(CompletionReason.EXHAUSTED)
            self._settle()
            raise
        except BaseException as e:
            self._accumulator.complete(CompletionReason.ERROR, error=e)
            self._settle()
            raise

        if self._text_only:
            self._accumulator.on_text(item, source=self._source_name)
        else:
            self._accumulator.on_chunk(item, source=self._source_name)
        return item

    async def aclose(self) -> None:
        self._accumulator.complete(CompletionReason.CLOSED)
        self._settle()
        close = getattr(self._iterator if self._iterator is not None else self._source, "aclose", None)
        if close is not None:
            await close()

    def _settle(self) -> None:
        if self._abandoned is not None:
            self._abandoned.detach()


class StreamHandleProxy:
    """Stands in for a provider stream handle while accumulating its output."""

    def __init__(
        self,
        handle: Any,
        accumulator: StreamAccumulator,
        surface: StreamSurface,
        *,
        parent: StreamHandleProxy | None = None,
    ) -> None:
        self._olakai_handle = handle
        self._olakai_accumulator = accumulator
        self._olakai_surface = surface
        self._olakai_parent = parent
        finalizer = weakref.finalize(self, accumulator.complete, CompletionReason.DISCARDED)
        finalizer.atexit = False

    @property
    def accumulator(self) -> StreamAccumulator:
        return self._olakai_accumulator

    def __getattr__(self, name: str) -> Any:
        handle = self.__dict__.get("_olakai_handle")
        if handle is None:
            raise AttributeError(name)
        value = getattr(handle, name)
        surface: StreamSurface = self._olakai_surface

        if name in surface.chunk_iterables or name in surface.text_iterables:
            text_only = name in surface.text_iterables
            if callable(value) and not hasattr(value, "__aiter__"):
                return self._wrap_iterable_factory(value, name, text_only)
            return AccumulatingAsyncIterator(
                value,
                self._olakai_accumulator,
                source_name=name,
                text_only=text_only,
                owner=self,
                on_exhausted=self._observe_snapshot,
            )
        if name in surface.final_results or name in surface.final_texts:
            return self._wrap_final(value, text=name in surface.final_texts)
        if name in surface.close_methods and callable(value):
            return self._wrap_close(value)
        if name == surface.subscribe_method and callable(value):
            return self._wrap_subscribe(value)
        return value

    def __aiter__(self) -> AccumulatingAsyncIterator:
        return AccumulatingAsyncIterator(
            self._olakai_handle,
            self._olakai_accumulator,
            owner=self,
            on_exhausted=self._observe_snapshot,
        )

    async def __aenter__(self) -> Any:
        entered = await self._olakai_handle.__aenter__()
        if entered is None or entered is self._olakai_handle:
            return self
        return StreamHandleProxy(entered, self._olakai_accumulator, self._olakai_surface, parent=self)

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> Any:
        if exc is None:
            self._olakai_accumulator.complete(CompletionReason.CLOSED)
        else:
            self._olakai_accumulator.complete(CompletionReason.ERROR, error=exc)
        return await self._olakai_handle.__aexit__(exc_type, exc, tb)

    def __repr__(self) -> str:
        return f"<monitored {self._olakai_handle!r}>"

    def _wrap_iterable_factory(self, factory: Callable[..., Any], name: str, text_only: bool) -> Callable[..., Any]:
        def call(*args: Any, **kwargs: Any) -> AccumulatingAsyncIterator:
            return AccumulatingAsyncIterator(
                factory(*args, **kwargs),
                self._olakai_accumulator,
                source_name=name,
                text_only=text_only,
                owner=self,
                on_exhausted=self._observe_snapshot,
            )

        return call

    def _wrap_final(self, value: Any, *, text: bool) -> Any:
        if inspect.isawaitable(value):
            return self._await_final(value, text=text)
        if callable(value):

            def call(*args: Any, **kwargs: Any) -> Any:
                result = value(*args, **kwargs)
                if inspect.isawaitable(result):
                    return self._await_final(result, text=text)
                self._record_final(result, text=text)
                return result

            return call
        self._record_final(value, text=text)
        return value

    async def _await_final(self, awaitable: Awaitable[Any], *, text: bool) -> Any:
        accumulator = self._olakai_accumulator
        try:
            result = await awaitable
        except BaseException as e:
            accumulator.complete(CompletionReason.ERROR, error=e)
            raise
        self._record_final(result, text=text)
        return result

    def _record_final(self, result: Any, *, text: bool) -> None:
        accumulator = self._olakai_accumulator
        if text:
            accumulator.set_final_text(result)
        elif result is not None:
            accumulator.observe_final(result)
        else:
            self._observe_snapshot()
        accumulator.complete(CompletionReason.FINAL_RESULT)

    def _observe_snapshot(self) -> None:
        """Merge the handle's running aggregate, when the surface declares one."""
        attr = self._olakai_surface.snapshot_attr
        if attr is None:
            return
        try:
            snapshot = getattr(self._olakai_handle, attr, None)
        except Exception:
            snapshot = None
        if snapshot is not None:
            self._olakai_accumulator.observe_final(snapshot)

    def _wrap_close(self, close: Callable[..., Any]) -> Callable[..., Any]:
        def call(*args: Any, **kwargs: Any) -> Any:
            self._olakai_accumulator.complete(CompletionReason.CLOSED)
            return close(*args, **kwargs)

        return call

    def _wrap_subscribe(self, subscribe: Callable[..., Any]) -> Callable[..., Any]:
        def on(event: str, handler: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
            result = subscribe(event, observe_event(self._olakai_accumulator, self._olakai_surface, event, handler), *args, **kwargs)
            return self if result is self._olakai_handle else result

        return on


def observe_event(
    accumulator: StreamAccumulator,
    surface: StreamSurface,
    event: str,
    handler: Callable[..., Any],
) -> Callable[..., Any]:
    """Wrap an event handler so text and terminal events reach the accumulator first."""

    def observed(*args: Any, **kwargs: Any) -> Any:
        if event in surface.text_events and args:
            accumulator.on_text(args[0], source=f"event:{event}")
        elif event in surface.terminal_events:
            if args and args[0] is not None:
                accumulator.observe_final(args[0])
            accumulator.complete(CompletionReason.EVENT)
        return handler(*args, **kwargs)

    return observed
