# src/olakai/streaming/__init__.py
"""Streaming response accumulation."""

from olakai.streaming.accumulator import CompletionCallback, StreamAccumulator, StreamOutcome
from olakai.streaming.adapters import AccumulatingAsyncIterator, StreamHandleProxy, StreamSurface, observe_event

__all__ = [
    "AccumulatingAsyncIterator",
    "CompletionCallback",
    "StreamAccumulator",
    "StreamHandleProxy",
    "StreamOutcome",
    "StreamSurface",
    "observe_event",
]
