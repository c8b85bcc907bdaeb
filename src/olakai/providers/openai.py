# src/olakai/providers/openai.py
"""Monitored wrapper for the OpenAI async client.

Intercepted: ``chat.completions.create`` and ``completions.create``
(streaming when called with ``stream=True``). Everything else on the
client is passed through untouched.
"""

from __future__ import annotations

from typing import Any

from olakai.contracts.enums import Provider
from olakai.normalize.openai import OpenAINormalizer
from olakai.providers.base import Passthrough, ProviderAdapter
from olakai.streaming.adapters import StreamSurface


class OpenAIAdapter(ProviderAdapter):
    provider = Provider.OPENAI
    normalizer = OpenAINormalizer()
    stream_surface = StreamSurface()

    def wrap(self, client: Any) -> MonitoredOpenAI:
        self.api_key = self.normalizer.extract_api_key(client)
        return MonitoredOpenAI(client, self)


class MonitoredOpenAI(Passthrough):
    def __init__(self, client: Any, adapter: OpenAIAdapter) -> None:
        super().__init__(client)
        self._adapter = adapter

    @property
    def chat(self) -> _MonitoredChat:
        return _MonitoredChat(self._target.chat, self._adapter)

    @property
    def completions(self) -> _MonitoredCompletions:
        return _MonitoredCompletions(self._target.completions, self._adapter)


class _MonitoredChat(Passthrough):
    def __init__(self, chat: Any, adapter: OpenAIAdapter) -> None:
        super().__init__(chat)
        self._adapter = adapter

    @property
    def completions(self) -> _MonitoredCompletions:
        return _MonitoredCompletions(self._target.completions, self._adapter)


class _MonitoredCompletions(Passthrough):
    def __init__(self, completions: Any, adapter: OpenAIAdapter) -> None:
        super().__init__(completions)
        self._adapter = adapter

    async def create(self, **kwargs: Any) -> Any:
        return await self._adapter.call(self._target.create, kwargs, stream=kwargs.get("stream") is True)
