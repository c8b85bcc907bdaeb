# src/olakai/providers/google.py
"""Monitored wrapper for the Google Gen AI client.

Intercepted: ``aio.models.generate_content`` and
``aio.models.generate_content_stream``. An async models object passed
directly (``client.aio.models``) is wrapped the same way.
"""

from __future__ import annotations

from typing import Any

from olakai.contracts.enums import Provider
from olakai.normalize.google import GoogleNormalizer
from olakai.providers.base import Passthrough, ProviderAdapter
from olakai.streaming.adapters import StreamSurface


class GoogleAdapter(ProviderAdapter):
    provider = Provider.GOOGLE
    normalizer = GoogleNormalizer()
    stream_surface = StreamSurface(
        chunk_iterables=frozenset({"stream"}),
        final_results=frozenset({"response"}),
    )

    def wrap(self, client: Any) -> Any:
        self.api_key = self.normalizer.extract_api_key(client)
        if hasattr(client, "aio"):
            return MonitoredGenAI(client, self)
        return _MonitoredModels(client, self)


class MonitoredGenAI(Passthrough):
    def __init__(self, client: Any, adapter: GoogleAdapter) -> None:
        super().__init__(client)
        self._adapter = adapter

    @property
    def aio(self) -> _MonitoredAio:
        return _MonitoredAio(self._target.aio, self._adapter)


class _MonitoredAio(Passthrough):
    def __init__(self, aio: Any, adapter: GoogleAdapter) -> None:
        super().__init__(aio)
        self._adapter = adapter

    @property
    def models(self) -> _MonitoredModels:
        return _MonitoredModels(self._target.models, self._adapter)


class _MonitoredModels(Passthrough):
    def __init__(self, models: Any, adapter: GoogleAdapter) -> None:
        super().__init__(models)
        self._adapter = adapter

    async def generate_content(self, **kwargs: Any) -> Any:
        return await self._adapter.call(self._target.generate_content, kwargs)

    async def generate_content_stream(self, **kwargs: Any) -> Any:
        return await self._adapter.call(self._target.generate_content_stream, kwargs, stream=True)
