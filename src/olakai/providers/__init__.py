# src/olakai/providers/__init__.py
"""Provider client wrappers."""

from typing import Any

from olakai.contracts.enums import Provider
from olakai.core.config import WrapperConfig
from olakai.interception.call_monitor import CallMonitor
from olakai.providers.anthropic import AnthropicAdapter
from olakai.providers.base import Passthrough, PendingCall, ProviderAdapter
from olakai.providers.google import GoogleAdapter
from olakai.providers.openai import OpenAIAdapter

ADAPTERS: dict[Provider, type[ProviderAdapter]] = {
    Provider.OPENAI: OpenAIAdapter,
    Provider.ANTHROPIC: AnthropicAdapter,
    Provider.GOOGLE: GoogleAdapter,
}


def wrap_provider_client(client: Any, config: WrapperConfig, call_monitor: CallMonitor | None = None) -> Any:
    """Wrap ``client`` with the adapter registered for ``config.provider``.

    Without a ``call_monitor`` the wrapper follows the active runtime.

    Raises:
        ValueError: No adapter exists for the provider
    """
    adapter_cls = ADAPTERS.get(config.provider)
    if adapter_cls is None:
        raise ValueError(f"No client wrapper for provider {config.provider!r}; use wrap_function() instead")
    return adapter_cls(call_monitor, config).wrap(client)


__all__ = [
    "ADAPTERS",
    "AnthropicAdapter",
    "GoogleAdapter",
    "OpenAIAdapter",
    "Passthrough",
    "PendingCall",
    "ProviderAdapter",
    "wrap_provider_client",
]
