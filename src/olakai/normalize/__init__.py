# src/olakai/normalize/__init__.py
"""Per-provider metadata normalizers."""

from olakai.contracts.enums import Provider
from olakai.normalize.anthropic import AnthropicNormalizer
from olakai.normalize.base import Normalizer
from olakai.normalize.google import GoogleNormalizer
from olakai.normalize.openai import OpenAINormalizer
from olakai.normalize.vercel_ai import VercelAINormalizer, infer_provider

NORMALIZERS: dict[Provider, Normalizer] = {
    Provider.OPENAI: OpenAINormalizer(),
    Provider.ANTHROPIC: AnthropicNormalizer(),
    Provider.GOOGLE: GoogleNormalizer(),
}

__all__ = [
    "NORMALIZERS",
    "AnthropicNormalizer",
    "GoogleNormalizer",
    "Normalizer",
    "OpenAINormalizer",
    "VercelAINormalizer",
    "infer_provider",
]
