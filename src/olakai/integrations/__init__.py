# src/olakai/integrations/__init__.py
"""Integrations with higher-level AI toolkits."""

from olakai.integrations.vercel_ai import VercelAIAdapter, VercelAIIntegration

__all__ = ["VercelAIAdapter", "VercelAIIntegration"]
