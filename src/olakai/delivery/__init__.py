# src/olakai/delivery/__init__.py
"""Delivery of payloads to the Olakai service."""

from olakai.delivery.breaker import CircuitBreaker
from olakai.delivery.client import MAX_BACKOFF_SECONDS, DeliveryClient
from olakai.delivery.connectivity import Connectivity

__all__ = ["MAX_BACKOFF_SECONDS", "CircuitBreaker", "Connectivity", "DeliveryClient"]
