# src/olakai/runtime.py
"""Process-wide SDK runtime.

initialize() builds one Runtime from validated settings and installs it
here. Components receive the pieces they need explicitly; only the
module-level convenience API looks the active runtime up.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

import httpx

from olakai.contracts.errors import NotInitializedError
from olakai.core.config import OlakaiSettings
from olakai.delivery.client import DeliveryClient, SleepFunc
from olakai.delivery.connectivity import Connectivity
from olakai.interception.call_monitor import CallMonitor
from olakai.interception.reporter import Reporter


@dataclass(frozen=True, slots=True)
class Runtime:
    """Everything created by one initialize() call."""

    settings: OlakaiSettings
    session_id: str
    delivery: DeliveryClient
    reporter: Reporter
    monitor: CallMonitor

    @classmethod
    def create(
        cls,
        settings: OlakaiSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
        connectivity: Connectivity | None = None,
        sleep: SleepFunc | None = None,
    ) -> Runtime:
        session_id = uuid.uuid4().hex
        delivery = DeliveryClient(settings, http_client=http_client, connectivity=connectivity, sleep=sleep)
        reporter = Reporter(delivery)
        monitor = CallMonitor(settings, delivery, reporter, session_id=session_id)
        return cls(settings=settings, session_id=session_id, delivery=delivery, reporter=reporter, monitor=monitor)

    async def aclose(self, timeout: float | None = None) -> None:
        """Drain in-flight reports, then release the HTTP client."""
        try:
            await self.reporter.drain(timeout)
        finally:
            await self.delivery.aclose()


_active: Runtime | None = None


def install(runtime: Runtime) -> Runtime | None:
    """Make ``runtime`` the active one; returns the runtime it replaced."""
    global _active
    previous, _active = _active, runtime
    return previous


def active() -> Runtime | None:
    return _active


def current(operation: str = "this operation") -> Runtime:
    if _active is None:
        raise NotInitializedError(operation)
    return _active


def clear() -> Runtime | None:
    global _active
    previous, _active = _active, None
    return previous
