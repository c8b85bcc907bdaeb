# src/olakai/interception/reporter.py
"""Reporter: fire-and-forget delivery of monitoring payloads.

Reports are sent from background asyncio tasks so a monitored call
returns as soon as its own work is done. A report that fails to deliver
is logged and counted; it never raises into the code that dispatched
it. drain() waits for in-flight reports, typically before process exit.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from olakai.contracts.errors import DeliveryError
from olakai.contracts.payloads import MonitoringResponse, MonitorPayload
from olakai.delivery.client import DeliveryClient

logger = structlog.get_logger(__name__)


class Reporter:
    """Schedules monitoring payload delivery and tracks in-flight reports."""

    def __init__(self, delivery: DeliveryClient) -> None:
        self._delivery = delivery
        self._pending: set[asyncio.Task[MonitoringResponse | None]] = set()
        self._reports_dispatched = 0
        self._reports_delivered = 0
        self._reports_failed = 0
        self._reports_dropped = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(self, payload: MonitorPayload) -> asyncio.Task[MonitoringResponse | None] | None:
        """Schedule delivery in the background.

        Returns:
            The delivery task, or None when no event loop is running (the
            report is dropped and logged).
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._reports_dropped += 1
            logger.warning("monitor_report_dropped", reason="no running event loop", chat_id=payload.chat_id)
            return None

        task = loop.create_task(self._deliver(payload), name="olakai-monitor-report")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def send(self, payload: MonitorPayload) -> MonitoringResponse | None:
        """Deliver and wait for the acknowledgement. Never raises."""
        return await self._deliver(payload)

    async def _deliver(self, payload: MonitorPayload) -> MonitoringResponse | None:
        self._reports_dispatched += 1
        try:
            response = await self._delivery.send_monitoring(payload)
        except DeliveryError as e:
            self._reports_failed += 1
            logger.warning(
                "monitor_report_failed",
                error=str(e),
                error_type=type(e).__name__,
                attempts=e.attempts,
                status_code=e.status_code,
            )
            return None
        except Exception as e:
            self._reports_failed += 1
            logger.error("monitor_report_failed", error=str(e), error_type=type(e).__name__)
            return None

        self._reports_delivered += 1
        if not response.fully_accepted:
            logger.warning(
                "monitor_report_rejected",
                message=response.message,
                failure_count=response.failure_count,
            )
        else:
            logger.debug("monitor_report_delivered", chat_id=payload.chat_id, blocked=payload.blocked)
        return response

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait until every in-flight report has settled.

        Args:
            timeout: Seconds to wait; None waits indefinitely

        Returns:
            True if all reports settled, False on timeout.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._pending:
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            _, not_done = await asyncio.wait(list(self._pending), timeout=remaining)
            if not_done and deadline is not None and loop.time() >= deadline:
                logger.warning("monitor_drain_timeout", pending=len(not_done))
                return False
        return True

    @property
    def health_metrics(self) -> dict[str, Any]:
        return {
            "reports_dispatched": self._reports_dispatched,
            "reports_delivered": self._reports_delivered,
            "reports_failed": self._reports_failed,
            "reports_dropped": self._reports_dropped,
            "reports_pending": len(self._pending),
        }
