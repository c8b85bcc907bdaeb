# tests/unit/olakai/interception/test_reporter.py
"""Tests for background report dispatch and draining."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from structlog.testing import capture_logs

from olakai.contracts.enums import EndpointKind
from olakai.contracts.errors import DeliveryError
from olakai.contracts.payloads import MonitoringResponse, MonitorPayload
from olakai.interception.reporter import Reporter
from tests.helpers.doubles import make_delivery

PAYLOAD = MonitorPayload(prompt="p", response="r", chat_id="c1")


class TestDispatch:
    @pytest.mark.asyncio
    async def test_dispatch_delivers_in_background(self) -> None:
        delivery = make_delivery()
        reporter = Reporter(delivery)

        task = reporter.dispatch(PAYLOAD)

        assert task is not None
        assert await reporter.drain() is True
        delivery.send_monitoring.assert_awaited_once_with(PAYLOAD)
        assert reporter.pending == 0
        assert reporter.health_metrics["reports_delivered"] == 1

    @pytest.mark.asyncio
    async def test_delivery_failure_is_logged_not_raised(self) -> None:
        delivery = make_delivery()
        delivery.send_monitoring = AsyncMock(side_effect=DeliveryError(EndpointKind.MONITORING, "boom", attempts=5))
        reporter = Reporter(delivery)

        with capture_logs() as logs:
            reporter.dispatch(PAYLOAD)
            await reporter.drain()

        assert any(entry["event"] == "monitor_report_failed" for entry in logs)
        assert reporter.health_metrics["reports_failed"] == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_is_logged_not_raised(self) -> None:
        delivery = make_delivery()
        delivery.send_monitoring = AsyncMock(side_effect=RuntimeError("surprise"))
        reporter = Reporter(delivery)

        assert await reporter.send(PAYLOAD) is None
        assert reporter.health_metrics["reports_failed"] == 1

    @pytest.mark.asyncio
    async def test_partial_acceptance_is_logged(self) -> None:
        delivery = make_delivery()
        delivery.send_monitoring = AsyncMock(
            return_value=MonitoringResponse(success=False, failureCount=1, successCount=0, message="quota")
        )
        reporter = Reporter(delivery)

        with capture_logs() as logs:
            response = await reporter.send(PAYLOAD)

        assert response is not None
        assert any(entry["event"] == "monitor_report_rejected" for entry in logs)

    def test_dispatch_without_event_loop_is_dropped(self) -> None:
        reporter = Reporter(make_delivery())

        with capture_logs() as logs:
            assert reporter.dispatch(PAYLOAD) is None

        assert reporter.health_metrics["reports_dropped"] == 1
        assert logs[0]["event"] == "monitor_report_dropped"


class TestDrain:
    @pytest.mark.asyncio
    async def test_drain_times_out_on_stuck_report(self) -> None:
        release = asyncio.Event()

        async def slow_send(payload: MonitorPayload) -> MonitoringResponse:
            await release.wait()
            return MonitoringResponse()

        delivery = make_delivery()
        delivery.send_monitoring = AsyncMock(side_effect=slow_send)
        reporter = Reporter(delivery)
        reporter.dispatch(PAYLOAD)

        assert await reporter.drain(timeout=0.01) is False

        release.set()
        assert await reporter.drain() is True

    @pytest.mark.asyncio
    async def test_drain_with_nothing_pending(self) -> None:
        assert await Reporter(make_delivery()).drain(timeout=0) is True
