# tests/helpers/doubles.py
"""Test doubles shared across unit and property tests.

- RecordingReporter: Reporter that captures payloads instead of sending them
- make_delivery: DeliveryClient mock whose control verdict is configurable
- FakeClock / RecordingSleep: deterministic time for breaker and backoff tests
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

from olakai.contracts.payloads import ControlResponse, MonitoringResponse, MonitorPayload
from olakai.core.config import OlakaiSettings
from olakai.delivery.client import DeliveryClient
from olakai.interception.call_monitor import CallMonitor
from olakai.interception.reporter import Reporter

MONITOR_URL = "https://olakai.test/api/monitoring/prompt"
CONTROL_URL = "https://olakai.test/api/control/prompt"


class RecordingReporter(Reporter):
    """Reporter that keeps dispatched payloads in memory."""

    def __init__(self, *, fail: bool = False) -> None:
        super().__init__(MagicMock(spec=DeliveryClient))
        self.payloads: list[MonitorPayload] = []
        self._fail = fail

    def dispatch(self, payload: MonitorPayload) -> None:  # type: ignore[override]
        if self._fail:
            raise RuntimeError("reporter exploded")
        self.payloads.append(payload)

    @property
    def last(self) -> MonitorPayload:
        assert self.payloads, "no payload was reported"
        return self.payloads[-1]


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_settings(**overrides: Any) -> OlakaiSettings:
    fields: dict[str, Any] = {
        "api_key": "test-key",
        "monitor_endpoint": MONITOR_URL,
        "control_endpoint": CONTROL_URL,
    }
    fields.update(overrides)
    return OlakaiSettings(**fields)


def make_delivery(verdict: ControlResponse | Exception | None = None) -> MagicMock:
    """DeliveryClient mock; ``verdict`` is returned (or raised) by send_control."""
    delivery = MagicMock(spec=DeliveryClient)
    if isinstance(verdict, Exception):
        delivery.send_control = AsyncMock(side_effect=verdict)
    else:
        delivery.send_control = AsyncMock(return_value=verdict or ControlResponse(allowed=True))
    delivery.send_monitoring = AsyncMock(return_value=MonitoringResponse())
    return delivery


def make_call_monitor(
    *,
    enable_control: bool = False,
    verdict: ControlResponse | Exception | None = None,
    reporter: RecordingReporter | None = None,
) -> tuple[CallMonitor, RecordingReporter, MagicMock]:
    reporter = reporter or RecordingReporter()
    delivery = make_delivery(verdict)
    monitor = CallMonitor(make_settings(enable_control=enable_control), delivery, reporter, session_id="session-1")
    return monitor, reporter, delivery
