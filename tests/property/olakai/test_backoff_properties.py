# tests/property/olakai/test_backoff_properties.py
"""Property-based tests for delivery retry scheduling.

For any retry budget, a permanently failing endpoint is attempted
retries + 1 times, and the delays between attempts start at one second,
never decrease and never exceed thirty seconds.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import httpx
from hypothesis import given
from hypothesis import strategies as st

from olakai.contracts.errors import DeliveryError
from olakai.contracts.payloads import MonitorPayload
from olakai.delivery.client import INITIAL_BACKOFF_SECONDS, MAX_BACKOFF_SECONDS, DeliveryClient
from tests.helpers.doubles import RecordingSleep, make_settings
from tests.property.settings import SLOW_SETTINGS

PAYLOAD = MonitorPayload(prompt="p", response="r", chat_id="c")


@dataclass
class DeliveryRun:
    requests: list[httpx.Request] = field(default_factory=list)
    sleep: RecordingSleep = field(default_factory=RecordingSleep)
    error: DeliveryError | None = None


async def deliver_against(status_code: int, retries: int) -> DeliveryRun:
    """Send one payload to an endpoint that always answers ``status_code``."""
    run = DeliveryRun()

    def handler(request: httpx.Request) -> httpx.Response:
        run.requests.append(request)
        return httpx.Response(status_code)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        client = DeliveryClient(make_settings(retries=retries), http_client=http, sleep=run.sleep)
        try:
            await client.send_monitoring(PAYLOAD)
        except DeliveryError as e:
            run.error = e
    return run


class TestBackoffProperties:
    @given(retries=st.integers(min_value=0, max_value=10), status_code=st.sampled_from([500, 502, 503, 504]))
    @SLOW_SETTINGS
    def test_attempts_and_delay_schedule(self, retries: int, status_code: int) -> None:
        run = asyncio.run(deliver_against(status_code, retries))

        assert run.error is not None
        assert run.error.attempts == retries + 1
        assert len(run.requests) == retries + 1
        delays = run.sleep.delays
        assert len(delays) == retries
        if delays:
            assert delays[0] == INITIAL_BACKOFF_SECONDS
        assert delays == sorted(delays)
        assert all(delay <= MAX_BACKOFF_SECONDS for delay in delays)

    @given(retries=st.integers(min_value=0, max_value=10), status_code=st.integers(min_value=400, max_value=499))
    @SLOW_SETTINGS
    def test_client_errors_are_attempted_once(self, retries: int, status_code: int) -> None:
        run = asyncio.run(deliver_against(status_code, retries))

        assert run.error is not None
        assert run.error.retryable is False
        assert len(run.requests) == 1
        assert run.sleep.delays == []
