# tests/unit/olakai/delivery/test_breaker.py
"""Tests for the per-endpoint circuit breaker state machine."""

import pytest

from olakai.contracts.enums import BreakerState, EndpointKind
from olakai.contracts.errors import CircuitOpenError
from olakai.delivery.breaker import CircuitBreaker
from tests.helpers.doubles import FakeClock


def make_breaker(clock: FakeClock, threshold: int = 3, cooldown: float = 10.0) -> CircuitBreaker:
    return CircuitBreaker(EndpointKind.MONITORING, failure_threshold=threshold, cooldown_seconds=cooldown, clock=clock)


class TestCircuitBreaker:
    def test_starts_closed(self) -> None:
        breaker = make_breaker(FakeClock())

        assert breaker.state is BreakerState.CLOSED
        assert breaker.acquire() is False

    def test_opens_after_threshold_consecutive_failures(self) -> None:
        breaker = make_breaker(FakeClock(), threshold=3)

        breaker.record_failure()
        breaker.record_failure()
        assert breaker.state is BreakerState.CLOSED

        breaker.record_failure()
        assert breaker.state is BreakerState.OPEN

    def test_success_resets_failure_count(self) -> None:
        breaker = make_breaker(FakeClock(), threshold=2)

        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()

        assert breaker.state is BreakerState.CLOSED
        assert breaker.consecutive_failures == 1

    def test_open_fails_fast_with_retry_after(self) -> None:
        clock = FakeClock()
        breaker = make_breaker(clock, threshold=1, cooldown=10.0)
        breaker.record_failure()
        clock.advance(4.0)

        with pytest.raises(CircuitOpenError) as exc_info:
            breaker.acquire()

        assert exc_info.value.retry_after_seconds == pytest.approx(6.0)
        assert exc_info.value.endpoint is EndpointKind.MONITORING

    def test_half_open_admits_exactly_one_trial(self) -> None:
        clock = FakeClock()
        breaker = make_breaker(clock, threshold=1, cooldown=10.0)
        breaker.record_failure()
        clock.advance(10.0)

        assert breaker.state is BreakerState.HALF_OPEN
        assert breaker.acquire() is True
        with pytest.raises(CircuitOpenError):
            breaker.acquire()

    def test_trial_success_closes(self) -> None:
        clock = FakeClock()
        breaker = make_breaker(clock, threshold=1)
        breaker.record_failure()
        clock.advance(10.0)
        breaker.acquire()

        breaker.record_success()

        assert breaker.state is BreakerState.CLOSED
        assert breaker.acquire() is False

    def test_trial_failure_reopens_with_fresh_cooldown(self) -> None:
        clock = FakeClock()
        breaker = make_breaker(clock, threshold=1, cooldown=10.0)
        breaker.record_failure()
        clock.advance(15.0)
        breaker.acquire()

        breaker.record_failure(trial=True)

        assert breaker.state is BreakerState.OPEN
        clock.advance(9.0)
        assert breaker.state is BreakerState.OPEN
        clock.advance(1.0)
        assert breaker.state is BreakerState.HALF_OPEN

    def test_released_trial_can_be_claimed_again(self) -> None:
        clock = FakeClock()
        breaker = make_breaker(clock, threshold=1)
        breaker.record_failure()
        clock.advance(10.0)
        breaker.acquire()

        breaker.release_trial()

        assert breaker.acquire() is True

    def test_threshold_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            CircuitBreaker(EndpointKind.CONTROL, failure_threshold=0)
