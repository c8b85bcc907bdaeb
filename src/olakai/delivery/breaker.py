# src/olakai/delivery/breaker.py
"""Per-endpoint circuit breaker.

CLOSED: sends go through; consecutive failed sends are counted.
OPEN: after ``failure_threshold`` consecutive failures every send fails
fast with CircuitOpenError until the cool-down has elapsed.
HALF_OPEN: the first caller after the cool-down claims the single
trial; everyone else keeps failing fast until the trial settles.

All mutation happens synchronously between awaits, so claiming the
trial is an atomic check-and-set under asyncio.
"""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog

from olakai.contracts.enums import BreakerState, EndpointKind
from olakai.contracts.errors import CircuitOpenError

logger = structlog.get_logger(__name__)


class CircuitBreaker:
    """Tracks delivery health of one endpoint kind."""

    def __init__(
        self,
        endpoint: EndpointKind,
        *,
        failure_threshold: int = 5,
        cooldown_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        self._endpoint = endpoint
        self._failure_threshold = failure_threshold
        self._cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._consecutive_failures = 0
        self._opened_at: float | None = None
        self._trial_in_flight = False

    @property
    def state(self) -> BreakerState:
        if self._opened_at is None:
            return BreakerState.CLOSED
        if self._clock() - self._opened_at >= self._cooldown_seconds:
            return BreakerState.HALF_OPEN
        return BreakerState.OPEN

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def acquire(self) -> bool:
        """Admit a send or fail fast.

        Returns:
            True if the caller holds the half-open trial, False for a
            normal closed-state send.

        Raises:
            CircuitOpenError: While open, or while another caller holds the trial.
        """
        state = self.state
        if state is BreakerState.CLOSED:
            return False
        if state is BreakerState.HALF_OPEN and not self._trial_in_flight:
            self._trial_in_flight = True
            logger.debug("circuit_trial_claimed", endpoint=str(self._endpoint))
            return True
        raise CircuitOpenError(self._endpoint, self._retry_after())

    def record_success(self) -> None:
        if self._opened_at is not None:
            logger.info("circuit_closed", endpoint=str(self._endpoint))
        self._consecutive_failures = 0
        self._opened_at = None
        self._trial_in_flight = False

    def record_failure(self, *, trial: bool = False) -> None:
        """Count a failed send. A failed trial re-opens with a fresh cool-down."""
        self._consecutive_failures += 1
        if trial:
            self._trial_in_flight = False
            self._open()
        elif self._opened_at is None and self._consecutive_failures >= self._failure_threshold:
            self._open()

    def release_trial(self) -> None:
        """Give up a claimed trial that ended without a verdict (e.g. cancelled)."""
        self._trial_in_flight = False

    def _open(self) -> None:
        self._opened_at = self._clock()
        logger.warning(
            "circuit_opened",
            endpoint=str(self._endpoint),
            consecutive_failures=self._consecutive_failures,
            cooldown_seconds=self._cooldown_seconds,
        )

    def _retry_after(self) -> float:
        if self._opened_at is None:
            return 0.0
        return max(0.0, self._cooldown_seconds - (self._clock() - self._opened_at))
