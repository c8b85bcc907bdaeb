# src/olakai/interception/call_monitor.py
"""CallMonitor: the pieces every interception point shares.

Function wrappers and provider adapters both need to resolve who is
calling, ask the control service whether the call may run, and report
what happened. CallMonitor does those three things with the failure
policy fixed in one place:

* identity resolution never fails (defaults are substituted);
* the control check fails closed (any failure is a denial);
* reporting never fails (errors are logged).
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import structlog

from olakai.contracts.errors import DeliveryError, ExecutionBlockedError
from olakai.contracts.metadata import Timing
from olakai.contracts.payloads import ControlPayload, ControlResponse, MonitorPayload
from olakai.core.config import OlakaiSettings
from olakai.delivery.client import DeliveryClient
from olakai.interception.reporter import Reporter

logger = structlog.get_logger(__name__)

Resolver = str | Callable[..., Any] | None


def _epoch_ms() -> float:
    return time.time() * 1000


@dataclass(slots=True)
class Stopwatch:
    """Measures one call: wall-clock start plus a monotonic duration."""

    started_at_ms: float = field(default_factory=_epoch_ms)
    _started: float = field(default_factory=time.perf_counter)

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000

    def timing(self) -> Timing:
        return Timing(start_time_ms=self.started_at_ms, end_time_ms=self.started_at_ms + self.elapsed_ms())


class CallMonitor:
    """Identity, control gate and reporting for monitored calls."""

    def __init__(
        self,
        settings: OlakaiSettings,
        delivery: DeliveryClient,
        reporter: Reporter,
        *,
        session_id: str,
    ) -> None:
        self._settings = settings
        self._delivery = delivery
        self._reporter = reporter
        self._session_id = session_id

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def reporter(self) -> Reporter:
        return self._reporter

    def control_enabled(self, override: bool | None = None) -> bool:
        return self._settings.enable_control if override is None else override

    def resolve(
        self,
        resolver: Resolver,
        default: str,
        args: tuple[Any, ...],
        kwargs: Mapping[str, Any],
        *,
        name: str,
    ) -> str:
        """Resolve an identifier from a static value or a callable of the call's arguments.

        A resolver that raises, or returns nothing, yields ``default``.
        """
        if resolver is None:
            return default
        if not callable(resolver):
            return str(resolver) or default
        try:
            value = resolver(*args, **kwargs)
        except Exception as e:
            logger.warning(
                "identifier_resolution_failed",
                identifier=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return default
        return str(value) if value else default

    async def check_control(self, payload: ControlPayload) -> ControlResponse:
        """Ask the control service for a verdict.

        Any failure to obtain a valid verdict is returned as a denial.
        """
        try:
            verdict = await self._delivery.send_control(payload)
        except DeliveryError as e:
            logger.warning(
                "control_check_failed",
                error=str(e),
                error_type=type(e).__name__,
                chat_id=payload.chat_id,
            )
            return ControlResponse(allowed=False, message=f"control check unavailable: {e.message}")
        except Exception as e:
            logger.error("control_check_failed", error=str(e), error_type=type(e).__name__, chat_id=payload.chat_id)
            return ControlResponse(allowed=False, message=f"control check failed: {type(e).__name__}")

        if not verdict.allowed:
            logger.info(
                "execution_blocked",
                chat_id=payload.chat_id,
                detected_sensitivity=list(verdict.details.detected_sensitivity),
            )
        return verdict

    def block(self, verdict: ControlResponse, payload: MonitorPayload) -> ExecutionBlockedError:
        """Report a blocked call and build the error the caller will raise."""
        self.report(
            lambda: replace(payload, blocked=True, sensitivity=verdict.details.detected_sensitivity)
        )
        return ExecutionBlockedError(
            verdict.message or "denied by control policy",
            detected_sensitivity=verdict.details.detected_sensitivity,
            is_allowed_persona=verdict.details.is_allowed_persona,
        )

    def report(self, build: Callable[[], MonitorPayload]) -> None:
        """Build and dispatch a payload; failures are logged, never raised."""
        try:
            payload = build()
            self._reporter.dispatch(payload)
        except Exception as e:
            logger.error("monitor_report_build_failed", error=str(e), error_type=type(e).__name__)
