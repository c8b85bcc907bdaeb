# src/olakai/delivery/client.py
"""DeliveryClient: POSTs payloads to the Olakai service.

Every send passes three gates in order: connectivity (offline fails fast
without touching the network), the endpoint's circuit breaker (open
fails fast), then the HTTP attempt loop. Transient failures (transport
errors, timeouts, HTTP 5xx) are retried with exponential backoff via
tenacity; 2xx and 4xx answers end the loop immediately.

The client never swallows a failure. Every failed send surfaces as a
typed DeliveryError subclass; deciding whether that matters is the
caller's job (the reporter logs it, the control check treats it as a
denial).
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx
import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from olakai.contracts.enums import BreakerState, EndpointKind
from olakai.contracts.errors import CircuitOpenError, DeliveryError, OfflineError
from olakai.contracts.payloads import ControlPayload, ControlResponse, MonitoringResponse, MonitorPayload
from olakai.core.config import OlakaiSettings
from olakai.delivery.breaker import CircuitBreaker
from olakai.delivery.connectivity import Connectivity

logger = structlog.get_logger(__name__)

INITIAL_BACKOFF_SECONDS = 1.0
MAX_BACKOFF_SECONDS = 30.0

SleepFunc = Callable[[float], Awaitable[None]]


class WirePayload(Protocol):
    def to_wire(self) -> dict[str, Any]: ...


class _TransientFailure(Exception):
    """Attempt failed in a way a later attempt may not."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class _RejectedRequest(Exception):
    """The service answered 4xx; retrying the same body cannot help."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(message)


class DeliveryClient:
    """Sends monitoring and control payloads with retry and circuit breaking.

    Example:
        client = DeliveryClient(settings)
        verdict = await client.send_control(ControlPayload(prompt="hi", chat_id="c1"))
    """

    def __init__(
        self,
        settings: OlakaiSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
        connectivity: Connectivity | None = None,
        sleep: SleepFunc | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Validated SDK settings
            http_client: Shared httpx client (created and owned here if None)
            connectivity: Online/offline signal (always online if None)
            sleep: Backoff sleep, injectable for tests
            clock: Monotonic clock for the circuit breakers
        """
        self._settings = settings
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(settings.timeout_seconds))
        self._connectivity = connectivity or Connectivity()
        self._sleep: SleepFunc = sleep or asyncio.sleep
        self._breakers = {
            kind: CircuitBreaker(
                kind,
                failure_threshold=settings.breaker_failure_threshold,
                cooldown_seconds=settings.breaker_cooldown_seconds,
                clock=clock,
            )
            for kind in EndpointKind
        }
        self._headers = {
            "x-api-key": settings.api_key,
            "x-sdk-version": settings.sdk_version,
            "content-type": "application/json",
        }
        self._sends_succeeded = 0
        self._sends_failed = 0
        self._sends_rejected_fast = 0

    @property
    def connectivity(self) -> Connectivity:
        return self._connectivity

    def breaker(self, kind: EndpointKind) -> CircuitBreaker:
        return self._breakers[kind]

    def endpoint_url(self, kind: EndpointKind) -> str:
        if kind is EndpointKind.CONTROL:
            return self._settings.control_endpoint
        return self._settings.monitor_endpoint

    async def send_monitoring(self, payload: MonitorPayload) -> MonitoringResponse:
        response = await self.send(payload, EndpointKind.MONITORING)
        assert isinstance(response, MonitoringResponse)
        return response

    async def send_control(self, payload: ControlPayload) -> ControlResponse:
        response = await self.send(payload, EndpointKind.CONTROL)
        assert isinstance(response, ControlResponse)
        return response

    async def send(self, payload: WirePayload, kind: EndpointKind) -> ControlResponse | MonitoringResponse:
        """Deliver one payload to the endpoint of ``kind``.

        Raises:
            OfflineError: Connectivity reports offline; nothing was sent
            CircuitOpenError: The endpoint's breaker rejected the send
            DeliveryError: Retries exhausted, 4xx answer, or malformed response
        """
        if not self._connectivity.online:
            self._sends_rejected_fast += 1
            raise OfflineError(kind)

        breaker = self._breakers[kind]
        try:
            trial = breaker.acquire()
        except CircuitOpenError:
            self._sends_rejected_fast += 1
            raise

        body = payload.to_wire()
        if self._settings.verbose:
            logger.debug("delivery_payload", endpoint=str(kind), payload=body)

        max_attempts = 1 if trial else self._settings.retries + 1
        settled = False
        try:
            response = await self._post_with_retry(kind, body, max_attempts=max_attempts)
            breaker.record_success()
            settled = True
        except _RejectedRequest as e:
            # The endpoint is reachable; a bad request is not a health signal.
            breaker.record_success()
            settled = True
            self._sends_failed += 1
            raise DeliveryError(
                kind,
                f"HTTP {e.status_code}: {e}",
                attempts=1,
                status_code=e.status_code,
                retryable=False,
            ) from e
        except DeliveryError:
            breaker.record_failure(trial=trial)
            settled = True
            self._sends_failed += 1
            raise
        except Exception as e:
            breaker.record_failure(trial=trial)
            settled = True
            self._sends_failed += 1
            raise DeliveryError(kind, f"{type(e).__name__}: {e}", attempts=1, retryable=False) from e
        finally:
            if trial and not settled:
                breaker.release_trial()

        parsed = self._parse_response(kind, response)
        self._sends_succeeded += 1
        logger.debug("delivery_succeeded", endpoint=str(kind), status_code=response.status_code)
        return parsed

    async def _post_with_retry(self, kind: EndpointKind, body: dict[str, Any], *, max_attempts: int) -> httpx.Response:
        url = self.endpoint_url(kind)
        attempts = 0
        try:
            async for attempt_state in AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_exponential(multiplier=INITIAL_BACKOFF_SECONDS, min=INITIAL_BACKOFF_SECONDS, max=MAX_BACKOFF_SECONDS),
                retry=retry_if_exception_type(_TransientFailure),
                sleep=self._sleep,
                before_sleep=_log_retry(kind),
                reraise=False,
            ):
                with attempt_state:
                    attempts = attempt_state.retry_state.attempt_number
                    return await self._post_once(url, body)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            raise DeliveryError(
                kind,
                f"gave up after {attempts} attempts: {last_error}",
                attempts=attempts,
                status_code=getattr(last_error, "status_code", None),
                retryable=True,
            ) from last_error

        raise RuntimeError("Unexpected state in retry loop")  # pragma: no cover

    async def _post_once(self, url: str, body: dict[str, Any]) -> httpx.Response:
        try:
            response = await self._http.post(url, json=body, headers=self._headers)
        except httpx.TransportError as e:
            raise _TransientFailure(f"{type(e).__name__}: {e}") from e

        if response.status_code >= 500:
            raise _TransientFailure(f"HTTP {response.status_code}", status_code=response.status_code)
        if response.status_code >= 400:
            raise _RejectedRequest(response.status_code, response.text[:200])
        return response

    def _parse_response(self, kind: EndpointKind, response: httpx.Response) -> ControlResponse | MonitoringResponse:
        if kind is EndpointKind.MONITORING and not response.content.strip():
            return MonitoringResponse()
        try:
            data = response.json()
            if kind is EndpointKind.CONTROL:
                return ControlResponse.model_validate(data)
            return MonitoringResponse.model_validate(data)
        except (ValueError, ValidationError) as e:
            raise DeliveryError(
                kind,
                f"malformed response: {e}",
                attempts=1,
                status_code=response.status_code,
                retryable=False,
            ) from e

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Counters and breaker states for operational visibility."""
        breaker_states: dict[str, BreakerState] = {str(kind): b.state for kind, b in self._breakers.items()}
        return {
            "sends_succeeded": self._sends_succeeded,
            "sends_failed": self._sends_failed,
            "sends_rejected_fast": self._sends_rejected_fast,
            "online": self._connectivity.online,
            "breakers": breaker_states,
        }

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()


def _log_retry(kind: EndpointKind) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.debug(
            "delivery_retry_scheduled",
            endpoint=str(kind),
            attempt=retry_state.attempt_number,
            delay_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(error),
        )

    return before_sleep
