# src/olakai/sdk.py
"""OlakaiSDK facade and the module-level public API.

Typical use:

    import olakai

    olakai.initialize(api_key="...", enable_control=True)
    client = olakai.wrap_client(AsyncOpenAI(), WrapperConfig(provider=Provider.OPENAI))

    @olakai.monitor(task="summarize")
    async def summarize(text: str) -> str: ...

    await olakai.shutdown()   # drain pending reports before exit
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from olakai import runtime as runtime_state
from olakai.contracts.errors import NotInitializedError
from olakai.contracts.metadata import LLMMetadata
from olakai.contracts.payloads import ANONYMOUS_EMAIL, MonitoringResponse, MonitorPayload
from olakai.core.config import CallContext, OlakaiSettings, WrapperConfig
from olakai.core.logging import configure_logging
from olakai.core.sanitize import prepare_body
from olakai.delivery.client import SleepFunc
from olakai.delivery.connectivity import Connectivity
from olakai.integrations.vercel_ai import VercelAIIntegration
from olakai.interception import wrapper as function_wrapper
from olakai.interception.wrapper import MonitorOptions
from olakai.providers import wrap_provider_client
from olakai.runtime import Runtime
from olakai.streaming.adapters import StreamHandleProxy

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class EventParams:
    """A prompt/response pair reported without wrapping anything."""

    prompt: Any
    response: Any
    user_email: str | None = None
    user_id: str | None = None
    chat_id: str | None = None
    task: str | None = None
    sub_task: str | None = None
    tokens: int = 0
    request_time_ms: float = 0.0
    should_score: bool | None = None
    custom_data: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class ReportOptions:
    """Optional fields for report_direct()."""

    email: str | None = None
    user_id: str | None = None
    chat_id: str | None = None
    task: str | None = None
    sub_task: str | None = None
    tokens: int = 0
    request_time_ms: float = 0.0
    blocked: bool = False
    sensitivity: tuple[str, ...] = ()
    should_score: bool | None = None
    custom_data: dict[str, Any] | None = None
    llm_metadata: LLMMetadata | None = None
    sanitize: bool = False


class OlakaiSDK:
    """Entry point for one initialized runtime.

    Clients and functions wrapped through it look up the active runtime
    on every call, so they survive a later initialize().
    """

    def __init__(self, runtime: Runtime) -> None:
        self._runtime = runtime
        self._vercel_ai = VercelAIIntegration(None)

    @property
    def runtime(self) -> Runtime:
        return self._runtime

    @property
    def settings(self) -> OlakaiSettings:
        return self._runtime.settings

    @property
    def session_id(self) -> str:
        return self._runtime.session_id

    def wrap(self, client: Any, config: WrapperConfig | None = None, **config_fields: Any) -> Any:
        """Return a monitored stand-in for a provider client."""
        return wrap_provider_client(client, config or WrapperConfig(**config_fields))

    def wrap_function(
        self,
        fn: Callable[..., Any],
        options: MonitorOptions | None = None,
        /,
        **overrides: Any,
    ) -> Callable[..., Awaitable[Any]]:
        return function_wrapper.wrap_function(fn, options, **overrides)

    def use_vercel_ai(
        self,
        *,
        generate_text_fn: Callable[..., Any] | None = None,
        stream_text_fn: Callable[..., Any] | None = None,
        enable_control: bool | None = None,
        sanitize: bool = False,
    ) -> VercelAIIntegration:
        """Register the toolkit functions used by generate_text() and stream_text()."""
        self._vercel_ai = VercelAIIntegration(
            None,
            generate_text_fn=generate_text_fn,
            stream_text_fn=stream_text_fn,
            enable_control=enable_control,
            sanitize=sanitize,
        )
        return self._vercel_ai

    async def generate_text(self, params: Mapping[str, Any], context: CallContext | None = None) -> Any:
        return await self._vercel_ai.generate_text(params, context)

    async def stream_text(self, params: Mapping[str, Any], context: CallContext | None = None) -> StreamHandleProxy:
        return await self._vercel_ai.stream_text(params, context)

    def event(self, params: EventParams) -> None:
        """Report a prompt/response pair in the background. Never raises."""
        monitor = self._runtime.monitor
        monitor.report(
            lambda: MonitorPayload(
                prompt=prepare_body(params.prompt),
                response=prepare_body(params.response),
                chat_id=params.chat_id or self.session_id,
                email=params.user_email or ANONYMOUS_EMAIL,
                user_id=params.user_id,
                task=params.task,
                sub_task=params.sub_task,
                tokens=params.tokens,
                request_time_ms=params.request_time_ms,
                should_score=params.should_score,
                custom_data=params.custom_data,
            )
        )

    async def report(
        self,
        prompt: Any,
        response: Any,
        options: ReportOptions | None = None,
    ) -> MonitoringResponse | None:
        """Report a prompt/response pair and wait for delivery.

        Returns:
            The service acknowledgement, or None if delivery failed (logged).
        """
        opts = options or ReportOptions()
        payload = MonitorPayload(
            prompt=prepare_body(prompt, sanitize=opts.sanitize),
            response=prepare_body(response, sanitize=opts.sanitize),
            chat_id=opts.chat_id or self.session_id,
            email=opts.email or ANONYMOUS_EMAIL,
            user_id=opts.user_id,
            task=opts.task,
            sub_task=opts.sub_task,
            tokens=opts.tokens,
            request_time_ms=opts.request_time_ms,
            blocked=opts.blocked,
            sensitivity=tuple(opts.sensitivity),
            should_score=opts.should_score,
            custom_data=opts.custom_data,
            llm_metadata=opts.llm_metadata,
        )
        return await self._runtime.reporter.send(payload)

    async def drain(self, timeout: float | None = None) -> bool:
        return await self._runtime.reporter.drain(timeout)

    async def shutdown(self, timeout: float | None = None) -> None:
        await self._runtime.aclose(timeout)

    @property
    def health_metrics(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "delivery": self._runtime.delivery.health_metrics,
            "reporting": self._runtime.reporter.health_metrics,
        }


_active: OlakaiSDK | None = None
_retiring: set[asyncio.Task[None]] = set()


def initialize(
    settings: OlakaiSettings | None = None,
    /,
    *,
    http_client: httpx.AsyncClient | None = None,
    connectivity: Connectivity | None = None,
    sleep: SleepFunc | None = None,
    **overrides: Any,
) -> OlakaiSDK:
    """Validate configuration and install a fresh runtime.

    Calling initialize() again replaces the previous runtime; its pending
    reports are drained and its HTTP client closed in the background.

    Args:
        settings: Prebuilt settings; keyword overrides are applied on top
        http_client: Shared httpx.AsyncClient (the SDK creates one if None)
        connectivity: Online/offline signal for the delivery client
        sleep: Backoff sleep, injectable for tests
    """
    global _active
    if settings is None:
        settings = OlakaiSettings(**overrides)
    elif overrides:
        settings = settings.with_overrides(**overrides)

    if settings.configure_logging:
        configure_logging(json_output=settings.json_logs, level="DEBUG" if settings.debug else "INFO")

    sdk = OlakaiSDK(Runtime.create(settings, http_client=http_client, connectivity=connectivity, sleep=sleep))
    previous, _active = _active, sdk
    runtime_state.install(sdk.runtime)
    if previous is not None:
        _retire(previous)

    logger.info(
        "olakai_initialized",
        monitor_endpoint=settings.monitor_endpoint,
        control_enabled=settings.enable_control,
        retries=settings.retries,
        session_id=sdk.session_id,
    )
    return sdk


def _retire(previous: OlakaiSDK) -> None:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("previous_runtime_abandoned", session_id=previous.session_id)
        return
    task = loop.create_task(previous.shutdown(), name="olakai-retire-runtime")
    _retiring.add(task)
    task.add_done_callback(_retiring.discard)


def current() -> OlakaiSDK:
    """The active SDK instance.

    Raises:
        NotInitializedError: initialize() has not been called
    """
    if _active is None:
        raise NotInitializedError("current()")
    return _active


def wrap_client(client: Any, config: WrapperConfig | None = None, **config_fields: Any) -> Any:
    """Wrap a provider client using the active runtime.

    Raises:
        NotInitializedError: initialize() has not been called
    """
    if _active is None:
        raise NotInitializedError("wrap_client()")
    return _active.wrap(client, config, **config_fields)


def wrap_function(
    fn: Callable[..., Any],
    options: MonitorOptions | None = None,
    /,
    **overrides: Any,
) -> Callable[..., Awaitable[Any]]:
    """Wrap a callable; the runtime is looked up on every call."""
    return function_wrapper.wrap_function(fn, options, **overrides)


monitor = function_wrapper.monitor


def report_event(params: EventParams) -> None:
    """Fire-and-forget report. Logs and returns if the SDK is not initialized."""
    if _active is None:
        logger.warning("report_event_not_initialized", task=params.task)
        return
    _active.event(params)


async def report_direct(
    prompt: Any,
    response: Any,
    options: ReportOptions | None = None,
) -> MonitoringResponse | None:
    """Awaited report.

    Raises:
        NotInitializedError: initialize() has not been called
    """
    if _active is None:
        raise NotInitializedError("report_direct()")
    return await _active.report(prompt, response, options)


async def drain(timeout: float | None = None) -> bool:
    """Wait for in-flight reports; True when nothing is left pending."""
    if _active is None:
        return True
    return await _active.drain(timeout)


flush = drain


async def shutdown(timeout: float | None = None) -> None:
    """Drain, close and uninstall the active runtime."""
    global _active
    sdk, _active = _active, None
    runtime_state.clear()
    if sdk is not None:
        await sdk.shutdown(timeout)
