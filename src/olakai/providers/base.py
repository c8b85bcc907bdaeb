# src/olakai/providers/base.py
"""Base class for provider adapters.

An adapter turns one intercepted provider call into a PendingCall:

    pending = await adapter.begin(request, stream=False)   # identity + control gate
    try:
        result = await original(**request)
    except Exception as exc:
        pending.fail(exc)
        raise
    pending.succeed(result)         # or: return pending.stream(result)

Provider-specific subclasses only decide WHICH client methods are
intercepted and supply a normalizer and a stream surface. The wrapper
objects they return delegate every other attribute to the real client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any, ClassVar

import structlog

from olakai import runtime as runtime_state
from olakai.contracts.enums import Provider
from olakai.contracts.metadata import LLMMetadata, PartialMetadata, merge_partial
from olakai.contracts.payloads import ANONYMOUS_EMAIL, ControlPayload, MonitorPayload
from olakai.core.config import CallContext, WrapperConfig
from olakai.core.sanitize import prepare_body
from olakai.interception.call_monitor import CallMonitor, Stopwatch
from olakai.interception.wrapper import describe_error, invoke
from olakai.normalize.base import Normalizer
from olakai.streaming.accumulator import StreamAccumulator, StreamOutcome
from olakai.streaming.adapters import StreamHandleProxy, StreamSurface

logger = structlog.get_logger(__name__)


class Passthrough:
    """Delegates every attribute it does not define to the wrapped object."""

    def __init__(self, target: Any) -> None:
        self._target = target

    def __getattr__(self, name: str) -> Any:
        target = self.__dict__.get("_target")
        if target is None:
            raise AttributeError(name)
        return getattr(target, name)

    def __repr__(self) -> str:
        return f"<monitored {self._target!r}>"


class PendingCall:
    """One intercepted provider call, from control check to report.

    A call begun while no runtime is active has no ``gate``: it runs
    and accumulates as usual but reports nothing.
    """

    def __init__(
        self,
        adapter: ProviderAdapter,
        gate: CallMonitor | None,
        base: MonitorPayload,
        request_metadata: PartialMetadata,
        stopwatch: Stopwatch,
    ) -> None:
        self._adapter = adapter
        self._gate = gate
        self._base = base
        self._request_metadata = request_metadata
        self._stopwatch = stopwatch
        self._sensitivity: tuple[str, ...] = ()
        self._accumulator: StreamAccumulator | None = None

    @property
    def base(self) -> MonitorPayload:
        return self._base

    @property
    def monitored(self) -> bool:
        return self._gate is not None

    def allow(self, sensitivity: tuple[str, ...]) -> None:
        self._sensitivity = sensitivity

    def succeed(self, response: Any) -> None:
        normalizer = self._adapter.normalizer
        metadata = merge_partial(self._request_metadata, normalizer.extract_response_metadata(response))
        self._report(normalizer.extract_response_text(response), metadata)

    def fail(self, exc: BaseException) -> None:
        self._report("", self._request_metadata, error_message=describe_error(exc))

    def accumulator(self) -> StreamAccumulator:
        """The accumulator for this call's stream, created on first use."""
        if self._accumulator is None:
            self._accumulator = StreamAccumulator(
                self._adapter.normalizer,
                self._on_stream_complete,
                initial_metadata=self._request_metadata,
            )
        return self._accumulator

    def stream(self, handle: Any) -> StreamHandleProxy:
        return StreamHandleProxy(handle, self.accumulator(), self._adapter.stream_surface)

    def _on_stream_complete(self, outcome: StreamOutcome) -> None:
        self._report(outcome.text, outcome.metadata, error_message=outcome.error_message)

    def _report(self, response: Any, metadata: PartialMetadata, *, error_message: str | None = None) -> None:
        if self._gate is None:
            return
        timing = self._stopwatch.timing()
        provider = str(self._adapter.provider)
        sanitize = self._adapter.config.sanitize

        def build() -> MonitorPayload:
            llm_metadata = LLMMetadata.from_partial(metadata, provider=provider, timing=timing)
            return replace(
                self._base,
                response=prepare_body(response, sanitize=sanitize),
                tokens=llm_metadata.tokens.total,
                request_time_ms=timing.duration_ms,
                sensitivity=self._sensitivity,
                error_message=error_message,
                llm_metadata=llm_metadata,
            )

        self._gate.report(build)


class ProviderAdapter(ABC):
    """Monitoring logic shared by every provider wrapper.

    An adapter built with a ``call_monitor`` is bound to it. One built
    with None looks up the active runtime on every call, so wrappers
    keep working across initialize() calls and run unmonitored while no
    runtime is installed.
    """

    provider: ClassVar[Provider] = Provider.CUSTOM
    normalizer: ClassVar[Normalizer] = Normalizer()
    stream_surface: ClassVar[StreamSurface] = StreamSurface()

    def __init__(self, call_monitor: CallMonitor | None, config: WrapperConfig) -> None:
        self._call_monitor = call_monitor
        self.config = config
        self.api_key: str | None = None

    @abstractmethod
    def wrap(self, client: Any) -> Any:
        """Return a monitored stand-in for ``client``."""

    def resolve_monitor(self) -> CallMonitor | None:
        if self._call_monitor is not None:
            return self._call_monitor
        active = runtime_state.active()
        return active.monitor if active is not None else None

    async def begin(
        self,
        request: Mapping[str, Any],
        *,
        stream: bool,
        context: CallContext | None = None,
    ) -> PendingCall:
        """Identify the call and run the control gate.

        Raises:
            ExecutionBlockedError: The control service denied the call
        """
        stopwatch = Stopwatch()
        gate = self.resolve_monitor()
        ctx = _merge_context(self.config.default_context, context)
        request_metadata = merge_partial(
            self.normalizer.extract_request_metadata(request),
            {"api_key": ctx.api_key or self.api_key, "stream_mode": stream},
        )
        prompt = prepare_body(self.normalizer.extract_prompt(request), sanitize=self.config.sanitize)
        if gate is None:
            logger.warning("monitor_not_initialized", provider=str(self.provider))
            base = MonitorPayload(prompt=prompt, response="", chat_id=ctx.chat_id or "")
            return PendingCall(self, None, base, request_metadata, stopwatch)

        base = MonitorPayload(
            prompt=prompt,
            response="",
            chat_id=ctx.chat_id or gate.session_id,
            email=ctx.user_email or ANONYMOUS_EMAIL,
            user_id=ctx.user_id,
            task=ctx.task,
            sub_task=ctx.sub_task,
            should_score=ctx.should_score,
            custom_data=dict(ctx.custom_data) if ctx.custom_data else None,
        )
        pending = PendingCall(self, gate, base, request_metadata, stopwatch)

        override = ctx.enable_control if ctx.enable_control is not None else self.config.enable_control
        if gate.control_enabled(override):
            verdict = await gate.check_control(
                ControlPayload(
                    prompt=prompt,
                    chat_id=base.chat_id,
                    email=base.email,
                    task=base.task,
                    sub_task=base.sub_task,
                )
            )
            if not verdict.allowed:
                llm_metadata = LLMMetadata.from_partial(
                    request_metadata, provider=str(self.provider), timing=stopwatch.timing()
                )
                raise gate.block(
                    verdict,
                    replace(base, request_time_ms=stopwatch.elapsed_ms(), llm_metadata=llm_metadata),
                )
            pending.allow(verdict.details.detected_sensitivity)
        return pending

    async def call(
        self,
        original: Callable[..., Any],
        request: Mapping[str, Any],
        *,
        stream: bool = False,
        context: CallContext | None = None,
    ) -> Any:
        """Run ``original(**request)`` under monitoring."""
        pending = await self.begin(request, stream=stream, context=context)
        try:
            result = await invoke(original, (), request)
        except Exception as exc:
            pending.fail(exc)
            raise
        if stream:
            return pending.stream(result)
        pending.succeed(result)
        return result


def _merge_context(default: CallContext, override: CallContext | None) -> CallContext:
    if override is None:
        return default
    return default.model_copy(update=override.model_dump(exclude_none=True))
