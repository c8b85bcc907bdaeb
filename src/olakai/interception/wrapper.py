# src/olakai/interception/wrapper.py
"""Function monitoring: wrap any sync or async callable.

Each invocation of a wrapped function runs this sequence:

    INIT -> IDENTIFY -> CONTROL_CHECK -> BLOCKED | EXECUTING
    EXECUTING -> SUCCESS | FAILED -> REPORTED

The wrapper is always async. Whatever the wrapped callable returns or
raises reaches the caller unchanged; the only error the wrapper adds is
ExecutionBlockedError when the control service denies the call.
"""

from __future__ import annotations

import functools
import inspect
import traceback
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any, TypeVar

import structlog

from olakai import runtime as runtime_state
from olakai.contracts.payloads import ANONYMOUS_EMAIL, ControlPayload, MonitorPayload
from olakai.core.sanitize import prepare_body
from olakai.interception.call_monitor import CallMonitor, Resolver, Stopwatch

logger = structlog.get_logger(__name__)

R = TypeVar("R")

DEFAULT_CHAT_ID = "123"


@dataclass(frozen=True, slots=True)
class MonitorOptions:
    """How a wrapped function's calls are identified, gated and reported.

    ``chat_id`` and ``email`` are either static strings or callables that
    receive the wrapped function's own ``*args, **kwargs``.
    """

    chat_id: Resolver = None
    email: Resolver = None
    user_id: str | None = None
    task: str | None = None
    sub_task: str | None = None
    sanitize: bool = False
    report_errors: bool = True
    enable_control: bool | None = None
    override_criteria: tuple[str, ...] = ()
    should_score: bool | None = None
    custom_data: dict[str, Any] | None = None


def call_prompt(args: tuple[Any, ...], kwargs: Mapping[str, Any]) -> Any:
    """The value reported as the prompt of a monitored function call."""
    if args and kwargs:
        return {"args": list(args), "kwargs": dict(kwargs)}
    if kwargs:
        return dict(kwargs)
    if len(args) == 1:
        return args[0]
    return list(args)


def describe_error(exc: BaseException) -> str:
    return "".join(traceback.format_exception(exc)).rstrip()


async def invoke(fn: Callable[..., Any], args: tuple[Any, ...], kwargs: Mapping[str, Any]) -> Any:
    result = fn(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def wrap_function(
    fn: Callable[..., R | Awaitable[R]],
    options: MonitorOptions | None = None,
    /,
    *,
    call_monitor: CallMonitor | None = None,
    **overrides: Any,
) -> Callable[..., Awaitable[R]]:
    """Return an async function that monitors every call to ``fn``.

    Args:
        fn: Sync or async callable to wrap
        options: Monitoring options; keyword overrides replace individual fields
        call_monitor: Bind to this CallMonitor instead of the active runtime's

    If no runtime is active when the wrapper is called, ``fn`` runs
    unmonitored.
    """
    opts = replace(options or MonitorOptions(), **overrides) if overrides else options or MonitorOptions()
    name = getattr(fn, "__qualname__", repr(fn))

    @functools.wraps(fn)
    async def monitored(*args: Any, **kwargs: Any) -> R:
        gate = call_monitor
        if gate is None:
            active = runtime_state.active()
            gate = active.monitor if active is not None else None
        if gate is None:
            logger.warning("monitor_not_initialized", function=name)
            return await invoke(fn, args, kwargs)  # type: ignore[no-any-return]
        return await _run_monitored(gate, fn, opts, args, kwargs)  # type: ignore[no-any-return]

    return monitored


def monitor(
    options: MonitorOptions | Callable[..., Any] | None = None,
    /,
    **overrides: Any,
) -> Any:
    """Decorator form of wrap_function(); usable bare or with options.

    Example:
        @monitor(task="summarize", email=lambda doc, **_: doc.owner)
        async def summarize(doc): ...
    """
    if callable(options) and not isinstance(options, MonitorOptions):
        return wrap_function(options, **overrides)

    def decorator(fn: Callable[..., Any]) -> Callable[..., Awaitable[Any]]:
        return wrap_function(fn, options, **overrides)

    return decorator


async def _run_monitored(
    gate: CallMonitor,
    fn: Callable[..., Any],
    opts: MonitorOptions,
    args: tuple[Any, ...],
    kwargs: Mapping[str, Any],
) -> Any:
    stopwatch = Stopwatch()

    # IDENTIFY
    chat_id = gate.resolve(opts.chat_id, DEFAULT_CHAT_ID, args, kwargs, name="chat_id")
    email = gate.resolve(opts.email, ANONYMOUS_EMAIL, args, kwargs, name="email")
    prompt = prepare_body(call_prompt(args, kwargs), sanitize=opts.sanitize)
    base = MonitorPayload(
        prompt=prompt,
        response="",
        chat_id=chat_id,
        email=email,
        user_id=opts.user_id,
        task=opts.task,
        sub_task=opts.sub_task,
        should_score=opts.should_score,
        custom_data=opts.custom_data,
    )

    # CONTROL_CHECK
    sensitivity: tuple[str, ...] = ()
    if gate.control_enabled(opts.enable_control):
        verdict = await gate.check_control(
            ControlPayload(
                prompt=prompt,
                chat_id=chat_id,
                email=email,
                task=opts.task,
                sub_task=opts.sub_task,
                override_criteria=opts.override_criteria,
            )
        )
        if not verdict.allowed:
            raise gate.block(verdict, replace(base, request_time_ms=stopwatch.elapsed_ms()))
        sensitivity = verdict.details.detected_sensitivity

    # EXECUTING
    try:
        result = await invoke(fn, args, kwargs)
    except Exception as exc:
        if opts.report_errors:
            error_message = describe_error(exc)
            elapsed_ms = stopwatch.elapsed_ms()
            gate.report(
                lambda: replace(base, error_message=error_message, request_time_ms=elapsed_ms, sensitivity=sensitivity)
            )
        raise

    elapsed_ms = stopwatch.elapsed_ms()
    gate.report(
        lambda: replace(
            base,
            response=prepare_body(result, sanitize=opts.sanitize),
            request_time_ms=elapsed_ms,
            sensitivity=sensitivity,
        )
    )
    return result
