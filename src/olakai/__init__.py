"""Olakai SDK: monitoring and control for generative-AI provider calls."""

__version__ = "1.2.0"

from olakai.contracts.enums import Provider  # noqa: E402
from olakai.contracts.errors import (  # noqa: E402
    CircuitOpenError,
    DeliveryError,
    ExecutionBlockedError,
    NotInitializedError,
    OfflineError,
    OlakaiError,
)
from olakai.core.config import CallContext, OlakaiSettings, WrapperConfig, load_settings  # noqa: E402
from olakai.core.logging import configure_logging  # noqa: E402
from olakai.interception.wrapper import MonitorOptions  # noqa: E402
from olakai.sdk import (  # noqa: E402
    EventParams,
    OlakaiSDK,
    ReportOptions,
    current,
    drain,
    flush,
    initialize,
    monitor,
    report_direct,
    report_event,
    shutdown,
    wrap_client,
    wrap_function,
)

__all__ = [
    "CallContext",
    "CircuitOpenError",
    "DeliveryError",
    "EventParams",
    "ExecutionBlockedError",
    "MonitorOptions",
    "NotInitializedError",
    "OfflineError",
    "OlakaiError",
    "OlakaiSDK",
    "OlakaiSettings",
    "Provider",
    "ReportOptions",
    "WrapperConfig",
    "__version__",
    "configure_logging",
    "current",
    "drain",
    "flush",
    "initialize",
    "load_settings",
    "monitor",
    "report_direct",
    "report_event",
    "shutdown",
    "wrap_client",
    "wrap_function",
]
