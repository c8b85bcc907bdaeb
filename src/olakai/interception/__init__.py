# src/olakai/interception/__init__.py
"""Call interception: identity, control gate and reporting."""

from olakai.interception.call_monitor import CallMonitor, Stopwatch
from olakai.interception.reporter import Reporter
from olakai.interception.wrapper import DEFAULT_CHAT_ID, MonitorOptions, monitor, wrap_function

__all__ = ["DEFAULT_CHAT_ID", "CallMonitor", "MonitorOptions", "Reporter", "Stopwatch", "monitor", "wrap_function"]
