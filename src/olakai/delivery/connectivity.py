# src/olakai/delivery/connectivity.py
"""Best-effort online/offline signal consulted before every send."""

from __future__ import annotations

from collections.abc import Callable

import structlog

logger = structlog.get_logger(__name__)


class Connectivity:
    """Reports whether the process is believed to be online.

    The flag is set explicitly by the embedding application; an optional
    check callable is consulted while the flag says online. A check that
    raises is treated as online so a broken check never stops delivery.
    """

    def __init__(self, check: Callable[[], bool] | None = None) -> None:
        self._check = check
        self._online = True

    @property
    def online(self) -> bool:
        if not self._online:
            return False
        if self._check is None:
            return True
        try:
            return bool(self._check())
        except Exception as e:
            logger.debug("connectivity_check_failed", error=str(e), error_type=type(e).__name__)
            return True

    def mark_offline(self) -> None:
        if self._online:
            logger.info("connectivity_offline")
        self._online = False

    def mark_online(self) -> None:
        if not self._online:
            logger.info("connectivity_online")
        self._online = True
