"""Process-wide application state shared by request handlers."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScreenLock:
    is_locked: bool
    reason: str | None = None
    locked_at: datetime | None = None


class AppState:
    """
    Holds the admin screen lock.

    The lock is only changed through ``lock`` and ``unlock_for_all`` so every
    transition is logged and readers always see a consistent snapshot.
    """

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._screen_lock = ScreenLock(is_locked=False)

    @property
    def screen_lock(self) -> ScreenLock:
        with self._mutex:
            return self._screen_lock

    def lock(self, reason: str | None = None) -> ScreenLock:
        with self._mutex:
            self._screen_lock = ScreenLock(
                is_locked=True, reason=reason, locked_at=datetime.now(timezone.utc)
            )
            logger.warning(f"Screen lock enabled: {reason or 'no reason given'}")
            return self._screen_lock

    def unlock_for_all(self) -> ScreenLock:
        with self._mutex:
            self._screen_lock = ScreenLock(is_locked=False)
            logger.info("Screen lock released")
            return self._screen_lock


_app_state = AppState()


def get_app_state() -> AppState:
    return _app_state
