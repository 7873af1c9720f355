"""Session-scoped totals: focus stopwatch and completed pomodoro count.

Both outlive individual phases and only go back to zero when the user
explicitly resets them (a two-step confirm, see :class:`ResetConfirmation`).
"""

from __future__ import annotations

import logging
from typing import Callable

from ..database.kv import KeyValueStore, safe_get, safe_remove, safe_set


log = logging.getLogger(__name__)

FOCUS_SECONDS_KEY = "pomotide_session_focus_seconds"
COMPLETED_POMODOROS_KEY = "pomotide_completed_pomodoros"

FOCUS_PERSIST_THROTTLE_MS = 5000
RESET_CONFIRM_WINDOW_MS = 4000


def _load_counter(store: KeyValueStore, key: str) -> int:
    raw = safe_get(store, key)
    if raw is None:
        return 0
    try:
        value = int(raw.strip())
    except (ValueError, AttributeError):
        log.warning("Ignoring unreadable counter %s=%.40r", key, raw)
        return 0
    return max(0, value)


class SessionTotals:
    """Focus seconds and completed pomodoros, persisted under their own keys.

    Focus seconds change every second while working, so they are written
    at most once per ``FOCUS_PERSIST_THROTTLE_MS`` and flushed on quit.
    The completed count changes rarely and is written every time.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], int]) -> None:
        self._store = store
        self._clock = clock
        self._focus_seconds = _load_counter(store, FOCUS_SECONDS_KEY)
        self._completed = _load_counter(store, COMPLETED_POMODOROS_KEY)
        self._last_focus_write: int | None = None
        self._focus_dirty = False

    @property
    def focus_seconds(self) -> int:
        return self._focus_seconds

    @property
    def completed_pomodoros(self) -> int:
        return self._completed

    def add_focus_second(self) -> None:
        self._focus_seconds += 1
        self._focus_dirty = True
        now = self._clock()
        if (
            self._last_focus_write is None
            or now - self._last_focus_write >= FOCUS_PERSIST_THROTTLE_MS
        ):
            self._write_focus(now)

    def increment_completed(self) -> int:
        self._completed += 1
        safe_set(self._store, COMPLETED_POMODOROS_KEY, str(self._completed))
        return self._completed

    def flush(self) -> None:
        """Write focus seconds now, ignoring the throttle."""
        if self._focus_dirty:
            self._write_focus(self._clock())

    def clear(self) -> None:
        self._focus_seconds = 0
        self._completed = 0
        self._focus_dirty = False
        self._last_focus_write = None
        safe_remove(self._store, FOCUS_SECONDS_KEY)
        safe_remove(self._store, COMPLETED_POMODOROS_KEY)
        log.info("Session totals cleared")

    def _write_focus(self, now: int) -> None:
        if safe_set(self._store, FOCUS_SECONDS_KEY, str(self._focus_seconds)):
            self._focus_dirty = False
        self._last_focus_write = now


class ResetConfirmation:
    """Two-press confirmation that expires after *window_ms*.

    ``press()`` arms on the first call and returns ``False``; a second call
    inside the window disarms and returns ``True``.
    """

    def __init__(
        self,
        clock: Callable[[], int],
        window_ms: int = RESET_CONFIRM_WINDOW_MS,
    ) -> None:
        self._clock = clock
        self._window_ms = window_ms
        self._armed_at: int | None = None

    @property
    def armed(self) -> bool:
        if self._armed_at is None:
            return False
        if self._clock() - self._armed_at >= self._window_ms:
            self._armed_at = None
            return False
        return True

    def press(self) -> bool:
        if self.armed:
            self._armed_at = None
            return True
        self._armed_at = self._clock()
        return False

    def disarm(self) -> None:
        self._armed_at = None
