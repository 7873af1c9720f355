"""Tick scheduling for the timer engine.

The engine never uses a repeating interval.  Each tick asks for exactly
one follow-up tick once its own state update is done, so a busy event
loop delays ticks instead of stacking them.
"""

from __future__ import annotations

from typing import Callable, Protocol

from PyQt6.QtCore import QObject, QTimer


TICK_INTERVAL_MS = 1000


class TickScheduler(Protocol):
    def schedule_tick(self, after_ms: int, callback: Callable[[], None]) -> None:
        """Run *callback* once after *after_ms*, replacing any pending tick."""
        ...

    def cancel(self) -> None:
        """Drop the pending tick, if any."""
        ...


class QtTickScheduler(QObject):
    """Single-shot ``QTimer`` implementation of :class:`TickScheduler`."""

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._callback: Callable[[], None] | None = None
        self._qt_timer = QTimer(self)
        self._qt_timer.setSingleShot(True)
        self._qt_timer.timeout.connect(self._fire)

    @property
    def pending(self) -> bool:
        return self._qt_timer.isActive()

    def schedule_tick(self, after_ms: int, callback: Callable[[], None]) -> None:
        self._qt_timer.stop()
        self._callback = callback
        self._qt_timer.start(max(0, int(after_ms)))

    def cancel(self) -> None:
        self._qt_timer.stop()
        self._callback = None

    def _fire(self) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()
