"""Shared test helpers for Pomotide."""

from __future__ import annotations

from typing import Callable

from pomotide.timer.phases import TimerPhase


class SignalCollector:
    """Utility to capture pyqtSignal emissions into a list."""

    def __init__(self):
        self.items: list = []

    def slot(self, *args):
        self.items.append(args if len(args) > 1 else args[0] if args else None)

    def __call__(self, *args):
        self.slot(*args)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def last(self):
        return self.items[-1] if self.items else None

    def clear(self):
        self.items.clear()


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now_ms: int = 1_700_000_000_000):
        self.now = now_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class ManualScheduler:
    """Virtual-time tick scheduler driven by a :class:`FakeClock`.

    ``advance(ms)`` moves the clock forward, firing every tick that falls
    due on the way, including the ones those ticks schedule.
    """

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self._due: int | None = None
        self._callback: Callable[[], None] | None = None
        self.scheduled = 0

    @property
    def pending(self) -> bool:
        return self._callback is not None

    def schedule_tick(self, after_ms: int, callback: Callable[[], None]) -> None:
        self._due = self.clock() + after_ms
        self._callback = callback
        self.scheduled += 1

    def cancel(self) -> None:
        self._due = None
        self._callback = None

    def fire(self) -> None:
        """Run the pending tick right now, without moving the clock."""
        callback, self._callback, self._due = self._callback, None, None
        if callback is not None:
            callback()

    def advance(self, ms: int) -> None:
        target = self.clock() + ms
        while self._callback is not None and self._due is not None and self._due <= target:
            self.clock.now = self._due
            self.fire()
        self.clock.now = target


class RecordingEffects:
    """CompletionEffects that remembers every call."""

    def __init__(self):
        self.sounds: list[TimerPhase] = []
        self.notifications: list[tuple[TimerPhase, TimerPhase]] = []

    def play_completion_sound(self, phase: TimerPhase) -> None:
        self.sounds.append(phase)

    def notify_completion(self, phase: TimerPhase, next_phase: TimerPhase) -> None:
        self.notifications.append((phase, next_phase))


class FailingEffects:
    """CompletionEffects whose every call blows up."""

    def play_completion_sound(self, phase: TimerPhase) -> None:
        raise RuntimeError("no audio device")

    def notify_completion(self, phase: TimerPhase, next_phase: TimerPhase) -> None:
        raise RuntimeError("no notification centre")


class BrokenStore:
    """Key-value store where every operation raises, like a full disk."""

    def get(self, key: str) -> str | None:
        raise OSError("disk unavailable")

    def set(self, key: str, value: str) -> None:
        raise OSError("disk full")

    def remove(self, key: str) -> None:
        raise OSError("disk unavailable")


def run_out(engine) -> None:
    """Jump the current phase to its last second and tick it to zero."""
    engine._remaining[engine.phase] = 1
    engine.tick()
