"""Timer state machine for Pomotide.

Phases
------
WORK → SHORT_BREAK | LONG_BREAK → WORK → ...   (on completion)
WORK ⇄ SHORT_BREAK ⇄ LONG_BREAK ⇄ WORK         (navigate, wraps)

Statuses
--------
IDLE      Phase selected, countdown not started (or finished, waiting).
RUNNING   Counting down, one tick per second.
PAUSED    Countdown frozen.

Every phase keeps its own remaining time, so hopping between phases
never loses progress in the phase being left.  An active (running or
paused) countdown is written through to the key-value store on every
change and every tick; see :mod:`.snapshot` for how it is recovered.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol

from PyQt6.QtCore import QObject, pyqtSignal

from ..database.kv import KeyValueStore
from ..settings import Settings
from .formatting import progress_fraction
from .phases import (
    Direction,
    PhaseSource,
    TimerPhase,
    TimerStatus,
    break_after_work,
    step_phase,
)
from .scheduler import TICK_INTERVAL_MS, QtTickScheduler, TickScheduler
from .snapshot import (
    RunningSnapshot,
    discard_snapshot,
    elapsed_seconds,
    read_snapshot,
    reconcile,
    write_snapshot,
)
from .totals import ResetConfirmation, SessionTotals


log = logging.getLogger(__name__)

# How long the completion latch stays held after the phase has changed.
COMPLETION_COOLDOWN_MS = 750

# A tick arriving this long after the last stored snapshot missed ticks
# (system sleep, a stalled event loop) and catches up from the wall clock.
MISSED_TICK_GAP_MS = 2 * TICK_INTERVAL_MS


class CompletionEffects(Protocol):
    """Sound / notification side effects fired when a phase completes."""

    def play_completion_sound(self, phase: TimerPhase) -> None: ...

    def notify_completion(self, phase: TimerPhase, next_phase: TimerPhase) -> None: ...


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


def _minutes_by_phase(settings: Settings) -> dict[TimerPhase, int]:
    return {
        TimerPhase.WORK: settings.work_duration,
        TimerPhase.SHORT_BREAK: settings.short_break_duration,
        TimerPhase.LONG_BREAK: settings.long_break_duration,
    }


# ── engine ────────────────────────────────────────────────────────────────


class TimerEngine(QObject):
    """Pomodoro countdown with per-phase remaining times and crash recovery.

    Signals
    -------
    phase_changed(phase: TimerPhase)
        Emitted on every phase transition, user- or completion-driven.
    session_completed(phase: TimerPhase, duration_minutes: int)
        Emitted exactly once per completed phase.
    status_changed(status: TimerStatus)
    remaining_changed(remaining_seconds: int)
        Remaining time of the current phase, after ticks and transitions.
    focus_seconds_changed(seconds: int)
    completed_count_changed(count: int)
    """

    phase_changed = pyqtSignal(object)
    session_completed = pyqtSignal(object, int)
    status_changed = pyqtSignal(object)
    remaining_changed = pyqtSignal(int)
    focus_seconds_changed = pyqtSignal(int)
    completed_count_changed = pyqtSignal(int)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        store: KeyValueStore,
        settings: Settings | None = None,
        scheduler: TickScheduler | None = None,
        clock: Callable[[], int] | None = None,
        effects: CompletionEffects | None = None,
    ) -> None:
        super().__init__(parent)

        # ── collaborators ─────────────────────────────────────────────
        self._store = store
        self._scheduler: TickScheduler = (
            scheduler if scheduler is not None else QtTickScheduler(self)
        )
        self._clock = clock or wall_clock_ms
        self._effects = effects

        # ── configuration ─────────────────────────────────────────────
        self._settings: Settings = (settings or Settings()).normalized()

        # ── countdown state ───────────────────────────────────────────
        self._phase: TimerPhase = TimerPhase.WORK
        self._status: TimerStatus = TimerStatus.IDLE
        self._remaining: dict[TimerPhase, int] = {
            phase: self.duration_seconds(phase) for phase in TimerPhase
        }

        # ── totals ────────────────────────────────────────────────────
        self._totals = SessionTotals(store, self._clock)
        self._reset_confirm = ResetConfirmation(self._clock)

        # ── completion latch ──────────────────────────────────────────
        self._completion_latched: bool = False
        self._latch_release_at: int | None = None

        self._restore()

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def phase(self) -> TimerPhase:
        return self._phase

    @property
    def status(self) -> TimerStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status is TimerStatus.RUNNING

    @property
    def remaining(self) -> int:
        """Seconds left in the current phase."""
        return self._remaining[self._phase]

    def remaining_for(self, phase: TimerPhase) -> int:
        return self._remaining[phase]

    def duration_seconds(self, phase: TimerPhase) -> int:
        """Configured full length of *phase*."""
        return _minutes_by_phase(self._settings)[phase] * 60

    @property
    def total_duration(self) -> int:
        return self.duration_seconds(self._phase)

    @property
    def progress(self) -> float:
        """0.0 → 1.0 progress through the current phase."""
        return progress_fraction(self.total_duration, self.remaining)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def cycle_length(self) -> int:
        return self._settings.cycle_length

    @property
    def completed_pomodoros(self) -> int:
        return self._totals.completed_pomodoros

    @property
    def cycle_position(self) -> int:
        """Work sessions completed in the current cycle."""
        return self.completed_pomodoros % self.cycle_length

    @property
    def focus_seconds(self) -> int:
        return self._totals.focus_seconds

    @property
    def totals_reset_armed(self) -> bool:
        return self._reset_confirm.armed

    # ══════════════════════════════════════════════════════════════════
    #  CONTROLS
    # ══════════════════════════════════════════════════════════════════

    def toggle(self) -> None:
        """Start or resume when not running, pause when running."""
        if self._status is TimerStatus.RUNNING:
            self._apply(self._phase, TimerStatus.PAUSED)
        else:
            self._apply(self._phase, TimerStatus.RUNNING)

    def navigate(self, direction: Direction | str) -> None:
        """Step to the neighbouring phase and start it."""
        direction = Direction(direction)
        self._release_latch()
        self._switch(step_phase(self._phase, direction), auto_start=True)

    def set_phase(
        self,
        phase: TimerPhase | str,
        source: PhaseSource | str | None = None,
    ) -> None:
        """Host-driven phase change.

        Arrow navigation always auto-starts.  Tab clicks auto-start when
        ``auto_start_on_navigation`` is on.  Changes without a source
        leave the new phase idle.
        """
        phase = TimerPhase(phase)
        if source is not None:
            source = PhaseSource(source)
        if phase is self._phase:
            return
        if source is PhaseSource.ARROW:
            auto_start = True
        elif source is PhaseSource.TAB:
            auto_start = self._settings.auto_start_on_navigation
        else:
            auto_start = False
        self._release_latch()
        self._switch(phase, auto_start=auto_start)

    def reset_current_phase(self) -> None:
        """Refill the current phase and stop.  Other phases and totals stay."""
        self._remaining[self._phase] = self.duration_seconds(self._phase)
        discard_snapshot(self._store)
        self._apply(self._phase, TimerStatus.IDLE)

    def request_totals_reset(self) -> bool:
        """First call arms the reset, a second call within the window commits."""
        if not self._reset_confirm.press():
            log.debug("Session totals reset armed")
            return False
        self.reset_session_totals()
        return True

    def reset_session_totals(self) -> None:
        """Zero focus seconds and completed pomodoros.  The countdown is untouched."""
        self._reset_confirm.disarm()
        self._totals.clear()
        self.focus_seconds_changed.emit(0)
        self.completed_count_changed.emit(0)

    def apply_settings(self, settings: Settings) -> None:
        """Adopt new configuration without disturbing an active countdown."""
        new = settings.normalized()
        old_minutes = _minutes_by_phase(self._settings)
        new_minutes = _minutes_by_phase(new)
        self._settings = new

        changed = [p for p in TimerPhase if old_minutes[p] != new_minutes[p]]
        if not changed:
            return

        # Remaining times in a stored snapshot refer to the old lengths.
        discard_snapshot(self._store)

        active = self._phase if self._status is not TimerStatus.IDLE else None
        for phase in changed:
            if phase is not active:
                self._remaining[phase] = self.duration_seconds(phase)
        self._persist()
        log.info(
            "Durations changed for %s",
            ", ".join(p.value for p in changed),
        )
        self.remaining_changed.emit(self.remaining)

    # ══════════════════════════════════════════════════════════════════
    #  HOST EVENTS
    # ══════════════════════════════════════════════════════════════════

    def handle_visibility_change(self, visible: bool) -> None:
        """Persist when hidden; correct tick drift from wall-clock when shown."""
        if self._status is not TimerStatus.RUNNING:
            return
        if not visible:
            self._persist()
            return

        snapshot = self._running_snapshot()
        if snapshot is None:
            self._persist()
            return
        if not self._catch_up(snapshot, self._clock()):
            return

        if self.remaining == 0 and self.complete():
            return
        self._schedule_next_tick()

    def handle_unload(self) -> None:
        """Flush everything synchronously before the application quits."""
        self._totals.flush()
        self._persist()
        self._scheduler.cancel()

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL: timer mechanics
    # ══════════════════════════════════════════════════════════════════

    def tick(self) -> None:
        """One-second countdown step; reschedules itself while running."""
        if self._status is not TimerStatus.RUNNING:
            return

        phase = self._phase
        if not self._caught_up_after_gap() and self._remaining[phase] > 0:
            self._remaining[phase] = max(0, self._remaining[phase] - 1)
            if phase is TimerPhase.WORK:
                self._totals.add_focus_second()
                self.focus_seconds_changed.emit(self._totals.focus_seconds)
            self._persist()
            self.remaining_changed.emit(self._remaining[phase])

        if self._remaining[phase] == 0 and self.complete():
            return
        self._schedule_next_tick()

    def complete(self) -> bool:
        """Finish the current phase if it has run out.

        Returns ``True`` when the completion was handled by this call.
        """
        if self._status is not TimerStatus.RUNNING or self.remaining > 0:
            return False
        if self._latch_held():
            log.debug("Completion of %s already handled", self._phase.value)
            return False
        self._completion_latched = True
        self._latch_release_at = None

        finished = self._phase
        minutes = _minutes_by_phase(self._settings)[finished]
        self._remaining[finished] = self.duration_seconds(finished)

        if finished is TimerPhase.WORK:
            count = self._totals.increment_completed()
            self.completed_count_changed.emit(count)
            next_phase = break_after_work(count, self.cycle_length)
            auto_start = self._settings.auto_start_breaks
        else:
            next_phase = TimerPhase.WORK
            auto_start = self._settings.auto_start_pomodoros

        log.info(
            "Completed %s (%d min), next %s%s",
            finished.value, minutes, next_phase.value,
            " (auto-start)" if auto_start else "",
        )
        self._switch(next_phase, auto_start=auto_start)
        self._latch_release_at = self._clock() + COMPLETION_COOLDOWN_MS

        self.session_completed.emit(finished, minutes)
        self._run_effects(finished, next_phase)
        return True

    def _switch(self, phase: TimerPhase, *, auto_start: bool) -> None:
        if not auto_start:
            self._remaining[phase] = self.duration_seconds(phase)
        status = TimerStatus.RUNNING if auto_start else TimerStatus.IDLE
        self._apply(phase, status)

    def _apply(self, phase: TimerPhase, status: TimerStatus) -> None:
        """Set phase and status, arm or cancel the tick, persist, notify."""
        phase_changed = phase is not self._phase
        status_changed = status is not self._status

        if status is TimerStatus.RUNNING and self._remaining[phase] <= 0:
            self._remaining[phase] = self.duration_seconds(phase)

        self._phase = phase
        self._status = status
        if status is TimerStatus.RUNNING:
            self._schedule_next_tick()
        else:
            self._scheduler.cancel()
        self._persist()

        if phase_changed:
            self.phase_changed.emit(phase)
        if status_changed:
            self.status_changed.emit(status)
        self.remaining_changed.emit(self.remaining)

    def _schedule_next_tick(self) -> None:
        self._scheduler.schedule_tick(TICK_INTERVAL_MS, self.tick)

    def _running_snapshot(self) -> RunningSnapshot | None:
        snapshot = read_snapshot(self._store)
        if (
            snapshot is None
            or snapshot.phase is not self._phase
            or snapshot.status is not TimerStatus.RUNNING
        ):
            return None
        return snapshot

    def _caught_up_after_gap(self) -> bool:
        """Adopt wall-clock time a late tick missed, e.g. across system sleep."""
        snapshot = self._running_snapshot()
        if snapshot is None:
            return False
        now = self._clock()
        if now - snapshot.timestamp < MISSED_TICK_GAP_MS:
            return False
        return self._catch_up(snapshot, now)

    def _catch_up(self, snapshot: RunningSnapshot, now: int) -> bool:
        """Reconcile the current phase against *snapshot*.

        Returns ``True`` when whole seconds had passed and were applied.
        """
        elapsed = elapsed_seconds(snapshot, now)
        if elapsed <= 0:
            return False
        caught_up = reconcile(snapshot, now)
        self._remaining[self._phase] = caught_up.remaining_for(self._phase) or 0
        log.debug("Caught up %ss of %s from the wall clock", elapsed, self._phase.value)
        self._persist()
        self.remaining_changed.emit(self.remaining)
        return True

    def _latch_held(self) -> bool:
        if not self._completion_latched:
            return False
        if self._latch_release_at is not None and self._clock() >= self._latch_release_at:
            self._release_latch()
            return False
        return True

    def _release_latch(self) -> None:
        self._completion_latched = False
        self._latch_release_at = None

    def _run_effects(self, finished: TimerPhase, next_phase: TimerPhase) -> None:
        if self._effects is None:
            return
        try:
            if self._settings.sound_enabled:
                self._effects.play_completion_sound(finished)
            if self._settings.notifications_enabled:
                self._effects.notify_completion(finished, next_phase)
        except Exception:
            log.warning("Completion side effect failed for %s", finished.value, exc_info=True)

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL: snapshot persistence
    # ══════════════════════════════════════════════════════════════════

    def _persist(self) -> None:
        if self._status is TimerStatus.IDLE:
            return
        write_snapshot(self._store, RunningSnapshot(
            phase=self._phase,
            status=self._status,
            remaining=dict(self._remaining),
            timestamp=self._clock(),
        ))

    def _restore(self) -> None:
        snapshot = read_snapshot(self._store)
        if snapshot is None:
            return

        restored = reconcile(snapshot, self._clock())
        for phase in TimerPhase:
            seconds = restored.remaining_for(phase)
            if seconds:
                self._remaining[phase] = min(seconds, self.duration_seconds(phase))
        self._phase = restored.phase

        if restored.remaining_for(restored.phase):
            self._status = restored.status
            self._persist()
            if self._status is TimerStatus.RUNNING:
                self._schedule_next_tick()
            log.info(
                "Restored %s %s with %ss left",
                self._status.value, self._phase.value, self.remaining,
            )
        else:
            # Ran out while closed: come back idle, nothing is replayed.
            self._remaining[self._phase] = self.duration_seconds(self._phase)
            self._status = TimerStatus.IDLE
            discard_snapshot(self._store)
            log.info("Snapshot of %s ran out while closed, starting idle", self._phase.value)
