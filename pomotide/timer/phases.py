"""Phase and status enums shared by the engine and the snapshot codec."""

from __future__ import annotations

from enum import Enum


class TimerPhase(Enum):
    WORK = "work"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"


class TimerStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class PhaseSource(Enum):
    """Where a host-driven phase change came from."""

    TAB = "tab"
    ARROW = "arrow"


class Direction(Enum):
    NEXT = "next"
    PREV = "prev"


# Cyclic order used by navigate().
PHASE_ORDER: tuple[TimerPhase, ...] = (
    TimerPhase.WORK,
    TimerPhase.SHORT_BREAK,
    TimerPhase.LONG_BREAK,
)


def step_phase(phase: TimerPhase, direction: Direction) -> TimerPhase:
    """Neighbour of *phase* in PHASE_ORDER, wrapping at both ends."""
    offset = 1 if direction is Direction.NEXT else -1
    index = PHASE_ORDER.index(phase)
    return PHASE_ORDER[(index + offset) % len(PHASE_ORDER)]


def break_after_work(completed_pomodoros: int, cycle_length: int) -> TimerPhase:
    """LONG_BREAK on every cycle boundary, SHORT_BREAK otherwise."""
    if completed_pomodoros % max(1, cycle_length) == 0:
        return TimerPhase.LONG_BREAK
    return TimerPhase.SHORT_BREAK
