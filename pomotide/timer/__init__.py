"""Timer package."""

from .engine import TimerEngine, CompletionEffects, COMPLETION_COOLDOWN_MS
from .phases import (
    TimerPhase,
    TimerStatus,
    PhaseSource,
    Direction,
    PHASE_ORDER,
)
from .scheduler import TickScheduler, QtTickScheduler, TICK_INTERVAL_MS
from .snapshot import RunningSnapshot, SNAPSHOT_KEY

__all__ = [
    "TimerEngine",
    "CompletionEffects",
    "COMPLETION_COOLDOWN_MS",
    "TimerPhase",
    "TimerStatus",
    "PhaseSource",
    "Direction",
    "PHASE_ORDER",
    "TickScheduler",
    "QtTickScheduler",
    "TICK_INTERVAL_MS",
    "RunningSnapshot",
    "SNAPSHOT_KEY",
]
