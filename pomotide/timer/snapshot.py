"""Running-timer snapshot: wire format, storage, and wall-clock reconciliation.

A snapshot is what lets a countdown survive a restart::

    {"phase": "work", "status": "running",
     "remainingTimes": {"work": 600, "short_break": 300, "long_break": 900},
     "timestamp": 1700000000000}

``timestamp`` is the epoch-millisecond wall-clock time of the write.
Whenever the engine comes back from a gap in which ticks may not have
run (application start, window shown again after sleep or throttling),
it runs :func:`reconcile` against the stored snapshot; the timestamp is
authoritative over however many ticks happened to fire in between.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, replace
from typing import Any

from ..database.kv import KeyValueStore, safe_get, safe_remove, safe_set
from .phases import TimerPhase, TimerStatus


log = logging.getLogger(__name__)

SNAPSHOT_KEY = "pomotide_timer_snapshot"

# Only active countdowns are ever written.
_SNAPSHOT_STATUSES = (TimerStatus.RUNNING, TimerStatus.PAUSED)


@dataclass(frozen=True)
class RunningSnapshot:
    phase: TimerPhase
    status: TimerStatus
    remaining: dict[TimerPhase, int | None]
    timestamp: int  # epoch ms

    def remaining_for(self, phase: TimerPhase) -> int | None:
        """Seconds left for *phase*, or ``None`` if the snapshot lacks it."""
        return self.remaining.get(phase)


# ── codec ────────────────────────────────────────────────────────────────


def encode_snapshot(snapshot: RunningSnapshot) -> str:
    return json.dumps({
        "phase": snapshot.phase.value,
        "status": snapshot.status.value,
        "remainingTimes": {
            phase.value: seconds
            for phase, seconds in snapshot.remaining.items()
            if seconds is not None
        },
        "timestamp": snapshot.timestamp,
    })


def _seconds(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"not a number: {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"not finite: {value!r}")
    return max(0, int(value))


def decode_snapshot(raw: str | None) -> RunningSnapshot | None:
    """Parse a stored snapshot.  Anything malformed decodes to ``None``."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("snapshot is not an object")
        times = data["remainingTimes"]
        if not isinstance(times, dict):
            raise ValueError("remainingTimes is not an object")
        timestamp = data["timestamp"]
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValueError("timestamp is not a number")
        status = TimerStatus(data["status"])
        if status not in _SNAPSHOT_STATUSES:
            raise ValueError(f"unexpected status {status.value!r}")
        phase = TimerPhase(data["phase"])
        remaining = {
            p: _seconds(times[p.value]) if p.value in times else None
            for p in TimerPhase
        }
        if remaining[phase] is None:
            raise ValueError(f"no remaining time for {phase.value!r}")
        return RunningSnapshot(
            phase=phase,
            status=status,
            remaining=remaining,
            timestamp=int(timestamp),
        )
    except (ValueError, KeyError, TypeError, OverflowError):
        log.warning("Ignoring unreadable timer snapshot: %.200r", raw, exc_info=True)
        return None


# ── storage ──────────────────────────────────────────────────────────────


def read_snapshot(store: KeyValueStore) -> RunningSnapshot | None:
    return decode_snapshot(safe_get(store, SNAPSHOT_KEY))


def write_snapshot(store: KeyValueStore, snapshot: RunningSnapshot) -> bool:
    return safe_set(store, SNAPSHOT_KEY, encode_snapshot(snapshot))


def discard_snapshot(store: KeyValueStore) -> bool:
    return safe_remove(store, SNAPSHOT_KEY)


# ── reconciliation ───────────────────────────────────────────────────────


def elapsed_seconds(snapshot: RunningSnapshot, now_ms: int) -> int:
    """Whole seconds since the snapshot was written (never negative)."""
    return max(0, (now_ms - snapshot.timestamp) // 1000)


def reconcile(snapshot: RunningSnapshot, now_ms: int) -> RunningSnapshot:
    """Bring *snapshot* forward to *now_ms*.

    A running countdown loses the elapsed wall-clock seconds on its own
    phase only, clamped at zero.  A paused one is unchanged.  Either way
    the result is restamped, so writing it back means a second
    reconciliation does not subtract the same gap twice.
    """
    remaining = dict(snapshot.remaining)
    if snapshot.status is TimerStatus.RUNNING:
        left = remaining[snapshot.phase] or 0
        remaining[snapshot.phase] = max(0, left - elapsed_seconds(snapshot, now_ms))
    return replace(snapshot, remaining=remaining, timestamp=now_ms)
