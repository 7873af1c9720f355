"""Tests for the running-timer snapshot and recovery after a restart.

Covers:
- JSON codec and its tolerance of corrupt values
- Wall-clock reconciliation (running vs paused, flooring, restamping)
- Engine restore: sleep catch-up, exhausted countdowns, clamping,
  re-persisting, totals, and unusable storage
"""

from __future__ import annotations

import json
import logging

import pytest

from pomotide.settings import Settings
from pomotide.timer.phases import TimerPhase, TimerStatus
from pomotide.timer.snapshot import (
    SNAPSHOT_KEY,
    RunningSnapshot,
    decode_snapshot,
    elapsed_seconds,
    encode_snapshot,
    reconcile,
)
from pomotide.timer.totals import COMPLETED_POMODOROS_KEY, FOCUS_SECONDS_KEY

from helpers import BrokenStore, RecordingEffects


WORK = TimerPhase.WORK
SHORT = TimerPhase.SHORT_BREAK
LONG = TimerPhase.LONG_BREAK

T = 1_700_000_000_000


def _raw(phase="work", status="running", work=600, short=300, long=900, timestamp=T):
    return json.dumps({
        "phase": phase,
        "status": status,
        "remainingTimes": {"work": work, "short_break": short, "long_break": long},
        "timestamp": timestamp,
    })


def _snap(status=TimerStatus.RUNNING, work=600, timestamp=T) -> RunningSnapshot:
    return RunningSnapshot(
        phase=WORK,
        status=status,
        remaining={WORK: work, SHORT: 300, LONG: 900},
        timestamp=timestamp,
    )


# ═══════════════════════════════════════════════════════════════════════
#  CODEC
# ═══════════════════════════════════════════════════════════════════════


class TestCodec:

    def test_wire_format(self):
        data = json.loads(encode_snapshot(_snap()))
        assert data == {
            "phase": "work",
            "status": "running",
            "remainingTimes": {"work": 600, "short_break": 300, "long_break": 900},
            "timestamp": T,
        }

    def test_decode_reads_wire_format(self):
        snap = decode_snapshot(_raw(phase="long_break", status="paused", long=42))
        assert snap.phase is LONG
        assert snap.status is TimerStatus.PAUSED
        assert snap.remaining_for(LONG) == 42
        assert snap.timestamp == T

    def test_missing_other_phases_decode_as_none(self):
        raw = json.dumps({
            "phase": "work", "status": "running",
            "remainingTimes": {"work": 100}, "timestamp": T,
        })
        snap = decode_snapshot(raw)
        assert snap.remaining_for(WORK) == 100
        assert snap.remaining_for(SHORT) is None

    def test_negative_seconds_clamp_to_zero(self):
        assert decode_snapshot(_raw(work=-5)).remaining_for(WORK) == 0

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "not json",
        "[]",
        "42",
        json.dumps({"phase": "work", "status": "running", "timestamp": T}),
        json.dumps({"phase": "work", "status": "running", "remainingTimes": {"work": 5}}),
        json.dumps({"phase": "work", "status": "running",
                    "remainingTimes": [], "timestamp": T}),
        json.dumps({"phase": "work", "status": "running",
                    "remainingTimes": {"short_break": 5}, "timestamp": T}),
        _raw(status="idle"),
        _raw(status="stopped"),
        _raw(phase="lunch"),
        _raw(work="ten"),
        _raw(timestamp="yesterday"),
        _raw(timestamp=True),
    ])
    def test_unreadable_snapshots_decode_to_none(self, raw):
        assert decode_snapshot(raw) is None

    def test_unreadable_snapshot_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="pomotide.timer.snapshot"):
            decode_snapshot("{broken")
        assert "unreadable timer snapshot" in caplog.text


# ═══════════════════════════════════════════════════════════════════════
#  RECONCILIATION
# ═══════════════════════════════════════════════════════════════════════


class TestReconcile:

    def test_running_loses_elapsed_seconds(self):
        assert reconcile(_snap(), T + 120_000).remaining_for(WORK) == 480

    def test_only_snapshot_phase_counts_down(self):
        result = reconcile(_snap(), T + 120_000)
        assert result.remaining_for(SHORT) == 300
        assert result.remaining_for(LONG) == 900

    def test_paused_is_unchanged(self):
        result = reconcile(_snap(status=TimerStatus.PAUSED), T + 120_000)
        assert result.remaining_for(WORK) == 600

    def test_clamps_at_zero(self):
        assert reconcile(_snap(work=10), T + 30_000).remaining_for(WORK) == 0

    def test_result_is_restamped(self):
        assert reconcile(_snap(), T + 120_000).timestamp == T + 120_000

    def test_reconciling_twice_does_not_double_count(self):
        once = reconcile(_snap(), T + 120_000)
        twice = reconcile(once, T + 120_000)
        assert twice.remaining_for(WORK) == 480

    def test_elapsed_is_floored(self):
        assert elapsed_seconds(_snap(), T + 1_999) == 1

    def test_clock_going_backwards_counts_as_zero(self):
        assert elapsed_seconds(_snap(), T - 60_000) == 0
        assert reconcile(_snap(), T - 60_000).remaining_for(WORK) == 600


# ═══════════════════════════════════════════════════════════════════════
#  ENGINE RESTORE
# ═══════════════════════════════════════════════════════════════════════


class TestRestore:

    @pytest.fixture(autouse=True)
    def _at_t(self, clock):
        clock.now = T

    def test_running_snapshot_catches_up_sleep(self, make_engine, store, clock, scheduler):
        store.data[SNAPSHOT_KEY] = _raw()
        clock.advance(120_000)
        eng = make_engine()
        assert eng.phase is WORK
        assert eng.status is TimerStatus.RUNNING
        assert eng.remaining == 480
        assert scheduler.pending

    def test_paused_snapshot_resumes_paused(self, make_engine, store, clock, scheduler):
        store.data[SNAPSHOT_KEY] = _raw(status="paused")
        clock.advance(120_000)
        eng = make_engine()
        assert eng.status is TimerStatus.PAUSED
        assert eng.remaining == 600
        assert not scheduler.pending

    def test_restore_repersists_normalised_snapshot(self, make_engine, store, clock):
        store.data[SNAPSHOT_KEY] = _raw()
        clock.advance(120_000)
        make_engine()

        data = json.loads(store.data[SNAPSHOT_KEY])
        assert data["remainingTimes"]["work"] == 480
        assert data["timestamp"] == T + 120_000

    def test_quick_second_restart_does_not_double_subtract(self, make_engine, store, clock):
        store.data[SNAPSHOT_KEY] = _raw()
        clock.advance(120_000)
        make_engine()
        assert make_engine().remaining == 480

    def test_exhausted_countdown_restores_idle(self, make_engine, store, clock):
        store.data[SNAPSHOT_KEY] = _raw(work=10)
        clock.advance(30_000)
        fx = RecordingEffects()
        eng = make_engine(
            Settings(sound_enabled=True, notifications_enabled=True),
            effects=fx,
        )
        assert eng.phase is WORK
        assert eng.status is TimerStatus.IDLE
        assert eng.remaining == 25 * 60
        assert eng.completed_pomodoros == 0
        assert fx.sounds == [] and fx.notifications == []
        assert SNAPSHOT_KEY not in store.data

    def test_other_phases_keep_their_progress(self, make_engine, store):
        store.data[SNAPSHOT_KEY] = _raw(phase="short_break", short=120, long=45)
        eng = make_engine()
        assert eng.phase is SHORT
        assert eng.remaining == 120
        assert eng.remaining_for(WORK) == 600
        assert eng.remaining_for(LONG) == 45

    def test_missing_phase_entries_fall_back_to_full(self, make_engine, store):
        store.data[SNAPSHOT_KEY] = json.dumps({
            "phase": "work", "status": "paused",
            "remainingTimes": {"work": 100}, "timestamp": T,
        })
        eng = make_engine()
        assert eng.remaining == 100
        assert eng.remaining_for(SHORT) == 5 * 60
        assert eng.remaining_for(LONG) == 15 * 60

    def test_remaining_clamped_to_configured_duration(self, make_engine, store):
        store.data[SNAPSHOT_KEY] = _raw(status="paused", work=3_000)
        assert make_engine().remaining == 25 * 60

    def test_corrupt_snapshot_falls_back_to_defaults(self, make_engine, store):
        store.data[SNAPSHOT_KEY] = "{not json"
        eng = make_engine()
        assert eng.phase is WORK
        assert eng.status is TimerStatus.IDLE
        assert eng.remaining == 25 * 60

    def test_restart_resumes_where_it_left_off(self, make_engine, scheduler):
        first = make_engine()
        first.set_phase(LONG)
        first.toggle()
        scheduler.advance(30_000)

        second = make_engine()
        assert second.phase is LONG
        assert second.status is TimerStatus.RUNNING
        assert second.remaining == 15 * 60 - 30

    def test_totals_survive_restart(self, make_engine, store):
        store.data[FOCUS_SECONDS_KEY] = "120"
        store.data[COMPLETED_POMODOROS_KEY] = "3"
        eng = make_engine()
        assert eng.focus_seconds == 120
        assert eng.completed_pomodoros == 3
        assert eng.cycle_position == 3

    def test_unreadable_totals_read_as_zero(self, make_engine, store):
        store.data[FOCUS_SECONDS_KEY] = "lots"
        store.data[COMPLETED_POMODOROS_KEY] = "-4"
        eng = make_engine()
        assert eng.focus_seconds == 0
        assert eng.completed_pomodoros == 0

    def test_broken_storage_never_stops_the_timer(self, make_engine, scheduler, caplog):
        with caplog.at_level(logging.WARNING):
            eng = make_engine(store_override=BrokenStore())
            eng.toggle()
            scheduler.advance(3_000)
            eng.handle_visibility_change(False)
            eng.handle_visibility_change(True)
            eng.reset_current_phase()
            eng.handle_unload()
        assert eng.remaining == 25 * 60
        assert eng.focus_seconds == 3
        assert "failed" in caplog.text
