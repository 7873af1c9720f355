"""Tests for session totals persistence and the two-step reset confirmation."""

from pomotide.database.kv import MemoryStore
from pomotide.timer.totals import (
    COMPLETED_POMODOROS_KEY,
    FOCUS_PERSIST_THROTTLE_MS,
    FOCUS_SECONDS_KEY,
    RESET_CONFIRM_WINDOW_MS,
    ResetConfirmation,
    SessionTotals,
)

from helpers import FakeClock


class TestSessionTotals:

    def test_starts_from_stored_values(self):
        store = MemoryStore({FOCUS_SECONDS_KEY: "90", COMPLETED_POMODOROS_KEY: " 2 "})
        totals = SessionTotals(store, FakeClock())
        assert totals.focus_seconds == 90
        assert totals.completed_pomodoros == 2

    def test_first_focus_second_written_immediately(self):
        store = MemoryStore()
        totals = SessionTotals(store, FakeClock())
        totals.add_focus_second()
        assert store.data[FOCUS_SECONDS_KEY] == "1"

    def test_focus_writes_are_throttled(self):
        store = MemoryStore()
        clock = FakeClock()
        totals = SessionTotals(store, clock)
        totals.add_focus_second()
        for _ in range(3):
            clock.advance(1_000)
            totals.add_focus_second()
        assert totals.focus_seconds == 4
        assert store.data[FOCUS_SECONDS_KEY] == "1"

        clock.advance(FOCUS_PERSIST_THROTTLE_MS)
        totals.add_focus_second()
        assert store.data[FOCUS_SECONDS_KEY] == "5"

    def test_flush_ignores_throttle(self):
        store = MemoryStore()
        totals = SessionTotals(store, FakeClock())
        totals.add_focus_second()
        totals.add_focus_second()
        totals.flush()
        assert store.data[FOCUS_SECONDS_KEY] == "2"

    def test_flush_without_changes_writes_nothing(self):
        store = MemoryStore()
        SessionTotals(store, FakeClock()).flush()
        assert FOCUS_SECONDS_KEY not in store.data

    def test_completed_count_written_every_time(self):
        store = MemoryStore()
        totals = SessionTotals(store, FakeClock())
        assert totals.increment_completed() == 1
        assert totals.increment_completed() == 2
        assert store.data[COMPLETED_POMODOROS_KEY] == "2"

    def test_clear_removes_keys(self):
        store = MemoryStore({FOCUS_SECONDS_KEY: "10", COMPLETED_POMODOROS_KEY: "1"})
        totals = SessionTotals(store, FakeClock())
        totals.clear()
        assert totals.focus_seconds == 0
        assert totals.completed_pomodoros == 0
        assert store.data == {}


class TestResetConfirmation:

    def test_first_press_arms(self):
        confirm = ResetConfirmation(FakeClock())
        assert confirm.press() is False
        assert confirm.armed

    def test_second_press_inside_window_commits(self):
        clock = FakeClock()
        confirm = ResetConfirmation(clock)
        confirm.press()
        clock.advance(RESET_CONFIRM_WINDOW_MS - 1)
        assert confirm.press() is True
        assert not confirm.armed

    def test_window_expires(self):
        clock = FakeClock()
        confirm = ResetConfirmation(clock)
        confirm.press()
        clock.advance(RESET_CONFIRM_WINDOW_MS)
        assert not confirm.armed
        assert confirm.press() is False

    def test_disarm(self):
        confirm = ResetConfirmation(FakeClock())
        confirm.press()
        confirm.disarm()
        assert confirm.press() is False
