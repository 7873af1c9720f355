"""Shared pytest fixtures for Pomotide tests."""

import os
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication

from pomotide.database.db import configure_engine, init_db
from pomotide.database.kv import MemoryStore
from pomotide.settings import Settings
from pomotide.timer.engine import TimerEngine

from helpers import FakeClock, ManualScheduler


@pytest.fixture(scope="session")
def qapp():
    """A single QApplication instance shared across the entire test run."""
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep settings files out of the real home directory."""
    monkeypatch.setattr("pomotide.settings.APP_SUPPORT_DIR", tmp_path)
    monkeypatch.setattr("pomotide.settings.SETTINGS_PATH", tmp_path / "settings.json")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def make_engine(qapp, store, clock, scheduler):
    """Factory for engines sharing the test's store, clock and scheduler.

    Building a second engine on the same store simulates a restart.
    """
    def _make(settings=None, *, effects=None, store_override=None):
        return TimerEngine(
            parent=None,
            store=store_override if store_override is not None else store,
            settings=settings or Settings(),
            scheduler=scheduler,
            clock=clock,
            effects=effects,
        )
    return _make


@pytest.fixture
def engine(make_engine):
    """Fresh engine with default settings (auto-start on)."""
    return make_engine()


@pytest.fixture
def engine_manual(make_engine):
    """Fresh engine that never auto-starts the next phase."""
    return make_engine(Settings(
        auto_start_breaks=False,
        auto_start_pomodoros=False,
        auto_start_on_navigation=False,
    ))
