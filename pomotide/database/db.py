"""Database connection and session management.

One SQLite file under the app-support directory holds both the timer's
key-value entries and the completed-session history.  The engine is
built on first use so importing the package never touches the disk.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session as OrmSession, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base


log = logging.getLogger(__name__)

APP_SUPPORT_DIR = Path.home() / "Library" / "Application Support" / "Pomotide"
DB_PATH = APP_SUPPORT_DIR / "pomotide.db"

_engine: Engine | None = None
_SessionFactory: sessionmaker | None = None


def _build_engine(url: str) -> Engine:
    kwargs = {"connect_args": {"check_same_thread": False}, "echo": False}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # An in-memory database exists per connection, so keep just one.
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def _get_engine() -> Engine:
    global _engine
    if _engine is None:
        APP_SUPPORT_DIR.mkdir(parents=True, exist_ok=True)
        log.info("Opening database at %s", DB_PATH)
        _engine = _build_engine(f"sqlite:///{DB_PATH}")
    return _engine


def _get_session_factory() -> sessionmaker:
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = sessionmaker(bind=_get_engine(), expire_on_commit=False)
    return _SessionFactory


# ── public API ────────────────────────────────────────────────────────────


def configure_engine(url: str) -> None:
    """Point the package at another database, e.g. ``sqlite://`` in tests."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = _build_engine(url)
    _SessionFactory = None


def init_db() -> None:
    """Create any missing tables."""
    Base.metadata.create_all(_get_engine())


@contextmanager
def get_session():
    """Yield a session that commits on success and rolls back on error."""
    session: OrmSession = _get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
