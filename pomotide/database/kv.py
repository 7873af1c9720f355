"""String key-value stores used for the timer's local persistence.

The timer only ever needs ``get`` / ``set`` / ``remove`` over strings, so
anything satisfying :class:`KeyValueStore` can back it: the SQLite table
in production, a plain dict in tests.

All timer-side access goes through :func:`safe_get`, :func:`safe_set`
and :func:`safe_remove`, which turn storage failures into logged no-ops.
Persistence is best effort and must never stop the countdown.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from .db import get_session
from .models import StoredValue


log = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class DatabaseStore:
    """Store backed by the ``stored_values`` table."""

    def get(self, key: str) -> str | None:
        with get_session() as db:
            row = db.get(StoredValue, key)
            return row.value if row is not None else None

    def set(self, key: str, value: str) -> None:
        with get_session() as db:
            row = db.get(StoredValue, key)
            if row is None:
                db.add(StoredValue(key=key, value=value))
            else:
                row.value = value
                row.updated_at = datetime.now()

    def remove(self, key: str) -> None:
        with get_session() as db:
            row = db.get(StoredValue, key)
            if row is not None:
                db.delete(row)


# ── best-effort helpers ──────────────────────────────────────────────────

_STORAGE_ERRORS = (SQLAlchemyError, OSError, ValueError, TypeError)


def safe_get(store: KeyValueStore, key: str) -> str | None:
    """Read *key*; any storage failure reads as absent."""
    try:
        return store.get(key)
    except _STORAGE_ERRORS:
        log.warning("Reading %r failed, treating as absent", key, exc_info=True)
        return None


def safe_set(store: KeyValueStore, key: str, value: str) -> bool:
    try:
        store.set(key, value)
    except _STORAGE_ERRORS:
        log.warning("Writing %r failed", key, exc_info=True)
        return False
    return True


def safe_remove(store: KeyValueStore, key: str) -> bool:
    try:
        store.remove(key)
    except _STORAGE_ERRORS:
        log.warning("Removing %r failed", key, exc_info=True)
        return False
    return True
