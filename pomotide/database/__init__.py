"""Database package."""

from .db import get_session, init_db
from .models import SessionRecord, StoredValue
from .kv import KeyValueStore, MemoryStore, DatabaseStore

__all__ = [
    "get_session",
    "init_db",
    "SessionRecord",
    "StoredValue",
    "KeyValueStore",
    "MemoryStore",
    "DatabaseStore",
]
