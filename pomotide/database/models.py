"""SQLAlchemy ORM models for Pomotide."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class StoredValue(Base):
    """One entry of the local key-value store (timer snapshot, counters)."""

    __tablename__ = "stored_values"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.now)

    def __repr__(self) -> str:
        return f"<StoredValue key={self.key} value={self.value[:40]!r}>"


class SessionRecord(Base):
    """A completed Pomodoro phase (work or break)."""

    __tablename__ = "pomodoro_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_type = Column(String(20), nullable=False)  # work | short_break | long_break
    duration_minutes = Column(Integer, nullable=False)
    completed_at = Column(DateTime, nullable=False, default=datetime.now)
    task_label = Column(String(255), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<SessionRecord id={self.id} type={self.session_type} "
            f"minutes={self.duration_minutes}>"
        )
