"""Local session history, fed by the timer's ``session_completed`` signal."""

from __future__ import annotations

from datetime import datetime

from .db import get_session
from .models import SessionRecord


def record_session(
    session_type: str,
    duration_minutes: int,
    *,
    task_label: str | None = None,
    completed_at: datetime | None = None,
) -> int:
    """Store one completed phase.

    Returns the total number of completed work sessions afterwards, which
    the host shows as the lifetime pomodoro count.
    """
    with get_session() as db:
        db.add(SessionRecord(
            session_type=session_type,
            duration_minutes=duration_minutes,
            completed_at=completed_at or datetime.now(),
            task_label=task_label or None,
        ))
        db.flush()
        return (
            db.query(SessionRecord)
            .filter(SessionRecord.session_type == "work")
            .count()
        )


def total_completed_work_sessions() -> int:
    with get_session() as db:
        return (
            db.query(SessionRecord)
            .filter(SessionRecord.session_type == "work")
            .count()
        )


def recent_sessions(
    limit: int = 20,
    session_type: str | None = None,
) -> list[SessionRecord]:
    """Most recent sessions first, optionally of one type only."""
    with get_session() as db:
        query = db.query(SessionRecord)
        if session_type is not None:
            query = query.filter(SessionRecord.session_type == session_type)
        return (
            query
            .order_by(SessionRecord.completed_at.desc(), SessionRecord.id.desc())
            .limit(limit)
            .all()
        )
