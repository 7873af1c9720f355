"""Display helpers for countdowns and the focus stopwatch."""

from __future__ import annotations


def format_clock(seconds: int) -> str:
    """``MM:SS`` for the main countdown (minutes may exceed 59)."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


def format_stopwatch(seconds: int) -> str:
    """``HH:MM:SS`` for cumulative focus time."""
    total = max(0, int(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def progress_fraction(total: int, remaining: int) -> float:
    """0.0 -> 1.0 progress through a countdown of *total* seconds."""
    if total <= 0:
        return 0.0
    return max(0.0, min(1.0, (total - remaining) / total))
