"""Session history widget: the last few focus sessions completed today.

Sits below the timer card.  Clicking a task label emits
``label_clicked(str)`` so the host can refill the task input.
"""

from __future__ import annotations

from datetime import date

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QFrame, QSizePolicy,
)

from ..database.history import recent_sessions
from ..database.models import SessionRecord
from ..timer.phases import TimerPhase
from .styles import PALETTE


MAX_ROWS = 5


class SessionHistoryWidget(QWidget):
    """Displays today's recently completed focus sessions."""

    label_clicked = pyqtSignal(str)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._row_widgets: list[QWidget] = []
        self._build_ui()

    @property
    def row_count(self) -> int:
        return len(self._row_widgets)

    # ── build ─────────────────────────────────────────────────────────

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 8, 0, 0)
        layout.setSpacing(6)

        self._header = QLabel("Today's Sessions")
        self._header.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._header.setStyleSheet(
            f"font-size: 13px; font-weight: 600; color: {PALETTE['text_muted']};"
        )
        layout.addWidget(self._header)

        self._rows_container = QVBoxLayout()
        self._rows_container.setSpacing(4)
        layout.addLayout(self._rows_container)

        self._empty_label = QLabel("No sessions yet today")
        self._empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._empty_label.setStyleSheet(f"font-size: 12px; color: {PALETTE['border']};")
        layout.addWidget(self._empty_label)

    # ── refresh ───────────────────────────────────────────────────────

    def refresh(self) -> None:
        """Reload today's sessions from the database."""
        for w in self._row_widgets:
            w.setParent(None)
            w.deleteLater()
        self._row_widgets.clear()

        today = date.today()
        today_sessions = [
            s for s in recent_sessions(limit=50, session_type=TimerPhase.WORK.value)
            if s.completed_at.date() == today
        ][:MAX_ROWS]

        self._empty_label.setVisible(not today_sessions)
        for sess in today_sessions:
            row = self._make_row(sess)
            self._rows_container.addWidget(row)
            self._row_widgets.append(row)

    # ── row builder ───────────────────────────────────────────────────

    def _make_row(self, sess: SessionRecord) -> QWidget:
        frame = QFrame(self)
        frame.setStyleSheet(
            "QFrame { background: transparent; border-radius: 6px; padding: 4px 8px; }"
        )
        row = QHBoxLayout(frame)
        row.setContentsMargins(8, 4, 8, 4)
        row.setSpacing(8)

        task_lbl = QLabel(sess.task_label or "Untitled session")
        task_lbl.setStyleSheet(f"font-size: 12px; color: {PALETTE['text']};")
        task_lbl.setSizePolicy(
            QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred,
        )
        if sess.task_label:
            label = sess.task_label
            task_lbl.setCursor(Qt.CursorShape.PointingHandCursor)
            task_lbl.mousePressEvent = lambda e, l=label: self.label_clicked.emit(l)

        dur_lbl = QLabel(f"{sess.duration_minutes}m")
        dur_lbl.setStyleSheet(f"font-size: 12px; color: {PALETTE['text_muted']};")
        dur_lbl.setAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)

        time_lbl = QLabel(sess.completed_at.strftime("%H:%M"))
        time_lbl.setStyleSheet(f"font-size: 11px; color: {PALETTE['border']};")
        time_lbl.setAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)

        row.addWidget(task_lbl)
        row.addWidget(dur_lbl)
        row.addWidget(time_lbl)
        return frame
