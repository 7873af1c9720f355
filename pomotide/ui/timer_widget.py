"""Main timer display widget.

Layout (top → bottom):
    - Phase tabs (Focus / Short Break / Long Break)
    - Task label input
    - ProgressRing (large, centred)
    - Prev / Play-Pause / Next controls, plus phase reset
    - Session focus stopwatch with its two-step reset
    - Cycle dots and completed count
"""

from __future__ import annotations

from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout,
    QLabel, QPushButton, QLineEdit, QFrame, QSizePolicy,
)

from ..timer.engine import TimerEngine
from ..timer.formatting import format_clock, format_stopwatch
from ..timer.phases import Direction, PhaseSource, TimerPhase, TimerStatus
from ..timer.totals import RESET_CONFIRM_WINDOW_MS
from .progress_ring import ProgressRing


PHASE_LABELS: dict[TimerPhase, str] = {
    TimerPhase.WORK:        "Focus",
    TimerPhase.SHORT_BREAK: "Short Break",
    TimerPhase.LONG_BREAK:  "Long Break",
}

STATUS_LABELS: dict[TimerStatus, str] = {
    TimerStatus.IDLE:    "READY",
    TimerStatus.RUNNING: "RUNNING",
    TimerStatus.PAUSED:  "PAUSED",
}


class TimerWidget(QWidget):
    """The timer card: display plus all countdown controls."""

    def __init__(self, engine: TimerEngine, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._engine = engine
        self._dots: list[QLabel] = []
        self._build_ui()
        self._connect_signals()
        self.refresh()

    @property
    def task_label(self) -> str:
        return self._task_input.text().strip()

    def set_task_label(self, text: str) -> None:
        self._task_input.setText(text)

    def task_input_has_focus(self) -> bool:
        return self._task_input.hasFocus()

    # ── build ─────────────────────────────────────────────────────────────

    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)

        card = QFrame(self)
        card.setObjectName("card")
        root.addWidget(card)

        layout = QVBoxLayout(card)
        layout.setContentsMargins(28, 20, 28, 24)
        layout.setSpacing(12)
        layout.setAlignment(Qt.AlignmentFlag.AlignCenter)

        # ── phase tabs ───────────────────────────────────────────────
        tab_row = QHBoxLayout()
        tab_row.setSpacing(8)
        self._tabs: dict[TimerPhase, QPushButton] = {}
        for phase, label in PHASE_LABELS.items():
            btn = QPushButton(label, card)
            btn.setCheckable(True)
            btn.clicked.connect(
                lambda _checked=False, p=phase: self._engine.set_phase(p, PhaseSource.TAB)
            )
            self._tabs[phase] = btn
            tab_row.addWidget(btn)
        layout.addLayout(tab_row)

        # ── task label input ─────────────────────────────────────────
        self._task_input = QLineEdit(card)
        self._task_input.setPlaceholderText("What are you working on? (optional)")
        self._task_input.setMaxLength(100)
        self._task_input.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self._task_input)

        # ── progress ring ────────────────────────────────────────────
        ring_container = QHBoxLayout()
        ring_container.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._ring = ProgressRing(card)
        self._ring.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)
        self._ring.setFixedSize(300, 300)
        ring_container.addWidget(self._ring)
        layout.addLayout(ring_container)

        # ── main controls ────────────────────────────────────────────
        btn_row = QHBoxLayout()
        btn_row.setSpacing(12)
        btn_row.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self._prev_btn = QPushButton("‹", card)
        self._prev_btn.setObjectName("secondaryButton")
        self._toggle_btn = QPushButton("Start", card)
        self._toggle_btn.setObjectName("primaryButton")
        self._next_btn = QPushButton("›", card)
        self._next_btn.setObjectName("secondaryButton")
        self._reset_btn = QPushButton("Reset", card)
        self._reset_btn.setObjectName("secondaryButton")

        for btn in (self._prev_btn, self._toggle_btn, self._next_btn, self._reset_btn):
            btn_row.addWidget(btn)
        layout.addLayout(btn_row)

        # ── session focus stopwatch ──────────────────────────────────
        focus_row = QHBoxLayout()
        focus_row.setAlignment(Qt.AlignmentFlag.AlignCenter)
        focus_row.addWidget(QLabel("Session Focus:", card))
        self._focus_label = QLabel("00:00:00", card)
        focus_row.addWidget(self._focus_label)
        self._totals_reset_btn = QPushButton("Reset", card)
        self._totals_reset_btn.setObjectName("dangerButton")
        focus_row.addWidget(self._totals_reset_btn)
        layout.addLayout(focus_row)

        # ── cycle dots ───────────────────────────────────────────────
        self._dot_row = QHBoxLayout()
        self._dot_row.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._dot_row.setSpacing(8)
        layout.addLayout(self._dot_row)
        self._completed_label = QLabel("0 completed", card)
        self._completed_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self._completed_label)

    # ── signals ───────────────────────────────────────────────────────────

    def _connect_signals(self) -> None:
        self._toggle_btn.clicked.connect(self._engine.toggle)
        self._prev_btn.clicked.connect(lambda: self._engine.navigate(Direction.PREV))
        self._next_btn.clicked.connect(lambda: self._engine.navigate(Direction.NEXT))
        self._reset_btn.clicked.connect(self._engine.reset_current_phase)
        self._totals_reset_btn.clicked.connect(self._on_totals_reset)

        self._engine.remaining_changed.connect(self._refresh_time)
        self._engine.status_changed.connect(lambda _status: self.refresh())
        self._engine.phase_changed.connect(lambda _phase: self.refresh())
        self._engine.focus_seconds_changed.connect(self._refresh_focus)
        self._engine.completed_count_changed.connect(self._refresh_cycle)

    # ── slots ─────────────────────────────────────────────────────────────

    def _on_totals_reset(self) -> None:
        if not self._engine.request_totals_reset():
            self._totals_reset_btn.setText("Confirm?")
            QTimer.singleShot(RESET_CONFIRM_WINDOW_MS, self._refresh_totals_button)
        else:
            self._refresh_totals_button()

    def _refresh_totals_button(self) -> None:
        armed = self._engine.totals_reset_armed
        self._totals_reset_btn.setText("Confirm?" if armed else "Reset")

    def refresh(self) -> None:
        """Redraw everything from the engine's current state."""
        phase = self._engine.phase
        status = self._engine.status

        for tab_phase, btn in self._tabs.items():
            btn.setChecked(tab_phase is phase)

        self._toggle_btn.setText("Pause" if status is TimerStatus.RUNNING else "Start")
        self._ring.set_state_label(STATUS_LABELS[status])
        self._ring.apply_state(phase, status)
        self._task_input.setEnabled(phase is TimerPhase.WORK)

        self._refresh_time(self._engine.remaining)
        self._refresh_focus(self._engine.focus_seconds)
        self._refresh_cycle(self._engine.completed_pomodoros)
        self._refresh_totals_button()

    def _refresh_time(self, remaining: int) -> None:
        self._ring.set_time_text(format_clock(remaining))
        self._ring.set_percent(self._engine.progress)

    def _refresh_focus(self, seconds: int) -> None:
        self._focus_label.setText(format_stopwatch(seconds))

    def _refresh_cycle(self, completed: int) -> None:
        length = self._engine.cycle_length
        while len(self._dots) < length:
            dot = QLabel("○", self)
            dot.setStyleSheet("font-size: 16px;")
            self._dots.append(dot)
            self._dot_row.addWidget(dot)
        while len(self._dots) > length:
            dot = self._dots.pop()
            self._dot_row.removeWidget(dot)
            dot.deleteLater()

        done = self._engine.cycle_position
        for i, dot in enumerate(self._dots):
            dot.setText("●" if i < done else "○")
        self._completed_label.setText(f"{completed} completed")
