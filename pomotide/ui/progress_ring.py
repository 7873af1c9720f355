"""Circular progress ring widget rendered with QPainter.

- Fills clockwise as the phase progresses.
- Colour-coded by phase (work=red, short break=green, long break=blue),
  grey while paused.
- Shows MM:SS in bold text at the centre plus a status label.
"""

from __future__ import annotations

from PyQt6.QtCore import Qt, QRectF, QVariantAnimation, QEasingCurve
from PyQt6.QtGui import QPainter, QPen, QColor, QConicalGradient, QFont
from PyQt6.QtWidgets import QWidget

from ..timer.phases import TimerPhase, TimerStatus
from .styles import PHASE_COLORS, PAUSED_COLORS, PALETTE


class ProgressRing(QWidget):
    """Custom-painted circular timer ring."""

    RING_DIAMETER = 260
    RING_THICKNESS = 12

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setMinimumSize(self.RING_DIAMETER + 40, self.RING_DIAMETER + 40)

        self._display_percent: float = 0.0
        self._time_text: str = "25:00"
        self._state_label: str = "READY"

        self._primary_color = QColor(PHASE_COLORS[TimerPhase.WORK][0])
        self._secondary_color = QColor(PHASE_COLORS[TimerPhase.WORK][1])
        self._text_color = QColor(PALETTE["text"])

        # ── arc transition animation ───────────────────────────────────
        self._arc_anim = QVariantAnimation(self)
        self._arc_anim.setDuration(400)
        self._arc_anim.setEasingCurve(QEasingCurve.Type.OutCubic)
        self._arc_anim.valueChanged.connect(self._on_arc_anim)

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC API
    # ══════════════════════════════════════════════════════════════════

    @property
    def time_text(self) -> str:
        return self._time_text

    @property
    def state_label(self) -> str:
        return self._state_label

    def set_percent(self, pct: float) -> None:
        """Update the arc fill (0..1). Smoothly animates."""
        self._arc_anim.stop()
        self._arc_anim.setStartValue(self._display_percent)
        self._arc_anim.setEndValue(pct)
        self._arc_anim.start()

    def set_time_text(self, text: str) -> None:
        self._time_text = text
        self.update()

    def set_state_label(self, text: str) -> None:
        self._state_label = text
        self.update()

    def apply_state(self, phase: TimerPhase, status: TimerStatus) -> None:
        if status is TimerStatus.PAUSED:
            primary, secondary = PAUSED_COLORS
        else:
            primary, secondary = PHASE_COLORS[phase]
        self._primary_color = QColor(primary)
        self._secondary_color = QColor(secondary)
        self.update()

    def _on_arc_anim(self, value: object) -> None:
        self._display_percent = float(value)  # type: ignore[arg-type]
        self.update()

    # ══════════════════════════════════════════════════════════════════
    #  PAINTING
    # ══════════════════════════════════════════════════════════════════

    def paintEvent(self, event) -> None:  # type: ignore[override]
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        w = self.width()
        h = self.height()
        cx, cy = w / 2, h / 2
        diameter = max(100, min(w, h) - 40)
        radius = diameter / 2
        thickness = self.RING_THICKNESS

        ring_rect = QRectF(cx - radius, cy - radius, diameter, diameter)

        # ── background track ─────────────────────────────────────────
        track_color = QColor(self._primary_color)
        track_color.setAlpha(35)
        track_pen = QPen(track_color, thickness, Qt.PenStyle.SolidLine)
        track_pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        painter.setPen(track_pen)
        painter.drawEllipse(ring_rect)

        # ── progress arc ─────────────────────────────────────────────
        pct = self._display_percent
        if pct > 0.001:
            gradient = QConicalGradient(cx, cy, 90)
            gradient.setColorAt(0.0, self._primary_color)
            gradient.setColorAt(0.5, self._secondary_color)
            gradient.setColorAt(1.0, self._primary_color)

            arc_pen = QPen(gradient, thickness, Qt.PenStyle.SolidLine)
            arc_pen.setCapStyle(Qt.PenCapStyle.RoundCap)
            painter.setPen(arc_pen)

            # Qt arcs: start at 12 o'clock (90*16), go clockwise (negative)
            painter.drawArc(ring_rect, 90 * 16, -int(pct * 360 * 16))

        # ── centre text: time ────────────────────────────────────────
        time_font = QFont()
        time_font.setPixelSize(48)
        time_font.setWeight(QFont.Weight.Bold)
        painter.setFont(time_font)
        painter.setPen(self._text_color)

        time_rect = QRectF(ring_rect)
        time_rect.moveTop(time_rect.top() - 12)
        painter.drawText(time_rect, Qt.AlignmentFlag.AlignCenter, self._time_text)

        # ── centre text: status label ────────────────────────────────
        label_font = QFont()
        label_font.setPixelSize(13)
        label_font.setWeight(QFont.Weight.DemiBold)
        label_font.setLetterSpacing(QFont.SpacingType.AbsoluteSpacing, 3)
        painter.setFont(label_font)

        label_color = QColor(self._primary_color)
        label_color.setAlpha(200)
        painter.setPen(label_color)

        label_rect = QRectF(ring_rect)
        label_rect.moveTop(label_rect.top() + 34)
        painter.drawText(label_rect, Qt.AlignmentFlag.AlignCenter, self._state_label)

        painter.end()
