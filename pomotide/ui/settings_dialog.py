"""Settings dialog for Pomotide.

A modal dialog that lets users configure timer durations, the cycle
length, auto-start behaviour, audio, and notification preferences.
Changes are saved immediately to disk and returned to the caller so the
app can push them into the timer engine.
"""

from __future__ import annotations

import logging
from typing import Callable

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QFormLayout,
    QLabel, QSpinBox, QSlider, QCheckBox, QPushButton,
    QFrame, QWidget,
)

from ..settings import Settings, save_settings


log = logging.getLogger(__name__)


class SettingsDialog(QDialog):
    """Modal dialog for all user preferences."""

    def __init__(
        self,
        settings: Settings,
        parent: QWidget | None = None,
        *,
        sound_preview_callback: Callable[[], None] | None = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Settings")
        self.setMinimumWidth(420)
        self.setModal(True)

        self._settings = settings
        self._sound_preview = sound_preview_callback
        self._populating = False

        self._build_ui()
        self._populate()

    # ══════════════════════════════════════════════════════════════════
    #  BUILD UI
    # ══════════════════════════════════════════════════════════════════

    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(24, 20, 24, 20)
        root.setSpacing(16)

        # ── Timer section ────────────────────────────────────────────
        root.addWidget(self._section_label("Timer"))
        timer_form = QFormLayout()
        timer_form.setContentsMargins(0, 0, 0, 0)
        timer_form.setHorizontalSpacing(20)
        timer_form.setVerticalSpacing(10)

        self._work_spin = self._minutes_spin(120)
        timer_form.addRow("Focus duration:", self._work_spin)

        self._short_spin = self._minutes_spin(60)
        timer_form.addRow("Short break:", self._short_spin)

        self._long_spin = self._minutes_spin(120)
        timer_form.addRow("Long break:", self._long_spin)

        self._cycle_spin = QSpinBox()
        self._cycle_spin.setRange(1, 12)
        self._cycle_spin.valueChanged.connect(self._on_timer_changed)
        timer_form.addRow("Pomodoros per cycle:", self._cycle_spin)

        self._auto_breaks_cb = QCheckBox("Auto-start breaks")
        self._auto_breaks_cb.toggled.connect(self._on_toggle_changed)
        timer_form.addRow("", self._auto_breaks_cb)

        self._auto_work_cb = QCheckBox("Auto-start pomodoros")
        self._auto_work_cb.toggled.connect(self._on_toggle_changed)
        timer_form.addRow("", self._auto_work_cb)

        self._auto_nav_cb = QCheckBox("Start timer when switching tabs")
        self._auto_nav_cb.toggled.connect(self._on_toggle_changed)
        timer_form.addRow("", self._auto_nav_cb)

        root.addLayout(timer_form)
        root.addWidget(self._separator())

        # ── Sound & Notifications section ────────────────────────────
        root.addWidget(self._section_label("Sound & Notifications"))
        snd_form = QFormLayout()
        snd_form.setContentsMargins(0, 0, 0, 0)
        snd_form.setHorizontalSpacing(20)
        snd_form.setVerticalSpacing(10)

        self._sound_cb = QCheckBox("Completion sounds")
        self._sound_cb.toggled.connect(self._on_toggle_changed)
        snd_form.addRow("", self._sound_cb)

        # Volume slider row
        vol_row = QHBoxLayout()
        vol_row.setSpacing(10)
        self._vol_slider = QSlider(Qt.Orientation.Horizontal)
        self._vol_slider.setRange(0, 100)
        self._vol_slider.setTickInterval(10)
        self._vol_label = QLabel("70%")
        self._vol_label.setMinimumWidth(36)
        self._vol_slider.valueChanged.connect(self._on_volume_changed)
        self._vol_slider.sliderReleased.connect(self._on_volume_released)
        vol_row.addWidget(self._vol_slider)
        vol_row.addWidget(self._vol_label)

        vol_wrapper = QWidget()
        vol_wrapper.setLayout(vol_row)
        snd_form.addRow("Volume:", vol_wrapper)

        self._notif_cb = QCheckBox("Desktop notifications")
        self._notif_cb.toggled.connect(self._on_toggle_changed)
        snd_form.addRow("", self._notif_cb)

        root.addLayout(snd_form)

        # ── close button ─────────────────────────────────────────────
        root.addStretch()
        btn_row = QHBoxLayout()
        btn_row.addStretch()
        close_btn = QPushButton("Close")
        close_btn.setObjectName("secondaryButton")
        close_btn.clicked.connect(self.accept)
        btn_row.addWidget(close_btn)
        root.addLayout(btn_row)

    # ── helpers ──────────────────────────────────────────────────────

    def _minutes_spin(self, maximum: int) -> QSpinBox:
        spin = QSpinBox()
        spin.setRange(1, maximum)
        spin.setSuffix(" min")
        spin.valueChanged.connect(self._on_timer_changed)
        return spin

    @staticmethod
    def _section_label(text: str) -> QLabel:
        lbl = QLabel(text)
        lbl.setStyleSheet("font-size: 15px; font-weight: 700; margin-top: 4px;")
        return lbl

    @staticmethod
    def _separator() -> QFrame:
        line = QFrame()
        line.setFrameShape(QFrame.Shape.HLine)
        line.setFixedHeight(1)
        line.setStyleSheet("background-color: rgba(255,255,255,0.08);")
        return line

    # ══════════════════════════════════════════════════════════════════
    #  POPULATE FROM SETTINGS
    # ══════════════════════════════════════════════════════════════════

    def _populate(self) -> None:
        s = self._settings
        self._populating = True
        try:
            self._work_spin.setValue(s.work_duration)
            self._short_spin.setValue(s.short_break_duration)
            self._long_spin.setValue(s.long_break_duration)
            self._cycle_spin.setValue(s.cycle_length)
            self._auto_breaks_cb.setChecked(s.auto_start_breaks)
            self._auto_work_cb.setChecked(s.auto_start_pomodoros)
            self._auto_nav_cb.setChecked(s.auto_start_on_navigation)
            self._sound_cb.setChecked(s.sound_enabled)
            self._vol_slider.setValue(s.sound_volume)
            self._vol_label.setText(f"{s.sound_volume}%")
            self._notif_cb.setChecked(s.notifications_enabled)
        finally:
            self._populating = False

    # ══════════════════════════════════════════════════════════════════
    #  CHANGE HANDLERS (save immediately)
    # ══════════════════════════════════════════════════════════════════

    def _on_timer_changed(self) -> None:
        if self._populating:
            return
        self._settings.work_duration = self._work_spin.value()
        self._settings.short_break_duration = self._short_spin.value()
        self._settings.long_break_duration = self._long_spin.value()
        self._settings.cycle_length = self._cycle_spin.value()
        self._save()

    def _on_toggle_changed(self) -> None:
        if self._populating:
            return
        self._settings.auto_start_breaks = self._auto_breaks_cb.isChecked()
        self._settings.auto_start_pomodoros = self._auto_work_cb.isChecked()
        self._settings.auto_start_on_navigation = self._auto_nav_cb.isChecked()
        self._settings.sound_enabled = self._sound_cb.isChecked()
        self._settings.notifications_enabled = self._notif_cb.isChecked()
        self._save()

    def _on_volume_changed(self, value: int) -> None:
        self._vol_label.setText(f"{value}%")
        if self._populating:
            return
        self._settings.sound_volume = value
        self._save()

    def _on_volume_released(self) -> None:
        """Play the preview tone when the user releases the volume slider."""
        if self._sound_preview:
            self._sound_preview()

    def _save(self) -> None:
        try:
            save_settings(self._settings)
        except OSError:
            log.warning("Could not save settings", exc_info=True)

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC
    # ══════════════════════════════════════════════════════════════════

    @property
    def settings(self) -> Settings:
        return self._settings
