"""Main application window for Pomotide."""

from __future__ import annotations

import logging
from pathlib import Path

from PyQt6.QtCore import QEvent, Qt
from PyQt6.QtGui import QAction, QColor, QIcon, QImage, QKeySequence, QPainter, QPen, QPixmap
from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QLabel, QStatusBar, QMessageBox, QFrame, QPushButton,
    QSystemTrayIcon, QMenu,
)
from sqlalchemy.exc import SQLAlchemyError

from .audio.sounds import SoundManager
from .database.history import record_session, total_completed_work_sessions
from .database.kv import DatabaseStore, KeyValueStore
from .settings import Settings, load_settings
from .timer.engine import TimerEngine
from .timer.formatting import format_clock
from .timer.phases import Direction, TimerPhase, TimerStatus
from .ui.session_history import SessionHistoryWidget
from .ui.styles import build_stylesheet
from .ui.timer_widget import PHASE_LABELS, TimerWidget


log = logging.getLogger(__name__)


# ── tray-icon image generation ────────────────────────────────────────────


def _make_tray_icon(phase: TimerPhase, status: TimerStatus) -> QIcon:
    """Generate a 32×32 monochrome template icon for the menu bar.

    - IDLE:            thin circle outline
    - RUNNING work:    filled circle
    - RUNNING break:   circle outline with a centre dot
    - PAUSED:          two vertical pause bars
    """
    size = 64  # draw at 2× for Retina
    img = QImage(size, size, QImage.Format.Format_ARGB32_Premultiplied)
    img.fill(Qt.GlobalColor.transparent)
    p = QPainter(img)
    p.setRenderHint(QPainter.RenderHint.Antialiasing)
    colour = QColor(0, 0, 0, 220)
    p.setPen(Qt.PenStyle.NoPen)
    p.setBrush(colour)

    cx, cy, r = size // 2, size // 2, size // 2 - 4

    if status is TimerStatus.PAUSED:
        bar_w, bar_h = 8, 28
        gap = 6
        y = cy - bar_h // 2
        p.drawRoundedRect(cx - gap - bar_w, y, bar_w, bar_h, 3, 3)
        p.drawRoundedRect(cx + gap, y, bar_w, bar_h, 3, 3)
    elif status is TimerStatus.RUNNING and phase is TimerPhase.WORK:
        p.drawEllipse(cx - r, cy - r, r * 2, r * 2)
    else:
        p.setPen(QPen(colour, 4))
        p.setBrush(Qt.BrushStyle.NoBrush)
        p.drawEllipse(cx - r, cy - r, r * 2, r * 2)
        if status is TimerStatus.RUNNING:
            p.setPen(Qt.PenStyle.NoPen)
            p.setBrush(colour)
            dot_r = 6
            p.drawEllipse(cx - dot_r, cy - dot_r, dot_r * 2, dot_r * 2)

    p.end()

    img.setDevicePixelRatio(2.0)
    return QIcon(QPixmap.fromImage(img))


STATUS_MESSAGES: dict[TimerStatus, str] = {
    TimerStatus.IDLE:    "Ready when you are",
    TimerStatus.RUNNING: "{phase} in progress",
    TimerStatus.PAUSED:  "{phase} paused",
}


class PomotideApp(QMainWindow):
    """Main application window.

    Owns the timer engine and doubles as its :class:`CompletionEffects`
    sink: completion sounds go through the :class:`SoundManager` and
    notifications through the tray icon.
    """

    def __init__(
        self,
        *,
        store: KeyValueStore | None = None,
        settings: Settings | None = None,
        sounds_dir: Path | None = None,
    ) -> None:
        super().__init__()
        self.setWindowTitle("Pomotide")
        self.setMinimumSize(460, 680)
        self.resize(460, 760)
        self.setStyleSheet(build_stylesheet())

        # ── settings ──────────────────────────────────────────────────
        self._settings: Settings = settings if settings is not None else load_settings()

        # ── sound manager ─────────────────────────────────────────────
        self._sound_manager = SoundManager(parent=self, sounds_dir=sounds_dir)
        self._sound_manager.set_volume(self._settings.sound_volume)

        # ── tray icon (needed before the engine can notify) ───────────
        self._tray_icon = QSystemTrayIcon(self)
        self._tray_icon.setToolTip("Pomotide")
        self._tray_icon.activated.connect(self._on_tray_activated)

        # ── timer engine ──────────────────────────────────────────────
        self._timer_engine = TimerEngine(
            self,
            store=store if store is not None else DatabaseStore(),
            settings=self._settings,
            effects=self,
        )

        # ── central widget ────────────────────────────────────────────
        central = QWidget()
        self.setCentralWidget(central)
        root_layout = QVBoxLayout(central)
        root_layout.setContentsMargins(16, 12, 16, 12)
        root_layout.setSpacing(8)

        root_layout.addWidget(self._build_top_bar(central))

        self._timer_widget = TimerWidget(self._timer_engine, central)
        root_layout.addWidget(self._timer_widget)

        self._session_history = SessionHistoryWidget(central)
        self._session_history.label_clicked.connect(self._timer_widget.set_task_label)
        root_layout.addWidget(self._session_history)
        root_layout.addStretch()

        self._status_bar = QStatusBar(self)
        self.setStatusBar(self._status_bar)

        # ── tray + menus ──────────────────────────────────────────────
        self._build_tray_menu()
        self._update_tray_state()
        self._tray_icon.show()
        self._build_menu_bar()

        # ── wire signals ──────────────────────────────────────────────
        self._timer_engine.status_changed.connect(lambda _s: self._on_state_changed())
        self._timer_engine.phase_changed.connect(lambda _p: self._on_state_changed())
        self._timer_engine.remaining_changed.connect(self._on_remaining_changed)
        self._timer_engine.session_completed.connect(self._on_session_completed)

        app = QApplication.instance()
        if app is not None:
            app.aboutToQuit.connect(self._timer_engine.handle_unload)

        self._on_state_changed()
        self._refresh_history()

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC
    # ══════════════════════════════════════════════════════════════════

    @property
    def engine(self) -> TimerEngine:
        return self._timer_engine

    @property
    def timer_widget(self) -> TimerWidget:
        return self._timer_widget

    # ══════════════════════════════════════════════════════════════════
    #  TOP BAR
    # ══════════════════════════════════════════════════════════════════

    def _build_top_bar(self, parent: QWidget) -> QWidget:
        bar = QFrame(parent)
        bar.setObjectName("card")
        row = QHBoxLayout(bar)
        row.setContentsMargins(20, 12, 20, 12)
        row.setSpacing(8)

        title = QLabel("Pomotide", bar)
        title.setStyleSheet("font-size: 17px; font-weight: 700; letter-spacing: 1px;")

        gear_btn = QPushButton("⚙", bar)
        gear_btn.setObjectName("secondaryButton")
        gear_btn.setFixedSize(32, 32)
        gear_btn.setStyleSheet("font-size: 18px; padding: 0; border-radius: 6px;")
        gear_btn.setToolTip("Settings (Ctrl+,)")
        gear_btn.clicked.connect(self._open_settings)

        self._lifetime_label = QLabel("", bar)
        self._lifetime_label.setAlignment(
            Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter
        )

        row.addWidget(title)
        row.addWidget(gear_btn)
        row.addStretch()
        row.addWidget(self._lifetime_label)
        return bar

    # ══════════════════════════════════════════════════════════════════
    #  SYSTEM TRAY
    # ══════════════════════════════════════════════════════════════════

    def _build_tray_menu(self) -> None:
        menu = QMenu(self)

        self._tray_start_action = menu.addAction("Start")
        self._tray_start_action.triggered.connect(self._timer_engine.toggle)

        skip_action = menu.addAction("Next Phase")
        skip_action.triggered.connect(lambda: self._timer_engine.navigate(Direction.NEXT))

        menu.addSeparator()

        show_action = menu.addAction("Show Pomotide")
        show_action.triggered.connect(self._show_window)

        menu.addSeparator()

        quit_action = menu.addAction("Quit")
        quit_action.triggered.connect(self._quit_with_confirm)

        self._tray_icon.setContextMenu(menu)

    def _on_tray_activated(self, reason: QSystemTrayIcon.ActivationReason) -> None:
        if reason == QSystemTrayIcon.ActivationReason.Trigger:
            self._show_window()

    def _show_window(self) -> None:
        self.showNormal()
        self.raise_()
        self.activateWindow()

    def _update_tray_state(self) -> None:
        phase = self._timer_engine.phase
        status = self._timer_engine.status
        self._tray_icon.setIcon(_make_tray_icon(phase, status))
        if status is TimerStatus.RUNNING:
            self._tray_start_action.setText("Pause")
        elif status is TimerStatus.PAUSED:
            self._tray_start_action.setText("Resume")
        else:
            self._tray_start_action.setText("Start")

    # ══════════════════════════════════════════════════════════════════
    #  NATIVE MENU BAR
    # ══════════════════════════════════════════════════════════════════

    def _build_menu_bar(self) -> None:
        menu_bar = self.menuBar()

        about_action = QAction("About Pomotide", self)
        about_action.setMenuRole(QAction.MenuRole.AboutRole)
        about_action.triggered.connect(self._show_about)

        prefs_action = QAction("Preferences…", self)
        prefs_action.setMenuRole(QAction.MenuRole.PreferencesRole)
        prefs_action.setShortcut(QKeySequence("Ctrl+,"))
        prefs_action.triggered.connect(self._open_settings)

        quit_action = QAction("Quit Pomotide", self)
        quit_action.setMenuRole(QAction.MenuRole.QuitRole)
        quit_action.setShortcut(QKeySequence("Ctrl+Q"))
        quit_action.triggered.connect(self._quit_with_confirm)

        app_menu = menu_bar.addMenu("Pomotide")
        app_menu.addAction(about_action)
        app_menu.addAction(prefs_action)
        app_menu.addAction(quit_action)

        timer_menu = menu_bar.addMenu("Timer")

        toggle_action = QAction("Start / Pause", self)
        toggle_action.triggered.connect(self._timer_engine.toggle)
        timer_menu.addAction(toggle_action)

        reset_action = QAction("Reset Phase", self)
        reset_action.setShortcut(QKeySequence("Ctrl+R"))
        reset_action.triggered.connect(self._timer_engine.reset_current_phase)
        timer_menu.addAction(reset_action)

        timer_menu.addSeparator()

        prev_action = QAction("Previous Phase", self)
        prev_action.setShortcut(QKeySequence("Ctrl+Left"))
        prev_action.triggered.connect(lambda: self._timer_engine.navigate(Direction.PREV))
        timer_menu.addAction(prev_action)

        next_action = QAction("Next Phase", self)
        next_action.setShortcut(QKeySequence("Ctrl+Right"))
        next_action.triggered.connect(lambda: self._timer_engine.navigate(Direction.NEXT))
        timer_menu.addAction(next_action)

        window_menu = menu_bar.addMenu("Window")

        minimize_action = QAction("Minimize", self)
        minimize_action.setShortcut(QKeySequence("Ctrl+M"))
        minimize_action.triggered.connect(self.showMinimized)
        window_menu.addAction(minimize_action)

    def _show_about(self) -> None:
        QMessageBox.about(
            self,
            "About Pomotide",
            "<h3>Pomotide</h3>"
            "<p>A Pomodoro timer that keeps counting across restarts.</p>",
        )

    # ══════════════════════════════════════════════════════════════════
    #  COMPLETION EFFECTS
    # ══════════════════════════════════════════════════════════════════

    def play_completion_sound(self, phase: TimerPhase) -> None:
        self._sound_manager.play_completion_sound(phase)

    def notify_completion(self, phase: TimerPhase, next_phase: TimerPhase) -> None:
        if phase is TimerPhase.WORK:
            title = "Pomodoro done!"
        else:
            title = "Break over"
        self._tray_icon.showMessage(title, f"Up next: {PHASE_LABELS[next_phase]}")

    # ══════════════════════════════════════════════════════════════════
    #  TIMER SIGNALS
    # ══════════════════════════════════════════════════════════════════

    def _on_state_changed(self) -> None:
        status = self._timer_engine.status
        phase_label = PHASE_LABELS[self._timer_engine.phase]
        self._status_bar.showMessage(STATUS_MESSAGES[status].format(phase=phase_label))
        self._update_tray_state()
        self._on_remaining_changed(self._timer_engine.remaining)

    def _on_remaining_changed(self, remaining: int) -> None:
        phase_label = PHASE_LABELS[self._timer_engine.phase]
        if self._timer_engine.status is TimerStatus.IDLE:
            self._tray_icon.setToolTip("Pomotide — Ready")
        else:
            self._tray_icon.setToolTip(
                f"Pomotide — {phase_label} {format_clock(remaining)}"
            )

    def _on_session_completed(self, phase: TimerPhase, duration_minutes: int) -> None:
        """Record the finished phase in the local history."""
        task_label = self._timer_widget.task_label if phase is TimerPhase.WORK else None
        try:
            record_session(phase.value, duration_minutes, task_label=task_label)
        except SQLAlchemyError:
            log.warning("Could not record %s session", phase.value, exc_info=True)

        if phase is TimerPhase.WORK:
            self._status_bar.showMessage(f"Pomodoro complete! {duration_minutes} minutes of focus")
        else:
            self._status_bar.showMessage("Break over, back to it")
        self._refresh_history()

    def _refresh_history(self) -> None:
        try:
            total = total_completed_work_sessions()
            self._session_history.refresh()
        except SQLAlchemyError:
            log.warning("Could not load session history", exc_info=True)
            return
        self._lifetime_label.setText(f"{total} pomodoros all-time")

    # ══════════════════════════════════════════════════════════════════
    #  SETTINGS
    # ══════════════════════════════════════════════════════════════════

    def _open_settings(self) -> None:
        """Open the settings dialog and apply any changes."""
        from .ui.settings_dialog import SettingsDialog

        def _preview():
            self._sound_manager.set_volume(self._settings.sound_volume)
            self._sound_manager.play("gentle")

        dlg = SettingsDialog(
            self._settings,
            parent=self,
            sound_preview_callback=_preview,
        )
        dlg.exec()
        self._apply_settings()

    def _apply_settings(self) -> None:
        """Push current Settings into the engine and sound manager."""
        self._timer_engine.apply_settings(self._settings)
        self._sound_manager.set_volume(self._settings.sound_volume)
        self._timer_widget.refresh()

    # ══════════════════════════════════════════════════════════════════
    #  QUIT
    # ══════════════════════════════════════════════════════════════════

    def _quit_with_confirm(self) -> None:
        """Quit, but ask first if a countdown is active."""
        if self._timer_engine.status is not TimerStatus.IDLE:
            reply = QMessageBox.question(
                self,
                "Quit Pomotide?",
                "A timer is still active. It will pick up where it left off "
                "next time. Quit anyway?",
                QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
                QMessageBox.StandardButton.No,
            )
            if reply != QMessageBox.StandardButton.Yes:
                return
        self._tray_icon.hide()
        QApplication.instance().quit()

    # ══════════════════════════════════════════════════════════════════
    #  WINDOW EVENTS
    # ══════════════════════════════════════════════════════════════════

    def showEvent(self, event) -> None:  # type: ignore[override]
        super().showEvent(event)
        self._timer_engine.handle_visibility_change(True)

    def hideEvent(self, event) -> None:  # type: ignore[override]
        super().hideEvent(event)
        self._timer_engine.handle_visibility_change(False)

    def changeEvent(self, event) -> None:  # type: ignore[override]
        super().changeEvent(event)
        if event.type() == QEvent.Type.WindowStateChange:
            self._timer_engine.handle_visibility_change(not self.isMinimized())

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._timer_engine.handle_unload()
        self._tray_icon.hide()
        event.accept()

    def keyPressEvent(self, event) -> None:  # type: ignore[override]
        """Space toggles, Escape resets the phase, arrows change phase."""
        key = event.key()
        typing = self._timer_widget.task_input_has_focus()
        if key == Qt.Key.Key_Space and not event.modifiers() and not typing:
            self._timer_engine.toggle()
            event.accept()
            return
        if key == Qt.Key.Key_Escape:
            if typing:
                self._timer_widget.setFocus()
            elif self._timer_engine.status is not TimerStatus.IDLE:
                self._timer_engine.reset_current_phase()
            event.accept()
            return
        if key in (Qt.Key.Key_Left, Qt.Key.Key_Right) and not typing:
            direction = Direction.PREV if key == Qt.Key.Key_Left else Direction.NEXT
            self._timer_engine.navigate(direction)
            event.accept()
            return
        super().keyPressEvent(event)
