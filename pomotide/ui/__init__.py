"""UI package."""

from .timer_widget import TimerWidget
from .progress_ring import ProgressRing
from .session_history import SessionHistoryWidget
from .settings_dialog import SettingsDialog

__all__ = [
    "TimerWidget",
    "ProgressRing",
    "SessionHistoryWidget",
    "SettingsDialog",
]
