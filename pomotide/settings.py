"""Application settings with JSON persistence.

Settings are stored at:
    ~/Library/Application Support/Pomotide/settings.json

Usage::

    settings = load_settings()
    settings.work_duration = 50
    save_settings(settings)
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, asdict, fields, replace
from pathlib import Path


log = logging.getLogger(__name__)

APP_SUPPORT_DIR = Path.home() / "Library" / "Application Support" / "Pomotide"
SETTINGS_PATH = APP_SUPPORT_DIR / "settings.json"


def positive_int(value: object) -> int:
    """Coerce *value* to an integer >= 1.

    Non-numeric, non-finite and non-positive values all collapse to 1;
    fractional values are floored.
    """
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(number):
        return 1
    return max(1, math.floor(number))


@dataclass
class Settings:
    """All user-configurable preferences."""

    # ── timer ─────────────────────────────────────────────────────────
    work_duration: int = 25                # minutes
    short_break_duration: int = 5
    long_break_duration: int = 15
    cycle_length: int = 4                  # pomodoros before a long break
    auto_start_breaks: bool = True
    auto_start_pomodoros: bool = True
    auto_start_on_navigation: bool = True  # tab clicks start the phase

    # ── audio ─────────────────────────────────────────────────────────
    sound_enabled: bool = False
    sound_volume: int = 70                 # 0-100

    # ── notifications ─────────────────────────────────────────────────
    notifications_enabled: bool = False

    def normalized(self) -> Settings:
        """Copy with durations and cycle length clamped to >= 1."""
        return replace(
            self,
            work_duration=positive_int(self.work_duration),
            short_break_duration=positive_int(self.short_break_duration),
            long_break_duration=positive_int(self.long_break_duration),
            cycle_length=positive_int(self.cycle_length),
            sound_volume=max(0, min(int(self.sound_volume), 100)),
        )


def load_settings() -> Settings:
    """Load settings from disk, falling back to defaults."""
    try:
        if SETTINGS_PATH.exists():
            data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
            # Only use keys that exist in the dataclass
            valid_keys = {f.name for f in fields(Settings)}
            filtered = {k: v for k, v in data.items() if k in valid_keys}
            return Settings(**filtered).normalized()
    except (OSError, ValueError, TypeError, AttributeError):
        log.warning("Could not read %s, using defaults", SETTINGS_PATH, exc_info=True)
    return Settings()


def save_settings(settings: Settings) -> None:
    """Write settings to disk as JSON."""
    APP_SUPPORT_DIR.mkdir(parents=True, exist_ok=True)
    SETTINGS_PATH.write_text(
        json.dumps(asdict(settings), indent=2) + "\n",
        encoding="utf-8",
    )
