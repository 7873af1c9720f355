"""Sound synthesis and playback using numpy + QSoundEffect.

All sounds are generated programmatically as WAV files using single
oscillator tones with an attack/decay envelope.  Files are cached to
disk so subsequent app launches are instant.

Sound names
-----------
- ``work``       : bright A5 chime, played when a focus session ends
- ``short_break``: softer E5 tone, played when a short break ends
- ``long_break`` : long, low A4 tone, played when a long break ends
- ``gentle``     : C5 triangle tone, used as the settings preview
"""

from __future__ import annotations

import io
import wave
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from PyQt6.QtCore import QObject, QUrl
from PyQt6.QtMultimedia import QSoundEffect

from ..timer.phases import TimerPhase


# ── paths ────────────────────────────────────────────────────────────────

APP_SUPPORT_DIR = Path.home() / "Library" / "Application Support" / "Pomotide"
SOUNDS_DIR = APP_SUPPORT_DIR / "sounds"

SAMPLE_RATE = 44100


@dataclass(frozen=True)
class SoundPreset:
    frequency: float  # Hz
    duration: float   # seconds
    waveform: str     # "sine" | "triangle"
    volume: float     # peak amplitude, 0..1


SOUND_PRESETS: dict[str, SoundPreset] = {
    "work":        SoundPreset(880.0, 1.2, "sine", 0.5),
    "short_break": SoundPreset(660.0, 0.8, "sine", 0.4),
    "long_break":  SoundPreset(440.0, 1.5, "sine", 0.6),
    "gentle":      SoundPreset(523.0, 1.0, "triangle", 0.3),
}

SOUND_NAMES = tuple(SOUND_PRESETS)


# ═══════════════════════════════════════════════════════════════════════════
#  WAV SYNTHESIS HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def _make_envelope(length: int, attack: int) -> np.ndarray:
    """Fast linear attack, then exponential decay to near silence."""
    env = np.ones(length, dtype=np.float64)
    a = min(attack, length)
    if a > 0:
        env[:a] = np.linspace(0.0, 1.0, a)
    if length > a:
        env[a:] = np.geomspace(1.0, 1e-4, length - a)
    return env


def _oscillator(waveform: str, freq: float, duration_s: float) -> np.ndarray:
    t = np.linspace(0, duration_s, int(SAMPLE_RATE * duration_s), endpoint=False)
    if waveform == "triangle":
        return 2.0 * np.abs(2.0 * ((t * freq) % 1.0) - 1.0) - 1.0
    return np.sin(2 * np.pi * freq * t)


def _to_wav_bytes(samples: np.ndarray) -> bytes:
    """Convert a float64 numpy array (-1..1) to 16-bit PCM WAV bytes."""
    # Clip and scale
    samples = np.clip(samples, -1.0, 1.0)
    int_samples = (samples * 32767).astype(np.int16)

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(SAMPLE_RATE)
        wf.writeframes(int_samples.tobytes())
    return buf.getvalue()


def render_preset(preset: SoundPreset) -> bytes:
    """Synthesize *preset* as WAV bytes."""
    tone = _oscillator(preset.waveform, preset.frequency, preset.duration)
    env = _make_envelope(len(tone), attack=int(SAMPLE_RATE * 0.01))
    # Trailing silence so QSoundEffect doesn't clip the tail
    tail = np.zeros(int(SAMPLE_RATE * 0.1))
    return _to_wav_bytes(np.concatenate([tone * env * preset.volume, tail]))


# ═══════════════════════════════════════════════════════════════════════════
#  SOUND MANAGER
# ═══════════════════════════════════════════════════════════════════════════


class SoundManager(QObject):
    """Manages sound synthesis, caching, and playback.

    Usage::

        mgr = SoundManager(parent=self)
        mgr.set_volume(70)
        mgr.play_completion_sound(TimerPhase.WORK)
    """

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        sounds_dir: Path | None = None,
    ) -> None:
        super().__init__(parent)
        self._volume = 0.7  # 0.0–1.0
        self._sounds_dir = sounds_dir or SOUNDS_DIR
        self._effects: dict[str, QSoundEffect] = {}

        self._ensure_wav_files()
        self._load_effects()

    # ── public API ────────────────────────────────────────────────────

    def set_volume(self, level: int) -> None:
        """Set volume (0-100).  Updates all loaded effects."""
        self._volume = max(0, min(level, 100)) / 100.0
        for effect in self._effects.values():
            effect.setVolume(self._volume)

    def play(self, name: str) -> None:
        """Play a sound by name.  No-op if the name is unknown."""
        effect = self._effects.get(name)
        if effect is not None:
            effect.play()

    def play_completion_sound(self, phase: TimerPhase) -> None:
        self.play(phase.value)

    @property
    def volume(self) -> int:
        """Current volume as 0-100 integer."""
        return round(self._volume * 100)

    # ── internal ──────────────────────────────────────────────────────

    def _ensure_wav_files(self) -> None:
        """Generate any missing WAV files to the cache directory."""
        self._sounds_dir.mkdir(parents=True, exist_ok=True)
        for name, preset in SOUND_PRESETS.items():
            path = self._sounds_dir / f"{name}.wav"
            if not path.exists():
                path.write_bytes(render_preset(preset))

    def _load_effects(self) -> None:
        """Create QSoundEffect instances from cached WAV files."""
        for name in SOUND_NAMES:
            path = self._sounds_dir / f"{name}.wav"
            if path.exists():
                effect = QSoundEffect(self)
                effect.setSource(QUrl.fromLocalFile(str(path)))
                effect.setVolume(self._volume)
                self._effects[name] = effect
