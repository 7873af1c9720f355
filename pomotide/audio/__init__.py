"""Audio package."""

from .sounds import SoundManager, SOUND_NAMES, SOUND_PRESETS

__all__ = ["SoundManager", "SOUND_NAMES", "SOUND_PRESETS"]
