"""
Short audible cues after an evaluation (sounddevice).
"""
from __future__ import annotations
import logging
from typing import Literal

import numpy as np

from epi_core.config import Settings

logger = logging.getLogger(__name__)

SAMPLE_RATE = 44100

# kind -> (frequency Hz, duration s)
TONES = {
    "success": (800.0, 0.2),
    "warning": (400.0, 0.3),
}


def tone(kind: Literal["success", "warning"], sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """Sine burst whose gain decays exponentially from 0.1 to 0.01."""
    freq, dur = TONES[kind]
    n = int(sample_rate * dur)
    t = np.arange(n, dtype=np.float32) / sample_rate
    gain = 0.1 * np.power(0.1, t / dur)
    return (gain * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def play_notification(kind: str, settings: Settings) -> bool:
    """
    Play the cue for `kind` without blocking.

    Returns:
        bool: True when playback was started.
    """
    if not settings.SOUND_ENABLED or kind not in TONES:
        return False
    try:
        # Lazy import: PortAudio may be missing on headless hosts
        import sounddevice as sd
        sd.play(tone(kind), SAMPLE_RATE)
    except Exception as exc:
        logger.warning(f"[notify] audio unavailable ({exc}); notification skipped")
        return False
    return True
