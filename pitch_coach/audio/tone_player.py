"""Reference tone playback for ear training."""

from typing import ClassVar, List, Optional, Tuple

import numpy as np
import sounddevice as sd

from ..core.interfaces import ITonePlayer
from ..logger import get_logger
from ..note_types import NotePosition
from ..note_utils import note_to_frequency

logger = get_logger(__name__)

# (frequency multiple, gain, detune in cents)
PIANO_HARMONICS: List[Tuple[int, float, float]] = [
    (1, 1.0, 0.0),
    (2, 0.4, 2.0),
    (3, 0.2, -2.0),
    (4, 0.1, 4.0),
]


def synthesize_tone(
    frequency: float,
    sample_rate: int = 44100,
    duration: float = 1.5,
    peak: float = 0.6,
) -> np.ndarray:
    """Render a short piano-like tone: a few detuned harmonics under a
    fast-attack, exponentially decaying envelope.
    """
    n = int(sample_rate * duration)
    t = np.arange(n, dtype=np.float64) / sample_rate

    wave = np.zeros(n, dtype=np.float64)
    for multiple, gain, detune in PIANO_HARMONICS:
        f = frequency * multiple * 2.0 ** (detune / 1200.0)
        if f >= sample_rate / 2:
            continue
        wave += gain * np.sin(2 * np.pi * f * t)

    attack = max(1, int(0.01 * sample_rate))
    envelope = np.exp(-t / 0.5)
    envelope[:attack] *= np.linspace(0.0, 1.0, attack)
    wave *= envelope

    max_abs = np.max(np.abs(wave))
    if max_abs > 0:
        wave *= peak / max_abs
    return wave.astype(np.float32)


class SoundDeviceTonePlayer(ITonePlayer):
    """Plays reference tones on the default output device with sounddevice."""

    SAMPLE_RATE: ClassVar[int] = 44100

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: Optional[int] = None,
        duration: float = 1.5,
    ):
        self._device_id = device_id
        self._sample_rate = sample_rate or self.SAMPLE_RATE
        self._duration = duration

    def play_tone(self, position: NotePosition) -> None:
        frequency = note_to_frequency(position)
        wave = synthesize_tone(frequency, self._sample_rate, self._duration)
        try:
            # Non-blocking: returns as soon as playback is queued
            sd.play(wave, self._sample_rate, device=self._device_id)
            logger.debug(f"Playing {position} ({frequency:.1f}Hz)")
        except (sd.PortAudioError, ValueError) as e:
            logger.error(f"Could not play {position}: {e}")
