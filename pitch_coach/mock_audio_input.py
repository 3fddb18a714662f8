from typing import List, Optional

import numpy as np

from .audio.buffered_input import AudioInputHandler
from .core.interfaces import FrameCallback, ITonePlayer
from .note_types import AudioFrame, NotePosition


class MockAudioInput(AudioInputHandler):
    """An audio input for unit tests. Frames are pushed by hand."""

    def __init__(self, sample_rate: int = 44100, fail_with: Optional[str] = None):
        super().__init__()
        self.sample_rate = sample_rate
        self.fail_with = fail_with
        self.start_calls = 0
        self.stop_calls = 0
        self.device_ids: List[Optional[int]] = []

    def start(self, callback: FrameCallback, device_id: Optional[int] = None) -> bool:
        self.start_calls += 1
        self.device_ids.append(device_id)
        if self.fail_with:
            self._last_error = self.fail_with
            return False
        self._callback = callback
        self._last_error = None
        self._running = True
        return True

    def stop(self) -> None:
        self.stop_calls += 1
        self._running = False
        self._discard_pending()

    def push(self, samples, sample_rate: Optional[int] = None) -> None:
        """Queue a frame as if the device had captured it."""
        self._enqueue(
            AudioFrame(np.asarray(samples, dtype=np.float32), sample_rate or self.sample_rate)
        )

    @property
    def queued(self) -> int:
        return self._frames.qsize()


class RecordingTonePlayer(ITonePlayer):
    """A tone player for unit tests that remembers what it was asked to play."""

    def __init__(self):
        self.played: List[NotePosition] = []

    def play_tone(self, position: NotePosition) -> None:
        self.played.append(position)
