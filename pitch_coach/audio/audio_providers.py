import time
from typing import Optional

import numpy as np
import soundfile as sf

from ..core.interfaces import FrameCallback
from ..logger import get_logger
from ..note_types import AudioFrame
from .buffered_input import AudioInputHandler

logger = get_logger(__name__)


class WavFileAudioInput(AudioInputHandler):
    """Provides audio frames by reading from a WAV file.

    With realtime=True, poll() only releases the frames whose playback time
    has passed since start(); otherwise every poll() releases one frame.
    """

    def __init__(
        self,
        file_path: str,
        chunk_size: int = 2048,
        loop: bool = False,
        gain: float = 1.0,
        realtime: bool = True,
    ):
        super().__init__()
        self._file_path = file_path
        self._chunk_size = chunk_size
        self._loop = loop
        self._gain = gain
        self._realtime = realtime
        self._data: Optional[np.ndarray] = None
        self._position = 0
        self._started_at = 0.0

        with sf.SoundFile(self._file_path) as f:
            self._sample_rate = f.samplerate
            self._channels = f.channels

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def channels(self) -> int:
        return self._channels

    @property
    def exhausted(self) -> bool:
        """True once a non-looping file has delivered its last frame."""
        return (
            not self._loop
            and self._data is not None
            and self._position + self._chunk_size > len(self._data)
        )

    def start(self, callback: FrameCallback, device_id: Optional[int] = None) -> bool:
        if self._running:
            return True

        try:
            data, _ = sf.read(self._file_path, dtype="float32", always_2d=True)
        except (RuntimeError, OSError) as e:
            self._last_error = f"Could not read {self._file_path}: {e}"
            logger.error(self._last_error)
            return False

        # Mono: first channel only, with gain if specified
        self._data = data[:, 0] * self._gain if self._gain != 1.0 else data[:, 0]
        self._position = 0
        self._callback = callback
        self._last_error = None
        self._running = True
        self._started_at = time.monotonic()
        logger.info(
            f"Streaming {self._file_path} ({len(self._data)} samples @ {self._sample_rate} Hz)"
        )
        return True

    def stop(self) -> None:
        self._running = False
        self._discard_pending()

    def poll(self) -> int:
        if not self._running or self._data is None:
            return 0

        if self._realtime:
            while self._chunk_due() and self._next_chunk():
                pass
        else:
            self._next_chunk()
        return super().poll()

    def _chunk_due(self) -> bool:
        elapsed = time.monotonic() - self._started_at
        return self._position + self._chunk_size <= elapsed * self._sample_rate

    def _next_chunk(self) -> bool:
        end = self._position + self._chunk_size
        if end > len(self._data):
            if not self._loop or len(self._data) < self._chunk_size:
                return False
            self._position = 0
            self._started_at = time.monotonic()
            end = self._chunk_size
        chunk = self._data[self._position : end]
        self._position = end
        self._enqueue(AudioFrame(np.array(chunk, dtype=np.float32), self._sample_rate))
        return True
