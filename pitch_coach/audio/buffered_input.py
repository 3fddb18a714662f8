"""Frame buffering shared by every capture source."""

from __future__ import annotations
import queue
from typing import Optional
from abc import ABC

from ..logger import get_logger
from ..note_types import AudioFrame
from ..core.interfaces import IAudioInput, FrameCallback

logger = get_logger(__name__)


class AudioInputHandler(IAudioInput, ABC):
    """Base class for audio inputs that buffer frames until poll() is called.

    Capture backends may produce frames on their own thread; the engine only
    ever sees them on the thread that calls poll().
    """

    def __init__(self) -> None:
        self._frames: "queue.Queue[AudioFrame]" = queue.Queue()
        self._callback: Optional[FrameCallback] = None
        self._running = False
        self._last_error: Optional[str] = None

    def is_running(self) -> bool:
        """Check if audio input is running.

        Returns:
            True if audio input is running, False otherwise
        """
        return self._running

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def poll(self) -> int:
        delivered = 0
        # Re-checked per frame: the callback may stop capture mid-drain
        while self._running:
            try:
                frame = self._frames.get_nowait()
            except queue.Empty:
                break
            if self._callback:
                self._callback(frame)
                delivered += 1
        return delivered

    def _enqueue(self, frame: AudioFrame) -> None:
        if self._running:
            self._frames.put(frame)

    def _discard_pending(self) -> int:
        dropped = 0
        while True:
            try:
                self._frames.get_nowait()
                dropped += 1
            except queue.Empty:
                break
        if dropped:
            logger.debug(f"Discarded {dropped} frames captured after stop")
        return dropped
