"""Defines the core interfaces for the Pitch Coach application."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..note_types import AudioFrame, NotePosition

FrameCallback = Callable[[AudioFrame], None]


class IAudioInput(ABC):
    """Interface for audio capture sources."""

    @abstractmethod
    def start(self, callback: FrameCallback, device_id: Optional[int] = None) -> bool:
        """Start capturing audio.

        Returns:
            True if capture started, False otherwise (see last_error)
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing audio. Frames not yet delivered are discarded."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if audio is running."""
        pass

    @abstractmethod
    def poll(self) -> int:
        """Deliver buffered frames to the callback on the caller's thread.

        Returns:
            Number of frames delivered
        """
        pass

    @property
    @abstractmethod
    def last_error(self) -> Optional[str]:
        """Message describing why the last start() failed, if it did."""
        pass


class ITonePlayer(ABC):
    """Interface for reference tone playback."""

    @abstractmethod
    def play_tone(self, position: NotePosition) -> None:
        """Play a note. Fire-and-forget."""
        pass


class ITimerHandle(ABC):
    @abstractmethod
    def cancel(self) -> None:
        """Cancel the timer. Safe to call more than once."""
        pass

    @property
    @abstractmethod
    def active(self) -> bool:
        """True until the timer has fired (one-shot) or been cancelled."""
        pass


class IScheduler(ABC):
    """Interface for the logical timers that drive the state machines."""

    @abstractmethod
    def schedule(self, delay: float, callback: Callable[[], None]) -> ITimerHandle:
        """Run callback once, delay seconds from now."""
        pass

    @abstractmethod
    def schedule_recurring(self, callback: Callable[[], None]) -> ITimerHandle:
        """Run callback on every scheduler tick until cancelled."""
        pass

    @abstractmethod
    def cancel(self, handle: Optional[ITimerHandle]) -> None:
        """Cancel a handle returned by schedule or schedule_recurring."""
        pass
