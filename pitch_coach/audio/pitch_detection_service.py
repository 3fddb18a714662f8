"""Pitch detection service that integrates audio input and pitch estimation."""

from __future__ import annotations
from typing import Callable, Optional

from ..logger import get_logger
from ..note_types import AudioFrame, PitchEstimate
from ..core.events import EngineEvents
from ..core.interfaces import IAudioInput, IScheduler, ITimerHandle
from ..detection.pitch_estimator import PitchEstimator, rms_volume

logger = get_logger(__name__)

EstimateCallback = Callable[[AudioFrame, PitchEstimate], None]


class PitchDetectionService:
    """Capture session: runs the estimator on every frame while capture is active.

    This class acts as a facade for the audio input and the estimator. It is
    owned by the caller and handed to the state machines, which start and stop
    it around their listening windows.
    """

    def __init__(
        self,
        audio_input: IAudioInput,
        scheduler: IScheduler,
        estimator: Optional[PitchEstimator] = None,
        events: Optional[EngineEvents] = None,
        volume_scale: float = 7.0,
    ) -> None:
        """Initialize the pitch detection service.

        Args:
            audio_input: Audio source delivering AudioFrames
            scheduler: Scheduler whose recurring tick drains the audio input
            estimator: Pitch estimator, or None to create a default one
            events: Event hub for VOLUME and ERROR events
            volume_scale: Multiplier applied to the frame RMS for the level meter
        """
        self._audio_input = audio_input
        self._scheduler = scheduler
        self._estimator = estimator or PitchEstimator()
        self.events = events or EngineEvents()
        self._volume_scale = volume_scale

        self._callback: Optional[EstimateCallback] = None
        self._poll_handle: Optional[ITimerHandle] = None
        self._running = False
        self._last_error: Optional[str] = None
        self.frames_processed = 0

    @property
    def estimator(self) -> PitchEstimator:
        return self._estimator

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def is_running(self) -> bool:
        return self._running

    def start(self, callback: EstimateCallback, device_id: Optional[int] = None) -> bool:
        """Start capture and per-frame estimation.

        Args:
            callback: Called with each frame and its estimate
            device_id: Optional input device

        Returns:
            True if capture started, False otherwise (an ERROR event is emitted)
        """
        if self._running:
            logger.warning("Pitch detection already running")
            self._callback = callback
            return True

        self._callback = callback
        self._last_error = None

        if not self._audio_input.start(self._process_frame, device_id):
            self._last_error = (
                self._audio_input.last_error or "Could not start audio capture."
            )
            self._callback = None
            logger.error(f"Capture failed to start: {self._last_error}")
            self.events.emit_error(self._last_error)
            return False

        self._running = True
        self._poll_handle = self._scheduler.schedule_recurring(self._audio_input.poll)
        logger.info("Pitch detection started")
        return True

    def stop(self) -> None:
        """Stop capture. Safe to call when not running."""
        self._scheduler.cancel(self._poll_handle)
        self._poll_handle = None
        self._callback = None
        if not self._running:
            return

        self._running = False
        self._audio_input.stop()
        logger.info("Pitch detection stopped")

    def _process_frame(self, frame: AudioFrame) -> None:
        if not self._running:
            return

        estimate = self._estimator.estimate_frame(frame)
        self.frames_processed += 1
        self.events.emit_volume(rms_volume(frame.samples, self._volume_scale))

        if self._callback:
            self._callback(frame, estimate)
