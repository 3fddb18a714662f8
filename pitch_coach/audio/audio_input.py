"""Audio input handling for pitch detection."""

from __future__ import annotations
import numpy as np
import sounddevice as sd
from typing import Optional, Dict, Any, Tuple, ClassVar

from ..logger import get_logger
from ..note_types import AudioFrame
from ..core.interfaces import FrameCallback
from .buffered_input import AudioInputHandler

logger = get_logger(__name__)

NO_DEVICE_MESSAGE = "No microphone found. Please connect a microphone and try again."
ACCESS_ERROR_MESSAGE = "An error occurred while accessing the microphone."


class SoundDeviceInput(AudioInputHandler):
    """Audio input handler using sounddevice library."""

    # Audio configuration
    SAMPLE_RATE: ClassVar[int] = 44100  # Hz
    FRAMES_PER_BUFFER: ClassVar[int] = 2048  # One analysis frame per block
    CHANNELS: ClassVar[int] = 1  # Mono audio

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: Optional[int] = None,
        frames_per_buffer: Optional[int] = None,
        channels: Optional[int] = None,
    ) -> None:
        """Initialize the audio input handler.

        Args:
            device_id: Audio input device ID, or None for the system default
            sample_rate: Sample rate in Hz, or None for default (44100)
            frames_per_buffer: Buffer size in frames, or None for default (2048)
            channels: Number of audio channels, or None for default (1)
        """
        super().__init__()
        self._device_id = device_id
        self._sample_rate = sample_rate or self.SAMPLE_RATE
        self._frames_per_buffer = frames_per_buffer or self.FRAMES_PER_BUFFER
        self._channels = channels or self.CHANNELS
        self._stream: Optional[sd.InputStream] = None

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def _audio_callback(
        self,
        indata: np.ndarray,
        _frames: int,
        _time_info,
        status: sd.CallbackFlags,
    ) -> None:
        """Callback for processing audio data from the input stream.

        Note:
            This is called from a separate audio thread, so it only copies the
            block into the frame queue.
        """
        if status:
            logger.warning(f"Audio callback status: {status}")

        # Extract mono audio data (take first channel if multi-channel)
        audio_data = indata[:, 0] if indata.ndim > 1 else indata
        self._enqueue(AudioFrame(np.array(audio_data, dtype=np.float32), self._sample_rate))

    def start(self, callback: FrameCallback, device_id: Optional[int] = None) -> bool:
        """Start capturing audio and pass frames to the callback on poll().

        Args:
            callback: Function to call with each AudioFrame
            device_id: Input device to open, overriding the constructor's choice

        Returns:
            True if started successfully, False otherwise
        """
        if self._running:
            logger.warning("Audio input already running")
            return True

        self._callback = callback
        self._last_error = None
        self._discard_pending()
        device = device_id if device_id is not None else self._device_id

        # Try different sample rates if the requested one fails
        sample_rates_to_try = [44100, 48000, 22050, 16000]
        if self._sample_rate in sample_rates_to_try:
            sample_rates_to_try.remove(self._sample_rate)
        sample_rates_to_try.insert(0, self._sample_rate)

        for rate in sample_rates_to_try:
            try:
                logger.info(f"Trying to start audio input with sample rate: {rate} Hz")
                self._stream = sd.InputStream(
                    device=device,
                    samplerate=rate,
                    blocksize=self._frames_per_buffer,
                    channels=self._channels,
                    dtype="float32",
                    callback=self._audio_callback,
                )
                self._sample_rate = rate
                self._running = True
                self._stream.start()
                logger.info(f"Audio input started with sample rate {rate} Hz")
                return True
            except ValueError as e:
                # sounddevice raises ValueError when no matching device exists
                self._running = False
                self._close_stream()
                self._last_error = NO_DEVICE_MESSAGE
                logger.error(f"No usable input device ({device}): {e}")
                return False
            except sd.PortAudioError as e:
                self._running = False
                self._close_stream()
                self._last_error = f"{ACCESS_ERROR_MESSAGE} ({e})"
                logger.warning(
                    f"Failed to start audio input with sample rate {rate} Hz: {e}"
                )

        logger.error("Could not start audio input with any sample rate")
        return False

    def stop(self) -> None:
        """Stop capturing audio."""
        if not self._running:
            self._discard_pending()
            return

        self._running = False
        self._close_stream()
        self._discard_pending()
        logger.info("Audio input stopped")

    def _close_stream(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        except sd.PortAudioError as e:
            logger.error(f"Error stopping audio input: {e}")
        finally:
            self._stream = None


def list_input_devices() -> Dict[int, Dict[str, Any]]:
    """Return the input-capable devices keyed by device ID."""
    devices = sd.query_devices()
    return {
        device_id: device
        for device_id, device in enumerate(devices)
        if device["max_input_channels"] > 0
    }


def default_input_device() -> Tuple[Optional[int], Optional[Dict[str, Any]]]:
    """Find the system's default input device.

    Returns:
        A tuple of (device_id, device_info), or (None, None) if there is none
    """
    try:
        device_id = sd.default.device[0]
        if device_id is None or device_id < 0:
            return None, None
        return device_id, sd.query_devices(device_id)
    except sd.PortAudioError as e:
        logger.error(f"Error querying default input device: {e}")
        return None, None
