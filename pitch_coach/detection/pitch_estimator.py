"""YIN fundamental-frequency estimation for single audio frames."""

from __future__ import annotations

from typing import ClassVar, Optional

import numpy as np

from ..logger import get_logger
from ..note_types import NO_PITCH, AudioFrame, PitchEstimate

logger = get_logger(__name__)


class PitchEstimator:
    """Estimate the fundamental frequency of a mono frame with the YIN algorithm.

    The estimator keeps one scratch buffer that is reused between calls with
    frames of the same length; the result depends only on the frame and the
    sample rate.

    Reference: A. de Cheveigné and H. Kawahara, "YIN, a fundamental frequency
    estimator for speech and music", JASA 111(4), 2002.
    """

    DEFAULT_THRESHOLD: ClassVar[float] = 0.2  # Absolute threshold on d'(tau)
    MIN_LAG: ClassVar[int] = 2  # Lags 0 and 1 are never considered a period

    def __init__(self, threshold: float = DEFAULT_THRESHOLD) -> None:
        """Initialize the estimator.

        Args:
            threshold: d'(tau) must drop below this value for a lag to be
                accepted as the period
        """
        if not 0.0 < threshold < 1.0:
            raise ValueError("threshold must be between 0.0 and 1.0")
        self._threshold = threshold
        self._yin_buffer: Optional[np.ndarray] = None

    @property
    def threshold(self) -> float:
        return self._threshold

    def estimate(self, frame, sample_rate: float) -> PitchEstimate:
        """Estimate the pitch of one frame.

        Args:
            frame: Sequence of time-domain samples
            sample_rate: Sample rate of the frame in Hz

        Returns:
            PitchEstimate; frequency is -1 and confidence 0 when no period
            falls below the threshold
        """
        data = np.asarray(frame, dtype=np.float64).ravel()
        window = data.size // 2
        if window <= self.MIN_LAG or sample_rate <= 0:
            return NO_PITCH

        yin = self._scratch(window)
        self._difference(data, yin, window)
        self._cumulative_mean_normalized_difference(yin, window)

        period = self._absolute_threshold(yin, window)
        if period is None:
            return NO_PITCH

        confidence = 1.0 - float(yin[period])
        better_tau = self._parabolic_interpolation(yin, period, window)
        return PitchEstimate(
            frequency=float(sample_rate / better_tau), confidence=confidence
        )

    def estimate_frame(self, frame: AudioFrame) -> PitchEstimate:
        return self.estimate(frame.samples, frame.sample_rate)

    def _scratch(self, window: int) -> np.ndarray:
        if self._yin_buffer is None or self._yin_buffer.size != window:
            self._yin_buffer = np.zeros(window, dtype=np.float64)
        return self._yin_buffer

    @staticmethod
    def _difference(data: np.ndarray, yin: np.ndarray, window: int) -> None:
        # d(tau) = sum_{i<W} (x_i - x_{i+tau})^2, computed one lag at a time
        yin[0] = 0.0
        head = data[:window]
        for tau in range(1, window):
            delta = head - data[tau : tau + window]
            yin[tau] = np.dot(delta, delta)

    @staticmethod
    def _cumulative_mean_normalized_difference(yin: np.ndarray, window: int) -> None:
        running_sum = np.cumsum(yin[1:window])
        taus = np.arange(1, window, dtype=np.float64)
        # A zero running sum means no variation at all up to that lag
        normalized = np.ones(window - 1, dtype=np.float64)
        nonzero = running_sum > 0
        normalized[nonzero] = yin[1:window][nonzero] * taus[nonzero] / running_sum[nonzero]
        yin[0] = 1.0
        yin[1:window] = normalized

    def _absolute_threshold(self, yin: np.ndarray, window: int) -> Optional[int]:
        below = np.flatnonzero(yin[self.MIN_LAG : window] < self._threshold)
        if below.size == 0:
            return None

        period = int(below[0]) + self.MIN_LAG
        # Walk down to the bottom of this dip rather than stopping at the first crossing
        while period + 1 < window and yin[period + 1] < yin[period]:
            period += 1
        return period

    @staticmethod
    def _parabolic_interpolation(yin: np.ndarray, period: int, window: int) -> float:
        x0 = period - 1
        x2 = period + 1 if period + 1 < window else period
        if x0 <= 0:
            return float(period)

        y0, y1, y2 = yin[x0], yin[period], yin[x2]
        denom = 2.0 * (2.0 * y1 - y2 - y0)
        if denom == 0:
            return float(period)
        return float(period + (y2 - y0) / denom)


def rms_volume(frame, scale: float = 7.0) -> float:
    """Level-meter reading in [0, 1]: the frame's RMS multiplied by `scale`."""
    data = np.asarray(frame, dtype=np.float64).ravel()
    if data.size == 0:
        return 0.0
    rms = float(np.sqrt(np.mean(data**2)))
    return min(1.0, max(0.0, rms * scale))


_default_estimator = PitchEstimator()


def estimate_pitch(frame, sample_rate: float) -> PitchEstimate:
    """Estimate the pitch of one frame with the default threshold."""
    return _default_estimator.estimate(frame, sample_rate)
