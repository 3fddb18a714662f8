import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from ..logger import get_logger
from ..note_types import (
    Feedback,
    NotePosition,
    PitchEstimate,
    PitchSample,
    StableNoteResult,
    Sufficiency,
)
from ..note_utils import cents_off, frequency_to_note, note_to_frequency

logger = get_logger(__name__)


class AggregationMode(Enum):
    EAR_TRAINING = "ear_training"  # Mode must hold a share of the window
    RANGE_TEST = "range_test"  # Window must hold a minimum number of samples


@dataclass
class AggregatorSettings:
    min_confidence: float = 0.85  # Per-frame gate, strictly greater than
    mode_share: float = 0.25  # Ear training: mode count must exceed n * share
    ear_min_samples: int = 1  # Ear training: below this the window is insufficient
    range_min_samples: int = 5  # Range test: absolute minimum window size
    in_tune_cents: float = 10.0


class PitchSampleAggregator:
    """
    Collects gated per-frame note readings over an observation window and
    reduces them to one stable note.
    """

    def __init__(self, settings: Optional[AggregatorSettings] = None):
        self.settings = settings or AggregatorSettings()
        self._samples: List[PitchSample] = []
        self._open = False

    @property
    def samples(self) -> List[PitchSample]:
        return list(self._samples)

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    @property
    def is_open(self) -> bool:
        return self._open

    def open_window(self) -> None:
        """Start a new observation window, dropping any previous samples."""
        self._samples = []
        self._open = True

    def close_window(self) -> None:
        self._open = False

    def clear(self) -> None:
        self._samples = []
        self._open = False

    def to_sample(
        self,
        estimate: PitchEstimate,
        reference: Optional[NotePosition] = None,
        timestamp: Optional[float] = None,
    ) -> Optional[PitchSample]:
        """Turn an estimate into a sample if it passes the confidence gate.

        Cents are measured against `reference` when given, otherwise against
        the nominal frequency of the detected note.
        """
        if not estimate.has_pitch or estimate.confidence <= self.settings.min_confidence:
            return None

        position = frequency_to_note(estimate.frequency)
        if position is None:
            return None

        target = reference if reference is not None else position
        return PitchSample(
            position=position,
            cents=cents_off(note_to_frequency(target), estimate.frequency),
            frequency=estimate.frequency,
            timestamp=time.time() if timestamp is None else timestamp,
        )

    def accept(
        self,
        estimate: PitchEstimate,
        reference: Optional[NotePosition] = None,
        timestamp: Optional[float] = None,
    ) -> Optional[PitchSample]:
        """Gate an estimate and, while the window is open, record it.

        Returns:
            The recorded sample, or None if the frame was rejected or arrived
            outside the window
        """
        if not self._open:
            return None
        sample = self.to_sample(estimate, reference, timestamp)
        if sample is not None:
            self._samples.append(sample)
        return sample

    def add_sample(self, sample: PitchSample) -> bool:
        """Record an already gated sample. Returns False when the window is closed."""
        if not self._open:
            return False
        self._samples.append(sample)
        return True

    def evaluate(self, mode: AggregationMode) -> StableNoteResult:
        """Reduce the collected samples to a StableNoteResult."""
        samples = self._samples
        count = len(samples)
        if count == 0:
            logger.debug("Window closed with no accepted samples")
            return StableNoteResult(None, 0.0, Sufficiency.INSUFFICIENT_DATA)

        # Dicts keep insertion order, so ties go to the first note heard
        note_counts: Dict[NotePosition, int] = {}
        for sample in samples:
            note_counts[sample.position] = note_counts.get(sample.position, 0) + 1

        mode_note = None
        mode_count = 0
        for position, note_count in note_counts.items():
            if note_count > mode_count:
                mode_note, mode_count = position, note_count

        logger.debug(
            f"Window histogram ({count} samples): "
            + ", ".join(f"{p}={c}" for p, c in note_counts.items())
        )

        if mode is AggregationMode.EAR_TRAINING:
            if count < self.settings.ear_min_samples:
                return StableNoteResult(
                    None, 0.0, Sufficiency.INSUFFICIENT_DATA, count, mode_count
                )
            if not mode_count > count * self.settings.mode_share:
                logger.debug(
                    f"Unstable: {mode_note} held {mode_count}/{count} "
                    f"(needs > {count * self.settings.mode_share:g})"
                )
                return StableNoteResult(
                    None, 0.0, Sufficiency.UNSTABLE, count, mode_count
                )
        elif count < self.settings.range_min_samples:
            logger.debug(
                f"Insufficient: {count} < {self.settings.range_min_samples} samples"
            )
            return StableNoteResult(
                None, 0.0, Sufficiency.INSUFFICIENT_DATA, count, mode_count
            )

        mode_cents = [s.cents for s in samples if s.position == mode_note]
        avg_cents = sum(mode_cents) / len(mode_cents)
        logger.info(
            f"Stable note: {mode_note} ({mode_count}/{count} votes, {avg_cents:+.1f} cents)"
        )
        return StableNoteResult(mode_note, avg_cents, Sufficiency.OK, count, mode_count)

    def classify_feedback(self, cents: float) -> Feedback:
        return classify_feedback(cents, self.settings.in_tune_cents)


def classify_feedback(cents: float, in_tune_cents: float = 10.0) -> Feedback:
    """In tune inside +/- in_tune_cents, otherwise flat or sharp by sign."""
    if abs(cents) < in_tune_cents:
        return Feedback.IN_TUNE
    if cents < 0:
        return Feedback.FLAT
    return Feedback.SHARP
