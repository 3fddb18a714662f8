"""Vocal range discovery and voice-type classification."""

from typing import Dict, List, Optional

from .audio.pitch_detection_service import PitchDetectionService
from .core.config import TimingSettings
from .core.events import EngineEvents
from .core.interfaces import IScheduler, ITimerHandle
from .detection.stability_analyzer import AggregationMode, PitchSampleAggregator
from .logger import get_logger
from .note_types import (
    AudioFrame,
    ClassifierState,
    Gender,
    NotePosition,
    PitchEstimate,
    PitchSample,
    VocalRange,
    VoiceTypeProfile,
)
from .note_utils import parse_note

logger = get_logger(__name__)

UNKNOWN_VOICE_TYPE = "Unknown"


def _profile(name: str, gender: Gender, low: str, high: str) -> VoiceTypeProfile:
    return VoiceTypeProfile(name, gender, parse_note(low).midi, parse_note(high).midi)


# Ordered: on equal overlap the earlier entry wins
VOICE_TYPES: Dict[Gender, List[VoiceTypeProfile]] = {
    Gender.MALE: [
        _profile("Bass", Gender.MALE, "E2", "E4"),
        _profile("Baritone", Gender.MALE, "G2", "G4"),
        _profile("Tenor", Gender.MALE, "C3", "C5"),
    ],
    Gender.FEMALE: [
        _profile("Contralto", Gender.FEMALE, "F3", "F5"),
        _profile("Mezzo-Soprano", Gender.FEMALE, "A3", "A5"),
        _profile("Soprano", Gender.FEMALE, "C4", "C6"),
    ],
}

PROMPTS = {
    ClassifierState.GENDER: "Select your gender.",
    ClassifierState.LOW_NOTE_TEST: "Sing your lowest comfortable note.",
    ClassifierState.HIGH_NOTE_TEST: "Great! Now sing your highest comfortable note.",
}
RETRY_MESSAGE = "Could not get a stable note. Please try again."
ROLLBACK_MESSAGE = "Highest note must be higher than lowest. Let's try again."


def classify_voice(
    vocal_range: VocalRange,
    gender: Gender,
    voice_types: Optional[Dict[Gender, List[VoiceTypeProfile]]] = None,
) -> str:
    """Name the voice type whose range overlaps the singer's the most.

    Returns:
        The profile name, or "Unknown" when no profile overlaps at all
    """
    candidates = (voice_types or VOICE_TYPES).get(gender, [])
    low, high = vocal_range.low.midi, vocal_range.high.midi

    best_match = UNKNOWN_VOICE_TYPE
    highest_overlap = 0
    for profile in candidates:
        overlap = max(0, min(high, profile.midi_high) - max(low, profile.midi_low))
        if overlap > highest_overlap:
            highest_overlap = overlap
            best_match = profile.name
    return best_match


class ClassifierStateError(RuntimeError):
    """A classifier command was issued in a state that does not accept it."""


class VocalRangeClassifier:
    """
    Walks a singer through gender selection and a low/high note test, then
    classifies the resulting range.

    gender -> low_note_test -> high_note_test -> result

    A high note that is not above the low note sends the machine back to
    low_note_test with both notes cleared.
    """

    def __init__(
        self,
        session: PitchDetectionService,
        scheduler: IScheduler,
        aggregator: Optional[PitchSampleAggregator] = None,
        events: Optional[EngineEvents] = None,
        timing: Optional[TimingSettings] = None,
        voice_types: Optional[Dict[Gender, List[VoiceTypeProfile]]] = None,
        device_id: Optional[int] = None,
    ):
        self._session = session
        self._scheduler = scheduler
        self._aggregator = aggregator or PitchSampleAggregator()
        self.events = events or session.events
        self.timing = timing or TimingSettings()
        self._voice_types = voice_types or VOICE_TYPES
        self._device_id = device_id

        self.state = ClassifierState.GENDER
        self.gender: Optional[Gender] = None
        self.low_note: Optional[NotePosition] = None
        self.high_note: Optional[NotePosition] = None
        self.vocal_range: Optional[VocalRange] = None
        self.voice_type: Optional[str] = None
        self.live_note: Optional[NotePosition] = None
        self.feedback = PROMPTS[ClassifierState.GENDER]
        self._timer: Optional[ITimerHandle] = None

    @property
    def aggregator(self) -> PitchSampleAggregator:
        return self._aggregator

    @property
    def is_listening(self) -> bool:
        return self._timer is not None and self._timer.active

    def select_gender(self, gender: Gender) -> None:
        if self.state is not ClassifierState.GENDER:
            raise ClassifierStateError(f"Gender is chosen first, not in {self.state.value}")
        self.gender = gender
        self._set_state(ClassifierState.LOW_NOTE_TEST, PROMPTS[ClassifierState.LOW_NOTE_TEST])

    def start_range_test(self, device_id: Optional[int] = None) -> bool:
        """Open a capture window for the current boundary note.

        Returns:
            True if listening started; False if a test is already running or
            capture could not start (feedback holds the reason)
        """
        if self.state not in (ClassifierState.LOW_NOTE_TEST, ClassifierState.HIGH_NOTE_TEST):
            raise ClassifierStateError(f"No range test in state {self.state.value}")
        if self.is_listening:
            logger.warning("Range test already listening")
            return False

        self._aggregator.open_window()
        self.live_note = None
        which = "lowest" if self.state is ClassifierState.LOW_NOTE_TEST else "highest"

        device = device_id if device_id is not None else self._device_id
        if not self._session.start(self._on_estimate, device):
            self._aggregator.clear()
            self._set_state(self.state, self._session.last_error or RETRY_MESSAGE)
            return False

        self._schedule(self.timing.range_test_seconds, self.state, self._finish_test)
        self._set_state(self.state, f"Listening for your {which} note...", listening=True)
        return True

    def handle_estimate(self, estimate: PitchEstimate, timestamp: Optional[float] = None) -> Optional[PitchSample]:
        """Offer one frame's estimate. Ignored unless a test window is open."""
        if not self.is_listening:
            return None
        sample = self._aggregator.accept(estimate, timestamp=timestamp)
        if sample is not None:
            self.live_note = sample.position
            self.events.emit_pitch_sample(sample)
        return sample

    def confirm_range(self) -> VocalRange:
        """The validated range. Only available once the machine reaches result."""
        if self.state is not ClassifierState.RESULT or self.vocal_range is None:
            raise ClassifierStateError("Range is not available before the result step")
        return self.vocal_range

    def reset(self) -> None:
        """Cancel any test and start over from gender selection. Idempotent."""
        self._scheduler.cancel(self._timer)
        self._timer = None
        self._session.stop()
        self._aggregator.clear()
        self.gender = None
        self.low_note = None
        self.high_note = None
        self.vocal_range = None
        self.voice_type = None
        self.live_note = None
        if self.state is not ClassifierState.GENDER:
            self._set_state(ClassifierState.GENDER, PROMPTS[ClassifierState.GENDER])
        else:
            self.feedback = PROMPTS[ClassifierState.GENDER]

    def _on_estimate(self, _frame: AudioFrame, estimate: PitchEstimate) -> None:
        self.handle_estimate(estimate)

    def _finish_test(self) -> None:
        self._session.stop()
        self._aggregator.close_window()
        verdict = self._aggregator.evaluate(AggregationMode.RANGE_TEST)

        if not verdict.ok:
            logger.info(
                f"{self.state.value}: no stable note ({verdict.sample_count} samples)"
            )
            self._set_state(self.state, RETRY_MESSAGE)
            return

        if self.state is ClassifierState.LOW_NOTE_TEST:
            self.low_note = verdict.position
            logger.info(f"Lowest note: {self.low_note}")
            self._set_state(
                ClassifierState.HIGH_NOTE_TEST,
                PROMPTS[ClassifierState.HIGH_NOTE_TEST],
                low_note=self.low_note,
            )
            return

        candidate = verdict.position
        if self.low_note is not None and candidate.midi > self.low_note.midi:
            self.high_note = candidate
            self.vocal_range = VocalRange(self.low_note, self.high_note)
            self.voice_type = classify_voice(self.vocal_range, self.gender, self._voice_types)
            logger.info(f"Vocal range {self.vocal_range}: {self.voice_type}")
            self._set_state(
                ClassifierState.RESULT,
                f"Your vocal range is {self.vocal_range} ({self.voice_type}).",
                vocal_range=self.vocal_range,
                voice_type=self.voice_type,
            )
        else:
            logger.info(f"Rejected high note {candidate} (low note {self.low_note})")
            self.low_note = None
            self.high_note = None
            self._set_state(ClassifierState.LOW_NOTE_TEST, ROLLBACK_MESSAGE)

    def _schedule(self, delay: float, expected_state: ClassifierState, action) -> None:
        self._scheduler.cancel(self._timer)
        handle = None

        def fire():
            if self.state is not expected_state or self._timer is not handle:
                logger.debug(f"Ignoring stale timer for {expected_state.value}")
                return
            self._timer = None
            action()

        handle = self._scheduler.schedule(delay, fire)
        self._timer = handle

    def _set_state(self, state: ClassifierState, feedback: str, **payload) -> None:
        previous = self.state
        self.state = state
        self.feedback = feedback
        if previous is not state:
            logger.info(f"Classifier: {previous.value} -> {state.value}")
        payload["feedback"] = feedback
        self.events.emit_classifier_state_changed(state, payload)
