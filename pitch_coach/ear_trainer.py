import random
from collections import deque
from typing import Any, Dict, Iterable, List, Optional

from .audio.pitch_detection_service import PitchDetectionService
from .core.config import TimingSettings
from .core.events import EngineEvents
from .core.interfaces import IScheduler, ITimerHandle, ITonePlayer
from .detection.stability_analyzer import AggregationMode, PitchSampleAggregator
from .logger import get_logger
from .note_types import (
    AudioFrame,
    ChallengeResult,
    ChallengeState,
    Feedback,
    NotePosition,
    PitchEstimate,
    PitchSample,
    Sufficiency,
)

# Get logger for this module
logger = get_logger(__name__)

FEEDBACK_MESSAGES = {
    Feedback.IN_TUNE: "In Tune!",
    Feedback.FLAT: "A little flat...",
    Feedback.SHARP: "A little sharp...",
}
UNSTABLE_MESSAGE = "Note was unstable. Try holding a steady pitch."
NO_PITCH_MESSAGE = "Could not detect pitch. Try singing louder."
NOT_ENOUGH_DATA_MESSAGE = "Not enough data. Try singing for the full duration."

# Most recent rounds kept in stats["history"]
HISTORY_LIMIT = 100

STATUS_TEXT = {
    ChallengeState.IDLE: "Ready!",
    ChallengeState.STARTING: "Starting mic...",
    ChallengeState.PLAYING: "Listen...",
    ChallengeState.ANALYZING: "Continue singing...",
}


class EarTrainingChallenge:
    """Pitch-matching round: play a target note, listen, score the sung reply.

    idle -> starting -> playing -(1.5s)-> analyzing -(2.0s)-> result

    reset() returns to idle from any state.
    """

    def __init__(
        self,
        session: PitchDetectionService,
        scheduler: IScheduler,
        tone_player: ITonePlayer,
        aggregator: Optional[PitchSampleAggregator] = None,
        events: Optional[EngineEvents] = None,
        timing: Optional[TimingSettings] = None,
        rng: Optional[random.Random] = None,
        device_id: Optional[int] = None,
    ) -> None:
        """Initialize the challenge.

        Args:
            session: Capture session started for each round
            scheduler: Source of the phase timers
            tone_player: Plays the target note
            aggregator: Sample aggregator, or None for default thresholds
            events: Event hub, or the session's hub when None
            timing: Phase durations
            rng: Random source for target selection (inject a seeded one in tests)
            device_id: Input device passed to the session
        """
        self._session = session
        self._scheduler = scheduler
        self._tone_player = tone_player
        self._aggregator = aggregator or PitchSampleAggregator()
        self.events = events or session.events
        self.timing = timing or TimingSettings()
        self._rng = rng or random.Random()
        self._device_id = device_id

        # Round state
        self.state = ChallengeState.IDLE
        self.target: Optional[NotePosition] = None
        self.result: Optional[ChallengeResult] = None
        self.live_sample: Optional[PitchSample] = None
        self._timer: Optional[ITimerHandle] = None

        # Session stats, in memory only
        self.stats: Dict[str, Any] = {
            "attempts": 0,
            "in_tune": 0,
            "history": deque(maxlen=HISTORY_LIMIT),
        }

    @property
    def aggregator(self) -> PitchSampleAggregator:
        return self._aggregator

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None and self._timer.active

    @property
    def is_running(self) -> bool:
        return self.state in (
            ChallengeState.STARTING,
            ChallengeState.PLAYING,
            ChallengeState.ANALYZING,
        )

    def start(self, practice_notes: Iterable[NotePosition], device_id: Optional[int] = None) -> bool:
        """Begin a new round, abandoning any round in progress.

        Args:
            practice_notes: Notes the target is drawn from
            device_id: Input device, overriding the constructor's choice

        Returns:
            True once the target is playing, False if capture could not start

        Raises:
            ValueError: If practice_notes is empty
        """
        notes: List[NotePosition] = list(practice_notes)
        if not notes:
            raise ValueError("Cannot start a challenge without practice notes")

        if self.state is not ChallengeState.IDLE:
            self.reset()

        self._set_state(ChallengeState.STARTING)
        if self.state is not ChallengeState.STARTING:
            # A listener abandoned the round
            return False

        device = device_id if device_id is not None else self._device_id
        if not self._session.start(self._on_estimate, device):
            logger.warning(f"Challenge aborted: {self._session.last_error}")
            self.reset()
            return False

        self.target = self._rng.choice(notes)
        self._tone_player.play_tone(self.target)
        # Timer first: a listener resetting on PLAYING must find it to cancel
        self._schedule(
            self.timing.pre_listen_seconds, ChallengeState.PLAYING, self._begin_analysis
        )
        self._set_state(ChallengeState.PLAYING, target=self.target)
        return self.state is ChallengeState.PLAYING

    def reset(self) -> None:
        """Stop capture, drop timers and samples, return to idle. Idempotent."""
        self._scheduler.cancel(self._timer)
        self._timer = None
        self._session.stop()
        self._aggregator.clear()
        self.target = None
        self.result = None
        self.live_sample = None
        if self.state is not ChallengeState.IDLE:
            self._set_state(ChallengeState.IDLE)

    def handle_estimate(self, estimate: PitchEstimate, timestamp: Optional[float] = None) -> Optional[PitchSample]:
        """Offer one frame's estimate. Only estimates made while analyzing count."""
        if self.state is not ChallengeState.ANALYZING:
            return None

        sample = self._aggregator.accept(estimate, reference=self.target, timestamp=timestamp)
        if sample is not None:
            self.live_sample = sample
            self.events.emit_pitch_sample(sample)
        return sample

    def status_text(self) -> str:
        if self.state is ChallengeState.RESULT:
            return self.result.message if self.result else "Finished"
        return STATUS_TEXT.get(self.state, "-")

    def _on_estimate(self, _frame: AudioFrame, estimate: PitchEstimate) -> None:
        self.handle_estimate(estimate)

    def _begin_analysis(self) -> None:
        self._aggregator.open_window()
        self._schedule(
            self.timing.analysis_seconds, ChallengeState.ANALYZING, self._finish_analysis
        )
        self._set_state(ChallengeState.ANALYZING, target=self.target)

    def _finish_analysis(self) -> None:
        self._session.stop()
        self._aggregator.close_window()

        verdict = self._aggregator.evaluate(AggregationMode.EAR_TRAINING)
        feedback = None
        if verdict.ok:
            feedback = self._aggregator.classify_feedback(verdict.cents)
            message = FEEDBACK_MESSAGES[feedback]
        elif verdict.sufficiency is Sufficiency.UNSTABLE:
            message = UNSTABLE_MESSAGE
        elif verdict.sample_count > 0:
            message = NOT_ENOUGH_DATA_MESSAGE
        else:
            message = NO_PITCH_MESSAGE

        self.result = ChallengeResult(
            target=self.target,
            result=verdict,
            feedback=feedback,
            message=message,
            samples=self._aggregator.samples,
        )
        self._record(self.result)
        self._set_state(ChallengeState.RESULT, target=self.target, result=self.result)

    def _record(self, result: ChallengeResult) -> None:
        self.stats["attempts"] += 1
        if result.feedback is Feedback.IN_TUNE:
            self.stats["in_tune"] += 1
        self.stats["history"].append(
            {
                "target": str(result.target),
                "sung": str(result.result.position) if result.result.position else None,
                "cents": result.result.cents,
                "feedback": result.feedback.value if result.feedback else None,
            }
        )
        logger.info(
            "Round %d: target %s, sung %s (%+.1f cents) -> %s",
            self.stats["attempts"],
            result.target,
            result.result.position or "?",
            result.result.cents,
            result.message,
        )

    def _schedule(self, delay: float, expected_state: ChallengeState, action) -> None:
        """Replace the phase timer. The callback is dropped if, by the time it
        fires, the machine has left expected_state or the timer was replaced.
        """
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

    def _set_state(self, state: ChallengeState, **payload) -> None:
        previous = self.state
        self.state = state
        logger.info(f"Challenge: {previous.value} -> {state.value}")
        self.events.emit_challenge_state_changed(state, payload)
