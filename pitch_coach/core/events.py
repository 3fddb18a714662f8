"""Event system for Pitch Coach components."""

from typing import Dict, List, Callable, Any
from enum import Enum, auto

from ..logger import get_logger

logger = get_logger(__name__)


class EngineEventType(Enum):
    """Event types emitted by the engine."""

    PITCH_SAMPLE = auto()  # (PitchSample)
    VOLUME = auto()  # (float level in [0, 1])
    CHALLENGE_STATE_CHANGED = auto()  # (ChallengeState, payload dict)
    CLASSIFIER_STATE_CHANGED = auto()  # (ClassifierState, payload dict)
    ERROR = auto()  # (str message)


class EventEmitter:
    """Event emitter for Pitch Coach components."""

    def __init__(self):
        """Initialize the event emitter."""
        self._listeners: Dict[Any, List[Callable]] = {}

    def on(self, event_type: Any, callback: Callable) -> None:
        """Register a callback for an event type.

        Args:
            event_type: Event type to listen for
            callback: Function to call when the event occurs
        """
        if event_type not in self._listeners:
            self._listeners[event_type] = []

        if callback not in self._listeners[event_type]:
            self._listeners[event_type].append(callback)
            logger.debug(f"Added listener for event {event_type}")

    def off(self, event_type: Any, callback: Callable) -> None:
        """Remove a previously registered callback."""
        listeners = self._listeners.get(event_type, [])
        if callback in listeners:
            listeners.remove(callback)

    def emit(self, event_type: Any, *args, **kwargs) -> None:
        """Emit an event.

        Args:
            event_type: Event type to emit
            *args: Positional arguments to pass to listeners
            **kwargs: Keyword arguments to pass to listeners
        """
        if event_type not in self._listeners:
            return

        for callback in list(self._listeners[event_type]):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_type}: {e}")

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners = {}
        logger.debug("Cleared all event listeners")


class EngineEvents:
    """Typed facade over EventEmitter for the engine's events."""

    def __init__(self):
        self._emitter = EventEmitter()

    def on_pitch_sample(self, callback: Callable) -> None:
        self._emitter.on(EngineEventType.PITCH_SAMPLE, callback)

    def on_volume(self, callback: Callable) -> None:
        self._emitter.on(EngineEventType.VOLUME, callback)

    def on_challenge_state_changed(self, callback: Callable) -> None:
        self._emitter.on(EngineEventType.CHALLENGE_STATE_CHANGED, callback)

    def on_classifier_state_changed(self, callback: Callable) -> None:
        self._emitter.on(EngineEventType.CLASSIFIER_STATE_CHANGED, callback)

    def on_error(self, callback: Callable) -> None:
        self._emitter.on(EngineEventType.ERROR, callback)

    def emit_pitch_sample(self, sample) -> None:
        self._emitter.emit(EngineEventType.PITCH_SAMPLE, sample)

    def emit_volume(self, level: float) -> None:
        self._emitter.emit(EngineEventType.VOLUME, level)

    def emit_challenge_state_changed(self, state, payload: Dict[str, Any]) -> None:
        self._emitter.emit(EngineEventType.CHALLENGE_STATE_CHANGED, state, payload)

    def emit_classifier_state_changed(self, state, payload: Dict[str, Any]) -> None:
        self._emitter.emit(EngineEventType.CLASSIFIER_STATE_CHANGED, state, payload)

    def emit_error(self, message: str) -> None:
        self._emitter.emit(EngineEventType.ERROR, message)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._emitter.clear()
