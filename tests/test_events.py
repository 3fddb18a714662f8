import unittest

from pitch_coach.core.events import EngineEvents, EngineEventType, EventEmitter
from pitch_coach.note_types import ChallengeState


class TestEventEmitter(unittest.TestCase):
    def setUp(self):
        self.emitter = EventEmitter()
        self.received = []

    def test_emit_to_listener(self):
        self.emitter.on(EngineEventType.VOLUME, self.received.append)
        self.emitter.emit(EngineEventType.VOLUME, 0.5)
        self.assertEqual(self.received, [0.5])

    def test_listener_registered_once(self):
        self.emitter.on(EngineEventType.VOLUME, self.received.append)
        self.emitter.on(EngineEventType.VOLUME, self.received.append)
        self.emitter.emit(EngineEventType.VOLUME, 1.0)
        self.assertEqual(self.received, [1.0])

    def test_off(self):
        self.emitter.on(EngineEventType.ERROR, self.received.append)
        self.emitter.off(EngineEventType.ERROR, self.received.append)
        self.emitter.emit(EngineEventType.ERROR, "boom")
        self.assertEqual(self.received, [])

    def test_failing_listener_does_not_stop_others(self):
        def broken(_):
            raise RuntimeError("listener failure")

        self.emitter.on(EngineEventType.ERROR, broken)
        self.emitter.on(EngineEventType.ERROR, self.received.append)
        self.emitter.emit(EngineEventType.ERROR, "message")
        self.assertEqual(self.received, ["message"])


class TestEngineEvents(unittest.TestCase):
    def test_state_change_payload(self):
        events = EngineEvents()
        received = []
        events.on_challenge_state_changed(lambda state, payload: received.append((state, payload)))
        events.emit_challenge_state_changed(ChallengeState.PLAYING, {"target": "A4"})
        self.assertEqual(received, [(ChallengeState.PLAYING, {"target": "A4"})])

    def test_clear(self):
        events = EngineEvents()
        received = []
        events.on_volume(received.append)
        events.clear()
        events.emit_volume(0.3)
        self.assertEqual(received, [])


if __name__ == "__main__":
    unittest.main()
