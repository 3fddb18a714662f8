import unittest

import numpy as np

from pitch_coach.audio.pitch_detection_service import PitchDetectionService
from pitch_coach.core.events import EngineEvents
from pitch_coach.core.scheduler import ManualScheduler
from pitch_coach.mock_audio_input import MockAudioInput

SAMPLE_RATE = 44100


def sine(frequency, amplitude=0.5, size=2048):
    t = np.arange(size) / SAMPLE_RATE
    return amplitude * np.sin(2 * np.pi * frequency * t)


class TestPitchDetectionService(unittest.TestCase):
    def setUp(self):
        self.scheduler = ManualScheduler()
        self.audio_input = MockAudioInput(SAMPLE_RATE)
        self.events = EngineEvents()
        self.service = PitchDetectionService(self.audio_input, self.scheduler, events=self.events)
        self.estimates = []

    def on_estimate(self, frame, estimate):
        self.estimates.append(estimate)

    def test_frames_delivered_on_scheduler_tick(self):
        self.assertTrue(self.service.start(self.on_estimate, device_id=3))
        self.assertEqual(self.audio_input.device_ids, [3])
        self.assertEqual(self.scheduler.recurring_count, 1)

        self.audio_input.push(sine(440.0))
        self.assertEqual(self.estimates, [])
        self.scheduler.run_pending()

        self.assertEqual(len(self.estimates), 1)
        self.assertAlmostEqual(self.estimates[0].frequency, 440.0, delta=1.0)
        self.assertEqual(self.service.frames_processed, 1)

    def test_volume_event_per_frame(self):
        levels = []
        self.events.on_volume(levels.append)
        self.service.start(self.on_estimate)
        self.audio_input.push(np.zeros(2048))
        self.audio_input.push(sine(220.0, amplitude=0.01))
        self.scheduler.run_pending()
        self.assertEqual(len(levels), 2)
        self.assertEqual(levels[0], 0.0)
        self.assertGreater(levels[1], 0.0)

    def test_stop_discards_pending_frames(self):
        self.service.start(self.on_estimate)
        self.audio_input.push(sine(440.0))
        self.service.stop()
        self.assertEqual(self.audio_input.queued, 0)
        self.assertEqual(self.scheduler.recurring_count, 0)

        self.scheduler.run_pending()
        self.assertEqual(self.estimates, [])
        self.assertFalse(self.service.is_running())

    def test_stop_is_idempotent(self):
        self.service.stop()
        self.service.start(self.on_estimate)
        self.service.stop()
        self.service.stop()
        self.assertEqual(self.audio_input.stop_calls, 1)

    def test_capture_failure(self):
        errors = []
        self.events.on_error(errors.append)
        audio_input = MockAudioInput(fail_with="No microphone found.")
        service = PitchDetectionService(audio_input, self.scheduler, events=self.events)

        self.assertFalse(service.start(self.on_estimate))
        self.assertFalse(service.is_running())
        self.assertEqual(service.last_error, "No microphone found.")
        self.assertEqual(errors, ["No microphone found."])
        self.assertEqual(self.scheduler.recurring_count, 0)

    def test_restart_clears_error(self):
        audio_input = MockAudioInput(fail_with="busy")
        service = PitchDetectionService(audio_input, self.scheduler)
        service.start(self.on_estimate)
        audio_input.fail_with = None
        self.assertTrue(service.start(self.on_estimate))
        self.assertIsNone(service.last_error)


if __name__ == "__main__":
    unittest.main()
