import unittest

from pitch_coach.detection.stability_analyzer import (
    AggregationMode,
    AggregatorSettings,
    PitchSampleAggregator,
    classify_feedback,
)
from pitch_coach.note_types import Feedback, PitchEstimate, PitchSample, Sufficiency
from pitch_coach.note_utils import note_to_frequency, parse_note


def sample(note, cents=0.0):
    return PitchSample(position=parse_note(note), cents=cents)


def estimate(note, confidence=0.95, cents=0.0):
    frequency = note_to_frequency(parse_note(note)) * 2.0 ** (cents / 1200.0)
    return PitchEstimate(frequency=frequency, confidence=confidence)


class TestEarTrainingAggregation(unittest.TestCase):
    def setUp(self):
        self.aggregator = PitchSampleAggregator()
        self.aggregator.open_window()

    def feed(self, *samples):
        for s in samples:
            self.assertTrue(self.aggregator.add_sample(s))

    def test_mode_wins(self):
        self.feed(sample("A4"), sample("A4"), sample("A4"), sample("G4"), sample("A4"))
        result = self.aggregator.evaluate(AggregationMode.EAR_TRAINING)
        self.assertTrue(result.ok)
        self.assertEqual(result.position, parse_note("A4"))
        self.assertEqual(result.mode_count, 4)
        self.assertEqual(result.sample_count, 5)

    def test_tie_goes_to_first_note_seen(self):
        self.feed(sample("G4"), sample("A4"), sample("A4"), sample("G4"))
        result = self.aggregator.evaluate(AggregationMode.EAR_TRAINING)
        self.assertTrue(result.ok)
        self.assertEqual(result.position, parse_note("G4"))

    def test_even_split_is_unstable(self):
        self.feed(
            sample("A4"), sample("A4"),
            sample("B4"), sample("B4"),
            sample("C5"), sample("C5"),
            sample("D5"), sample("D5"),
        )
        result = self.aggregator.evaluate(AggregationMode.EAR_TRAINING)
        self.assertEqual(result.sufficiency, Sufficiency.UNSTABLE)
        self.assertIsNone(result.position)

    def test_empty_window(self):
        result = self.aggregator.evaluate(AggregationMode.EAR_TRAINING)
        self.assertEqual(result.sufficiency, Sufficiency.INSUFFICIENT_DATA)
        self.assertEqual(result.sample_count, 0)

    def test_cents_averaged_over_mode_only(self):
        self.feed(
            sample("A4", 10.0),
            sample("A4", -4.0),
            sample("G4", 90.0),
            sample("A4", 6.0),
        )
        result = self.aggregator.evaluate(AggregationMode.EAR_TRAINING)
        self.assertAlmostEqual(result.cents, 4.0)

    def test_minimum_samples_setting(self):
        aggregator = PitchSampleAggregator(AggregatorSettings(ear_min_samples=3))
        aggregator.open_window()
        aggregator.add_sample(sample("A4"))
        aggregator.add_sample(sample("A4"))
        result = aggregator.evaluate(AggregationMode.EAR_TRAINING)
        self.assertEqual(result.sufficiency, Sufficiency.INSUFFICIENT_DATA)


class TestRangeTestAggregation(unittest.TestCase):
    def test_needs_five_samples(self):
        aggregator = PitchSampleAggregator()
        aggregator.open_window()
        for _ in range(4):
            aggregator.add_sample(sample("C3"))
        result = aggregator.evaluate(AggregationMode.RANGE_TEST)
        self.assertEqual(result.sufficiency, Sufficiency.INSUFFICIENT_DATA)
        self.assertEqual(result.sample_count, 4)

        aggregator.add_sample(sample("C3"))
        result = aggregator.evaluate(AggregationMode.RANGE_TEST)
        self.assertTrue(result.ok)
        self.assertEqual(result.position, parse_note("C3"))

    def test_no_share_requirement(self):
        aggregator = PitchSampleAggregator()
        aggregator.open_window()
        for note in ("C3", "D3", "E3", "F3", "G3", "C3"):
            aggregator.add_sample(sample(note))
        result = aggregator.evaluate(AggregationMode.RANGE_TEST)
        self.assertTrue(result.ok)
        self.assertEqual(result.position, parse_note("C3"))


class TestWindow(unittest.TestCase):
    def setUp(self):
        self.aggregator = PitchSampleAggregator()

    def test_closed_window_discards(self):
        self.assertFalse(self.aggregator.add_sample(sample("A4")))
        self.assertIsNone(self.aggregator.accept(estimate("A4")))
        self.assertEqual(self.aggregator.sample_count, 0)

    def test_open_window_resets_samples(self):
        self.aggregator.open_window()
        self.aggregator.accept(estimate("A4"))
        self.aggregator.close_window()
        self.assertEqual(self.aggregator.sample_count, 1)
        self.assertIsNone(self.aggregator.accept(estimate("A4")))
        self.assertEqual(self.aggregator.sample_count, 1)

        self.aggregator.open_window()
        self.assertEqual(self.aggregator.sample_count, 0)
        self.assertTrue(self.aggregator.is_open)

    def test_samples_is_a_copy(self):
        self.aggregator.open_window()
        self.aggregator.accept(estimate("A4"))
        self.aggregator.samples.clear()
        self.assertEqual(self.aggregator.sample_count, 1)


class TestConfidenceGate(unittest.TestCase):
    def setUp(self):
        self.aggregator = PitchSampleAggregator()
        self.aggregator.open_window()

    def test_gate_is_strict(self):
        self.assertIsNone(self.aggregator.accept(estimate("A4", confidence=0.85)))
        self.assertIsNotNone(self.aggregator.accept(estimate("A4", confidence=0.86)))

    def test_no_pitch_rejected(self):
        self.assertIsNone(self.aggregator.accept(PitchEstimate(-1.0, 0.99)))
        self.assertEqual(self.aggregator.sample_count, 0)

    def test_cents_against_reference(self):
        accepted = self.aggregator.accept(
            estimate("A4", cents=-20.0), reference=parse_note("A4"), timestamp=1.5
        )
        self.assertEqual(accepted.position, parse_note("A4"))
        self.assertAlmostEqual(accepted.cents, -20.0, places=6)
        self.assertEqual(accepted.timestamp, 1.5)

        # Sung a semitone above the reference
        accepted = self.aggregator.accept(estimate("A#4"), reference=parse_note("A4"))
        self.assertAlmostEqual(accepted.cents, 100.0, places=6)

    def test_cents_against_detected_note(self):
        accepted = self.aggregator.accept(estimate("C3", cents=15.0))
        self.assertEqual(accepted.position, parse_note("C3"))
        self.assertAlmostEqual(accepted.cents, 15.0, places=6)


class TestFeedback(unittest.TestCase):
    def test_boundaries(self):
        self.assertEqual(classify_feedback(0.0), Feedback.IN_TUNE)
        self.assertEqual(classify_feedback(9.99), Feedback.IN_TUNE)
        self.assertEqual(classify_feedback(-9.99), Feedback.IN_TUNE)
        self.assertEqual(classify_feedback(10.0), Feedback.SHARP)
        self.assertEqual(classify_feedback(-10.0), Feedback.FLAT)

    def test_configured_tolerance(self):
        aggregator = PitchSampleAggregator(AggregatorSettings(in_tune_cents=25.0))
        self.assertEqual(aggregator.classify_feedback(-20.0), Feedback.IN_TUNE)
        self.assertEqual(aggregator.classify_feedback(30.0), Feedback.SHARP)


if __name__ == "__main__":
    unittest.main()
