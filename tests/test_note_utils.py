import math
import unittest

from pitch_coach.note_types import InvalidRangeError, NoteName, NotePosition, VocalRange
from pitch_coach.note_utils import (
    cents_off,
    format_note,
    frequency_to_note,
    midi_to_note,
    note_to_frequency,
    note_to_midi,
    notes_in_range,
    parse_note,
)


class TestScientificPitchNotation(unittest.TestCase):
    def test_middle_c(self):
        # Middle C (C4) should be ~261.63 Hz
        self.assertEqual(str(frequency_to_note(261.63)), "C4")
        self.assertEqual(parse_note("C4").midi, 60)

    def test_a4(self):
        self.assertEqual(str(frequency_to_note(440.0)), "A4")
        self.assertAlmostEqual(note_to_frequency(parse_note("A4")), 440.0)

    def test_octave_transitions(self):
        # B3 -> C4
        self.assertEqual(str(frequency_to_note(246.94)), "B3")
        self.assertEqual(str(frequency_to_note(261.63)), "C4")
        self.assertLess(parse_note("B3"), parse_note("C4"))

    def test_sharps_and_flats(self):
        self.assertEqual(str(frequency_to_note(277.18)), "C#4")
        self.assertEqual(str(frequency_to_note(311.13)), "D#4")
        self.assertEqual(format_note(frequency_to_note(277.18), use_flats=True), "Db4")
        self.assertEqual(format_note(frequency_to_note(311.13), use_flats=True), "Eb4")

        # Naturals keep their names with flats enabled
        self.assertEqual(format_note(frequency_to_note(329.63), use_flats=True), "E4")
        self.assertEqual(format_note(frequency_to_note(493.88), use_flats=True), "B4")

    def test_no_note_for_non_positive_frequency(self):
        self.assertIsNone(frequency_to_note(0.0))
        self.assertIsNone(frequency_to_note(-1.0))
        self.assertIsNone(frequency_to_note(float("nan")))


class TestMidiConversion(unittest.TestCase):
    def test_round_trip_every_midi_number(self):
        for midi in range(0, 128):
            position = midi_to_note(midi)
            self.assertEqual(position.midi, midi)
            self.assertEqual(frequency_to_note(note_to_frequency(position)), position)

    def test_lowest_octave_is_negative(self):
        self.assertEqual(midi_to_note(0), NotePosition(NoteName.C, -1))
        self.assertEqual(note_to_midi(NoteName.C, -1), 0)
        self.assertEqual(midi_to_note(127), NotePosition(NoteName.G, 9))


class TestCents(unittest.TestCase):
    def test_identity_is_zero(self):
        for freq in (55.0, 261.63, 440.0, 1760.0):
            self.assertEqual(cents_off(freq, freq), 0.0)

    def test_octave_is_1200_cents(self):
        self.assertAlmostEqual(cents_off(440.0, 880.0), 1200.0)
        self.assertAlmostEqual(cents_off(440.0, 220.0), -1200.0)

    def test_semitone(self):
        a_sharp = note_to_frequency(parse_note("A#4"))
        self.assertAlmostEqual(cents_off(440.0, a_sharp), 100.0, places=6)

    def test_non_positive_frequency_gives_zero(self):
        self.assertEqual(cents_off(0.0, 440.0), 0.0)
        self.assertEqual(cents_off(440.0, -1.0), 0.0)
        self.assertFalse(math.isnan(cents_off(-5.0, -5.0)))


class TestParseNote(unittest.TestCase):
    def test_enharmonic_spellings(self):
        self.assertEqual(parse_note("Bb3"), parse_note("A#3"))
        self.assertEqual(parse_note("Gb2"), NotePosition(NoteName.F_SHARP, 2))
        self.assertEqual(parse_note("db5"), NotePosition(NoteName.C_SHARP, 5))

    def test_spellings_across_octave_boundary(self):
        self.assertEqual(parse_note("Cb4"), parse_note("B3"))
        self.assertEqual(parse_note("B#3"), parse_note("C4"))
        self.assertEqual(parse_note("Fb4"), parse_note("E4"))
        self.assertEqual(parse_note("E#4"), parse_note("F4"))

    def test_pitch_class_from_spelling(self):
        self.assertIs(NoteName.from_spelling("Bb"), NoteName.A_SHARP)
        self.assertIs(NoteName.from_spelling("f#"), NoteName.F_SHARP)
        self.assertIs(NoteName.from_spelling("Cb"), NoteName.B)
        self.assertEqual(NoteName.A_SHARP.flat_name, "Bb")
        with self.assertRaises(ValueError):
            NoteName.from_spelling("H")

    def test_invalid_notes(self):
        for text in ("", "C", "H4", "A##4", "4A", None):
            with self.assertRaises(ValueError):
                parse_note(text)


class TestPracticeNotes(unittest.TestCase):
    def test_margin_inside_range(self):
        notes = notes_in_range(VocalRange(parse_note("C3"), parse_note("C5")))
        self.assertEqual(notes[0], parse_note("D3"))
        self.assertEqual(notes[-1], parse_note("A#4"))
        self.assertEqual(len(notes), 21)

    def test_narrow_range_falls_back_to_middle_c(self):
        notes = notes_in_range(VocalRange(parse_note("C4"), parse_note("D4")))
        self.assertEqual(notes, [parse_note("C4")])

    def test_range_must_ascend(self):
        with self.assertRaises(InvalidRangeError):
            VocalRange(parse_note("C4"), parse_note("C4"))
        with self.assertRaises(ValueError):
            VocalRange(parse_note("C4"), parse_note("B3"))


if __name__ == "__main__":
    unittest.main()
