"""Utility functions for working with musical notes and frequencies."""

import math
import re
from typing import List, Optional

import numpy as np

from .logger import get_logger
from .note_types import NoteName, NotePosition, VocalRange, resolve_spelling

# Get logger for this module
logger = get_logger(__name__)

# Standard reference: A4 = 440Hz, MIDI 69
A4_FREQUENCY = 440.0
A4_MIDI_NUMBER = 69

MIDI_MIN = 0
MIDI_MAX = 127

# Compile regex to extract note name and octave
# This pattern matches:
# - Note name (A-G, case insensitive)
# - Optional accidental (# or b)
# - Octave number, possibly negative
NOTE_PATTERN = re.compile(r"^\s*([A-Ga-g][#b]?)(-?[0-9]+)\s*$")


def frequency_to_note(freq: float) -> Optional[NotePosition]:
    """Convert a frequency to the nearest note in Scientific Pitch Notation.

    Args:
        freq: Frequency in Hz

    Returns:
        The nearest NotePosition, or None when the frequency is not positive

    Note:
        - Middle C is C4 (261.63 Hz)
        - Octave numbers change between B and C (e.g., B3 -> C4)
    """
    if freq is None or not np.isfinite(freq) or freq <= 0:
        return None

    midi_number = int(round(A4_MIDI_NUMBER + 12 * np.log2(freq / A4_FREQUENCY)))
    return midi_to_note(midi_number)


def note_to_frequency(position: NotePosition) -> float:
    """Nominal equal-tempered frequency of a note in Hz."""
    return A4_FREQUENCY * 2.0 ** ((position.midi - A4_MIDI_NUMBER) / 12.0)


def note_to_midi(note_name: NoteName, octave: int) -> int:
    return 12 * (octave + 1) + note_name.index


def midi_to_note(midi: int) -> NotePosition:
    # SPN octave calculation (C4 is middle C), floor division keeps negatives right
    octave = math.floor(midi / 12) - 1
    return NotePosition(NoteName.from_index(midi % 12), octave)


def cents_off(reference_freq: float, measured_freq: float) -> float:
    """Tuning deviation of measured_freq from reference_freq in cents.

    Returns 0.0 instead of raising when either frequency is not positive,
    since this is evaluated for every analysed frame.
    """
    if reference_freq <= 0 or measured_freq <= 0:
        return 0.0
    return float(1200.0 * np.log2(measured_freq / reference_freq))


def parse_note(text: str) -> NotePosition:
    """Parse a note written in SPN such as 'A4', 'F#2' or 'Bb3'.

    Raises:
        ValueError: If the text is not a valid note
    """
    match = NOTE_PATTERN.match(text or "")
    if not match:
        raise ValueError(f"Invalid note format: {text!r}")

    note_name, octave_shift = resolve_spelling(match.group(1))
    return NotePosition(note_name, int(match.group(2)) + octave_shift)


def format_note(position: NotePosition, use_flats: bool = False) -> str:
    """Render a note as text, optionally with flat spelling (e.g. 'Bb3')."""
    name = position.note_name.flat_name if use_flats else position.note_name.value
    return f"{name}{position.octave}"


def notes_in_range(vocal_range: VocalRange, margin: int = 2) -> List[NotePosition]:
    """Practice notes for a singer: every semitone inside the range, `margin`
    semitones in from each boundary.
    """
    comfortable_low = vocal_range.low.midi + margin
    comfortable_high = vocal_range.high.midi - margin

    notes = [midi_to_note(m) for m in range(comfortable_low, comfortable_high + 1)]
    if not notes:
        logger.debug(f"Range {vocal_range} too narrow for margin {margin}, using C4")
        return [NotePosition(NoteName.C, 4)]
    return notes


# Used when no vocal range has been established yet
DEFAULT_PRACTICE_NOTES = [
    NotePosition(NoteName.C, 4),
    NotePosition(NoteName.D, 4),
    NotePosition(NoteName.E, 4),
    NotePosition(NoteName.F, 4),
    NotePosition(NoteName.G, 4),
    NotePosition(NoteName.A, 4),
]
