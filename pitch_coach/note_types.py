"""Type definitions for the Pitch Coach project."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import total_ordering
from typing import Dict, Optional

import numpy as np


class NoteName(Enum):
    """The twelve pitch classes, spelled with sharps."""

    C = "C"
    C_SHARP = "C#"
    D = "D"
    D_SHARP = "D#"
    E = "E"
    F = "F"
    F_SHARP = "F#"
    G = "G"
    G_SHARP = "G#"
    A = "A"
    A_SHARP = "A#"
    B = "B"

    @property
    def index(self) -> int:
        """Chromatic index, 0 for C through 11 for B."""
        return _CHROMATIC_INDEX[self]

    @property
    def flat_name(self) -> str:
        """Display form using a flat where the pitch class has one (e.g. 'Bb')."""
        return SHARP_TO_FLAT.get(self.value, self.value)

    @classmethod
    def from_index(cls, index: int) -> "NoteName":
        return CHROMATIC[index % 12]

    @classmethod
    def from_spelling(cls, spelling: str) -> "NoteName":
        """Resolve a sharp, flat or natural spelling to its pitch class.

        Raises:
            ValueError: If the spelling is not a recognised note name
        """
        name, _ = resolve_spelling(spelling)
        return name

    def __str__(self) -> str:
        return self.value


CHROMATIC = [
    NoteName.C,
    NoteName.C_SHARP,
    NoteName.D,
    NoteName.D_SHARP,
    NoteName.E,
    NoteName.F,
    NoteName.F_SHARP,
    NoteName.G,
    NoteName.G_SHARP,
    NoteName.A,
    NoteName.A_SHARP,
    NoteName.B,
]

_CHROMATIC_INDEX: Dict[NoteName, int] = {name: i for i, name in enumerate(CHROMATIC)}

# Mapping between sharp and flat note names
SHARP_TO_FLAT: Dict[str, str] = {
    "C#": "Db",
    "D#": "Eb",
    "F#": "Gb",
    "G#": "Ab",
    "A#": "Bb",
}

FLAT_TO_SHARP: Dict[str, str] = {v: k for k, v in SHARP_TO_FLAT.items()}

# Spellings that cross the B/C or E/F boundary: (pitch class, octave shift)
_BOUNDARY_SPELLINGS: Dict[str, tuple] = {
    "Cb": (NoteName.B, -1),
    "B#": (NoteName.C, 1),
    "Fb": (NoteName.E, 0),
    "E#": (NoteName.F, 0),
}


def resolve_spelling(spelling: str) -> tuple:
    """Return (NoteName, octave_shift) for a written note name.

    The octave shift is non-zero only for Cb (belongs to the octave below)
    and B# (belongs to the octave above).
    """
    text = spelling.strip()
    if len(text) > 1:
        text = text[0].upper() + text[1:]
    else:
        text = text.upper()

    if text in _BOUNDARY_SPELLINGS:
        return _BOUNDARY_SPELLINGS[text]
    text = FLAT_TO_SHARP.get(text, text)
    try:
        return NoteName(text), 0
    except ValueError:
        raise ValueError(f"Unknown note name: {spelling!r}") from None


@total_ordering
@dataclass(frozen=True)
class NotePosition:
    """A pitch class in a specific octave (scientific pitch notation)."""

    note_name: NoteName
    octave: int

    @property
    def midi(self) -> int:
        return 12 * (self.octave + 1) + self.note_name.index

    def __lt__(self, other: "NotePosition") -> bool:
        if not isinstance(other, NotePosition):
            return NotImplemented
        return self.midi < other.midi

    def __str__(self) -> str:
        return f"{self.note_name.value}{self.octave}"


@dataclass(frozen=True)
class AudioFrame:
    """One buffer of mono time-domain samples."""

    samples: np.ndarray
    sample_rate: int


@dataclass(frozen=True)
class PitchEstimate:
    """Result of analysing one frame. frequency is -1 when no pitch was found."""

    frequency: float
    confidence: float

    @property
    def has_pitch(self) -> bool:
        return self.frequency > 0


NO_PITCH = PitchEstimate(frequency=-1.0, confidence=0.0)


@dataclass
class PitchSample:
    """A gated per-frame note reading."""

    position: NotePosition
    cents: float  # Deviation from the reference note in cents
    frequency: float = 0.0  # Raw estimate in Hz
    timestamp: float = 0.0


class Sufficiency(Enum):
    OK = "ok"
    INSUFFICIENT_DATA = "insufficient_data"
    UNSTABLE = "unstable"


class Feedback(Enum):
    IN_TUNE = "in_tune"
    FLAT = "flat"
    SHARP = "sharp"


@dataclass(frozen=True)
class StableNoteResult:
    """The aggregator's verdict over one observation window."""

    position: Optional[NotePosition]
    cents: float
    sufficiency: Sufficiency
    sample_count: int = 0
    mode_count: int = 0

    @property
    def ok(self) -> bool:
        return self.sufficiency is Sufficiency.OK


class InvalidRangeError(ValueError):
    """Raised when a vocal range's high note is not above its low note."""


@dataclass(frozen=True)
class VocalRange:
    low: NotePosition
    high: NotePosition

    def __post_init__(self):
        if self.low.midi >= self.high.midi:
            raise InvalidRangeError(
                f"High note {self.high} must be above low note {self.low}"
            )

    def __str__(self) -> str:
        return f"{self.low} - {self.high}"


class Gender(Enum):
    MALE = "male"
    FEMALE = "female"


@dataclass(frozen=True)
class VoiceTypeProfile:
    name: str
    gender: Gender
    midi_low: int
    midi_high: int


class ChallengeState(Enum):
    IDLE = "idle"
    STARTING = "starting"
    PLAYING = "playing"
    ANALYZING = "analyzing"
    RESULT = "result"


class ClassifierState(Enum):
    GENDER = "gender"
    LOW_NOTE_TEST = "low_note_test"
    HIGH_NOTE_TEST = "high_note_test"
    RESULT = "result"


@dataclass
class ChallengeResult:
    """Outcome of one ear-training round."""

    target: NotePosition
    result: StableNoteResult
    feedback: Optional[Feedback]
    message: str
    samples: list = field(default_factory=list)
