"""
Chord Model - Immutable value types for progressions and voicings.

Everything downstream (voicing generation, voice-leading optimization,
rendering) passes these records around by value:

- NoteName / ChordQuality: pitch classes and interval formulas
- Chord: root + quality + optional slash bass + extension tags
- Voicing: concrete MIDI notes split between the two hands
- ChordEvent / ChordProgression: chords placed on a beat timeline
- NoteEvent: one rendered note (the renderer's output)

Chord qualities carry two extra tables: the tensions the voicing catalog is
allowed to add on top of the chord tones, and the extension groups used when
building colour variants of a voicing.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from .utils import (
    DEFAULT_TEMPO,
    MIDDLE_C,
    NOTE_NAMES_FLAT,
    PIANO_HIGH,
    PIANO_LOW,
    midi_note_to_name,
    parse_pitch_class,
)

logger = logging.getLogger(__name__)

# Extension tag that asks for a diminished-stack (polychord) voicing
DIM_STACK_TAG = "dimStack"


# =============================================================================
# PITCH CLASSES
# =============================================================================

class NoteName(Enum):
    """Twelve pitch classes, flat spelling."""
    C = 0
    DB = 1
    D = 2
    EB = 3
    E = 4
    F = 5
    GB = 6
    G = 7
    AB = 8
    A = 9
    BB = 10
    B = 11

    @property
    def display(self) -> str:
        return NOTE_NAMES_FLAT[self.value]

    @classmethod
    def from_pitch_class(cls, pitch_class: int) -> "NoteName":
        return cls(pitch_class % 12)

    @classmethod
    def parse(cls, text: str) -> Optional["NoteName"]:
        """Parse 'F#', 'Gb', 'Cb', 'E#' etc. Returns None on bad input."""
        pitch_class = parse_pitch_class(text)
        if pitch_class is None:
            return None
        return cls(pitch_class)


# =============================================================================
# CHORD QUALITIES
# =============================================================================

class ChordQuality(Enum):
    """Chord quality, valued by its chart symbol."""
    MAJOR = ""
    MINOR = "-"
    DOMINANT7 = "7"
    MAJOR7 = "maj7"
    MINOR7 = "-7"
    DIMINISHED = "dim"
    DIMINISHED7 = "dim7"
    HALF_DIMINISHED = "-7b5"
    AUGMENTED = "aug"
    SUS4 = "sus4"
    SUS2 = "sus2"
    DOMINANT9 = "9"
    DOMINANT13 = "13"
    MINOR9 = "-9"
    MAJOR9 = "maj9"
    ALTERED = "7alt"

    @property
    def intervals(self) -> Tuple[int, ...]:
        """Chord tones in semitones above the root."""
        return QUALITY_INTERVALS[self]

    @property
    def is_dominant(self) -> bool:
        return self in (
            ChordQuality.DOMINANT7,
            ChordQuality.DOMINANT9,
            ChordQuality.DOMINANT13,
            ChordQuality.ALTERED,
        )

    @property
    def available_tensions(self) -> Tuple[int, ...]:
        """Tension intervals (mod 12) that voicings of this quality may add."""
        return QUALITY_TENSIONS[self]

    @property
    def suggested_extensions(self) -> Tuple[Tuple[str, ...], ...]:
        """Extension tag groups that colour a voicing of this quality."""
        return SUGGESTED_EXTENSIONS[self]


QUALITY_INTERVALS: Dict[ChordQuality, Tuple[int, ...]] = {
    ChordQuality.MAJOR: (0, 4, 7),
    ChordQuality.MINOR: (0, 3, 7),
    ChordQuality.DOMINANT7: (0, 4, 7, 10),
    ChordQuality.MAJOR7: (0, 4, 7, 11),
    ChordQuality.MINOR7: (0, 3, 7, 10),
    ChordQuality.DIMINISHED: (0, 3, 6),
    ChordQuality.DIMINISHED7: (0, 3, 6, 9),
    ChordQuality.HALF_DIMINISHED: (0, 3, 6, 10),
    ChordQuality.AUGMENTED: (0, 4, 8),
    ChordQuality.SUS4: (0, 5, 7),
    ChordQuality.SUS2: (0, 2, 7),
    ChordQuality.DOMINANT9: (0, 4, 7, 10, 14),
    ChordQuality.DOMINANT13: (0, 4, 7, 10, 14, 21),
    ChordQuality.MINOR9: (0, 3, 7, 10, 14),
    ChordQuality.MAJOR9: (0, 4, 7, 11, 14),
    ChordQuality.ALTERED: (0, 4, 6, 10, 13, 15),
}

_MAJOR7_TENSIONS = (2, 5, 9)
_MINOR7_TENSIONS = (2, 5, 8)
_DOMINANT_TENSIONS = (1, 2, 3, 5, 6, 8, 9)

QUALITY_TENSIONS: Dict[ChordQuality, Tuple[int, ...]] = {
    ChordQuality.MAJOR: (2, 5, 9),
    ChordQuality.MINOR: (2, 5, 10),
    ChordQuality.DOMINANT7: _DOMINANT_TENSIONS,
    ChordQuality.MAJOR7: _MAJOR7_TENSIONS,
    ChordQuality.MINOR7: _MINOR7_TENSIONS,
    ChordQuality.DIMINISHED: (2, 9),
    ChordQuality.DIMINISHED7: (2, 5, 8, 11),
    ChordQuality.HALF_DIMINISHED: (2, 5),
    ChordQuality.AUGMENTED: (2, 10),
    ChordQuality.SUS4: (2, 10),
    ChordQuality.SUS2: (9, 10),
    ChordQuality.DOMINANT9: _DOMINANT_TENSIONS,
    ChordQuality.DOMINANT13: _DOMINANT_TENSIONS,
    ChordQuality.MINOR9: _MINOR7_TENSIONS,
    ChordQuality.MAJOR9: _MAJOR7_TENSIONS,
    ChordQuality.ALTERED: (1, 3, 6, 8),
}

SUGGESTED_EXTENSIONS: Dict[ChordQuality, Tuple[Tuple[str, ...], ...]] = {
    ChordQuality.MAJOR: (("9",), ("6",), ("6", "9")),
    ChordQuality.MINOR: (("9",), ("11",)),
    ChordQuality.DOMINANT7: (("9",), ("13",), ("b9",), ("#11",)),
    ChordQuality.MAJOR7: (("9",), ("13",), ("#11",)),
    ChordQuality.MINOR7: (("9",), ("11",)),
    ChordQuality.DIMINISHED: (("9",),),
    ChordQuality.DIMINISHED7: (("9",), ("11",)),
    ChordQuality.HALF_DIMINISHED: (("9",), ("11",)),
    ChordQuality.AUGMENTED: (("9",),),
    ChordQuality.SUS4: (("9",), ("13",)),
    ChordQuality.SUS2: (("13",),),
    ChordQuality.DOMINANT9: (("13",), ("#11",)),
    ChordQuality.DOMINANT13: (("9",), ("#11",)),
    ChordQuality.MINOR9: (("11",),),
    ChordQuality.MAJOR9: (("13",), ("#11",)),
    ChordQuality.ALTERED: (("b9",), ("#9",), ("b13",)),
}

EXTENSION_INTERVALS: Dict[str, int] = {
    "b9": 13,
    "9": 14,
    "#9": 15,
    "11": 17,
    "#11": 18,
    "b13": 20,
    "13": 21,
    "6": 9,
    "add9": 14,
    "b5": 6,
    "#5": 8,
}


def extension_interval(tag: str) -> Optional[int]:
    """Semitones above the root for an extension tag, None if unknown."""
    return EXTENSION_INTERVALS.get(tag)


class VoicingType(Enum):
    """Voicing style tag used to pick templates."""
    ROOTLESS_A = "Rootless A"
    ROOTLESS_B = "Rootless B"
    QUARTAL = "Quartal"
    DROP2 = "Drop 2"
    DROP3 = "Drop 3"
    SHELL = "Shell"


# =============================================================================
# TIME SIGNATURE
# =============================================================================

@dataclass(frozen=True)
class TimeSignature:
    """Meter as beats / beat type. Beats are counted in quarter notes."""
    beats: int = 4
    beat_type: int = 4

    @property
    def beats_per_measure(self) -> float:
        return self.beats * 4.0 / self.beat_type

    @property
    def eighth_notes_per_measure(self) -> int:
        return int(round(self.beats_per_measure * 2))

    def measure_for_beat(self, beat: float) -> int:
        """1-based measure number containing the beat."""
        return int(beat // self.beats_per_measure) + 1

    @classmethod
    def common(cls) -> "TimeSignature":
        return cls(4, 4)

    @classmethod
    def waltz(cls) -> "TimeSignature":
        return cls(3, 4)

    @classmethod
    def cut(cls) -> "TimeSignature":
        return cls(2, 2)

    def __str__(self) -> str:
        return f"{self.beats}/{self.beat_type}"


# =============================================================================
# CHORD
# =============================================================================

@dataclass(frozen=True)
class Chord:
    """
    A chord symbol: root pitch class, quality, optional bass, extensions.

    Attributes:
        root: Pitch class 0-11
        quality: ChordQuality
        bass: Optional slash-bass pitch class
        extensions: Free-form tags ('9', '#11', 'dimStack', ...)
    """
    root: int
    quality: ChordQuality = ChordQuality.MAJOR
    bass: Optional[int] = None
    extensions: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'root', int(self.root) % 12)
        if self.bass is not None:
            object.__setattr__(self, 'bass', int(self.bass) % 12)
        object.__setattr__(self, 'extensions', tuple(self.extensions))

    @classmethod
    def from_name(
        cls,
        root_name: str,
        quality: ChordQuality = ChordQuality.MAJOR,
        bass_name: Optional[str] = None,
        extensions: Sequence[str] = (),
    ) -> "Chord":
        root = parse_pitch_class(root_name)
        if root is None:
            raise ValueError(f"Unknown root note: {root_name!r}")
        bass = parse_pitch_class(bass_name) if bass_name else None
        return cls(root, quality, bass, tuple(extensions))

    @property
    def root_name(self) -> NoteName:
        return NoteName.from_pitch_class(self.root)

    @property
    def uses_diminished_stack(self) -> bool:
        return DIM_STACK_TAG in self.extensions

    def pitch_classes(self) -> FrozenSet[int]:
        """Pitch classes of the chord tones (plus slash bass)."""
        pcs = {(self.root + i) % 12 for i in self.quality.intervals}
        if self.bass is not None:
            pcs.add(self.bass)
        return frozenset(pcs)

    def extension_pitch_classes(self) -> FrozenSet[int]:
        pcs = set()
        for tag in self.extensions:
            interval = extension_interval(tag)
            if interval is not None:
                pcs.add((self.root + interval) % 12)
        return frozenset(pcs)

    def available_pitch_classes(self) -> FrozenSet[int]:
        """Chord tones, the quality's tensions and explicit extension tones."""
        tensions = {(self.root + t) % 12 for t in self.quality.available_tensions}
        return self.pitch_classes() | tensions | self.extension_pitch_classes()

    @property
    def display_name(self) -> str:
        root = self.root_name.display
        if self.uses_diminished_stack and self.quality.is_dominant:
            # Polychord spelling: root triad over the triad a minor third below
            lower = NoteName.from_pitch_class(self.root - 3).display
            return f"{root}/{lower}"
        name = f"{root}{self.quality.value}"
        shown = [tag for tag in self.extensions if tag != DIM_STACK_TAG]
        if shown:
            name += f"({','.join(shown)})"
        if self.bass is not None and self.bass != self.root:
            name += f"/{NoteName.from_pitch_class(self.bass).display}"
        return name

    def __str__(self) -> str:
        return self.display_name


# =============================================================================
# VOICING
# =============================================================================

@dataclass(frozen=True)
class Voicing:
    """
    Concrete MIDI notes for a chord, partitioned between the hands.

    `notes` is sorted and deduplicated; `left_hand` and `right_hand` are
    disjoint and together equal `notes`. Use `from_hands` / `from_notes`
    to build one from loose input.
    """
    chord: Chord
    notes: Tuple[int, ...]
    left_hand: Tuple[int, ...]
    right_hand: Tuple[int, ...]
    voicing_type: Optional[VoicingType] = None

    def __post_init__(self):
        object.__setattr__(self, 'notes', tuple(sorted(set(self.notes))))
        object.__setattr__(self, 'left_hand', tuple(sorted(self.left_hand)))
        object.__setattr__(self, 'right_hand', tuple(sorted(self.right_hand)))

        left, right = set(self.left_hand), set(self.right_hand)
        if len(left) != len(self.left_hand) or len(right) != len(self.right_hand):
            raise ValueError("Hand contains duplicate notes")
        if left & right:
            raise ValueError(f"Hands overlap on {sorted(left & right)}")
        if left | right != set(self.notes):
            raise ValueError("Hands do not cover the voicing notes")
        if any(n < 0 or n > 127 for n in self.notes):
            raise ValueError(f"MIDI note out of range in {self.notes}")

    @classmethod
    def from_hands(
        cls,
        chord: Chord,
        left_hand: Sequence[int],
        right_hand: Sequence[int],
        voicing_type: Optional[VoicingType] = None,
    ) -> "Voicing":
        """Build from hand note lists; a note in both hands stays in the right."""
        right = sorted(set(right_hand))
        left = sorted(set(left_hand) - set(right))
        return cls(chord, tuple(left + right), tuple(left), tuple(right), voicing_type)

    @classmethod
    def from_notes(
        cls,
        chord: Chord,
        notes: Sequence[int],
        voicing_type: Optional[VoicingType] = None,
        split_point: int = MIDDLE_C,
    ) -> "Voicing":
        """
        Build from a flat note list, splitting the hands at `split_point`.

        With two or more notes each hand gets at least one note.
        """
        ordered = sorted(set(notes))
        left = [n for n in ordered if n < split_point]
        right = [n for n in ordered if n >= split_point]
        if len(ordered) >= 2:
            if not left:
                left, right = right[:1], right[1:]
            elif not right:
                left, right = left[:-1], left[-1:]
        return cls(chord, tuple(ordered), tuple(left), tuple(right), voicing_type)

    # ---- derived properties -------------------------------------------------

    @property
    def bass_note(self) -> Optional[int]:
        return self.notes[0] if self.notes else None

    @property
    def top_note(self) -> Optional[int]:
        return self.notes[-1] if self.notes else None

    @property
    def center(self) -> float:
        """Mean pitch; 60 for an empty voicing."""
        if not self.notes:
            return float(MIDDLE_C)
        return sum(self.notes) / len(self.notes)

    @property
    def spread(self) -> int:
        if not self.notes:
            return 0
        return self.notes[-1] - self.notes[0]

    def pitch_classes(self) -> FrozenSet[int]:
        return frozenset(n % 12 for n in self.notes)

    def voice(self, index: int) -> Optional[int]:
        if 0 <= index < len(self.notes):
            return self.notes[index]
        return None

    def third_note(self) -> Optional[int]:
        """Lowest note carrying the chord's third (minor if in the formula, else major)."""
        intervals = self.chord.quality.intervals
        third = 3 if 3 in intervals else 4
        target = (self.chord.root + third) % 12
        for note in self.notes:
            if note % 12 == target:
                return note
        return None

    def seventh_note(self) -> Optional[int]:
        """Lowest note carrying a seventh, searching b7, then maj7, then bb7."""
        for interval in (10, 11, 9):
            target = (self.chord.root + interval) % 12
            for note in self.notes:
                if note % 12 == target:
                    return note
        return None

    def voice_leading_distance(self, other: "Voicing") -> Optional[int]:
        """Total semitone motion voice by voice; None when voice counts differ."""
        if len(self.notes) != len(other.notes):
            return None
        return sum(abs(a - b) for a, b in zip(self.notes, other.notes))

    # ---- derived voicings ---------------------------------------------------

    def transposed(self, semitones: int) -> Optional["Voicing"]:
        """Shift every note; None when a note would leave the piano window."""
        notes = [n + semitones for n in self.notes]
        if any(n < PIANO_LOW or n > PIANO_HIGH for n in notes):
            return None
        return Voicing(
            self.chord,
            tuple(notes),
            tuple(n + semitones for n in self.left_hand),
            tuple(n + semitones for n in self.right_hand),
            self.voicing_type,
        )

    def inverted(self, times: int = 1) -> Optional["Voicing"]:
        """Raise the lowest note an octave `times` times; None if it passes C7."""
        notes = list(self.notes)
        for _ in range(times):
            if not notes:
                return None
            raised = notes.pop(0) + 12
            if raised > PIANO_HIGH or raised in notes:
                return None
            notes.append(raised)
            notes.sort()
        return Voicing.from_notes(self.chord, notes, self.voicing_type)

    # ---- descriptions -------------------------------------------------------

    def notes_description(self) -> str:
        return " ".join(midi_note_to_name(n) for n in self.notes)

    def hands_description(self) -> str:
        left = " ".join(midi_note_to_name(n) for n in self.left_hand)
        right = " ".join(midi_note_to_name(n) for n in self.right_hand)
        return f"LH[{left}] RH[{right}]"

    def __str__(self) -> str:
        return f"{self.chord.display_name}: {self.hands_description()}"


# =============================================================================
# PROGRESSION
# =============================================================================

@dataclass(frozen=True)
class SectionMarker:
    """Named section (A, B, Bridge...) starting at a 1-based measure."""
    label: str
    measure: int


@dataclass(frozen=True)
class ChordEvent:
    """A chord placed on the beat timeline."""
    chord: Chord
    start_beat: float
    duration: float
    measure_number: int = 1
    section_label: Optional[str] = None

    @property
    def end_beat(self) -> float:
        return self.start_beat + self.duration


@dataclass(frozen=True)
class ChordProgression:
    """
    A titled sequence of chord events with tempo and meter.

    Events are kept in the order given; the builders below produce them
    sorted by start beat.
    """
    title: str
    events: Tuple[ChordEvent, ...]
    tempo: float = DEFAULT_TEMPO
    time_signature: TimeSignature = field(default_factory=TimeSignature.common)
    composer: Optional[str] = None
    style: Optional[str] = None
    section_markers: Tuple[SectionMarker, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'events', tuple(self.events))
        object.__setattr__(self, 'section_markers', tuple(self.section_markers))

    @classmethod
    def from_chords(
        cls,
        title: str,
        chords: Sequence[Tuple[Chord, float]],
        tempo: float = DEFAULT_TEMPO,
        time_signature: Optional[TimeSignature] = None,
        **kwargs,
    ) -> "ChordProgression":
        """
        Lay out (chord, duration_in_beats) pairs back to back from beat 0.

        Example:
            ChordProgression.from_chords("ii-V-I", [(dm7, 4), (g7, 4), (cmaj7, 8)])
        """
        meter = time_signature or TimeSignature.common()
        events: List[ChordEvent] = []
        beat = 0.0
        for chord, duration in chords:
            events.append(ChordEvent(
                chord=chord,
                start_beat=beat,
                duration=float(duration),
                measure_number=meter.measure_for_beat(beat),
            ))
            beat += duration
        return cls(title=title, events=tuple(events), tempo=tempo,
                   time_signature=meter, **kwargs)

    @property
    def chords(self) -> List[Chord]:
        return [e.chord for e in self.events]

    @property
    def total_beats(self) -> float:
        if not self.events:
            return 0.0
        return max(e.end_beat for e in self.events)

    @property
    def total_measures(self) -> int:
        bpm = self.time_signature.beats_per_measure
        return int(-(-self.total_beats // bpm))

    def measure_of(self, event: ChordEvent) -> int:
        return self.time_signature.measure_for_beat(event.start_beat)

    def chords_per_measure(self) -> Dict[int, int]:
        """Number of chord events starting in each 1-based measure."""
        counts: Dict[int, int] = {}
        for event in self.events:
            measure = self.measure_of(event)
            counts[measure] = counts.get(measure, 0) + 1
        return counts

    def section_label_for_measure(self, measure: int) -> Optional[str]:
        label = None
        for marker in sorted(self.section_markers, key=lambda m: m.measure):
            if marker.measure <= measure:
                label = marker.label
        return label


# =============================================================================
# RENDERED NOTES
# =============================================================================

@dataclass(frozen=True)
class NoteEvent:
    """
    One rendered note.

    Attributes:
        midi_note: MIDI pitch 0-127
        velocity: MIDI velocity 1-127
        position: Start time in beats
        duration: Length in beats (> 0)
        channel: MIDI channel
    """
    midi_note: int
    velocity: int
    position: float
    duration: float
    channel: int = 0

    @property
    def end(self) -> float:
        return self.position + self.duration
