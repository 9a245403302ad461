"""
Voicing Generator - Two-hand jazz piano voicings from a template catalog.

The catalog maps (ChordQuality, VoicingType) to a tuple of two-hand
templates. Each template lists interval offsets from the root for the left
hand (bass register, centered around C3) and the right hand (treble
register, centered around E4). The generator places each hand in the octave
closest to its center, produces octave-shifted and open-position variants
for the voice-leading optimizer, and builds a few derived voicings
(diminished stacks, colour variants, inversions, transpositions).

Example:
    ```python
    from jazz_comp_gen.chord_model import Chord, ChordQuality, VoicingType
    from jazz_comp_gen.voicing_generator import VoicingGenerator

    generator = VoicingGenerator()
    g7 = Chord.from_name("G", ChordQuality.DOMINANT7)
    voicing = generator.generate_voicing(g7, VoicingType.ROOTLESS_A)
    print(voicing.hands_description())
    ```
"""

import logging
import random
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .chord_model import (
    Chord,
    ChordQuality,
    Voicing,
    VoicingType,
    extension_interval,
)
from .utils import PIANO_HIGH, PIANO_LOW

logger = logging.getLogger(__name__)


LEFT_HAND_CENTER = 48   # C3
RIGHT_HAND_CENTER = 64  # E4
DEFAULT_TARGET_REGISTER = 54

# Octave search window for hand placement
OCTAVE_SEARCH_RANGE = range(2, 7)
PLACEMENT_LOW = 24
PLACEMENT_HIGH = 96

MAX_VARIANT_CLUSTERS = 2
MAX_SPREAD_CLUSTERS = 1
SPREAD_MIN_GAP = 3
LEFT_HAND_SHIFTS = (-12, 0)
RIGHT_HAND_SHIFTS = (-12, 0, 12)


# =============================================================================
# TEMPLATE CATALOG
# =============================================================================

@dataclass(frozen=True)
class TwoHandTemplate:
    """Interval offsets from the root for each hand."""
    left_hand: Tuple[int, ...]
    right_hand: Tuple[int, ...]
    description: str = ""

    @property
    def all_intervals(self) -> Tuple[int, ...]:
        return self.left_hand + self.right_hand


def _templates(*rows: Tuple[Sequence[int], Sequence[int], str]) -> Tuple[TwoHandTemplate, ...]:
    return tuple(TwoHandTemplate(tuple(lh), tuple(rh), desc) for lh, rh, desc in rows)


_RA, _RB, _Q4, _SH, _D2, _D3 = (
    VoicingType.ROOTLESS_A,
    VoicingType.ROOTLESS_B,
    VoicingType.QUARTAL,
    VoicingType.SHELL,
    VoicingType.DROP2,
    VoicingType.DROP3,
)

_MAJOR7 = {
    _RA: _templates(
        ([0, 11], [4, 7, 14], "1-7 | 3-5-9"),
        ([0, 4], [7, 11, 14], "1-3 | 5-7-9"),
        ([-12, 11], [4, 7, 14, 21], "low 1-7 | 3-5-9-13"),
    ),
    _RB: _templates(
        ([0, 7], [11, 14, 16], "1-5 | 7-9-3"),
        ([-1, 4], [7, 14, 19], "7-3 | 5-9-5"),
    ),
    _Q4: _templates(
        ([0, 7], [11, 16, 21], "1-5 | 7-3-13 fourths"),
        ([0, 5], [9, 14, 19], "1-4 | 6-9-5 fourths"),
    ),
    _SH: _templates(([0, 11], [4, 7], "1-7 | 3-5")),
    _D2: _templates(([0, 7], [4, 11, 14], "1-5 | 3-7-9")),
    _D3: _templates(([0, 4], [7, 11, 14], "1-3 | 5-7-9")),
}

_MINOR7 = {
    _RA: _templates(
        ([0, 10], [3, 7, 14], "1-b7 | b3-5-9"),
        ([0, 3], [7, 10, 14], "1-b3 | 5-b7-9"),
        ([-12, 10], [3, 7, 14, 17], "low 1-b7 | b3-5-9-11"),
    ),
    _RB: _templates(
        ([0, 7], [10, 14, 15], "1-5 | b7-9-b3"),
        ([-2, 3], [7, 14, 17], "b7-b3 | 5-9-11"),
    ),
    _Q4: _templates(
        ([0, 5], [10, 15, 19], "1-4 | b7-b3-5 (So What)"),
        ([0, 7], [10, 15, 20], "1-5 | b7-b3-b13 fourths"),
    ),
    _SH: _templates(([0, 10], [3, 7], "1-b7 | b3-5")),
    _D2: _templates(([0, 7], [3, 10, 14], "1-5 | b3-b7-9")),
    _D3: _templates(([0, 3], [7, 10, 14], "1-b3 | 5-b7-9")),
}

_DOMINANT7 = {
    _RA: _templates(
        ([0, 10], [4, 9, 14], "1-b7 | 3-13-9"),
        ([0, 4], [10, 14, 21], "1-3 | b7-9-13"),
        ([0, 10], [4, 6, 13], "1-b7 | 3-#11-b9"),
        ([-12, 10], [4, 7, 14, 21], "low 1-b7 | 3-5-9-13"),
    ),
    _RB: _templates(
        ([0, 7], [10, 14, 16, 21], "1-5 | b7-9-3-13"),
        ([-2, 4], [9, 14, 19], "b7-3 | 13-9-5"),
    ),
    _Q4: _templates(
        ([0, 5], [10, 15, 20], "1-4 | b7-#9-b13 fourths"),
        ([0, 10], [4, 9, 14], "1-b7 | 3-13-9"),
    ),
    _SH: _templates(
        ([0, 10], [4, 7], "1-b7 | 3-5"),
        ([0, 4], [7, 10], "1-3 | 5-b7"),
    ),
    _D2: _templates(([0, 7], [4, 10, 14], "1-5 | 3-b7-9")),
    _D3: _templates(([0, 4], [7, 10, 14], "1-3 | 5-b7-9")),
}

_ALTERED = {
    _RA: _templates(
        ([0, 10], [4, 6, 13, 15], "1-b7 | 3-#11-b9-#9"),
        ([0, 4], [8, 10, 13], "1-3 | #5-b7-b9"),
    ),
    _RB: _templates(([-2, 4], [6, 8, 13], "b7-3 | #11-#5-b9")),
    _Q4: _templates(([0, 6], [10, 13, 16], "1-#11 | b7-b9-3")),
    _SH: _templates(([0, 10], [4, 8], "1-b7 | 3-#5")),
    _D2: _templates(([0, 8], [4, 10, 13], "1-#5 | 3-b7-b9")),
    _D3: _templates(([0, 4], [8, 10, 13], "1-3 | #5-b7-b9")),
}

_HALF_DIMINISHED = {
    _RA: _templates(
        ([0, 10], [3, 6, 14], "1-b7 | b3-b5-9"),
        ([0, 3], [6, 10, 14], "1-b3 | b5-b7-9"),
    ),
    _RB: _templates(([-2, 3], [6, 10, 14], "b7-b3 | b5-b7-9")),
    _Q4: _templates(([0, 6], [10, 15, 18], "1-b5 | b7-b3-b5")),
    _SH: _templates(([0, 10], [3, 6], "1-b7 | b3-b5")),
    _D2: _templates(([0, 6], [3, 10, 14], "1-b5 | b3-b7-9")),
    _D3: _templates(([0, 3], [6, 10, 14], "1-b3 | b5-b7-9")),
}

_DIMINISHED7 = {
    _RA: _templates(([0, 9], [3, 6, 12], "1-bb7 | b3-b5-1")),
    _RB: _templates(([0, 6], [9, 12, 15], "1-b5 | bb7-1-b3")),
    _Q4: _templates(([0, 6], [9, 15, 21], "tritone | symmetric stack")),
    _SH: _templates(([0, 9], [3, 6], "1-bb7 | b3-b5")),
    _D2: _templates(([0, 6], [3, 9, 12], "1-b5 | b3-bb7-1")),
    _D3: _templates(([0, 3], [6, 9, 12], "1-b3 | b5-bb7-1")),
}


def _triad_family(third: int, fifth: int, quartal_right: Sequence[int], label: str):
    return {
        _RA: _templates(([0, fifth], [third, 12], f"1-5 | 3-1 {label}")),
        _RB: _templates(([0, third], [fifth, 12], f"1-3 | 5-1 {label}")),
        _Q4: _templates(([0, 5], quartal_right, f"quartal {label}")),
        _SH: _templates(([0], [third, fifth], f"basic {label}")),
        _D2: _templates(([0, fifth], [third, 12], f"drop 2 {label}")),
        _D3: _templates(([0, third], [fifth, 12], f"drop 3 {label}")),
    }


_SUS2 = {
    _RA: _templates(([0, 7], [2, 12], "1-5 | 2-1 sus2")),
    _RB: _templates(([0, 2], [7, 12], "1-2 | 5-1 sus2")),
    _Q4: _templates(([0, 7], [2, 9], "quartal sus2")),
    _SH: _templates(([0], [2, 7], "basic sus2")),
    _D2: _templates(([0, 7], [2, 12], "drop 2 sus2")),
    _D3: _templates(([0, 2], [7, 12], "drop 3 sus2")),
}

_AUGMENTED = {
    _RA: _templates(([0, 8], [4, 12], "1-#5 | 3-1 aug")),
    _RB: _templates(([0, 4], [8, 12], "1-3 | #5-1 aug")),
    _Q4: _templates(([0, 4], [8, 12], "stacked thirds aug")),
    _SH: _templates(([0], [4, 8], "basic aug")),
    _D2: _templates(([0, 8], [4, 12], "drop 2 aug")),
    _D3: _templates(([0, 4], [8, 12], "drop 3 aug")),
}


def build_voicing_templates() -> Mapping[Tuple[ChordQuality, VoicingType], Tuple[TwoHandTemplate, ...]]:
    """
    Build the read-only (quality, voicing type) -> templates catalog.

    Extended qualities share their parent's templates: maj9 -> maj7,
    -9 -> -7, 9 and 13 -> 7, dim -> dim7.
    """
    by_quality: Dict[ChordQuality, Dict[VoicingType, Tuple[TwoHandTemplate, ...]]] = {
        ChordQuality.MAJOR7: _MAJOR7,
        ChordQuality.MAJOR9: _MAJOR7,
        ChordQuality.MINOR7: _MINOR7,
        ChordQuality.MINOR9: _MINOR7,
        ChordQuality.DOMINANT7: _DOMINANT7,
        ChordQuality.DOMINANT9: _DOMINANT7,
        ChordQuality.DOMINANT13: _DOMINANT7,
        ChordQuality.ALTERED: _ALTERED,
        ChordQuality.HALF_DIMINISHED: _HALF_DIMINISHED,
        ChordQuality.DIMINISHED7: _DIMINISHED7,
        ChordQuality.DIMINISHED: _DIMINISHED7,
        ChordQuality.MAJOR: _triad_family(4, 7, [9, 14], "major"),
        ChordQuality.MINOR: _triad_family(3, 7, [10, 15], "minor"),
        ChordQuality.SUS4: _triad_family(5, 7, [10, 14], "sus4"),
        ChordQuality.SUS2: _SUS2,
        ChordQuality.AUGMENTED: _AUGMENTED,
    }
    catalog = {}
    for quality, per_type in by_quality.items():
        for voicing_type, templates in per_type.items():
            catalog[(quality, voicing_type)] = templates
    return MappingProxyType(catalog)


VOICING_TEMPLATES = build_voicing_templates()


# =============================================================================
# HELPERS
# =============================================================================

def count_cluster_intervals(notes: Sequence[int]) -> int:
    """Count adjacent note pairs a whole step or less apart."""
    ordered = sorted(notes)
    return sum(1 for a, b in zip(ordered, ordered[1:]) if b - a <= 2)


def find_best_octave(root_pitch_class: int, intervals: Sequence[int], target: int) -> int:
    """
    Find the base note (octave * 12 + root) whose note-set center is closest to target.

    Only octaves keeping every note inside [24, 96] qualify; the first
    (lowest) octave wins ties. Falls back to the octave starting at C3.
    """
    best_base = 48 + root_pitch_class
    best_distance = None
    if not intervals:
        return best_base
    for octave in OCTAVE_SEARCH_RANGE:
        base = octave * 12 + root_pitch_class
        notes = [base + i for i in intervals]
        center = sum(notes) // len(notes)
        distance = abs(center - target)
        in_range = all(PLACEMENT_LOW <= n <= PLACEMENT_HIGH for n in notes)
        if in_range and (best_distance is None or distance < best_distance):
            best_distance = distance
            best_base = base
    return best_base


def _in_piano_range(notes: Sequence[int]) -> bool:
    return all(PIANO_LOW <= n <= PIANO_HIGH for n in notes)


def _nearest_octave_of(pitch_class: int, reference: int) -> int:
    """Place pitch_class within 6 semitones of reference."""
    note = (reference // 12) * 12 + pitch_class
    if note - reference > 6:
        note -= 12
    if reference - note > 6:
        note += 12
    return note


# =============================================================================
# GENERATOR
# =============================================================================

class VoicingGenerator:
    """
    Generates two-hand voicings from the template catalog.

    The catalog is shared by reference; the generator itself holds no
    mutable state apart from the random source used for colour variants.
    """

    def __init__(
        self,
        templates: Optional[Mapping[Tuple[ChordQuality, VoicingType], Tuple[TwoHandTemplate, ...]]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.templates = VOICING_TEMPLATES if templates is None else templates
        self._rng = rng or random.Random()

    def templates_for(self, quality: ChordQuality, voicing_type: VoicingType) -> Tuple[TwoHandTemplate, ...]:
        return self.templates.get((quality, voicing_type), ())

    # ---- primary voicings ---------------------------------------------------

    def generate_voicing(
        self,
        chord: Chord,
        voicing_type: VoicingType = VoicingType.ROOTLESS_A,
        target_register: int = DEFAULT_TARGET_REGISTER,
    ) -> Voicing:
        """Voice the chord with the first template of its (quality, type)."""
        templates = self.templates_for(chord.quality, voicing_type)
        if not templates:
            logger.debug(f"No {voicing_type.value} template for {chord}, using fallback")
            return self._fallback_voicing(chord, target_register)
        return self._place_template(chord, templates[0], voicing_type)

    def _place_template(
        self,
        chord: Chord,
        template: TwoHandTemplate,
        voicing_type: VoicingType,
        left_shift: int = 0,
        right_shift: int = 0,
    ) -> Voicing:
        left_notes, right_notes = self._template_notes(chord, template, left_shift, right_shift)
        return Voicing.from_hands(chord, left_notes, right_notes, voicing_type)

    def _template_notes(
        self,
        chord: Chord,
        template: TwoHandTemplate,
        left_shift: int = 0,
        right_shift: int = 0,
    ) -> Tuple[List[int], List[int]]:
        left_base = find_best_octave(chord.root, template.left_hand, LEFT_HAND_CENTER) + left_shift
        right_base = find_best_octave(chord.root, template.right_hand, RIGHT_HAND_CENTER) + right_shift
        return (
            [left_base + i for i in template.left_hand],
            [right_base + i for i in template.right_hand],
        )

    def _fallback_voicing(self, chord: Chord, target_register: int) -> Voicing:
        intervals = chord.quality.intervals
        base = find_best_octave(chord.root, intervals, target_register)
        return Voicing.from_notes(chord, [base + i for i in intervals], VoicingType.SHELL)

    def generate_all_variants(
        self,
        chord: Chord,
        voicing_type: VoicingType = VoicingType.ROOTLESS_A,
        target_register: int = DEFAULT_TARGET_REGISTER,
    ) -> List[Voicing]:
        """
        All candidate voicings for the optimizer.

        Every template in left {-12, 0} x right {-12, 0, +12} octave shifts,
        kept when inside [36, 96] with at most two clusters, followed by the
        open-position voicings. Duplicated note sets keep their first
        occurrence.
        """
        templates = self.templates_for(chord.quality, voicing_type)
        if not templates:
            return [self.generate_voicing(chord, voicing_type, target_register)]

        variants: List[Voicing] = []
        for template in templates:
            for left_shift in LEFT_HAND_SHIFTS:
                for right_shift in RIGHT_HAND_SHIFTS:
                    left, right = self._template_notes(chord, template, left_shift, right_shift)
                    all_notes = left + right
                    if not _in_piano_range(all_notes):
                        continue
                    if count_cluster_intervals(all_notes) > MAX_VARIANT_CLUSTERS:
                        continue
                    variants.append(Voicing.from_hands(chord, left, right, voicing_type))

        variants.extend(self.generate_spread_voicings(chord, voicing_type))

        seen = set()
        unique = []
        for voicing in variants:
            if voicing.notes not in seen:
                seen.add(voicing.notes)
                unique.append(voicing)

        if not unique:
            return [self.generate_voicing(chord, voicing_type, target_register)]
        return unique

    def generate_spread_voicings(
        self,
        chord: Chord,
        voicing_type: VoicingType = VoicingType.ROOTLESS_A,
    ) -> List[Voicing]:
        """Open-position voicings walking the chord tones with at least a minor third between notes."""
        spread_voicings = []
        for base_octave in (3, 4):
            base_note = base_octave * 12 + chord.root
            notes: List[int] = []
            octave_offset = 0
            for index, interval in enumerate(chord.quality.intervals):
                note = base_note + interval + octave_offset
                if notes:
                    while note - notes[-1] < SPREAD_MIN_GAP and note < PIANO_HIGH:
                        note += 12
                        octave_offset += 12
                if PIANO_LOW <= note <= PIANO_HIGH:
                    notes.append(note)
                if index % 2 == 0 and octave_offset < 24:
                    octave_offset += 12

            ordered = sorted(set(notes))
            if len(ordered) >= 3 and count_cluster_intervals(ordered) <= MAX_SPREAD_CLUSTERS:
                split = len(ordered) // 2
                spread_voicings.append(Voicing(
                    chord, tuple(ordered), tuple(ordered[:split]), tuple(ordered[split:]), voicing_type,
                ))
        return spread_voicings

    # ---- derived voicings ---------------------------------------------------

    def generate_diminished_stack_voicing(self, chord: Chord, use_major_triads: bool = True) -> Voicing:
        """
        Polychord voicing for a dominant: root triad over the triad a minor third below.

        G7 -> E triad (left, around C3) under G triad (right, around C4).
        """
        third = 4 if use_major_triads else 3
        lower_root = (chord.root - 3) % 12
        left = [48 + lower_root + i for i in (0, third, 7)]
        right = [60 + chord.root + i for i in (0, third, 7)]
        return Voicing.from_hands(chord, left, right, VoicingType.ROOTLESS_A)

    def generate_variant_voicing(
        self,
        base: Voicing,
        chord: Optional[Chord] = None,
        extensions: Optional[Sequence[str]] = None,
    ) -> Voicing:
        """
        Colour variant of `base` with one note swapped for an extension.

        Extensions come from the explicit list, else the chord's own tags,
        else a random suggested group for the quality. The 5th is replaced
        first, else the highest of several roots, else the top note when the
        extension lands within a major third above it. The voicing keeps its
        size and the new note stays in the displaced note's hand.
        """
        chord = chord or base.chord
        if extensions:
            tags = list(extensions)
        elif chord.extensions:
            tags = list(chord.extensions)
        else:
            suggestions = chord.quality.suggested_extensions
            tags = list(self._rng.choice(suggestions)) if suggestions else []

        present = base.pitch_classes()
        target_pc = None
        for tag in tags:
            interval = extension_interval(tag)
            if interval is None:
                continue
            pc = (chord.root + interval) % 12
            if pc not in present:
                target_pc = pc
                break
        if target_pc is None:
            return base

        old_note, new_note = self._choose_swap(base, chord, target_pc)
        if old_note is None or not (PIANO_LOW <= new_note <= PIANO_HIGH):
            return base

        def swap(hand: Tuple[int, ...]) -> List[int]:
            return [new_note if n == old_note else n for n in hand]

        return Voicing.from_hands(chord, swap(base.left_hand), swap(base.right_hand), base.voicing_type)

    @staticmethod
    def _choose_swap(base: Voicing, chord: Chord, target_pc: int) -> Tuple[Optional[int], int]:
        fifth_pc = (chord.root + 7) % 12
        fifths = [n for n in base.notes if n % 12 == fifth_pc]
        if fifths:
            return fifths[0], _nearest_octave_of(target_pc, fifths[0])

        roots = [n for n in base.notes if n % 12 == chord.root]
        if len(roots) > 1:
            return roots[-1], _nearest_octave_of(target_pc, roots[-1])

        highest = base.top_note
        if highest is None:
            return None, 0
        new_note = (highest // 12) * 12 + target_pc
        while new_note <= highest and new_note + 12 <= PIANO_HIGH:
            new_note += 12
        if abs(new_note - highest) <= 4:
            return highest, new_note
        return None, 0

    def invert_voicing(self, voicing: Voicing, times: int = 1) -> Optional[Voicing]:
        return voicing.inverted(times)

    def transpose_voicing(self, voicing: Voicing, semitones: int) -> Optional[Voicing]:
        return voicing.transposed(semitones)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

_default_generator: Optional[VoicingGenerator] = None


def get_voicing_generator() -> VoicingGenerator:
    """Shared default generator instance."""
    global _default_generator
    if _default_generator is None:
        _default_generator = VoicingGenerator()
    return _default_generator


def voice_chord(
    chord: Chord,
    voicing_type: VoicingType = VoicingType.ROOTLESS_A,
) -> Voicing:
    """Voice a single chord with the default generator."""
    return get_voicing_generator().generate_voicing(chord, voicing_type)
