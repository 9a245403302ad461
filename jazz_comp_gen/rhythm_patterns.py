"""
Rhythm Pattern Library - comping rhythms by style.

A RhythmPattern is one cycle (usually a 4/4 bar) of chord hits. Each hit
has a position inside the cycle, a relative velocity, a hit type saying
which part of the voicing sounds, and an optional explicit duration. The
renderer tiles patterns across each chord's span on a grid aligned to the
cycle length.

Every style carries the four basic patterns used by density-adaptive
selection ("Whole Note", "Syncopated", "Quarter Note", "Half Note") plus
its own named comping figures.
"""

import logging
import math
import random
from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

POSITION_EPSILON = 1e-9
SWING_WINDOW = 0.1


# =============================================================================
# STYLES
# =============================================================================

class MusicStyle(Enum):
    SWING = "Swing"
    BOSSA = "Bossa Nova"
    BALLAD = "Ballad"
    LATIN = "Latin"
    FUNK = "Funk"
    GOSPEL = "Gospel"
    STRIDE = "Stride"

    @property
    def default_tempo(self) -> float:
        return STYLE_DEFAULT_TEMPOS[self]

    @classmethod
    def from_name(cls, name: str) -> Optional["MusicStyle"]:
        """Look up by value ('Bossa Nova') or member name ('bossa'); None if unknown."""
        key = name.strip().lower()
        for style in cls:
            if key in (style.value.lower(), style.name.lower()):
                return style
        return None


STYLE_DEFAULT_TEMPOS: Dict[MusicStyle, float] = {
    MusicStyle.SWING: 140.0,
    MusicStyle.BOSSA: 130.0,
    MusicStyle.BALLAD: 72.0,
    MusicStyle.LATIN: 120.0,
    MusicStyle.FUNK: 100.0,
    MusicStyle.GOSPEL: 80.0,
    MusicStyle.STRIDE: 160.0,
}


# =============================================================================
# PATTERN TYPES
# =============================================================================

class RhythmHitType(Enum):
    FULL_CHORD = "full_chord"
    BASS_ONLY = "bass_only"
    LEFT_HAND = "left_hand"
    RIGHT_HAND = "right_hand"
    TOP_NOTE = "top_note"
    REST = "rest"


@dataclass(frozen=True)
class RhythmHit:
    """One hit: position in beats from the cycle start, velocity 0-1."""
    position: float
    velocity: float = 1.0
    hit_type: RhythmHitType = RhythmHitType.FULL_CHORD
    duration: Optional[float] = None


@dataclass(frozen=True)
class PlacedHit:
    """A pattern hit placed on the absolute beat timeline."""
    hit: RhythmHit
    index: int
    position: float
    cycle_start: float
    duration: float


@dataclass(frozen=True)
class RhythmPattern:
    """
    One cycle of comping hits.

    Hits are stored sorted by position. Construction rejects duplicate
    positions, hits outside [0, length) and swing outside [0, 0.5).
    """
    name: str
    style: MusicStyle
    length_in_beats: float = 4.0
    hits: Tuple[RhythmHit, ...] = ()
    swing_factor: float = 0.0
    description: str = ""

    def __post_init__(self):
        if self.length_in_beats <= 0:
            raise ValueError(f"Pattern {self.name!r} has non-positive length")
        if not 0.0 <= self.swing_factor < 0.5:
            raise ValueError(f"Pattern {self.name!r} swing factor {self.swing_factor} outside [0, 0.5)")

        hits = tuple(sorted(self.hits, key=lambda h: h.position))
        for hit in hits:
            if not 0.0 <= hit.position < self.length_in_beats:
                raise ValueError(f"Pattern {self.name!r} hit at {hit.position} outside its cycle")
            if hit.duration is not None and hit.duration <= 0:
                raise ValueError(f"Pattern {self.name!r} hit at {hit.position} has non-positive duration")
        for a, b in zip(hits, hits[1:]):
            if b.position - a.position < POSITION_EPSILON:
                raise ValueError(f"Pattern {self.name!r} has two hits at {a.position}")
        object.__setattr__(self, 'hits', hits)

    def with_swing(self) -> "RhythmPattern":
        """
        Copy with off-beat eighths pushed late by the swing factor.

        A hit whose fractional position is within 0.1 of .5 moves to
        floor(position) + 0.5 + swing; the copy has swing factor 0.
        """
        if self.swing_factor <= 0:
            return self
        swung = []
        for hit in self.hits:
            fraction = hit.position - math.floor(hit.position)
            if abs(fraction - 0.5) < SWING_WINDOW:
                hit = replace(hit, position=math.floor(hit.position) + 0.5 + self.swing_factor)
            swung.append(hit)
        return replace(self, hits=tuple(swung), swing_factor=0.0)

    def default_duration(self, index: int) -> float:
        """Gap from hit `index` to the next hit, wrapping into the next cycle."""
        hit = self.hits[index]
        if index + 1 < len(self.hits):
            return self.hits[index + 1].position - hit.position
        return self.length_in_beats - hit.position + self.hits[0].position

    def first_offbeat_position(self, default: float = 1.5) -> float:
        """Position of the first sounding hit after beat one."""
        for hit in self.hits:
            if hit.position >= 0.1 and hit.hit_type != RhythmHitType.REST:
                return hit.position
        return default

    def min_gap(self) -> float:
        """Tightest spacing between consecutive hits, wrap included."""
        if len(self.hits) < 2:
            return self.length_in_beats
        return min(self.default_duration(i) for i in range(len(self.hits)))

    def place(self, start: float, duration: float) -> List[PlacedHit]:
        """
        Tile the pattern over [start, start + duration).

        Tiling starts at the cycle boundary at or before `start`; only hits
        inside the span are returned. Durations are the explicit value or
        the gap to the next hit, clamped to the time left in the span.
        """
        placed: List[PlacedHit] = []
        if not self.hits or duration <= 0:
            return placed
        end = start + duration
        cycle = math.floor(start / self.length_in_beats) * self.length_in_beats
        while cycle < end:
            for index, hit in enumerate(self.hits):
                position = cycle + hit.position
                if position < start - POSITION_EPSILON or position >= end - POSITION_EPSILON:
                    continue
                base = hit.duration if hit.duration is not None else self.default_duration(index)
                length = min(base, end - position)
                if length > 0:
                    placed.append(PlacedHit(hit, index, position, cycle, length))
            cycle += self.length_in_beats
        return placed


# =============================================================================
# CATALOG
# =============================================================================

_FULL = RhythmHitType.FULL_CHORD
_BASS = RhythmHitType.BASS_ONLY
_LH = RhythmHitType.LEFT_HAND
_RH = RhythmHitType.RIGHT_HAND
_TOP = RhythmHitType.TOP_NOTE
_REST = RhythmHitType.REST

# Styles whose basic syncopated figure is swung
_SWUNG_BASICS = (MusicStyle.SWING, MusicStyle.GOSPEL)
BASIC_SWING = 0.17


def _pattern(name, style, hits, swing=0.0, description="", length=4.0) -> RhythmPattern:
    return RhythmPattern(
        name=name,
        style=style,
        length_in_beats=length,
        hits=tuple(RhythmHit(*h) for h in hits),
        swing_factor=swing,
        description=description,
    )


def _basic_patterns(style: MusicStyle) -> List[RhythmPattern]:
    swing = BASIC_SWING if style in _SWUNG_BASICS else 0.0
    return [
        _pattern("Whole Note", style, [(0.0, 0.85, _FULL, 4.0)],
                 description="One sustained chord per bar"),
        _pattern("Syncopated", style, [(0.5, 0.75, _FULL, 0.5), (2.0, 0.85, _FULL, 1.0)],
                 swing=swing, description="Push on the and of one, land on three"),
        _pattern("Quarter Note", style, [
            (0.0, 0.85, _FULL, 1.0), (1.0, 0.70, _FULL, 1.0),
            (2.0, 0.80, _FULL, 1.0), (3.0, 0.70, _FULL, 1.0),
        ], description="Four on the floor"),
        _pattern("Half Note", style, [(0.0, 0.85, _FULL, 2.0), (2.0, 0.80, _FULL, 2.0)],
                 description="Chords on one and three"),
    ]


def _style_patterns(style: MusicStyle) -> List[RhythmPattern]:
    if style == MusicStyle.SWING:
        return [
            _pattern("Charleston", style, [(0.0, 0.9, _FULL, 0.75), (1.5, 0.8, _FULL, 0.5)],
                     swing=BASIC_SWING, description="Dotted quarter, eighth"),
            _pattern("Red Garland", style, [(1.5, 0.75, _FULL, 0.5), (3.5, 0.85, _FULL)],
                     swing=BASIC_SWING, description="And of two, anticipated and of four"),
            _pattern("Freddie Green", style, [
                (0.0, 0.7, _RH, 0.5), (1.0, 0.6, _RH, 0.5),
                (2.0, 0.7, _RH, 0.5), (3.0, 0.6, _RH, 0.5),
            ], description="Short right-hand quarters"),
        ]
    if style == MusicStyle.BOSSA:
        return [
            _pattern("Bossa Nova Basic", style, [
                (0.0, 0.8, _BASS, 1.0), (1.0, 0.6, _RH, 0.5), (1.5, 0.7, _RH, 0.5),
                (2.0, 0.75, _BASS, 1.0), (3.0, 0.65, _RH, 0.5),
            ], description="Bass on one and three, right-hand answers"),
            _pattern("Bossa Nova Anticipated", style, [
                (0.0, 0.8, _FULL, 1.5), (1.5, 0.65, _RH, 1.0), (3.5, 0.75, _FULL),
            ], description="Guitar-style push into the next bar"),
        ]
    if style == MusicStyle.BALLAD:
        return [
            _pattern("Ballad Pulse", style, [(0.0, 0.8, _FULL, 2.0), (2.0, 0.6, _RH, 2.0)],
                     description="Chord, then a soft right-hand restrike"),
            _pattern("Ballad Arpeggiated", style, [
                (0.0, 0.75, _BASS, 4.0), (1.0, 0.6, _LH), (2.0, 0.65, _RH), (3.0, 0.7, _TOP),
            ], description="Bass, left hand, right hand, melody note"),
        ]
    if style == MusicStyle.LATIN:
        return [
            _pattern("Montuno", style, [
                (0.0, 0.85, _RH, 0.5), (0.5, 0.6, _RH, 0.5), (1.5, 0.8, _FULL, 0.5),
                (2.5, 0.7, _RH, 0.5), (3.0, 0.65, _RH, 0.5), (3.5, 0.8, _FULL),
            ], description="Syncopated piano montuno"),
            _pattern("Latin Tumbao Comp", style, [
                (0.0, 0.0, _REST), (1.5, 0.75, _FULL, 1.0), (3.0, 0.8, _FULL, 1.0),
            ], description="Comp on the tumbao accents, rest on one"),
        ]
    if style == MusicStyle.FUNK:
        return [
            _pattern("Funk Stabs", style, [
                (0.0, 0.9, _FULL, 0.25), (0.75, 0.7, _FULL, 0.25), (1.5, 0.8, _FULL, 0.25),
                (2.5, 0.75, _FULL, 0.25), (3.25, 0.7, _FULL, 0.25),
            ], description="Short sixteenth-note stabs"),
            _pattern("Funk Sixteenths", style, [
                (0.0, 0.85, _RH, 0.25), (0.25, 0.55, _RH, 0.25), (0.5, 0.65, _RH, 0.25),
                (0.75, 0.55, _RH, 0.25), (2.0, 0.8, _RH, 0.25), (2.75, 0.6, _RH, 0.25),
            ], description="Right-hand sixteenth chatter"),
        ]
    if style == MusicStyle.GOSPEL:
        return [
            _pattern("Gospel Shout", style, [
                (0.0, 0.95, _FULL, 0.5), (1.0, 0.7, _RH, 0.5), (1.5, 0.75, _RH, 0.5),
                (2.0, 0.9, _FULL, 0.5), (3.0, 0.7, _RH, 0.5), (3.5, 0.85, _FULL),
            ], swing=BASIC_SWING, description="Driving shout chorus"),
            _pattern("Gospel Backbeat", style, [
                (0.0, 0.7, _BASS, 1.0), (1.0, 0.9, _FULL, 0.75),
                (2.0, 0.65, _BASS, 1.0), (3.0, 0.95, _FULL, 0.75),
            ], description="Chords on two and four"),
        ]
    if style == MusicStyle.STRIDE:
        return [
            _pattern("Stride", style, [
                (0.0, 0.9, _BASS, 0.75), (1.0, 0.75, _RH, 0.5),
                (2.0, 0.85, _BASS, 0.75), (3.0, 0.7, _RH, 0.5),
            ], description="Oom-pah bass and chord"),
            _pattern("Stride Break", style, [
                (0.0, 0.95, _FULL, 0.5), (1.5, 0.8, _FULL, 0.5), (3.0, 0.85, _FULL, 1.0),
            ], swing=0.1, description="Two-handed break figure"),
        ]
    return []


def build_rhythm_patterns() -> Mapping[MusicStyle, Tuple[RhythmPattern, ...]]:
    """Build the read-only style -> patterns catalog; names are unique within a style."""
    catalog = {}
    for style in MusicStyle:
        patterns = _basic_patterns(style) + _style_patterns(style)
        names = [p.name for p in patterns]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate pattern names in {style.value}: {names}")
        catalog[style] = tuple(patterns)
    return MappingProxyType(catalog)


RHYTHM_PATTERNS = build_rhythm_patterns()


# =============================================================================
# LIBRARY
# =============================================================================

class RhythmPatternLibrary:
    """Lookup over a style -> patterns catalog (the module catalog by default)."""

    def __init__(self, catalog: Optional[Mapping[MusicStyle, Tuple[RhythmPattern, ...]]] = None):
        self.catalog = RHYTHM_PATTERNS if catalog is None else catalog

    def get_patterns(self, style: MusicStyle) -> List[RhythmPattern]:
        return list(self.catalog.get(style, ()))

    def get_pattern(self, name: str, style: Optional[MusicStyle] = None) -> Optional[RhythmPattern]:
        """
        Pattern by name, scoped to `style` when given.

        Without a style the first match in MusicStyle order wins.
        """
        styles: Iterable[MusicStyle] = [style] if style is not None else list(MusicStyle)
        for s in styles:
            for pattern in self.catalog.get(s, ()):
                if pattern.name == name:
                    return pattern
        return None

    def pattern_names(self, style: Optional[MusicStyle] = None) -> List[str]:
        styles = [style] if style is not None else list(MusicStyle)
        names: List[str] = []
        for s in styles:
            for pattern in self.catalog.get(s, ()):
                if pattern.name not in names:
                    names.append(pattern.name)
        return names

    def random_pattern(self, style: MusicStyle) -> Optional[RhythmPattern]:
        """Default pattern for a style (its first entry)."""
        patterns = self.catalog.get(style, ())
        return patterns[0] if patterns else None

    def patterns_for_tempo(
        self,
        style: MusicStyle,
        tempo: float,
        min_gap_seconds: float = 0.1,
    ) -> List[RhythmPattern]:
        """Patterns whose tightest hit spacing is still playable at `tempo`."""
        seconds_per_beat = 60.0 / tempo
        return [
            p for p in self.catalog.get(style, ())
            if p.min_gap() * seconds_per_beat >= min_gap_seconds
        ]


class DynamicCompingSelector:
    """Picks patterns by intensity or by weight, using an injected random source."""

    def __init__(self, library: Optional[RhythmPatternLibrary] = None, rng: Optional[random.Random] = None):
        self.library = library or RhythmPatternLibrary()
        self._rng = rng or random.Random()

    def select_pattern(
        self,
        style: MusicStyle,
        intensity: float,
        previous: Optional[RhythmPattern] = None,
    ) -> Optional[RhythmPattern]:
        """
        Sparse patterns below 0.3 intensity, balanced below 0.6, busy above.

        Avoids repeating `previous` when another candidate exists.
        """
        patterns = self.library.get_patterns(style)
        if not patterns:
            return None

        if intensity < 0.3:
            suitable = [p for p in patterns if len(p.hits) <= 3]
        elif intensity < 0.6:
            suitable = [p for p in patterns if 2 <= len(p.hits) <= 5]
        else:
            suitable = [p for p in patterns if len(p.hits) >= 3]

        candidates = suitable or patterns
        fresh = [p for p in candidates if previous is None or p.name != previous.name]
        return self._rng.choice(fresh or candidates)

    def select_weighted_pattern(self, style: MusicStyle, weights: Dict[str, float]) -> Optional[RhythmPattern]:
        """Random pattern with per-name weights (missing names weigh 1.0)."""
        patterns = self.library.get_patterns(style)
        if not patterns:
            return None
        pattern_weights = [max(0.0, weights.get(p.name, 1.0)) for p in patterns]
        if sum(pattern_weights) <= 0:
            return self._rng.choice(patterns)
        return self._rng.choices(patterns, weights=pattern_weights, k=1)[0]
