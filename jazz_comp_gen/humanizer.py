"""
Humanization primitives and the accent-pattern humanizer.

- GaussianRandom: normal draws (Box-Muller) over an injected random.Random
- HumanizerConfig: uniform-jitter settings with per-beat accent patterns
- MusicHumanizer: applies a HumanizerConfig to rendered notes, rolls chords
  and separates the hands; also renders a plain, un-humanized reference
  performance (one sustained chord per event)

The pattern-driven jazz renderer lives in piano_renderer.py and reuses
GaussianRandom from here.
"""

import logging
import math
import random
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from .chord_model import ChordProgression, NoteEvent, Voicing
from .rhythm_patterns import MusicStyle
from .utils import clamp

logger = logging.getLogger(__name__)

MIN_NOTE_DURATION = 0.1
DEFAULT_NOTE_VELOCITY = 80


# =============================================================================
# GAUSSIAN RANDOM
# =============================================================================

class GaussianRandom:
    """
    Normal-distributed values from an injected uniform source.

    Seeding the underlying random.Random makes every draw reproducible.
    """

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        self._rng = rng if rng is not None else random.Random(seed)

    @property
    def rng(self) -> random.Random:
        return self._rng

    def next(self, mean: float = 0.0, std_dev: float = 1.0) -> float:
        """One Box-Muller draw; a zero std_dev returns the mean exactly."""
        if std_dev == 0:
            return mean
        u1 = 1.0 - self._rng.random()  # (0, 1], keeps log() finite
        u2 = self._rng.random()
        z = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + z * std_dev

    def next_clamped(self, mean: float, std_dev: float, low: float, high: float) -> float:
        return clamp(self.next(mean, std_dev), low, high)

    def chance(self, probability: float) -> bool:
        """True with the given probability (never for p <= 0)."""
        return self._rng.random() < probability


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class HumanizerConfig:
    """
    Uniform-jitter humanization settings.

    Attributes:
        timing_jitter: Max random offset in beats
        timing_bias: Constant shift in beats (negative = ahead)
        velocity_jitter: Max random velocity offset
        velocity_bias: Constant velocity offset
        duration_jitter: Max random duration offset in beats
        legato: Duration multiplier
        accent_pattern: Velocity factor per beat of the bar
        hand_separation: Left hand leads the right by this many beats
        roll_chords: Arpeggiate chords bottom-up
        roll_speed: Beats between rolled notes
    """
    timing_jitter: float = 0.02
    timing_bias: float = 0.0
    velocity_jitter: int = 8
    velocity_bias: int = 0
    duration_jitter: float = 0.05
    legato: float = 0.95
    accent_pattern: Tuple[float, ...] = (1.0, 0.7, 0.85, 0.65)
    hand_separation: float = 0.015
    roll_chords: bool = False
    roll_speed: float = 0.02


HUMANIZER_PRESETS: Dict[str, HumanizerConfig] = {
    'natural': HumanizerConfig(),
    'tight': HumanizerConfig(
        timing_jitter=0.008,
        velocity_jitter=4,
        duration_jitter=0.02,
        legato=0.98,
    ),
    'loose': HumanizerConfig(
        timing_jitter=0.035,
        velocity_jitter=12,
        duration_jitter=0.08,
        legato=0.9,
    ),
    'expressive': HumanizerConfig(
        timing_jitter=0.025,
        velocity_jitter=15,
        duration_jitter=0.06,
        legato=0.92,
        roll_chords=True,
        roll_speed=0.025,
    ),
}

STYLE_HUMANIZER_CONFIGS: Dict[MusicStyle, HumanizerConfig] = {
    # Backbeat on 2 and 4, slightly behind the beat
    MusicStyle.SWING: HumanizerConfig(
        timing_jitter=0.025, timing_bias=0.008, velocity_jitter=12,
        duration_jitter=0.04, legato=0.88, accent_pattern=(0.8, 0.95, 0.75, 1.0),
    ),
    MusicStyle.BOSSA: HumanizerConfig(
        timing_jitter=0.015, velocity_jitter=6, duration_jitter=0.03,
        legato=0.95, accent_pattern=(0.9, 0.7, 0.8, 0.7),
    ),
    MusicStyle.BALLAD: HumanizerConfig(
        timing_jitter=0.03, velocity_jitter=12, duration_jitter=0.06,
        legato=0.98, accent_pattern=(1.0, 0.5, 0.7, 0.5),
        roll_chords=True, roll_speed=0.03,
    ),
    MusicStyle.LATIN: HumanizerConfig(
        timing_jitter=0.012, velocity_jitter=8, duration_jitter=0.02,
        legato=0.88, accent_pattern=(1.0, 0.7, 0.9, 0.7),
    ),
    # Slightly ahead of the beat
    MusicStyle.FUNK: HumanizerConfig(
        timing_jitter=0.01, timing_bias=-0.01, velocity_jitter=10,
        duration_jitter=0.02, legato=0.85, accent_pattern=(1.0, 0.6, 0.75, 0.8),
    ),
    MusicStyle.GOSPEL: HumanizerConfig(
        timing_jitter=0.035, velocity_jitter=15, duration_jitter=0.05,
        legato=0.93, accent_pattern=(1.0, 0.6, 0.9, 0.65),
        roll_chords=True, roll_speed=0.04,
    ),
    MusicStyle.STRIDE: HumanizerConfig(
        timing_jitter=0.018, velocity_jitter=8, duration_jitter=0.03,
        legato=0.8, accent_pattern=(1.0, 0.5, 0.85, 0.5), hand_separation=0.02,
    ),
}


# =============================================================================
# HUMANIZER
# =============================================================================

class MusicHumanizer:
    """
    Accent-pattern humanizer for already-rendered notes.

    Velocities follow the config's accent pattern for the beat in the bar,
    then get uniform jitter; timing and duration get uniform jitter too.
    """

    def __init__(
        self,
        config: Optional[HumanizerConfig] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
    ):
        self.config = config or HumanizerConfig()
        self._rng = rng if rng is not None else random.Random(seed)

    @classmethod
    def for_style(cls, style: MusicStyle, seed: Optional[int] = None) -> "MusicHumanizer":
        return cls(STYLE_HUMANIZER_CONFIGS[style], seed=seed)

    def humanize_note(self, note: NoteEvent, beat_in_bar: int = 0) -> NoteEvent:
        cfg = self.config
        accent = cfg.accent_pattern[beat_in_bar % len(cfg.accent_pattern)] if cfg.accent_pattern else 1.0

        velocity = note.velocity * accent
        velocity += self._rng.randint(-cfg.velocity_jitter, cfg.velocity_jitter) + cfg.velocity_bias
        velocity = int(clamp(velocity, 1, 127))

        position = note.position + self._rng.uniform(-cfg.timing_jitter, cfg.timing_jitter) + cfg.timing_bias
        duration = note.duration * cfg.legato + self._rng.uniform(-cfg.duration_jitter, cfg.duration_jitter)
        return replace(
            note,
            velocity=velocity,
            position=max(0.0, position),
            duration=max(MIN_NOTE_DURATION, duration),
        )

    def humanize_notes(self, notes: Sequence[NoteEvent], start_beat: float = 0.0) -> List[NoteEvent]:
        result = []
        for note in notes:
            beat_in_bar = max(0, int((note.position - start_beat) % 4))
            result.append(self.humanize_note(note, beat_in_bar))
        return result

    def humanize_chord(self, voicing: Voicing, start_beat: float, duration: float) -> List[NoteEvent]:
        """Strike a whole voicing: optional roll, hand separation, then humanize."""
        cfg = self.config
        notes = [
            NoteEvent(n, DEFAULT_NOTE_VELOCITY, start_beat, duration)
            for n in voicing.notes
        ]
        if cfg.roll_chords:
            notes = [replace(n, position=n.position + i * cfg.roll_speed) for i, n in enumerate(notes)]

        left = set(voicing.left_hand)
        half = cfg.hand_separation / 2
        notes = [
            replace(n, position=n.position - half if n.midi_note in left else n.position + half)
            for n in notes
        ]
        beat_in_bar = int(start_beat % 4)
        return [self.humanize_note(n, beat_in_bar) for n in notes]

    def humanize_progression(self, progression: ChordProgression, voicings: Sequence[Voicing]) -> List[NoteEvent]:
        """Each chord struck once and sustained, humanized."""
        events: List[NoteEvent] = []
        for event, voicing in zip(progression.events, voicings):
            events.extend(self.humanize_chord(voicing, event.start_beat, event.duration))
        events.sort(key=lambda e: (e.position, e.midi_note))
        return events


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def plain_note_events(
    progression: ChordProgression,
    voicings: Sequence[Voicing],
    velocity: int = DEFAULT_NOTE_VELOCITY,
) -> List[NoteEvent]:
    """
    Un-humanized reference rendering: each voicing held for its chord.

    Extra voicings or chord events without a partner are ignored.
    """
    if len(voicings) != len(progression.events):
        logger.warning(
            f"{len(progression.events)} chord events but {len(voicings)} voicings, rendering the overlap"
        )
    events = [
        NoteEvent(note, velocity, event.start_beat, event.duration)
        for event, voicing in zip(progression.events, voicings)
        if event.duration > 0
        for note in voicing.notes
    ]
    events.sort(key=lambda e: (e.position, e.midi_note))
    return events
