"""
Jazz Piano Renderer - turns voicings and rhythm patterns into note events.

For each chord event the renderer:
1. picks a rhythm pattern (the caller's, or one chosen from how many chords
   share the measure),
2. tiles the pattern over the chord's span on a cycle-aligned grid,
3. voices "and of four" anticipation hits with the NEXT chord and lets them
   ring across the barline, suppressing the next chord's own downbeat,
4. humanizes each hit: Gaussian timing, lay-back / push, optional strum,
   pitch-dependent velocity with left-hand balance, melody accents and
   ghost notes, legato-scaled durations.

All randomness comes from one injected random.Random, so a seeded renderer
reproduces its output exactly, and the "robotic" preset is fully
deterministic.

Example:
    ```python
    renderer = JazzPianoRenderer.for_style(MusicStyle.SWING, seed=7)
    events = renderer.render(progression, voicings)
    ```
"""

import logging
import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from .chord_model import ChordEvent, ChordProgression, NoteEvent, Voicing
from .humanizer import GaussianRandom
from .rhythm_patterns import (
    MusicStyle,
    PlacedHit,
    RhythmHitType,
    RhythmPattern,
    RhythmPatternLibrary,
)
from .utils import MIDDLE_C, clamp, is_finite
from .voicing_generator import VoicingGenerator

logger = logging.getLogger(__name__)

POSITION_EPSILON = 1e-6
BEAT_ONE_WINDOW = 0.1


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class RendererConfig:
    """
    Humanization settings for the jazz renderer.

    Timing values are in beats, velocity values in MIDI units.
    """
    # Micro-timing
    timing_jitter: float = 0.022
    lay_back_amount: float = 0.012
    anticipation_push: float = -0.008

    # Strumming / rolling
    strum_speed: float = 0.018
    strum_randomness: float = 0.006
    strum_probability: float = 0.85
    reverse_strum_probability: float = 0.15

    # Dynamics
    velocity_center: float = 78.0
    velocity_jitter: float = 10.0
    pitch_velocity_bias: float = 0.12
    ghost_note_probability: float = 0.03
    ghost_note_velocity: float = 0.28

    # Duration
    legato_factor: float = 0.88
    duration_jitter: float = 0.04

    # Articulation
    melody_accent_probability: float = 0.6
    melody_accent_boost: float = 8.0
    left_hand_velocity_reduction: float = 0.92

    # Pattern behaviour
    variation_pattern_probability: float = 0.1
    use_variant_voicings: bool = False
    anticipation_window: float = 0.6

    # Output limits
    min_duration: float = 0.1
    min_velocity: int = 15
    max_velocity: int = 127

    def __post_init__(self):
        if self.min_duration <= 0:
            raise ValueError("min_duration must be positive")
        if not 1 <= self.min_velocity <= self.max_velocity <= 127:
            raise ValueError(f"Velocity limits {self.min_velocity}-{self.max_velocity} outside 1-127")


RENDERER_PRESETS: Dict[str, RendererConfig] = {
    'swing': RendererConfig(
        velocity_center=80,
        ghost_note_probability=0.04,
        legato_factor=0.85,
    ),
    'bebop': RendererConfig(
        timing_jitter=0.018,
        lay_back_amount=0.008,
        anticipation_push=-0.012,
        strum_speed=0.012,
        strum_probability=0.7,
        velocity_center=75,
        velocity_jitter=12,
        ghost_note_probability=0.05,
        legato_factor=0.78,
    ),
    'ballad': RendererConfig(
        timing_jitter=0.028,
        lay_back_amount=0.025,
        strum_speed=0.038,
        strum_randomness=0.01,
        strum_probability=0.95,
        velocity_center=65,
        velocity_jitter=15,
        ghost_note_probability=0.02,
        legato_factor=0.95,
        melody_accent_probability=0.8,
        melody_accent_boost=12,
        use_variant_voicings=True,
    ),
    'latin': RendererConfig(
        timing_jitter=0.012,
        lay_back_amount=0.005,
        strum_speed=0.008,
        strum_probability=0.5,
        velocity_center=82,
        velocity_jitter=8,
        ghost_note_probability=0.02,
        legato_factor=0.82,
    ),
    # Slightly ahead of the beat, staccato
    'funk': RendererConfig(
        timing_jitter=0.01,
        lay_back_amount=-0.008,
        strum_speed=0.006,
        strum_probability=0.4,
        velocity_center=88,
        ghost_note_probability=0.08,
        legato_factor=0.7,
    ),
    'gospel': RendererConfig(
        timing_jitter=0.03,
        lay_back_amount=0.018,
        strum_speed=0.045,
        strum_randomness=0.015,
        strum_probability=0.92,
        velocity_center=72,
        velocity_jitter=18,
        legato_factor=0.92,
        melody_accent_probability=0.75,
        melody_accent_boost=15,
        use_variant_voicings=True,
    ),
    'stride': RendererConfig(
        timing_jitter=0.015,
        lay_back_amount=0.008,
        strum_speed=0.025,
        strum_probability=0.3,
        velocity_center=85,
        legato_factor=0.75,
    ),
    # No randomness at all: positions, durations and velocities are exact
    'robotic': RendererConfig(
        timing_jitter=0.0,
        lay_back_amount=0.0,
        anticipation_push=0.0,
        strum_speed=0.0,
        strum_randomness=0.0,
        strum_probability=0.0,
        reverse_strum_probability=0.0,
        velocity_center=80,
        velocity_jitter=0.0,
        pitch_velocity_bias=0.0,
        ghost_note_probability=0.0,
        legato_factor=1.0,
        duration_jitter=0.0,
        melody_accent_probability=0.0,
        left_hand_velocity_reduction=1.0,
        variation_pattern_probability=0.0,
    ),
}

STYLE_RENDERER_PRESETS: Dict[MusicStyle, str] = {
    MusicStyle.SWING: 'swing',
    MusicStyle.BOSSA: 'latin',
    MusicStyle.BALLAD: 'ballad',
    MusicStyle.LATIN: 'latin',
    MusicStyle.FUNK: 'funk',
    MusicStyle.GOSPEL: 'gospel',
    MusicStyle.STRIDE: 'stride',
}


def get_renderer_preset(name: str) -> RendererConfig:
    """Copy of a named preset; unknown names fall back to 'swing'."""
    preset = RENDERER_PRESETS.get(name.lower())
    if preset is None:
        logger.warning(f"Unknown renderer preset '{name}', using 'swing'")
        preset = RENDERER_PRESETS['swing']
    return replace(preset)


def renderer_config_for_style(style: MusicStyle) -> RendererConfig:
    return get_renderer_preset(STYLE_RENDERER_PRESETS[style])


class ChordRenderState(Enum):
    """Carried from one chord to the next during a render pass."""
    NORMAL = "normal"
    SUPPRESS_BEAT_ONE = "suppress_beat_one"  # previous chord anticipated this one


# =============================================================================
# RENDERER
# =============================================================================

class JazzPianoRenderer:
    """
    Pattern-driven, humanized comping renderer.

    Args:
        config: Humanization settings (defaults to the style's preset)
        style: Style used to look up density-adaptive patterns
        library: Rhythm pattern source
        generator: Voicing generator for colour variants
        rng / seed: Random source; pass a seed for reproducible output
    """

    def __init__(
        self,
        config: Optional[RendererConfig] = None,
        style: MusicStyle = MusicStyle.SWING,
        library: Optional[RhythmPatternLibrary] = None,
        generator: Optional[VoicingGenerator] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
    ):
        self.style = style
        self.config = config or renderer_config_for_style(style)
        self.library = library or RhythmPatternLibrary()
        self._rng = rng if rng is not None else random.Random(seed)
        self._gauss = GaussianRandom(self._rng)
        self.generator = generator or VoicingGenerator(rng=self._rng)

    @classmethod
    def for_style(cls, style: MusicStyle, seed: Optional[int] = None) -> "JazzPianoRenderer":
        return cls(style=style, seed=seed)

    # ---- pattern selection --------------------------------------------------

    def select_pattern_for_density(
        self,
        chords_in_measure: int,
        chord_duration: float,
        beats_per_measure: float,
    ) -> Optional[RhythmPattern]:
        """
        Pattern for a chord given how busy its measure is.

        None means "strike once at the chord start and sustain".
        """
        if chords_in_measure >= 4 or chord_duration <= 1.0:
            return None
        if chords_in_measure == 2 or abs(chord_duration - 2.0) < 0.1:
            return self.library.get_pattern("Syncopated", self.style)
        if chords_in_measure == 1 or chord_duration >= beats_per_measure - 0.1:
            if self._gauss.chance(self.config.variation_pattern_probability):
                return self.library.get_pattern("Syncopated", self.style)
            return self.library.get_pattern("Whole Note", self.style)
        return None

    # ---- rendering ----------------------------------------------------------

    def render(
        self,
        progression: ChordProgression,
        voicings: Sequence[Voicing],
        pattern: Optional[RhythmPattern] = None,
        loop: bool = False,
    ) -> List[NoteEvent]:
        """
        Render every chord event with its voicing.

        Args:
            progression: Chord timeline
            voicings: One voicing per chord event
            pattern: Rhythm for every chord; None selects per chord by density
            loop: The last chord may anticipate the first one

        Returns:
            Note events sorted by position, then pitch
        """
        chord_events = list(progression.events)
        if len(voicings) != len(chord_events):
            logger.warning(
                f"{len(chord_events)} chord events but {len(voicings)} voicings, rendering the overlap"
            )
        count = min(len(chord_events), len(voicings))
        if count == 0:
            return []

        density = progression.chords_per_measure()
        beats_per_measure = progression.time_signature.beats_per_measure
        swung = pattern.with_swing() if pattern is not None else None

        state = ChordRenderState.NORMAL
        output: List[NoteEvent] = []
        for i in range(count):
            event, voicing = chord_events[i], voicings[i]
            if event.duration <= 0:
                state = ChordRenderState.NORMAL
                continue

            if i + 1 < count:
                next_voicing = voicings[i + 1]
            elif loop and count > 1:
                next_voicing = voicings[0]
            else:
                next_voicing = None

            chord_pattern = swung
            if chord_pattern is None:
                selected = self.select_pattern_for_density(
                    density.get(progression.measure_of(event), 1), event.duration, beats_per_measure,
                )
                chord_pattern = selected.with_swing() if selected is not None else None
                logger.debug(
                    f"{event.chord} at {event.start_beat}: "
                    f"{selected.name if selected is not None else 'sustained'}"
                )

            suppress = state is ChordRenderState.SUPPRESS_BEAT_ONE
            if chord_pattern is None:
                notes = [] if suppress else self.render_sustained(voicing, event)
                anticipated = False
            else:
                notes, anticipated = self.render_pattern(chord_pattern, event, voicing, next_voicing, suppress)

            output.extend(notes)
            state = ChordRenderState.SUPPRESS_BEAT_ONE if anticipated else ChordRenderState.NORMAL

        output.sort(key=lambda e: (e.position, e.midi_note))
        return output

    def render_sustained(self, voicing: Voicing, event: ChordEvent) -> List[NoteEvent]:
        """Strike the whole voicing at the chord start and hold it."""
        return self.render_hit(list(voicing.notes), voicing, event.start_beat, event.duration, 1.0, False)

    def render_pattern(
        self,
        pattern: RhythmPattern,
        event: ChordEvent,
        voicing: Voicing,
        next_voicing: Optional[Voicing] = None,
        suppress_beat_one: bool = False,
    ) -> Tuple[List[NoteEvent], bool]:
        """
        Render one chord through a (swung) pattern.

        Returns the notes and whether an anticipation of the next chord was
        played.
        """
        placed = [p for p in pattern.place(event.start_beat, event.duration)
                  if p.hit.hit_type != RhythmHitType.REST]
        if not placed:
            notes = [] if suppress_beat_one else self.render_sustained(voicing, event)
            return notes, False

        output: List[NoteEvent] = []
        anticipated = False
        struck = 0
        for p in placed:
            at_chord_start = abs(p.position - event.start_beat) < POSITION_EPSILON
            if suppress_beat_one and at_chord_start and p.hit.position < BEAT_ONE_WINDOW:
                continue

            is_anticipation = next_voicing is not None and self._is_anticipation(p, pattern, event.end_beat)
            if is_anticipation:
                hit_voicing = next_voicing
                base_duration = (event.end_beat - p.position) + pattern.first_offbeat_position()
                anticipated = True
            else:
                hit_voicing = voicing
                if self.config.use_variant_voicings and struck > 0:
                    hit_voicing = self.generator.generate_variant_voicing(voicing)
                base_duration = p.duration
                struck += 1

            notes = self.select_notes(p.hit.hit_type, hit_voicing)
            output.extend(self.render_hit(
                notes, hit_voicing, p.position, base_duration, p.hit.velocity, is_anticipation,
            ))
        return output, anticipated

    def _is_anticipation(self, placed: PlacedHit, pattern: RhythmPattern, chord_end: float) -> bool:
        """Late hit in the cycle that closes exactly at the chord's end."""
        length = pattern.length_in_beats
        in_window = length - self.config.anticipation_window <= placed.hit.position < length
        closes_chord = abs(placed.cycle_start + length - chord_end) < POSITION_EPSILON
        return in_window and closes_chord

    @staticmethod
    def select_notes(hit_type: RhythmHitType, voicing: Voicing) -> List[int]:
        notes = list(voicing.notes)
        if not notes or hit_type == RhythmHitType.REST:
            return []
        if hit_type == RhythmHitType.BASS_ONLY:
            return notes[:1]
        if hit_type == RhythmHitType.TOP_NOTE:
            return notes[-1:]
        half = max(1, len(notes) // 2)
        if hit_type == RhythmHitType.LEFT_HAND:
            return list(voicing.left_hand) or notes[:half]
        if hit_type == RhythmHitType.RIGHT_HAND:
            return list(voicing.right_hand) or notes[-half:]
        return notes

    # ---- humanization -------------------------------------------------------

    def render_hit(
        self,
        notes: Sequence[int],
        voicing: Voicing,
        position: float,
        duration: float,
        velocity: float,
        is_anticipation: bool,
    ) -> List[NoteEvent]:
        """Humanize one struck chord (or chord fragment)."""
        cfg = self.config
        ordered = sorted(notes)
        if not ordered:
            return []

        # The whole chord moves together, then each note may be strummed
        chord_offset = self._gauss.next(0.0, cfg.timing_jitter)
        feel = cfg.anticipation_push if is_anticipation else cfg.lay_back_amount
        strum = self._gauss.chance(cfg.strum_probability)
        reverse = self._gauss.chance(cfg.reverse_strum_probability)

        base_velocity = cfg.velocity_center * velocity
        melody_note = ordered[-1]
        left_hand = set(voicing.left_hand)
        low = max(1, cfg.min_velocity)
        high = min(127, cfg.max_velocity)

        events = []
        for index, note in enumerate(ordered):
            strum_delay = 0.0
            if strum and len(ordered) > 1:
                step = len(ordered) - 1 - index if reverse else index
                strum_delay = step * cfg.strum_speed + self._gauss.next(0.0, cfg.strum_randomness)
            note_position = max(0.0, position + chord_offset + feel + strum_delay)

            note_velocity = base_velocity + (note - MIDDLE_C) * cfg.pitch_velocity_bias
            if note in left_hand:
                note_velocity *= cfg.left_hand_velocity_reduction
            if note == melody_note and self._gauss.chance(cfg.melody_accent_probability):
                note_velocity += cfg.melody_accent_boost
            note_velocity += self._gauss.next(0.0, cfg.velocity_jitter)
            if self._gauss.chance(cfg.ghost_note_probability):
                note_velocity *= cfg.ghost_note_velocity
            note_velocity = clamp(note_velocity, low, high)

            note_duration = max(cfg.min_duration, duration * cfg.legato_factor + self._gauss.next(0.0, cfg.duration_jitter))

            if not is_finite(note_position, note_duration, note_velocity):
                logger.warning(f"Dropping non-finite note {note} at {note_position}")
                continue
            events.append(NoteEvent(note, int(round(note_velocity)), note_position, note_duration))
        return events


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def render_comping(
    progression: ChordProgression,
    voicings: Sequence[Voicing],
    style: MusicStyle = MusicStyle.SWING,
    pattern: Optional[RhythmPattern] = None,
    seed: Optional[int] = None,
    loop: bool = False,
) -> List[NoteEvent]:
    """Render with the style's preset and an optional fixed pattern."""
    return JazzPianoRenderer.for_style(style, seed=seed).render(progression, voicings, pattern, loop)
