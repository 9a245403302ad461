"""
End-to-end comping pipeline: progression -> voicings -> rendered notes.

Example:
    progression = ChordProgression.from_chords("ii-V-I", [
        (Chord.from_name("D", ChordQuality.MINOR7), 4.0),
        (Chord.from_name("G", ChordQuality.DOMINANT7), 4.0),
        (Chord.from_name("C", ChordQuality.MAJOR7), 8.0),
    ])
    result = generate_comping(progression, seed=7)
    result.to_midi().save("ii-V-I.mid")
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from mido import MidiFile

from .chord_model import ChordProgression, NoteEvent, Voicing, VoicingType
from .midi_export import progression_to_midi
from .piano_renderer import JazzPianoRenderer, RendererConfig
from .rhythm_patterns import MusicStyle, RhythmPattern
from .voice_leading import CostWeights
from .voice_leading_optimizer import VoiceLeadingAnalysis, VoiceLeadingOptimizer

logger = logging.getLogger(__name__)


@dataclass
class CompingResult:
    """Voicings chosen for each chord, the rendered notes and their analysis."""
    progression: ChordProgression
    voicings: List[Voicing]
    events: List[NoteEvent]
    analysis: VoiceLeadingAnalysis

    def to_midi(self, **kwargs) -> MidiFile:
        return progression_to_midi(self.progression, self.events, **kwargs)


def generate_comping(
    progression: ChordProgression,
    style: MusicStyle = MusicStyle.SWING,
    voicing_type: VoicingType = VoicingType.ROOTLESS_A,
    pattern: Optional[RhythmPattern] = None,
    for_loop: bool = True,
    seed: Optional[int] = None,
    renderer_config: Optional[RendererConfig] = None,
    weights: Optional[CostWeights] = None,
) -> CompingResult:
    """
    Voice, optimize and render a progression in one call.

    Args:
        progression: Chord timeline
        style: Rendering style (pattern catalog and default humanization)
        voicing_type: Voicing family for every chord
        pattern: Fixed rhythm for every chord; None adapts to chord density
        for_loop: Optimize and render the last -> first seam
        seed: Seed for the renderer's random source
        renderer_config: Overrides the style's renderer preset
        weights: Voice-leading cost weights

    Returns:
        CompingResult
    """
    optimizer = VoiceLeadingOptimizer(weights=weights)
    voicings = optimizer.optimize_progression(progression, voicing_type, for_loop)
    analysis = optimizer.analyze_voice_leading(voicings, is_loop=for_loop)

    renderer = JazzPianoRenderer(config=renderer_config, style=style, seed=seed)
    events = renderer.render(progression, voicings, pattern, loop=for_loop)

    logger.info(
        f"Comped '{progression.title}': {len(voicings)} voicings, {len(events)} notes, "
        f"voice leading {analysis.quality.value}"
    )
    return CompingResult(progression, voicings, events, analysis)
