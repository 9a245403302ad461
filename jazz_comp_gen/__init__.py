"""
Jazz Comping Generator

Turns a chord progression into idiomatic two-handed jazz piano voicings,
chooses them by minimizing voice-leading cost over the whole progression,
and renders them as humanized, rhythm-pattern-driven MIDI.
"""

__version__ = "0.1.0"
__author__ = "Jazz Comping Generator Team"

from .chord_model import (
    Chord,
    ChordEvent,
    ChordProgression,
    ChordQuality,
    NoteEvent,
    NoteName,
    SectionMarker,
    TimeSignature,
    Voicing,
    VoicingType,
)
from .voicing_generator import VoicingGenerator, voice_chord
from .voice_leading import CostWeights, VoiceLeadingCostModel, calculate_cost
from .voice_leading_optimizer import (
    VoiceLeadingAnalysis,
    VoiceLeadingOptimizer,
    VoiceLeadingQuality,
    optimize_voicings,
)
from .rhythm_patterns import (
    DynamicCompingSelector,
    MusicStyle,
    RhythmHit,
    RhythmHitType,
    RhythmPattern,
    RhythmPatternLibrary,
)
from .humanizer import GaussianRandom, HumanizerConfig, MusicHumanizer
from .piano_renderer import (
    JazzPianoRenderer,
    RendererConfig,
    get_renderer_preset,
    render_comping,
)
from .config_loader import ConfigLoader, ConfigLoadError, get_config_loader
from .midi_export import events_to_midi, progression_to_midi
from .comping import CompingResult, generate_comping

__all__ = [
    # Data model
    'Chord', 'ChordEvent', 'ChordProgression', 'ChordQuality', 'NoteEvent',
    'NoteName', 'SectionMarker', 'TimeSignature', 'Voicing', 'VoicingType',
    # Voicings and voice leading
    'VoicingGenerator', 'voice_chord',
    'CostWeights', 'VoiceLeadingCostModel', 'calculate_cost',
    'VoiceLeadingAnalysis', 'VoiceLeadingOptimizer', 'VoiceLeadingQuality', 'optimize_voicings',
    # Rhythm
    'DynamicCompingSelector', 'MusicStyle', 'RhythmHit', 'RhythmHitType',
    'RhythmPattern', 'RhythmPatternLibrary',
    # Rendering
    'GaussianRandom', 'HumanizerConfig', 'MusicHumanizer',
    'JazzPianoRenderer', 'RendererConfig', 'get_renderer_preset', 'render_comping',
    # Config / export / pipeline
    'ConfigLoader', 'ConfigLoadError', 'get_config_loader',
    'events_to_midi', 'progression_to_midi',
    'CompingResult', 'generate_comping',
]
