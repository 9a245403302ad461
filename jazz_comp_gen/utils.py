"""
Utility functions and constants for the comping generator.

Provides:
- MIDI timing calculations (480 PPQ standard)
- Pitch helpers (note names, pitch classes)
- Clamping helpers shared by the humanizers
"""

import math
from typing import Optional, Tuple


# =============================================================================
# MIDI CONSTANTS (Industry Standard: 480 PPQ)
# =============================================================================

TICKS_PER_BEAT = 480  # PPQ - Pulses Per Quarter note

MIDI_NOTE_MIN = 0
MIDI_NOTE_MAX = 127
MIDDLE_C = 60

# Playable piano window used by voicing placement
PIANO_LOW = 36   # C2
PIANO_HIGH = 96  # C7

DEFAULT_TEMPO = 120.0


# =============================================================================
# NOTE NAMES
# =============================================================================

NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']
NOTE_NAMES_FLAT = ['C', 'Db', 'D', 'Eb', 'E', 'F', 'Gb', 'G', 'Ab', 'A', 'Bb', 'B']

_LETTER_PITCH = {'C': 0, 'D': 2, 'E': 4, 'F': 5, 'G': 7, 'A': 9, 'B': 11}


# =============================================================================
# TIMING / CONVERSION FUNCTIONS
# =============================================================================

def bpm_to_microseconds_per_beat(bpm: float) -> int:
    """Convert BPM to microseconds per beat (for MIDI tempo meta events)."""
    return int(60_000_000 / bpm)


def beats_to_ticks(beats: float) -> int:
    """Convert beats to MIDI ticks."""
    return int(round(beats * TICKS_PER_BEAT))


# =============================================================================
# NOTE / PITCH FUNCTIONS
# =============================================================================

def midi_note_to_name(midi_note: int, use_flats: bool = True) -> str:
    """
    Convert MIDI note number to note name with octave.

    Examples:
        midi_note_to_name(60) -> 'C4'
        midi_note_to_name(70) -> 'Bb4'
    """
    octave = (midi_note // 12) - 1
    names = NOTE_NAMES_FLAT if use_flats else NOTE_NAMES
    return f"{names[midi_note % 12]}{octave}"


def parse_pitch_class(note_name: str) -> Optional[int]:
    """
    Parse a note name like 'C', 'F#', 'Bb', 'Cb' or 'E#' into a pitch class.

    Returns None when the text is not a note name.
    """
    text = note_name.strip()
    if not text:
        return None
    letter = text[0].upper()
    if letter not in _LETTER_PITCH:
        return None
    pitch = _LETTER_PITCH[letter]
    for accidental in text[1:]:
        if accidental in ('#', '♯'):
            pitch += 1
        elif accidental in ('b', '♭'):
            pitch -= 1
        else:
            return None
    return pitch % 12


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def clamp_midi_note(note: int) -> int:
    return int(clamp(note, MIDI_NOTE_MIN, MIDI_NOTE_MAX))


def is_finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def split_time_signature(beats: int, beat_type: int) -> Tuple[int, int]:
    """Normalize a (beats, beat_type) pair, defaulting broken input to 4/4."""
    if beats <= 0 or beat_type <= 0:
        return (4, 4)
    return (beats, beat_type)
