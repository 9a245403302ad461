"""
Pytest fixtures for jazz_comp_gen tests.
"""
import pytest
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from jazz_comp_gen.chord_model import (
    Chord,
    ChordProgression,
    ChordQuality,
    Voicing,
)
from jazz_comp_gen.piano_renderer import JazzPianoRenderer, get_renderer_preset
from jazz_comp_gen.voice_leading_optimizer import VoiceLeadingOptimizer
from jazz_comp_gen.voicing_generator import VoicingGenerator


@pytest.fixture
def project_config_dir():
    """Repository configs/ directory."""
    return PROJECT_ROOT / "configs"


@pytest.fixture
def dm7():
    return Chord.from_name("D", ChordQuality.MINOR7)


@pytest.fixture
def g7():
    return Chord.from_name("G", ChordQuality.DOMINANT7)


@pytest.fixture
def cmaj7():
    return Chord.from_name("C", ChordQuality.MAJOR7)


@pytest.fixture
def g7_voicing(g7):
    """Rootless A G7: G-F | B-E-A."""
    return Voicing.from_hands(g7, [43, 53], [59, 64, 69])


@pytest.fixture
def cmaj7_voicing(cmaj7):
    """Close Cmaj9: C-E-G-B-D, all below middle C's right-hand split."""
    return Voicing.from_notes(cmaj7, [48, 52, 55, 59, 62])


@pytest.fixture
def ii_v_i(dm7, g7, cmaj7):
    """Dm7 | G7 | Cmaj7 | Cmaj7, one chord per 4/4 bar."""
    return ChordProgression.from_chords(
        "ii-V-I",
        [(dm7, 4.0), (g7, 4.0), (cmaj7, 4.0), (cmaj7, 4.0)],
    )


@pytest.fixture
def generator():
    return VoicingGenerator()


@pytest.fixture
def optimizer():
    return VoiceLeadingOptimizer()


@pytest.fixture
def robotic_renderer():
    """Renderer with every random term disabled."""
    return JazzPianoRenderer(config=get_renderer_preset("robotic"), seed=0)
