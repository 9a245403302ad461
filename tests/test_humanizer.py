"""
Tests for the Gaussian random source and the accent-pattern humanizer.
"""
import logging
import math
import pytest
import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from jazz_comp_gen.chord_model import NoteEvent
from jazz_comp_gen.humanizer import (
    HUMANIZER_PRESETS,
    STYLE_HUMANIZER_CONFIGS,
    GaussianRandom,
    HumanizerConfig,
    MusicHumanizer,
    plain_note_events,
)
from jazz_comp_gen.rhythm_patterns import MusicStyle


class TestGaussianRandom:
    """Normal draws from an injected source."""

    def test_zero_std_is_exact(self):
        gauss = GaussianRandom(seed=1)
        assert gauss.next(0.25, 0.0) == 0.25

    def test_seeded(self):
        """Same seed, same sequence."""
        a = GaussianRandom(seed=42)
        b = GaussianRandom(random.Random(42))
        assert [a.next() for _ in range(5)] == [b.next() for _ in range(5)]

    def test_finite_and_roughly_centered(self):
        gauss = GaussianRandom(seed=7)
        draws = [gauss.next(10.0, 2.0) for _ in range(2000)]
        assert all(math.isfinite(d) for d in draws)
        assert abs(sum(draws) / len(draws) - 10.0) < 0.3

    def test_clamped(self):
        gauss = GaussianRandom(seed=3)
        for _ in range(200):
            assert 0.0 <= gauss.next_clamped(0.0, 5.0, 0.0, 1.0) <= 1.0

    def test_chance_edges(self):
        """Probability 0 never fires, probability 1 always does."""
        gauss = GaussianRandom(seed=5)
        assert not any(gauss.chance(0.0) for _ in range(100))
        assert all(gauss.chance(1.0) for _ in range(100))


class TestMusicHumanizer:
    """Accent-pattern humanization."""

    def test_presets(self):
        for name in ("natural", "tight", "loose", "expressive"):
            assert isinstance(HUMANIZER_PRESETS[name], HumanizerConfig)
        assert set(STYLE_HUMANIZER_CONFIGS) == set(MusicStyle)

    def test_accent_without_jitter(self):
        """With all jitter off only the accent pattern and legato apply."""
        config = HumanizerConfig(
            timing_jitter=0.0, velocity_jitter=0, duration_jitter=0.0,
            legato=1.0, accent_pattern=(1.0, 0.5),
        )
        humanizer = MusicHumanizer(config, seed=0)
        note = NoteEvent(60, 100, 1.0, 1.0)
        result = humanizer.humanize_note(note, beat_in_bar=1)
        assert result.velocity == 50
        assert result.position == 1.0
        assert result.duration == 1.0

    def test_limits(self):
        """Velocities stay in MIDI range, positions non-negative, durations floored."""
        humanizer = MusicHumanizer(HUMANIZER_PRESETS["loose"], seed=9)
        notes = [NoteEvent(60 + i, 125, 0.0, 0.05) for i in range(20)]
        for note in humanizer.humanize_notes(notes):
            assert 1 <= note.velocity <= 127
            assert note.position >= 0.0
            assert note.duration >= 0.1

    def test_humanize_chord_rolls(self, g7_voicing):
        """Rolled chords start bottom-up."""
        config = HumanizerConfig(
            timing_jitter=0.0, velocity_jitter=0, duration_jitter=0.0,
            hand_separation=0.0, roll_chords=True, roll_speed=0.05,
        )
        notes = MusicHumanizer(config, seed=0).humanize_chord(g7_voicing, 4.0, 2.0)
        positions = [n.position for n in sorted(notes, key=lambda n: n.midi_note)]
        assert positions == pytest.approx([4.0, 4.05, 4.1, 4.15, 4.2])

    def test_hand_separation(self, g7_voicing):
        """The left hand leads the right."""
        config = HumanizerConfig(
            timing_jitter=0.0, velocity_jitter=0, duration_jitter=0.0,
            hand_separation=0.02,
        )
        notes = MusicHumanizer(config, seed=0).humanize_chord(g7_voicing, 4.0, 2.0)
        left = [n.position for n in notes if n.midi_note in g7_voicing.left_hand]
        right = [n.position for n in notes if n.midi_note in g7_voicing.right_hand]
        assert left == pytest.approx([3.99] * 2)
        assert right == pytest.approx([4.01] * 3)

    def test_humanize_progression(self, ii_v_i, optimizer):
        """One strike per chord, sorted."""
        voicings = optimizer.optimize_progression(ii_v_i)
        events = MusicHumanizer.for_style(MusicStyle.BALLAD, seed=2).humanize_progression(ii_v_i, voicings)
        assert len(events) == sum(len(v.notes) for v in voicings)
        assert [e.position for e in events] == sorted(e.position for e in events)


class TestPlainNoteEvents:
    """Un-humanized reference rendering."""

    def test_one_sustained_chord_per_event(self, ii_v_i, optimizer):
        voicings = optimizer.optimize_progression(ii_v_i)
        events = plain_note_events(ii_v_i, voicings)
        assert len(events) == sum(len(v.notes) for v in voicings)
        assert {e.velocity for e in events} == {80}
        assert {e.duration for e in events} == {4.0}

    def test_mismatch_warns(self, ii_v_i, g7_voicing, caplog):
        with caplog.at_level(logging.WARNING):
            events = plain_note_events(ii_v_i, [g7_voicing])
        assert len(events) == len(g7_voicing.notes)
        assert "voicings" in caplog.text
