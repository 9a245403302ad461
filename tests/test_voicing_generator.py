"""
Tests for the two-hand voicing catalog and generator.
"""
import pytest
import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from jazz_comp_gen.chord_model import Chord, ChordQuality, Voicing, VoicingType
from jazz_comp_gen.voicing_generator import (
    VOICING_TEMPLATES,
    TwoHandTemplate,
    VoicingGenerator,
    count_cluster_intervals,
    find_best_octave,
    voice_chord,
)


class TestHelpers:
    """Placement helpers."""

    def test_count_cluster_intervals(self):
        """Whole steps or less between neighbours count as clusters."""
        assert count_cluster_intervals([60, 62, 64, 67]) == 2
        assert count_cluster_intervals([48, 52, 55, 59]) == 0
        assert count_cluster_intervals([64, 60, 61]) == 1

    def test_find_best_octave(self):
        """The octave whose center is nearest the target wins."""
        assert find_best_octave(0, [0, 4, 7], 60) == 60
        assert find_best_octave(7, [0, 10], 48) == 43

    def test_find_best_octave_empty(self):
        """No intervals falls back to the C3 octave."""
        assert find_best_octave(5, [], 60) == 53


class TestCatalog:
    """Template catalog properties."""

    def test_catalog_is_read_only(self):
        """The shared catalog cannot be mutated."""
        with pytest.raises(TypeError):
            VOICING_TEMPLATES[(ChordQuality.MAJOR7, VoicingType.SHELL)] = ()

    def test_every_quality_has_every_type(self):
        """Each quality is covered for each voicing type."""
        for quality in ChordQuality:
            for voicing_type in VoicingType:
                assert VOICING_TEMPLATES.get((quality, voicing_type)), (quality, voicing_type)

    @pytest.mark.parametrize("root", [0, 5, 7, 10])
    def test_catalog_pitch_classes_available(self, generator, root):
        """Every generated voicing uses only chord tones and allowed tensions."""
        for quality in ChordQuality:
            chord = Chord(root, quality)
            allowed = chord.available_pitch_classes()
            for voicing_type in VoicingType:
                for voicing in generator.generate_all_variants(chord, voicing_type):
                    assert voicing.pitch_classes() <= allowed, (chord, voicing_type, voicing.notes)


class TestGenerateVoicing:
    """Primary voicings."""

    def test_rootless_a_dominant(self, generator, g7):
        """G7 Rootless A places G-F in the left hand and B-E-A in the right."""
        voicing = generator.generate_voicing(g7, VoicingType.ROOTLESS_A)
        assert voicing.left_hand == (43, 53)
        assert voicing.right_hand == (59, 64, 69)
        assert voicing.voicing_type is VoicingType.ROOTLESS_A

    def test_rootless_a_major(self, generator, cmaj7):
        """Cmaj7 Rootless A: C-B | E-G-D."""
        voicing = generator.generate_voicing(cmaj7, VoicingType.ROOTLESS_A)
        assert voicing.notes == (48, 59, 64, 67, 74)

    def test_fallback_for_missing_template(self, g7):
        """A catalog without the pair falls back to a shell of the chord tones."""
        generator = VoicingGenerator(templates={})
        voicing = generator.generate_voicing(g7, VoicingType.QUARTAL)
        assert voicing.voicing_type is VoicingType.SHELL
        assert voicing.pitch_classes() == g7.pitch_classes()
        assert voicing.left_hand and voicing.right_hand

    def test_voice_chord_convenience(self, g7):
        """Module helper matches a fresh generator."""
        assert voice_chord(g7).notes == VoicingGenerator().generate_voicing(g7).notes


class TestVariants:
    """Candidate variants for the optimizer."""

    def test_deterministic(self, generator, dm7):
        """Same chord, same candidates in the same order."""
        first = [v.notes for v in generator.generate_all_variants(dm7)]
        second = [v.notes for v in VoicingGenerator().generate_all_variants(dm7)]
        assert first == second

    def test_variants_unique_and_in_range(self, generator, g7):
        """No duplicate note sets, everything on the 36-96 keyboard window."""
        variants = generator.generate_all_variants(g7)
        note_sets = [v.notes for v in variants]
        assert len(note_sets) == len(set(note_sets))
        for voicing in variants:
            assert all(36 <= n <= 96 for n in voicing.notes)

    def test_variants_limit_clusters(self, generator, cmaj7):
        """Template variants carry at most two clusters."""
        for voicing in generator.generate_all_variants(cmaj7):
            assert count_cluster_intervals(voicing.notes) <= 2

    def test_restricted_catalog_variants(self, g7):
        """Octave shifts of a single template, out-of-range shifts dropped."""
        templates = {
            (ChordQuality.DOMINANT7, VoicingType.ROOTLESS_A): (
                TwoHandTemplate((0, 10), (4, 9, 14)),
            ),
        }
        generator = VoicingGenerator(templates=templates)
        notes = [v.notes for v in generator.generate_all_variants(g7)]
        assert notes[:3] == [
            (43, 47, 52, 53, 57),
            (43, 53, 59, 64, 69),
            (43, 53, 71, 76, 81),
        ]

    def test_spread_voicings(self, generator, cmaj7):
        """Open voicings keep at least a minor third between neighbours."""
        spread = generator.generate_spread_voicings(cmaj7)
        assert spread
        for voicing in spread:
            gaps = [b - a for a, b in zip(voicing.notes, voicing.notes[1:])]
            assert min(gaps) >= 3
            assert voicing.pitch_classes() <= cmaj7.pitch_classes()


class TestDerivedVoicings:
    """Diminished stacks, colour variants, inversions."""

    def test_diminished_stack(self, generator):
        """G7 stacks a G triad over an E triad."""
        chord = Chord.from_name("G", ChordQuality.DOMINANT7, extensions=["dimStack"])
        voicing = generator.generate_diminished_stack_voicing(chord)
        assert voicing.left_hand == (52, 56, 59)
        assert voicing.right_hand == (67, 71, 74)

    def test_diminished_stack_minor_triads(self, generator, g7):
        """Minor triads use the minor third."""
        voicing = generator.generate_diminished_stack_voicing(g7, use_major_triads=False)
        assert voicing.left_hand == (52, 55, 59)
        assert voicing.right_hand == (67, 70, 74)

    def test_variant_replaces_fifth(self, generator, cmaj7):
        """The 13th replaces the 5th and stays in the 5th's hand."""
        base = generator.generate_voicing(cmaj7)
        variant = generator.generate_variant_voicing(base, extensions=["13"])
        assert len(variant.notes) == len(base.notes)
        assert 67 not in variant.notes
        assert 69 in variant.right_hand
        assert variant.left_hand == base.left_hand

    def test_variant_without_new_colour(self, generator, g7_voicing):
        """An extension already present leaves the voicing unchanged."""
        assert generator.generate_variant_voicing(g7_voicing, extensions=["13"]) == g7_voicing

    def test_variant_seeded(self, cmaj7):
        """Suggested extensions come from the injected random source."""
        a = VoicingGenerator(rng=random.Random(5))
        b = VoicingGenerator(rng=random.Random(5))
        base = a.generate_voicing(cmaj7)
        assert a.generate_variant_voicing(base).notes == b.generate_variant_voicing(base).notes

    def test_invert(self, generator, cmaj7):
        """Inversion lifts the bass an octave."""
        voicing = Voicing.from_notes(cmaj7, [48, 52, 55, 59])
        inverted = generator.invert_voicing(voicing)
        assert inverted.notes == (52, 55, 59, 60)

    def test_invert_out_of_range(self, generator, cmaj7):
        """Lifting past C7 is refused."""
        voicing = Voicing.from_notes(cmaj7, [88, 91, 95])
        assert generator.invert_voicing(voicing) is None

    def test_transpose(self, generator, g7_voicing):
        """Transposition goes through the voicing's range check."""
        assert generator.transpose_voicing(g7_voicing, 40) is None
        assert generator.transpose_voicing(g7_voicing, 5).bass_note == 48
