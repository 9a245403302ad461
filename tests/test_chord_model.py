"""
Tests for the chord, voicing and progression value types.
"""
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from jazz_comp_gen.chord_model import (
    Chord,
    ChordEvent,
    ChordProgression,
    ChordQuality,
    NoteName,
    SectionMarker,
    TimeSignature,
    Voicing,
    VoicingType,
)
from jazz_comp_gen.utils import midi_note_to_name, parse_pitch_class


class TestPitchClasses:
    """Note names and pitch class parsing."""

    def test_parse_sharps_and_flats(self):
        """Sharps, flats and enharmonic spellings parse to pitch classes."""
        assert parse_pitch_class("C") == 0
        assert parse_pitch_class("F#") == 6
        assert parse_pitch_class("Bb") == 10
        assert parse_pitch_class("Cb") == 11
        assert parse_pitch_class("E#") == 5

    def test_parse_rejects_garbage(self):
        """Unknown text gives None rather than raising."""
        assert parse_pitch_class("H") is None
        assert parse_pitch_class("") is None
        assert parse_pitch_class("Cx") is None

    def test_note_name_display(self):
        """NoteName uses flat spellings."""
        assert NoteName.from_pitch_class(13) is NoteName.DB
        assert NoteName.parse("A#").display == "Bb"
        assert NoteName.parse("nope") is None

    def test_midi_note_to_name(self):
        """Middle C is C4."""
        assert midi_note_to_name(60) == "C4"
        assert midi_note_to_name(70) == "Bb4"


class TestChord:
    """Chord symbols."""

    def test_root_normalized(self):
        """Roots and basses wrap into 0-11."""
        chord = Chord(14, ChordQuality.MAJOR, bass=-1)
        assert chord.root == 2
        assert chord.bass == 11

    def test_from_name_unknown_root(self):
        """An unparseable root raises ValueError."""
        with pytest.raises(ValueError):
            Chord.from_name("H", ChordQuality.MAJOR7)

    def test_pitch_classes(self, g7):
        """G7 is G B D F."""
        assert g7.pitch_classes() == frozenset({7, 11, 2, 5})

    def test_available_pitch_classes_include_tensions(self, cmaj7):
        """Cmaj7 may add 9, 11 and 13."""
        available = cmaj7.available_pitch_classes()
        assert {0, 4, 7, 11, 2, 5, 9} == set(available)

    def test_extension_tags(self):
        """Explicit extensions add their pitch classes."""
        chord = Chord.from_name("C", ChordQuality.MAJOR7, extensions=["#11"])
        assert 6 in chord.extension_pitch_classes()
        assert 6 in chord.available_pitch_classes()

    def test_display_names(self):
        """Chart symbols with slash bass and extensions."""
        assert Chord.from_name("Bb", ChordQuality.MINOR7).display_name == "Bb-7"
        assert Chord.from_name("C", ChordQuality.MINOR7, bass_name="G").display_name == "C-7/G"
        assert Chord.from_name("F", ChordQuality.DOMINANT7, extensions=["b9"]).display_name == "F7(b9)"

    def test_dim_stack_display_is_polychord(self):
        """A diminished-stack dominant prints as the upper triad over the lower."""
        chord = Chord.from_name("G", ChordQuality.DOMINANT7, extensions=["dimStack"])
        assert chord.uses_diminished_stack
        assert chord.display_name == "G/E"

    def test_quality_flags(self):
        """Dominant family membership."""
        assert ChordQuality.ALTERED.is_dominant
        assert ChordQuality.DOMINANT13.is_dominant
        assert not ChordQuality.MAJOR7.is_dominant


class TestVoicing:
    """Two-hand voicings."""

    def test_notes_sorted_and_partitioned(self, g7_voicing):
        """Notes are sorted and the hands cover them exactly."""
        assert g7_voicing.notes == (43, 53, 59, 64, 69)
        assert set(g7_voicing.left_hand) | set(g7_voicing.right_hand) == set(g7_voicing.notes)
        assert not set(g7_voicing.left_hand) & set(g7_voicing.right_hand)

    def test_overlapping_hands_rejected(self, cmaj7):
        """A note in both hands breaks the partition."""
        with pytest.raises(ValueError):
            Voicing(cmaj7, (60, 64), (60,), (60, 64))

    def test_uncovered_note_rejected(self, cmaj7):
        """Every note must belong to a hand."""
        with pytest.raises(ValueError):
            Voicing(cmaj7, (48, 60, 64), (48,), (64,))

    def test_from_hands_shared_note_goes_right(self, cmaj7):
        """A note given to both hands stays in the right hand."""
        voicing = Voicing.from_hands(cmaj7, [48, 60], [60, 64])
        assert voicing.left_hand == (48,)
        assert voicing.right_hand == (60, 64)

    def test_from_notes_keeps_both_hands(self, cmaj7_voicing):
        """Everything below the split still leaves the right hand one note."""
        assert cmaj7_voicing.right_hand == (62,)
        assert cmaj7_voicing.left_hand == (48, 52, 55, 59)

    def test_derived_values(self, g7_voicing):
        """Bass, top, spread and center."""
        assert g7_voicing.bass_note == 43
        assert g7_voicing.top_note == 69
        assert g7_voicing.spread == 26
        assert g7_voicing.center == pytest.approx(57.6)

    def test_empty_voicing_center(self, cmaj7):
        """An empty voicing centers on middle C."""
        empty = Voicing(cmaj7, (), (), ())
        assert empty.center == 60.0
        assert empty.spread == 0
        assert empty.top_note is None

    def test_guide_tones(self, g7_voicing, cmaj7_voicing):
        """Seventh and third lookups find the lowest matching note."""
        assert g7_voicing.seventh_note() == 53
        assert g7_voicing.third_note() == 59
        assert cmaj7_voicing.third_note() == 52
        assert cmaj7_voicing.seventh_note() == 59

    def test_voice_leading_distance(self, g7_voicing, cmaj7_voicing, cmaj7):
        """Sum of voice motions, None on different voice counts."""
        assert g7_voicing.voice_leading_distance(cmaj7_voicing) == 5 + 1 + 4 + 5 + 7
        triad = Voicing.from_notes(cmaj7, [48, 52, 55])
        assert g7_voicing.voice_leading_distance(triad) is None

    def test_transposed_respects_piano_range(self, g7_voicing):
        """Transposition keeps the hands and refuses to leave 36-96."""
        up = g7_voicing.transposed(2)
        assert up.notes == (45, 55, 61, 66, 71)
        assert up.left_hand == (45, 55)
        assert g7_voicing.transposed(-12) is None
        assert g7_voicing.transposed(30) is None

    def test_inverted(self, cmaj7):
        """Each inversion lifts the current bass an octave and leaves the original alone."""
        voicing = Voicing.from_notes(cmaj7, [48, 52, 55, 59])
        second = voicing.inverted(2)
        assert second.notes == (55, 59, 60, 64)
        assert second.left_hand == (55, 59)
        assert second.right_hand == (60, 64)
        assert voicing.notes == (48, 52, 55, 59)

    def test_inverted_refused(self, cmaj7):
        """Passing C7 or landing on an existing note gives None."""
        assert Voicing.from_notes(cmaj7, [88, 91, 95]).inverted() is None
        assert Voicing.from_notes(cmaj7, [48, 60]).inverted() is None

    def test_descriptions(self, g7_voicing):
        """Readable note and hand listings."""
        assert g7_voicing.notes_description() == "G2 F3 B3 E4 A4"
        assert g7_voicing.hands_description() == "LH[G2 F3] RH[B3 E4 A4]"


class TestProgression:
    """Chord timelines."""

    def test_from_chords_layout(self, ii_v_i):
        """Chords are laid end to end with measure numbers."""
        starts = [e.start_beat for e in ii_v_i.events]
        assert starts == [0.0, 4.0, 8.0, 12.0]
        assert [e.measure_number for e in ii_v_i.events] == [1, 2, 3, 4]
        assert ii_v_i.total_beats == 16.0
        assert ii_v_i.total_measures == 4

    def test_chords_per_measure(self, dm7, g7, cmaj7):
        """Density counts chords starting in each measure."""
        progression = ChordProgression.from_chords("split", [(dm7, 2), (g7, 2), (cmaj7, 4)])
        assert progression.chords_per_measure() == {1: 2, 2: 1}

    def test_waltz_meter(self, dm7):
        """3/4 measures are three beats long."""
        meter = TimeSignature.waltz()
        assert meter.beats_per_measure == 3.0
        assert meter.measure_for_beat(3.0) == 2
        assert meter.eighth_notes_per_measure == 6
        progression = ChordProgression.from_chords("waltz", [(dm7, 3), (dm7, 3)], time_signature=meter)
        assert progression.total_measures == 2

    def test_section_labels(self, dm7):
        """The latest marker at or before a measure names its section."""
        progression = ChordProgression(
            title="AABA",
            events=(ChordEvent(dm7, 0.0, 4.0),),
            section_markers=(SectionMarker("A", 1), SectionMarker("B", 17)),
        )
        assert progression.section_label_for_measure(8) == "A"
        assert progression.section_label_for_measure(17) == "B"
        assert progression.section_label_for_measure(0) is None

    def test_empty_progression(self):
        """No events, no beats."""
        progression = ChordProgression("empty", ())
        assert progression.total_beats == 0.0
        assert progression.chords == []

    def test_voicing_type_values(self):
        """Voicing types carry display names."""
        assert VoicingType.ROOTLESS_A.value == "Rootless A"
