"""
Tests for the voice-leading cost model.
"""
import math
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from jazz_comp_gen.chord_model import Voicing
from jazz_comp_gen.voice_leading import (
    CostWeights,
    VoiceLeadingCostModel,
    calculate_cost,
)


@pytest.fixture
def model():
    return VoiceLeadingCostModel()


class TestCostFunction:
    """Whole-transition costs."""

    def test_deterministic(self, g7_voicing, cmaj7_voicing):
        """Repeated calls give the same number."""
        first = calculate_cost(g7_voicing, cmaj7_voicing)
        assert first == calculate_cost(g7_voicing, cmaj7_voicing)

    def test_resolution_scores(self, model, g7_voicing, cmaj7_voicing):
        """G7 -> Cmaj7 with F resolving to E."""
        assert model.cost(g7_voicing, cmaj7_voicing) == pytest.approx(-6.0)

    def test_directional(self, model, g7_voicing, cmaj7_voicing):
        """The resolution direction is cheaper than its reverse."""
        forward = model.cost(g7_voicing, cmaj7_voicing)
        backward = model.cost(cmaj7_voicing, g7_voicing)
        assert forward < backward
        assert backward == pytest.approx(40.0)

    def test_callable(self, model, g7_voicing, cmaj7_voicing):
        """The model can be called directly."""
        assert model(g7_voicing, cmaj7_voicing) == model.cost(g7_voicing, cmaj7_voicing)

    def test_voice_count_mismatch_finite(self, model, g7_voicing, cmaj7):
        """Different voice counts give a finite penalty."""
        triad = Voicing.from_notes(cmaj7, [60, 64, 67])
        cost = model.cost(triad, g7_voicing)
        assert math.isfinite(cost)
        assert cost == pytest.approx(2 * 20.0 + 14 * 2.0 + 8 * 2.0 + 5 * 2.0)

    def test_custom_weights(self, g7_voicing, cmaj7_voicing):
        """Turning off the resolution reward removes it from the total."""
        weights = CostWeights(seventh_to_third=0.0)
        assert calculate_cost(g7_voicing, cmaj7_voicing, weights) == pytest.approx(9.0)


class TestCostTerms:
    """Individual terms."""

    def test_seventh_to_third(self, model, g7_voicing, cmaj7_voicing):
        """F down to E is rewarded, the reverse direction is not."""
        assert model.seventh_to_third(g7_voicing, cmaj7_voicing) == -15.0
        assert model.seventh_to_third(cmaj7_voicing, g7_voicing) == 0.0

    def test_voice_motion(self, model):
        """Half steps, whole steps and leaps."""
        assert model.voice_motion([60, 64], [61, 66]) == -3.0 + -1.0
        assert model.voice_motion([60], [67]) == 4 * 2.0
        assert model.voice_motion([60], [63]) == 0.0

    def test_common_tones(self, model):
        """Exact common tones plus a fraction for octave-displaced ones."""
        assert model.common_tones([60, 64], [60, 76]) == pytest.approx(-5.0 + -1.5)

    def test_parallel_fifths(self, model):
        """Two voices a fifth apart moving together."""
        assert model.parallel_motion([48, 55], [50, 57]) == 20.0
        assert model.parallel_motion([48, 55], [50, 55]) == 0.0

    def test_parallel_octaves(self, model):
        assert model.parallel_motion([48, 60], [50, 62]) == 20.0

    def test_contrary_motion(self, model):
        """Outer voices in opposite directions earn a bonus."""
        assert model.contrary_motion([48, 60, 72], [46, 60, 74]) == -2.0
        assert model.contrary_motion([48, 72], [50, 74]) == 0.0

    def test_range_penalty(self, model):
        """Half weight outside 48-72, double weight outside 36-84."""
        assert model.range_penalty([60, 64]) == 0.0
        assert model.range_penalty([46]) == 2 * 5.0
        assert model.range_penalty([34]) == 14 * 5.0 + 2 * 20.0

    def test_cluster_penalty(self, model, cmaj7):
        """Quadratic in clusters beyond the allowance."""
        voicing = Voicing.from_notes(cmaj7, [60, 61, 62, 63])
        assert model.cluster_penalty(voicing) == 4 * 12.0

    def test_spread_terms(self, model, g7_voicing, cmaj7_voicing):
        """Spread over 24 and spread jumps over 12."""
        assert model.spread_penalty(g7_voicing) == 2 * 3.0
        assert model.spread_penalty(cmaj7_voicing) == 0.0
        assert model.spread_change(g7_voicing, cmaj7_voicing) == 0.0

    def test_static_voicing_penalized(self, model):
        """Fewer than two moving voices is penalized."""
        assert model.inner_movement([60, 64, 67], [60, 64, 67]) == 2 * 8.0
