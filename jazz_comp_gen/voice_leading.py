"""
Voice-leading cost model.

Scores the move from one voicing to the next; lower is better and negative
values are good. The terms encode the usual jazz piano rules of thumb:

- 7ths resolve down by step to the next chord's 3rd
- common tones are held, other voices move by step
- no parallel fifths / octaves, no crossing or overlapping voices
- stay in the middle of the keyboard and keep a steady spread
- avoid piles of seconds, but show the chord change with inner motion

Voices are paired by sorted order. Costs are directional: the resolution,
crossing, range, spread and cluster terms look at one side only.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .chord_model import Voicing
from .voicing_generator import count_cluster_intervals

logger = logging.getLogger(__name__)


@dataclass
class CostWeights:
    """
    Tunable weights for the voice-leading cost function.

    Negative weights are rewards, positive weights are penalties.
    """
    # Core voice-leading rewards
    seventh_to_third: float = -15.0
    half_step: float = -3.0
    whole_step: float = -1.0
    common_tone: float = -5.0
    pitch_class_common_factor: float = 0.3

    # Penalties
    large_leap: float = 2.0           # per semitone beyond a minor third
    parallel_fifths: float = 20.0
    parallel_octaves: float = 20.0
    voice_crossing: float = 15.0
    voice_overlap: float = 8.0

    # Range and register
    out_of_range: float = 10.0        # per semitone outside the ideal window
    register_jump: float = 5.0
    register_jump_threshold: float = 6.0
    ideal_low: int = 48               # C3
    ideal_high: int = 72              # C5
    absolute_low: int = 36            # C2
    absolute_high: int = 84           # C6

    contrary_motion: float = -2.0

    # Spread
    spread_penalty: float = 3.0
    global_spread_penalty: float = 8.0
    max_voicing_spread: int = 24
    max_spread_change: int = 12

    # Clusters
    cluster_penalty: float = 12.0
    max_allowed_clusters: int = 1

    # Inner movement
    inner_movement_bonus: float = -4.0
    static_voicing_penalty: float = 8.0
    min_moving_voices: int = 2

    voice_count_mismatch: float = 20.0


DEFAULT_WEIGHTS = CostWeights()


class VoiceLeadingCostModel:
    """
    Cost of moving from one voicing to another.

    Each term is a separate method so callers (and the analyzer) can look
    at individual contributions.
    """

    def __init__(self, weights: Optional[CostWeights] = None):
        self.weights = weights or CostWeights()

    def cost(self, v1: Voicing, v2: Voicing) -> float:
        notes1 = list(v1.notes)
        notes2 = list(v2.notes)

        if len(notes1) != len(notes2):
            return self.voice_count_mismatch(notes1, notes2)

        return (
            self.voice_motion(notes1, notes2)
            + self.seventh_to_third(v1, v2)
            + self.common_tones(notes1, notes2)
            + self.parallel_motion(notes1, notes2)
            + self.voice_crossing(notes1, notes2)
            + self.contrary_motion(notes1, notes2)
            + self.range_penalty(notes2)
            + self.register_continuity(v1, v2)
            + self.spread_penalty(v2)
            + self.spread_change(v1, v2)
            + self.cluster_penalty(v2)
            + self.inner_movement(notes1, notes2)
        )

    __call__ = cost

    # ---- terms --------------------------------------------------------------

    def voice_motion(self, notes1: Sequence[int], notes2: Sequence[int]) -> float:
        w = self.weights
        total = 0.0
        for a, b in zip(notes1, notes2):
            motion = abs(b - a)
            if motion == 1:
                total += w.half_step
            elif motion == 2:
                total += w.whole_step
            elif motion > 3:
                total += (motion - 3) * w.large_leap
        return total

    def seventh_to_third(self, v1: Voicing, v2: Voicing) -> float:
        seventh = v1.seventh_note()
        third = v2.third_note()
        if seventh is None or third is None:
            return 0.0
        step = seventh - third
        if step in (1, 2):
            return self.weights.seventh_to_third
        if step in (-1, -2):
            return self.weights.seventh_to_third * 0.5
        return 0.0

    def common_tones(self, notes1: Sequence[int], notes2: Sequence[int]) -> float:
        w = self.weights
        exact = len(set(notes1) & set(notes2))
        by_class = len({n % 12 for n in notes1} & {n % 12 for n in notes2})
        return exact * w.common_tone + (by_class - exact) * w.common_tone * w.pitch_class_common_factor

    def parallel_motion(self, notes1: Sequence[int], notes2: Sequence[int]) -> float:
        w = self.weights
        penalty = 0.0
        count = len(notes1)
        for i in range(count):
            for j in range(i + 1, count):
                motion_i = notes2[i] - notes1[i]
                motion_j = notes2[j] - notes1[j]
                if motion_i != motion_j or motion_i == 0:
                    continue
                before = abs(notes1[j] - notes1[i]) % 12
                after = abs(notes2[j] - notes2[i]) % 12
                if before == 7 and after == 7:
                    penalty += w.parallel_fifths
                if before == 0 and after == 0:
                    penalty += w.parallel_octaves
        return penalty

    def voice_crossing(self, notes1: Sequence[int], notes2: Sequence[int]) -> float:
        w = self.weights
        penalty = 0.0
        for i in range(len(notes1) - 1):
            if notes2[i] > notes2[i + 1]:
                penalty += w.voice_crossing
            if notes2[i] > notes1[i + 1] or notes2[i + 1] < notes1[i]:
                penalty += w.voice_overlap
        return penalty

    def contrary_motion(self, notes1: Sequence[int], notes2: Sequence[int]) -> float:
        if len(notes1) < 2:
            return 0.0
        bass = notes2[0] - notes1[0]
        soprano = notes2[-1] - notes1[-1]
        if (bass > 0 and soprano < 0) or (bass < 0 and soprano > 0):
            return self.weights.contrary_motion
        return 0.0

    def range_penalty(self, notes: Sequence[int]) -> float:
        w = self.weights
        penalty = 0.0
        for note in notes:
            if note < w.ideal_low:
                penalty += (w.ideal_low - note) * w.out_of_range * 0.5
            elif note > w.ideal_high:
                penalty += (note - w.ideal_high) * w.out_of_range * 0.5

            if note < w.absolute_low:
                penalty += (w.absolute_low - note) * w.out_of_range * 2
            elif note > w.absolute_high:
                penalty += (note - w.absolute_high) * w.out_of_range * 2
        return penalty

    def register_continuity(self, v1: Voicing, v2: Voicing) -> float:
        w = self.weights
        shift = abs(v1.center - v2.center)
        if shift > w.register_jump_threshold:
            return (shift - w.register_jump_threshold) * w.register_jump
        return 0.0

    def spread_penalty(self, voicing: Voicing) -> float:
        w = self.weights
        if voicing.spread > w.max_voicing_spread:
            return (voicing.spread - w.max_voicing_spread) * w.spread_penalty
        return 0.0

    def spread_change(self, v1: Voicing, v2: Voicing) -> float:
        w = self.weights
        change = abs(v1.spread - v2.spread)
        if change > w.max_spread_change:
            return (change - w.max_spread_change) * w.global_spread_penalty
        return 0.0

    def cluster_penalty(self, voicing: Voicing) -> float:
        w = self.weights
        excess = count_cluster_intervals(voicing.notes) - w.max_allowed_clusters
        if excess > 0:
            return excess * excess * w.cluster_penalty
        return 0.0

    def inner_movement(self, notes1: Sequence[int], notes2: Sequence[int]) -> float:
        w = self.weights
        score = 0.0
        moving = 0
        stepwise = 0
        for a, b in zip(notes1, notes2):
            motion = abs(b - a)
            if motion > 0:
                moving += 1
                if motion <= 3:
                    stepwise += 1
                    score += w.inner_movement_bonus

        if moving < w.min_moving_voices:
            score += w.static_voicing_penalty * (w.min_moving_voices - moving)

        held = len(notes1) - moving
        if 1 <= held <= 2 and stepwise >= 2:
            score += w.inner_movement_bonus * 2
        return score

    def voice_count_mismatch(self, notes1: Sequence[int], notes2: Sequence[int]) -> float:
        w = self.weights
        cost = abs(len(notes1) - len(notes2)) * w.voice_count_mismatch
        for a, b in zip(notes1, notes2):
            motion = abs(b - a)
            if motion > 3:
                cost += (motion - 3) * w.large_leap
        return cost


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def calculate_cost(v1: Voicing, v2: Voicing, weights: Optional[CostWeights] = None) -> float:
    """
    Voice-leading cost from v1 to v2 (lower is better).

    Example:
        cost = calculate_cost(dm7_voicing, g7_voicing)
    """
    return VoiceLeadingCostModel(weights or DEFAULT_WEIGHTS).cost(v1, v2)
