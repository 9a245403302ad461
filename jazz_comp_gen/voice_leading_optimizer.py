"""
Voice Leading Optimizer - picks one voicing per chord for a whole progression.

Pipeline:
1. Candidate voicings per chord from the VoicingGenerator, filtered to
   reasonable spread / cluster counts.
2. Dynamic programming over (event, candidate) minimizing the summed
   transition cost of the cost model.
3. Loop closure: when the progression loops and the wrap (last -> first)
   transition is expensive, re-seed from every first-chord candidate and
   chain greedy best voicings forward.
4. Spread normalization: replace voicings whose spread sticks out from the
   progression's average when a closer-spread candidate connects at least as
   well to its neighbours.

Also provides `analyze_voice_leading` for per-transition reporting.

Example:
    ```python
    optimizer = VoiceLeadingOptimizer()
    voicings = optimizer.optimize_progression(progression, for_loop=True)
    report = optimizer.analyze_voice_leading(voicings)
    print(report.quality.value, report.average_cost)
    ```
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from .chord_model import Chord, ChordEvent, ChordProgression, Voicing, VoicingType
from .voice_leading import CostWeights, VoiceLeadingCostModel
from .voicing_generator import (
    DEFAULT_TARGET_REGISTER,
    VoicingGenerator,
    count_cluster_intervals,
)

logger = logging.getLogger(__name__)


# Candidate filter slack over the cost model limits
SPREAD_FILTER_SLACK = 6
CLUSTER_FILTER_SLACK = 1

LOOP_REFINE_THRESHOLD = 10.0
SPREAD_DEVIATION_LIMIT = 6
SPREAD_TIEBREAK_WEIGHT = 0.5
PROBLEM_COST_THRESHOLD = 10.0


# =============================================================================
# ANALYSIS TYPES
# =============================================================================

class VoiceLeadingQuality(Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Needs Work"

    @classmethod
    def from_average_cost(cls, average: float) -> "VoiceLeadingQuality":
        if average < 0:
            return cls.EXCELLENT
        if average < 5:
            return cls.GOOD
        if average < 10:
            return cls.FAIR
        return cls.POOR


@dataclass
class TransitionAnalysis:
    """One chord-to-chord move and what it does well or badly."""
    from_chord: str
    to_chord: str
    cost: float
    resolves_seventh: bool = False
    common_tones: int = 0
    features: List[str] = field(default_factory=list)


@dataclass
class VoiceLeadingAnalysis:
    transitions: List[TransitionAnalysis]
    total_cost: float
    average_cost: float
    loop_cost: Optional[float]
    quality: VoiceLeadingQuality

    @property
    def problem_spots(self) -> List[TransitionAnalysis]:
        """Transitions (loop seam included) costing more than 10."""
        return [t for t in self.transitions if t.cost > PROBLEM_COST_THRESHOLD]


# =============================================================================
# OPTIMIZER
# =============================================================================

class VoiceLeadingOptimizer:
    """
    Chooses voicings for a progression by minimizing voice-leading cost.

    Deterministic: the same progression, generator catalog and weights
    always give the same voicings.
    """

    def __init__(
        self,
        generator: Optional[VoicingGenerator] = None,
        weights: Optional[CostWeights] = None,
    ):
        self.generator = generator or VoicingGenerator()
        self.cost_model = VoiceLeadingCostModel(weights)

    @property
    def weights(self) -> CostWeights:
        return self.cost_model.weights

    def calculate_cost(self, v1: Voicing, v2: Voicing) -> float:
        return self.cost_model.cost(v1, v2)

    # ---- candidates ---------------------------------------------------------

    def _dim_stack(self, chord: Chord) -> Optional[Voicing]:
        if chord.uses_diminished_stack and chord.quality.is_dominant:
            return self.generator.generate_diminished_stack_voicing(chord)
        return None

    def candidate_voicings(
        self,
        chord: Chord,
        voicing_type: VoicingType,
        target_register: int = DEFAULT_TARGET_REGISTER,
        filtered: bool = True,
    ) -> List[Voicing]:
        """
        Candidates considered for one chord.

        Dim-stacked dominants have exactly one candidate. Otherwise the
        generator variants, optionally restricted to spread <= 30 and at most
        two clusters (unfiltered if nothing passes).
        """
        stack = self._dim_stack(chord)
        if stack is not None:
            return [stack]

        candidates = self.generator.generate_all_variants(chord, voicing_type, target_register)
        if filtered:
            w = self.weights
            kept = [
                v for v in candidates
                if v.spread <= w.max_voicing_spread + SPREAD_FILTER_SLACK
                and count_cluster_intervals(v.notes) <= w.max_allowed_clusters + CLUSTER_FILTER_SLACK
            ]
            if kept:
                candidates = kept
        if not candidates:
            candidates = [self.generator.generate_voicing(chord, voicing_type, target_register)]
        return candidates

    # ---- single step --------------------------------------------------------

    def find_best_voicing(
        self,
        chord: Chord,
        previous: Optional[Voicing] = None,
        voicing_type: VoicingType = VoicingType.ROOTLESS_A,
    ) -> Voicing:
        """Cheapest voicing of `chord` following `previous` (greedy step)."""
        stack = self._dim_stack(chord)
        if stack is not None:
            return stack
        if previous is None:
            return self.generator.generate_voicing(chord, voicing_type, DEFAULT_TARGET_REGISTER)

        candidates = self.generator.generate_all_variants(chord, voicing_type, int(previous.center))
        costs = [self.calculate_cost(previous, c) for c in candidates]
        return candidates[int(np.argmin(costs))]

    # ---- whole progression --------------------------------------------------

    def optimize_progression(
        self,
        progression: ChordProgression,
        voicing_type: VoicingType = VoicingType.ROOTLESS_A,
        for_loop: bool = True,
    ) -> List[Voicing]:
        """
        One voicing per chord event, in event order.

        With `for_loop` the last -> first seam is optimized too; the looped
        result is only used when its seam is no worse than the straight one.
        """
        events = list(progression.events)
        if not events:
            return []

        voicings = self._optimize_global(events, voicing_type)
        linear = self._normalize_spread(voicings, events, voicing_type, is_loop=False)
        if not for_loop or len(voicings) < 2:
            return linear

        looped = self._optimize_for_loop(voicings, events, voicing_type)
        looped = self._normalize_spread(looped, events, voicing_type, is_loop=True)

        linear_seam = self.calculate_cost(linear[-1], linear[0])
        looped_seam = self.calculate_cost(looped[-1], looped[0])
        if looped_seam <= linear_seam:
            return looped
        logger.debug(
            f"Loop refinement worsened the seam ({looped_seam:.1f} > {linear_seam:.1f}), keeping linear voicings"
        )
        return linear

    def _optimize_global(self, events: Sequence[ChordEvent], voicing_type: VoicingType) -> List[Voicing]:
        """
        Dynamic programming over a padded (event, candidate) table.

        `best[i, j]` is the cheapest cumulative cost ending on candidate j of
        event i, `back[i, j]` the predecessor candidate of event i - 1.
        np.argmin returns the first minimum, so ties keep the lowest index.
        """
        candidates = [self.candidate_voicings(e.chord, voicing_type) for e in events]
        width = max(len(c) for c in candidates)
        count = len(events)

        best = np.full((count, width), np.inf)
        back = np.full((count, width), -1, dtype=int)
        best[0, :len(candidates[0])] = 0.0

        for i in range(1, count):
            prev, cur = candidates[i - 1], candidates[i]
            transition = np.array([[self.calculate_cost(p, c) for c in cur] for p in prev])
            total = best[i - 1, :len(prev), None] + transition
            choice = np.argmin(total, axis=0)
            best[i, :len(cur)] = total[choice, np.arange(len(cur))]
            back[i, :len(cur)] = choice

        index = int(np.argmin(best[count - 1]))
        logger.debug(
            f"DP over {count} chords x up to {width} candidates, best cost {best[count - 1, index]:.1f}"
        )

        path = [0] * count
        for i in range(count - 1, -1, -1):
            path[i] = index
            index = int(back[i, index])
        return [candidates[i][j] for i, j in enumerate(path)]

    def _chain_cost(self, voicings: Sequence[Voicing], is_loop: bool) -> float:
        total = sum(self.calculate_cost(a, b) for a, b in zip(voicings, voicings[1:]))
        if is_loop and len(voicings) > 1:
            total += self.calculate_cost(voicings[-1], voicings[0])
        return total

    def _optimize_for_loop(
        self,
        voicings: List[Voicing],
        events: Sequence[ChordEvent],
        voicing_type: VoicingType,
    ) -> List[Voicing]:
        wrap = self.calculate_cost(voicings[-1], voicings[0])
        if wrap <= LOOP_REFINE_THRESHOLD:
            return list(voicings)

        starts = self.candidate_voicings(events[0].chord, voicing_type, int(voicings[-1].center))
        best = list(voicings)
        best_cost = None
        for start in starts:
            chain = [start]
            for event in events[1:]:
                chain.append(self.find_best_voicing(event.chord, chain[-1], voicing_type))
            total = self.calculate_cost(voicings[-1], start) + self._chain_cost(chain, is_loop=True)
            if best_cost is None or total < best_cost:
                best_cost = total
                best = chain

        logger.debug(f"Loop refinement tried {len(starts)} starts, seam was {wrap:.1f}")
        return best

    def _normalize_spread(
        self,
        voicings: List[Voicing],
        events: Sequence[ChordEvent],
        voicing_type: VoicingType,
        is_loop: bool,
    ) -> List[Voicing]:
        if len(voicings) <= 2:
            return list(voicings)

        result = list(voicings)
        count = len(result)
        average = sum(v.spread for v in result) / count
        target = min(int(average), self.weights.max_voicing_spread)

        def neighbour_cost(i: int, voicing: Voicing) -> float:
            cost = 0.0
            if i > 0 or is_loop:
                cost += self.calculate_cost(result[i - 1], voicing)
            if i < count - 1 or is_loop:
                cost += self.calculate_cost(voicing, result[(i + 1) % count])
            return cost

        for i in range(count):
            current = result[i]
            deviation = abs(current.spread - target)
            if deviation <= SPREAD_DEVIATION_LIMIT:
                continue

            options = [
                c for c in self.candidate_voicings(events[i].chord, voicing_type, int(current.center), filtered=False)
                if abs(c.spread - target) < deviation
            ]
            if not options:
                continue

            current_cost = neighbour_cost(i, current)
            scored = [(neighbour_cost(i, c), c) for c in options]
            scored = [(cost, c) for cost, c in scored if cost <= current_cost]
            if not scored:
                continue
            ranks = [cost + abs(c.spread - target) * SPREAD_TIEBREAK_WEIGHT for cost, c in scored]
            replacement = scored[int(np.argmin(ranks))][1]
            logger.debug(
                f"Spread normalization: {events[i].chord} spread {current.spread} -> {replacement.spread}"
            )
            result[i] = replacement
        return result

    # ---- analysis -----------------------------------------------------------

    def analyze_voice_leading(self, voicings: Sequence[Voicing], is_loop: bool = True) -> VoiceLeadingAnalysis:
        if len(voicings) < 2:
            return VoiceLeadingAnalysis([], 0.0, 0.0, None, VoiceLeadingQuality.EXCELLENT)

        transitions = []
        for a, b in zip(voicings, voicings[1:]):
            transitions.append(self.analyze_transition(a, b))

        loop_cost = None
        if is_loop:
            seam = self.analyze_transition(voicings[-1], voicings[0])
            transitions.append(seam)
            loop_cost = seam.cost

        total = sum(t.cost for t in transitions)
        average = total / len(transitions)
        return VoiceLeadingAnalysis(
            transitions=transitions,
            total_cost=total,
            average_cost=average,
            loop_cost=loop_cost,
            quality=VoiceLeadingQuality.from_average_cost(average),
        )

    def analyze_transition(self, v1: Voicing, v2: Voicing) -> TransitionAnalysis:
        cost = self.calculate_cost(v1, v2)
        features = []

        resolves = False
        seventh, third = v1.seventh_note(), v2.third_note()
        if seventh is not None and third is not None:
            step = seventh - third
            if step == 1:
                features.append("7->3 half-step resolution")
                resolves = True
            elif step == 2:
                features.append("7->3 whole-step resolution")
                resolves = True

        common = len(set(v1.notes) & set(v2.notes))
        if common:
            features.append(f"{common} common tones")

        motions = [abs(b - a) for a, b in zip(v1.notes, v2.notes)]
        if motions:
            moving = sum(1 for m in motions if m > 0)
            if sum(motions) / len(motions) <= 2:
                features.append("smooth stepwise motion")
            elif max(motions) > 5:
                features.append("contains leap")
            if 2 <= moving <= 3:
                features.append("good inner motion")
            elif moving < 2:
                features.append("insufficient voice motion")

        clusters = count_cluster_intervals(v2.notes)
        if clusters > 1:
            features.append(f"too many clusters ({clusters})")

        return TransitionAnalysis(
            from_chord=v1.chord.display_name,
            to_chord=v2.chord.display_name,
            cost=cost,
            resolves_seventh=resolves,
            common_tones=common,
            features=features,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def optimize_voicings(
    progression: ChordProgression,
    voicing_type: VoicingType = VoicingType.ROOTLESS_A,
    for_loop: bool = True,
    weights: Optional[CostWeights] = None,
) -> List[Voicing]:
    """Optimize a progression with a fresh optimizer."""
    return VoiceLeadingOptimizer(weights=weights).optimize_progression(progression, voicing_type, for_loop)
