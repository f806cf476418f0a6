"""
Adaptive Bias Corrector

Dampens runs of same-direction decisions. Once a session has produced
`streak_threshold` consecutive decisions in one direction, that direction's
score is scaled down and the opposite direction's score is boosted, both
saturating at `max_streak`.

The correction is a deterministic function of the streak length. Exploratory
variation is opt-in through a PerturbationPolicy passed by the caller.
"""

import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from config.settings import BiasConfig, PerturbationConfig, PerturbationKind
from decision.aggregator import AggregatedScores
from decision.models import BiasState, Direction
from utils.math_utils import clamp

logger = logging.getLogger(__name__)


# ============================================================================
# Perturbation Policies
# ============================================================================

class PerturbationPolicy(ABC):
    """Produces a delta added to the correction factors for a given streak."""

    @abstractmethod
    def delta(self, streak: int) -> float:
        pass


class NoPerturbation(PerturbationPolicy):
    """Default policy: the correction is purely streak-driven."""

    def delta(self, streak: int) -> float:
        return 0.0

    def __repr__(self) -> str:
        return "NoPerturbation()"


class SeededPerturbation(PerturbationPolicy):
    """
    Reproducible jitter in [-amplitude, amplitude].

    The generator is re-seeded from (seed, streak) on every call, so equal
    inputs always give equal outputs.
    """

    def __init__(self, seed: int = 0, amplitude: float = 0.05):
        if amplitude < 0:
            raise ValueError(f"amplitude must be non-negative, got {amplitude}")
        self.seed = seed
        self.amplitude = amplitude

    def delta(self, streak: int) -> float:
        rng = random.Random(self.seed * 1009 + streak)
        return rng.uniform(-self.amplitude, self.amplitude)

    def __repr__(self) -> str:
        return f"SeededPerturbation(seed={self.seed}, amplitude={self.amplitude})"


class FixedTablePerturbation(PerturbationPolicy):
    """Streak length -> delta lookup (0 for unlisted streaks)."""

    def __init__(self, table: Dict[int, float]):
        self.table = {int(k): float(v) for k, v in table.items()}

    def delta(self, streak: int) -> float:
        return self.table.get(streak, 0.0)

    def __repr__(self) -> str:
        return f"FixedTablePerturbation({self.table})"


def perturbation_from_config(config: PerturbationConfig) -> PerturbationPolicy:
    """Build the policy named by configuration."""
    kind = PerturbationKind(config.kind)
    if kind is PerturbationKind.SEEDED:
        return SeededPerturbation(seed=config.seed, amplitude=config.amplitude)
    if kind is PerturbationKind.FIXED_TABLE:
        return FixedTablePerturbation(config.table)
    return NoPerturbation()


# ============================================================================
# Corrector
# ============================================================================

@dataclass(frozen=True)
class BiasCorrection:
    """
    Correction factors for one run.

    Attributes:
        adjustment: Factor applied to the streak direction's score (<= 1.0)
        boost: Factor applied to the opposite direction's score (>= 1.0)
        streak: Streak length the factors were derived from
        direction: Streak direction (None when no correction applies)
    """
    adjustment: float = 1.0
    boost: float = 1.0
    streak: int = 0
    direction: Optional[Direction] = None

    @property
    def active(self) -> bool:
        return self.direction is not None and (self.adjustment != 1.0 or self.boost != 1.0)


class AdaptiveBiasCorrector:
    """Derives and applies streak-dampening factors."""

    def __init__(
        self,
        config: BiasConfig = None,
        perturbation: Optional[PerturbationPolicy] = None,
        name: str = "AdaptiveBiasCorrector",
    ):
        self.config = config or BiasConfig()
        self.perturbation = perturbation or perturbation_from_config(self.config.perturbation)
        self.name = name
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    def correction(
        self,
        bias_state: BiasState,
        perturbation: Optional[PerturbationPolicy] = None,
    ) -> BiasCorrection:
        """
        Compute correction factors for a bias state.

        Args:
            bias_state: Session streak counters
            perturbation: Overrides the configured policy for this call

        Returns:
            BiasCorrection (identity below the streak threshold or on a
            neutral streak)
        """
        streak = bias_state.streak
        direction = bias_state.streak_direction

        if streak < self.config.streak_threshold or direction in (None, Direction.NEUTRAL):
            return BiasCorrection(streak=streak)

        cfg = self.config
        span = max(1, cfg.max_streak - cfg.streak_threshold + 1)
        k = min(streak, cfg.max_streak) - (cfg.streak_threshold - 1)

        adjustment = 1.0 - k * (1.0 - cfg.min_adjustment) / span
        boost = 1.0 + k * (cfg.max_boost - 1.0) / span if cfg.apply_opposite_boost else 1.0

        delta = (perturbation or self.perturbation).delta(streak)
        if delta:
            adjustment -= delta
            if cfg.apply_opposite_boost:
                boost += delta

        result = BiasCorrection(
            adjustment=clamp(adjustment, cfg.min_adjustment, 1.0),
            boost=clamp(boost, 1.0, cfg.max_boost),
            streak=streak,
            direction=direction,
        )

        self.logger.info(
            f"⚖️ Bias correction: {streak} consecutive {direction.value} decisions "
            f"(adjustment={result.adjustment:.2f}, boost={result.boost:.2f})"
        )
        return result

    def apply(self, scores: AggregatedScores, correction: BiasCorrection) -> AggregatedScores:
        """Return scores with the correction applied to the normalised fractions."""
        if correction.direction not in (Direction.UP, Direction.DOWN):
            return scores

        if correction.direction is Direction.UP:
            buy = scores.buy_fraction * correction.adjustment
            sell = scores.sell_fraction * correction.boost
        else:
            buy = scores.buy_fraction * correction.boost
            sell = scores.sell_fraction * correction.adjustment

        return scores.with_fractions(buy, sell)
