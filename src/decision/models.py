"""
Data model for the confluence decision engine.

Records flowing through the pipeline:
- Signal: one detector's directional opinion
- MarketContext: immutable per-analysis market description
- BiasState: per-session streak counters (the only long-lived state)
- ManipulationAssessment: anti-manipulation verdict
- TimingWindow / Decision: final output

Immutable records are frozen dataclasses; BiasState is the one mutable
value and is owned by the calling session.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from decision.errors import InvalidContextError
from utils.math_utils import clamp


# ============================================================================
# Enums
# ============================================================================

class Direction(str, Enum):
    """Directional opinion of a signal."""
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"

    @property
    def opposite(self) -> "Direction":
        if self is Direction.UP:
            return Direction.DOWN
        if self is Direction.DOWN:
            return Direction.UP
        return Direction.NEUTRAL


class TimeframeClass(str, Enum):
    """Natural horizon of a detector."""
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class Action(str, Enum):
    """Final trading action."""
    BUY = "BUY"
    SELL = "SELL"
    WAIT = "WAIT"

    @property
    def direction(self) -> Direction:
        """Bias counter a decision with this action increments."""
        if self is Action.BUY:
            return Direction.UP
        if self is Action.SELL:
            return Direction.DOWN
        return Direction.NEUTRAL

    @classmethod
    def from_direction(cls, direction: Direction) -> "Action":
        if direction is Direction.UP:
            return cls.BUY
        if direction is Direction.DOWN:
            return cls.SELL
        return cls.WAIT


class Grade(str, Enum):
    """Setup quality grade."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class RiskTier(str, Enum):
    """Manipulation risk tier."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Recommendation(str, Enum):
    """Anti-manipulation recommendation."""
    PROCEED = "PROCEED"
    CAUTION = "CAUTION"
    ABORT = "ABORT"


class RiskLevel(str, Enum):
    """Qualitative risk level of a decision."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class VolumeProfile(str, Enum):
    """Coarse volume regime."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ============================================================================
# Signal
# ============================================================================

@dataclass(frozen=True)
class Signal:
    """
    One detector's opinion.

    Attributes:
        source: Producing detector identifier (open-ended, e.g. 'trendline')
        direction: up / down / neutral
        strength: Detector-internal magnitude, clamped to [0, 100]
        confidence: Detector's self-reported reliability, clamped to [0, 100]
        timeframe_class: Natural horizon of the detector
        metadata: Free-form detector details (not used for scoring)
    """
    source: str
    direction: Direction
    strength: float
    confidence: float
    timeframe_class: TimeframeClass = TimeframeClass.MEDIUM
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        # Frozen: invariants are enforced through object.__setattr__
        object.__setattr__(self, 'source', str(self.source).strip().lower())
        object.__setattr__(self, 'direction', Direction(self.direction))
        object.__setattr__(self, 'timeframe_class', TimeframeClass(self.timeframe_class))
        object.__setattr__(self, 'strength', clamp(_as_float(self.strength)))
        object.__setattr__(self, 'confidence', clamp(_as_float(self.confidence)))

    @property
    def is_directional(self) -> bool:
        return self.direction is not Direction.NEUTRAL


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return float('nan')


# ============================================================================
# Market Context
# ============================================================================

@dataclass(frozen=True)
class MarketContext:
    """
    Immutable per-analysis market description.

    Raises InvalidContextError on construction when malformed. Unknown
    timeframe / market type labels are accepted and get default behaviour.
    """
    timeframe: str
    market_type: str = "regular"
    volatility: float = 50.0
    trend_strength: float = 50.0
    volume_profile: VolumeProfile = VolumeProfile.MEDIUM
    noise_level: Optional[float] = None

    def __post_init__(self):
        if not isinstance(self.timeframe, str) or not self.timeframe.strip():
            raise InvalidContextError(f"timeframe must be a non-empty string, got {self.timeframe!r}")
        if not isinstance(self.market_type, str) or not self.market_type.strip():
            raise InvalidContextError(f"market_type must be a non-empty string, got {self.market_type!r}")

        object.__setattr__(self, 'timeframe', self.timeframe.strip())
        object.__setattr__(self, 'market_type', self.market_type.strip().lower())

        for name in ('volatility', 'trend_strength'):
            object.__setattr__(self, name, _bounded(name, getattr(self, name)))

        if self.noise_level is not None:
            object.__setattr__(self, 'noise_level', _bounded('noise_level', self.noise_level))

        try:
            object.__setattr__(self, 'volume_profile', VolumeProfile(self.volume_profile))
        except ValueError:
            raise InvalidContextError(
                f"volume_profile must be one of high/medium/low, got {self.volume_profile!r}"
            ) from None

    @property
    def is_otc(self) -> bool:
        return self.market_type == "otc"

    @property
    def effective_noise(self) -> float:
        """Noise level, falling back to volatility when not supplied."""
        return self.noise_level if self.noise_level is not None else self.volatility


def _bounded(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidContextError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidContextError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(number) or number < 0 or number > 100:
        raise InvalidContextError(f"{name} must be within [0, 100], got {value!r}")
    return number


# ============================================================================
# Bias State
# ============================================================================

@dataclass
class BiasState:
    """
    Consecutive-decision counters for one trading session.

    Only one direction counter is non-zero at a time. The state remembers
    the market type it was built under so a market switch can reset it.
    """
    consecutive_by_direction: Dict[Direction, int] = field(
        default_factory=lambda: {d: 0 for d in Direction}
    )
    market_type: Optional[str] = None

    def __post_init__(self):
        counters = {d: 0 for d in Direction}
        for key, value in dict(self.consecutive_by_direction).items():
            count = int(value)
            if count < 0:
                raise ValueError(f"Bias counter for {key} cannot be negative: {value}")
            counters[Direction(key)] = count

        active = [d.value for d, n in counters.items() if n > 0]
        if len(active) > 1:
            raise ValueError(f"Only one bias counter may be non-zero, got {active}")
        self.consecutive_by_direction = counters

    @property
    def streak(self) -> int:
        return max(self.consecutive_by_direction.values())

    @property
    def streak_direction(self) -> Optional[Direction]:
        """Direction holding the current streak (None when all counters are zero)."""
        for direction, count in self.consecutive_by_direction.items():
            if count > 0 and count == self.streak:
                return direction
        return None

    def record(self, direction: Direction) -> None:
        """Increment one counter and zero the others."""
        direction = Direction(direction)
        current = self.consecutive_by_direction[direction]
        self.consecutive_by_direction = {d: 0 for d in Direction}
        self.consecutive_by_direction[direction] = current + 1

    def reset(self, market_type: Optional[str] = None) -> None:
        self.consecutive_by_direction = {d: 0 for d in Direction}
        self.market_type = market_type

    def copy(self) -> "BiasState":
        return BiasState(
            consecutive_by_direction=dict(self.consecutive_by_direction),
            market_type=self.market_type,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'consecutive_by_direction': {d.value: n for d, n in self.consecutive_by_direction.items()},
            'market_type': self.market_type,
        }


# ============================================================================
# Outputs
# ============================================================================

@dataclass(frozen=True)
class ManipulationAssessment:
    """Anti-manipulation verdict for one signal set."""
    score: float
    suspicious_factors: Tuple[str, ...]
    risk_tier: RiskTier
    recommendation: Recommendation

    @property
    def is_manipulated(self) -> bool:
        return self.score >= 50

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': self.score,
            'suspicious_factors': list(self.suspicious_factors),
            'risk_tier': self.risk_tier.value,
            'recommendation': self.recommendation.value,
        }


@dataclass(frozen=True)
class TimingWindow:
    """Entry timing and validity of a decision."""
    enter_now: bool
    wait_seconds: float
    validity_seconds: float


@dataclass(frozen=True)
class Decision:
    """
    Final engine output. Never mutated after construction.

    buy_score / sell_score are the bias-corrected normalised fractions the
    action was derived from; bias_adjustment / bias_boost are the factors the
    AdaptiveBiasCorrector applied in this run.
    """
    action: Action
    confidence: float
    grade: Grade
    confluence_count: int
    contraindications: Tuple[str, ...]
    timing: TimingWindow
    expected_success_rate: float
    reasoning: Tuple[str, ...]
    risk_level: RiskLevel = RiskLevel.HIGH
    bias_adjustment: float = 1.0
    bias_boost: float = 1.0
    buy_score: float = 0.0
    sell_score: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'confidence', clamp(self.confidence))
        object.__setattr__(self, 'expected_success_rate', clamp(self.expected_success_rate))
        object.__setattr__(self, 'contraindications', tuple(self.contraindications))
        object.__setattr__(self, 'reasoning', tuple(self.reasoning))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'action': self.action.value,
            'confidence': self.confidence,
            'grade': self.grade.value,
            'confluence_count': self.confluence_count,
            'contraindications': list(self.contraindications),
            'timing': {
                'enter_now': self.timing.enter_now,
                'wait_seconds': self.timing.wait_seconds,
                'validity_seconds': self.timing.validity_seconds,
            },
            'expected_success_rate': self.expected_success_rate,
            'reasoning': list(self.reasoning),
            'risk_level': self.risk_level.value,
            'bias_adjustment': self.bias_adjustment,
            'bias_boost': self.bias_boost,
            'buy_score': self.buy_score,
            'sell_score': self.sell_score,
        }
