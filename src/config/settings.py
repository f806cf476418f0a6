"""
Configuration models using Pydantic for type-safe validation.

This module defines all configuration models for the decision engine:
- AggregatorConfig: Source base weights, neutral attenuation, horizon multipliers
- BiasConfig / PerturbationConfig: Streak dampening limits and exploratory jitter
- ManipulationConfig: Anti-manipulation rule weights and thresholds
- GradingConfig: Grade thresholds and penalties
- TimingConfig: Entry wait / validity tables
- OrchestratorConfig: Direction gates and fallback confidences
- SystemConfig: Environment, log level, log output
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============================================================================
# Enums for Configuration
# ============================================================================

class Environment(str, Enum):
    """Deployment environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging level."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class PerturbationKind(str, Enum):
    """Bias perturbation policy variant."""
    NONE = "none"
    SEEDED = "seeded"
    FIXED_TABLE = "fixed_table"


# ============================================================================
# System Configuration
# ============================================================================

class SystemConfig(BaseModel):
    """System-wide settings."""

    model_config = ConfigDict(use_enum_values=True)

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment"
    )

    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level"
    )

    json_logs: bool = Field(
        default=False,
        description="Render log records as JSON lines"
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file path"
    )


# ============================================================================
# Source Categories
# ============================================================================

class SourceCategories(BaseModel):
    """Membership of well-known detector sources in scoring categories."""

    structural: List[str] = Field(
        default=["trendline", "support_resistance", "fibonacci", "chart_pattern",
                 "elliott_wave", "dow_theory", "breakout"],
        description="Structure / level detectors"
    )

    levels: List[str] = Field(
        default=["support_resistance", "fibonacci", "trendline", "breakout"],
        description="Price-level detectors used for support/resistance checks"
    )

    candles: List[str] = Field(
        default=["candle_pattern", "micro_pattern"],
        description="Candlestick pattern detectors"
    )

    momentum: List[str] = Field(
        default=["momentum", "rsi", "macd", "stochastic"],
        description="Momentum oscillators"
    )

    volume: List[str] = Field(
        default=["volume", "volume_trend", "order_flow"],
        description="Volume-like detectors"
    )

    reversal: List[str] = Field(
        default=["reversal", "candle_reversal", "bull_trap", "bear_trap",
                 "fake_breakout", "pump_dump"],
        description="Reversal / trap detectors"
    )

    default_horizons: Dict[str, str] = Field(
        default={
            "trendline": "long",
            "chart_pattern": "long",
            "elliott_wave": "long",
            "dow_theory": "long",
            "support_resistance": "medium",
            "fibonacci": "medium",
            "breakout": "medium",
            "volatility": "medium",
            "market_condition": "medium",
            "candle_pattern": "short",
            "micro_pattern": "short",
            "momentum": "short",
            "rsi": "short",
            "macd": "short",
            "stochastic": "short",
            "volume": "short",
            "volume_trend": "short",
            "order_flow": "short",
            "reversal": "short",
            "candle_reversal": "short",
            "bull_trap": "short",
            "bear_trap": "short",
            "fake_breakout": "short",
            "pump_dump": "short",
        },
        description="Horizon assumed when a detector does not report one"
    )

    @field_validator('default_horizons')
    def horizons_are_known(cls, v):
        allowed = {"short", "medium", "long"}
        bad = {k: h for k, h in v.items() if h not in allowed}
        if bad:
            raise ValueError(f"Unknown horizon class(es): {bad}")
        return v


# ============================================================================
# Aggregator Configuration
# ============================================================================

class AggregatorConfig(BaseModel):
    """Weighted aggregation settings."""

    base_weights: Dict[str, float] = Field(
        default={
            "trendline": 1.5,
            "support_resistance": 1.5,
            "fibonacci": 1.5,
            "chart_pattern": 1.4,
            "breakout": 1.3,
            "candle_pattern": 1.3,
            "elliott_wave": 1.2,
            "reversal": 1.2,
            "dow_theory": 1.0,
            "momentum": 1.0,
            "volume": 0.9,
            "volatility": 0.8,
            "market_condition": 0.8,
        },
        description="Base weight per detector source"
    )

    default_base_weight: float = Field(
        default=1.0,
        gt=0.0,
        description="Base weight for unknown sources"
    )

    neutral_attenuation: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Share of a neutral signal's weight added to both sides"
    )

    timeframe_multipliers: Dict[str, Dict[str, float]] = Field(
        default={
            "30s": {"short": 1.2, "medium": 1.0, "long": 0.8},
            "1m": {"short": 1.1, "medium": 1.0, "long": 0.9},
            "5m": {"short": 0.9, "medium": 1.0, "long": 1.1},
            "15m": {"short": 0.8, "medium": 1.0, "long": 1.2},
        },
        description="Chart timeframe -> horizon class -> weight multiplier"
    )

    @field_validator('base_weights')
    def weights_positive(cls, v):
        negative = [name for name, weight in v.items() if weight < 0]
        if negative:
            raise ValueError(f"Base weights must be non-negative: {negative}")
        return v

    @field_validator('timeframe_multipliers')
    def multipliers_positive(cls, v):
        for timeframe, row in v.items():
            if any(m < 0 for m in row.values()):
                raise ValueError(f"Negative multiplier for timeframe {timeframe}")
        return v


# ============================================================================
# Bias Configuration
# ============================================================================

class PerturbationConfig(BaseModel):
    """Exploratory variation of the bias correction (disabled by default)."""

    model_config = ConfigDict(use_enum_values=True)

    kind: PerturbationKind = Field(
        default=PerturbationKind.NONE,
        description="Perturbation policy variant"
    )

    seed: int = Field(
        default=0,
        description="Seed for the seeded policy"
    )

    amplitude: float = Field(
        default=0.05,
        ge=0.0,
        le=0.5,
        description="Maximum absolute jitter for the seeded policy"
    )

    table: Dict[int, float] = Field(
        default_factory=dict,
        description="Streak length -> delta for the fixed-table policy"
    )


class BiasConfig(BaseModel):
    """Streak dampening settings."""

    streak_threshold: int = Field(
        default=3,
        ge=1,
        description="Streak length at which correction starts"
    )

    max_streak: int = Field(
        default=7,
        ge=1,
        description="Streak length at which correction saturates"
    )

    min_adjustment: float = Field(
        default=0.5,
        gt=0.0,
        le=1.0,
        description="Strongest dampening factor applied to the streak direction"
    )

    max_boost: float = Field(
        default=1.5,
        ge=1.0,
        description="Strongest boost applied to the opposite direction"
    )

    apply_opposite_boost: bool = Field(
        default=True,
        description="Boost the direction opposite the streak"
    )

    perturbation: PerturbationConfig = Field(
        default_factory=PerturbationConfig,
        description="Optional exploratory variation"
    )

    @model_validator(mode='after')
    def max_streak_above_threshold(self):
        if self.max_streak < self.streak_threshold:
            raise ValueError(
                f"max_streak ({self.max_streak}) must be >= streak_threshold ({self.streak_threshold})"
            )
        return self


# ============================================================================
# Manipulation Configuration
# ============================================================================

class ManipulationConfig(BaseModel):
    """Anti-manipulation rule weights and thresholds."""

    balance_min_directional: int = Field(default=4, ge=2)
    balance_ratio_threshold: float = Field(default=0.25, gt=0.0, le=1.0)
    balance_max_points: float = Field(default=25.0, ge=0.0)
    opposing_strength_threshold: float = Field(default=70.0, ge=0.0, le=100.0)
    opposing_strength_points: float = Field(default=10.0, ge=0.0)

    horizon_conflict_points: float = Field(default=20.0, ge=0.0)
    horizon_strength_threshold: float = Field(default=70.0, ge=0.0, le=100.0)
    horizon_strength_points: float = Field(default=10.0, ge=0.0)

    reversal_strength_threshold: float = Field(default=65.0, ge=0.0, le=100.0)
    reversal_full_strength: float = Field(
        default=90.0,
        ge=0.0,
        le=100.0,
        description="Reversal strength that earns the full reversal points"
    )
    reversal_max_points: float = Field(default=25.0, ge=0.0)

    volume_high_threshold: float = Field(default=80.0, ge=0.0, le=100.0)
    volume_high_points: float = Field(default=15.0, ge=0.0)
    volume_low_threshold: float = Field(default=25.0, ge=0.0, le=100.0)
    volume_low_points: float = Field(default=10.0, ge=0.0)

    otc_loading: float = Field(
        default=20.0,
        ge=10.0,
        le=20.0,
        description="Extra risk for OTC markets once any trigger fired"
    )

    timeframe_loadings: Dict[str, float] = Field(
        default={"30s": 15.0, "1m": 10.0, "5m": 5.0},
        description="Extra risk per chart timeframe once any trigger fired"
    )

    otc_bias_ratio: float = Field(default=2.8, gt=1.0)
    otc_bias_points: float = Field(default=15.0, ge=0.0)

    implausible_confidence: float = Field(default=98.0, ge=0.0, le=100.0)
    implausible_confidence_points: float = Field(default=10.0, ge=0.0)

    tier_thresholds: Dict[str, float] = Field(
        default={"MEDIUM": 35.0, "HIGH": 60.0, "CRITICAL": 80.0},
        description="Lower score bound of each risk tier above LOW"
    )

    abort_threshold: float = Field(default=70.0, ge=0.0, le=100.0)
    caution_threshold: float = Field(default=40.0, ge=0.0, le=100.0)

    @field_validator('tier_thresholds')
    def tiers_ascending(cls, v):
        missing = {"MEDIUM", "HIGH", "CRITICAL"} - set(v)
        if missing:
            raise ValueError(f"Missing risk tier threshold(s): {sorted(missing)}")
        if not v["MEDIUM"] < v["HIGH"] < v["CRITICAL"]:
            raise ValueError("Risk tier thresholds must ascend MEDIUM < HIGH < CRITICAL")
        return v

    @model_validator(mode='after')
    def abort_above_caution(self):
        if self.abort_threshold < self.caution_threshold:
            raise ValueError("abort_threshold must be >= caution_threshold")
        return self


# ============================================================================
# Grading Configuration
# ============================================================================

class GradingConfig(BaseModel):
    """Setup grading settings."""

    ideal_confluence_count: int = Field(
        default=5,
        ge=1,
        description="Confluence count that earns the full confluence share"
    )

    confluence_points: float = Field(default=60.0, ge=0.0)
    contraindication_penalty: float = Field(default=12.0, ge=0.0)
    confidence_factor: float = Field(default=0.6, ge=0.0)

    scalping_trend_threshold: float = Field(default=75.0, ge=0.0, le=100.0)
    scalping_penalty: float = Field(default=20.0, ge=0.0)
    otc_contraindication_penalty: float = Field(default=15.0, ge=0.0)
    high_volatility_threshold: float = Field(default=75.0, ge=0.0, le=100.0)
    high_volatility_penalty: float = Field(default=15.0, ge=0.0)
    bonus_confluence_count: int = Field(default=6, ge=1)
    bonus_points: float = Field(default=10.0, ge=0.0)

    agreement_strength: float = Field(
        default=70.0,
        ge=0.0,
        le=100.0,
        description="Minimum strength of an aligned detector that counts as agreement"
    )
    agreement_confidence: float = Field(
        default=70.0,
        ge=0.0,
        le=100.0,
        description="Minimum confidence of an aligned detector that counts as agreement"
    )

    grade_thresholds: Dict[str, float] = Field(
        default={"A": 90.0, "B": 75.0, "C": 60.0, "D": 45.0},
        description="Minimum raw score per grade (below D is F)"
    )

    @field_validator('grade_thresholds')
    def grades_descending(cls, v):
        missing = {"A", "B", "C", "D"} - set(v)
        if missing:
            raise ValueError(f"Missing grade threshold(s): {sorted(missing)}")
        if not v["A"] > v["B"] > v["C"] > v["D"]:
            raise ValueError("Grade thresholds must descend A > B > C > D")
        return v


# ============================================================================
# Timing Configuration
# ============================================================================

class TimingRow(BaseModel):
    """Wait / validity row for one chart timeframe (seconds)."""

    wait_min: float = Field(ge=0.0)
    wait_max: float = Field(ge=0.0)
    validity: float = Field(gt=0.0)

    @model_validator(mode='after')
    def wait_range_ordered(self):
        if self.wait_max < self.wait_min:
            raise ValueError(f"wait_max ({self.wait_max}) must be >= wait_min ({self.wait_min})")
        return self


class TimingConfig(BaseModel):
    """Entry timing settings."""

    table: Dict[str, TimingRow] = Field(
        default_factory=lambda: {
            "30s": TimingRow(wait_min=5, wait_max=20, validity=15),
            "1m": TimingRow(wait_min=10, wait_max=40, validity=30),
            "5m": TimingRow(wait_min=50, wait_max=200, validity=150),
            "15m": TimingRow(wait_min=150, wait_max=600, validity=450),
        },
        description="Chart timeframe -> timing row"
    )

    reevaluation_seconds: float = Field(
        default=90.0,
        gt=0.0,
        description="Validity of a WAIT decision"
    )

    enter_now_confidence: float = Field(default=80.0, ge=0.0, le=100.0)
    enter_now_confluences: int = Field(default=4, ge=0)

    otc_validity_factor: float = Field(default=1.15, gt=0.0)
    noise_threshold: float = Field(default=30.0, ge=0.0, le=100.0)
    noise_factor: float = Field(default=0.25, ge=0.0)
    high_confidence: float = Field(default=85.0, ge=0.0, le=100.0)
    high_confidence_factor: float = Field(default=0.9, gt=0.0)
    low_confidence: float = Field(default=65.0, ge=0.0, le=100.0)
    low_confidence_factor: float = Field(default=1.1, gt=0.0)
    volatility_threshold: float = Field(default=70.0, ge=0.0, lt=100.0)
    volatility_factor: float = Field(default=0.4, ge=0.0)

    @field_validator('table')
    def reference_row_present(cls, v):
        if "1m" not in v:
            raise ValueError("Timing table must contain the reference '1m' row")
        return v


# ============================================================================
# Orchestrator Configuration
# ============================================================================

class OrchestratorConfig(BaseModel):
    """Direction gates and fallback confidences."""

    min_signal_count: int = Field(default=2, ge=1)
    min_dominant_fraction: float = Field(default=0.55, gt=0.0, le=1.0)
    differential_factor: float = Field(default=1.15, ge=1.0)
    max_confidence: float = Field(default=95.0, ge=0.0, le=100.0)
    insufficient_confidence: float = Field(default=30.0, ge=0.0, le=100.0)
    wait_confidence_floor: float = Field(default=30.0, ge=0.0, le=100.0)
    wait_confidence_ceiling: float = Field(default=60.0, ge=0.0, le=100.0)
    abort_penalty: float = Field(default=25.0, ge=0.0)
    gate_penalty: float = Field(default=25.0, ge=0.0)
    confidence_floor: float = Field(default=25.0, ge=0.0, le=100.0)
    caution_penalty: float = Field(default=10.0, ge=0.0)

    @model_validator(mode='after')
    def wait_band_ordered(self):
        if self.wait_confidence_ceiling < self.wait_confidence_floor:
            raise ValueError("wait_confidence_ceiling must be >= wait_confidence_floor")
        return self


# ============================================================================
# Complete Configuration
# ============================================================================

class DecisionEngineConfig(BaseModel):
    """Complete decision engine configuration."""

    sources: SourceCategories = Field(default_factory=SourceCategories)
    aggregator: AggregatorConfig = Field(default_factory=AggregatorConfig)
    bias: BiasConfig = Field(default_factory=BiasConfig)
    manipulation: ManipulationConfig = Field(default_factory=ManipulationConfig)
    grading: GradingConfig = Field(default_factory=GradingConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)


class AppConfig(BaseModel):
    """
    Complete application configuration.

    Combines the system settings and the decision engine configuration.
    """

    system: SystemConfig = Field(
        default_factory=SystemConfig,
        description="System configuration"
    )

    decision: DecisionEngineConfig = Field(
        default_factory=DecisionEngineConfig,
        description="Decision engine configuration"
    )
