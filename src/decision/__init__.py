"""
Decision Engine - Multi-signal confluence decisions.

This module implements the decision-making layer that:
1. Normalises heterogeneous detector signals
2. Aggregates them into weighted buy / sell scores
3. Dampens same-direction streaks
4. Screens the signal set for manipulation
5. Grades the setup and derives entry timing

Components:
- DecisionOrchestrator: Main state machine (evaluate)
- DecisionSession / SessionRegistry: Per-session bias state ownership
- SignalNormalizer, WeightedAggregator, AdaptiveBiasCorrector,
  ManipulationAssessor, ConfluenceGrader, TimingCalculator
- Data classes: Signal, MarketContext, BiasState, Decision, ...
"""

from decision.models import (
    Action,
    BiasState,
    Decision,
    Direction,
    Grade,
    ManipulationAssessment,
    MarketContext,
    Recommendation,
    RiskLevel,
    RiskTier,
    Signal,
    TimeframeClass,
    TimingWindow,
    VolumeProfile,
)
from decision.errors import (
    ConfigurationError,
    DecisionEngineError,
    InsufficientDataError,
    InvalidContextError,
)
from decision.normalizer import SignalNormalizer
from decision.aggregator import AggregatedScores, WeightedAggregator
from decision.bias import (
    AdaptiveBiasCorrector,
    BiasCorrection,
    FixedTablePerturbation,
    NoPerturbation,
    PerturbationPolicy,
    SeededPerturbation,
)
from decision.manipulation import ManipulationAssessor
from decision.confluence import ConfluenceGrader, ConfluenceResult
from decision.timing import TimingCalculator
from decision.factors import FactorCheck, FactorResult
from decision.engine import (
    DecisionOrchestrator,
    DecisionState,
    EvaluationTrace,
    create_decision_orchestrator,
)
from decision.session import DecisionSession, SessionRegistry

__all__ = [
    # Core engine
    'DecisionOrchestrator',
    'DecisionState',
    'EvaluationTrace',
    'create_decision_orchestrator',
    'DecisionSession',
    'SessionRegistry',

    # Data structures
    'Action',
    'BiasState',
    'Decision',
    'Direction',
    'Grade',
    'ManipulationAssessment',
    'MarketContext',
    'Recommendation',
    'RiskLevel',
    'RiskTier',
    'Signal',
    'TimeframeClass',
    'TimingWindow',
    'VolumeProfile',
    'AggregatedScores',
    'BiasCorrection',
    'ConfluenceResult',
    'FactorResult',

    # Components
    'SignalNormalizer',
    'WeightedAggregator',
    'AdaptiveBiasCorrector',
    'ManipulationAssessor',
    'ConfluenceGrader',
    'TimingCalculator',
    'FactorCheck',

    # Perturbation policies
    'PerturbationPolicy',
    'NoPerturbation',
    'SeededPerturbation',
    'FixedTablePerturbation',

    # Errors
    'DecisionEngineError',
    'InsufficientDataError',
    'InvalidContextError',
    'ConfigurationError',
]
