"""
Confluence factor checks for the decision engine.

Factor checks confirm or contradict a provisional direction - they don't
choose it, they feed the confluence grader.
"""

from typing import List

from config.settings import SourceCategories
from decision.factors.base import FactorCheck, FactorResult
from decision.factors.trend_structure import TrendStructureFactor
from decision.factors.momentum import MomentumFactor
from decision.factors.volume import VolumeFactor
from decision.factors.support_resistance import SupportResistanceFactor
from decision.factors.candle_pattern import CandlePatternFactor
from decision.factors.consensus import ConsensusFactor
from decision.factors.horizon import HorizonAlignmentFactor
from decision.factors.volatility import VolatilityFactor
from decision.factors.entry_timing import EntryTimingFactor


def create_default_factor_checks(sources: SourceCategories = None) -> List[FactorCheck]:
    """
    Standard factor check set.

    Args:
        sources: Source category membership shared by all checks

    Returns:
        List of factor checks in evaluation order
    """
    sources = sources or SourceCategories()
    return [
        TrendStructureFactor(sources=sources),
        MomentumFactor(sources=sources),
        VolumeFactor(sources=sources),
        SupportResistanceFactor(sources=sources),
        CandlePatternFactor(sources=sources),
        ConsensusFactor(sources=sources),
        HorizonAlignmentFactor(sources=sources),
        VolatilityFactor(sources=sources),
        EntryTimingFactor(sources=sources),
    ]


__all__ = [
    'FactorCheck',
    'FactorResult',
    'TrendStructureFactor',
    'MomentumFactor',
    'VolumeFactor',
    'SupportResistanceFactor',
    'CandlePatternFactor',
    'ConsensusFactor',
    'HorizonAlignmentFactor',
    'VolatilityFactor',
    'EntryTimingFactor',
    'create_default_factor_checks',
]
