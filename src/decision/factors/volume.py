"""
Volume factor.

Moves backed by volume are more trustworthy; on thin volume they are
suspect, except on sub-minute charts where volume readings are too noisy.
"""

from typing import Sequence

from decision.factors.base import FactorCheck, FactorResult
from decision.models import Direction, MarketContext, Signal, VolumeProfile
from utils.time_utils import TimeUtils


class VolumeFactor(FactorCheck):
    """
    Scoring Logic:
    - volume-like signals net-aligned: "volume confirms"
    - no volume-like signals and a high volume profile: "volume confirms"
    - otherwise a low volume profile: "volume does not confirm"
    """

    def check(
        self,
        signals: Sequence[Signal],
        context: MarketContext,
        direction: Direction,
        optimal_entry: bool = False,
    ) -> FactorResult:
        volume = [s for s in self.of(signals, self.sources.volume) if s.is_directional]

        if volume and self.net_alignment(volume, direction) > 0:
            result = FactorResult.confirms("volume confirms")
        elif not volume and context.volume_profile is VolumeProfile.HIGH:
            result = FactorResult.confirms("volume confirms")
        elif (context.volume_profile is VolumeProfile.LOW
              and not TimeUtils.is_scalping_timeframe(context.timeframe)):
            result = FactorResult.contradicts("volume does not confirm")
        else:
            result = FactorResult.none()

        self.log_result(result, f"- profile={context.volume_profile.value}")
        return result
