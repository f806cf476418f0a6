"""
Timing Calculator

Derives when to enter and how long a decision stays valid.

Per-timeframe table (configurable):
- 30s: wait 5-20s, validity 15s
- 1m: wait 10-40s, validity 30s
- 5m: wait 50-200s, validity 150s
- 15m: wait 150-600s, validity 450s

Unlisted timeframes scale the 1m row by their length; unparseable ones use
the 1m row unchanged. Validity is stretched for OTC markets, noisy or
volatile conditions and low confidence, and shortened for high confidence.
"""

import logging
import math

from config.settings import TimingConfig, TimingRow
from decision.models import Action, MarketContext, TimingWindow
from utils.math_utils import clamp
from utils.time_utils import TimeUtils

logger = logging.getLogger(__name__)


class TimingCalculator:
    """
    Entry timing and validity windows.

    This is a pure calculation component - no side effects or state.
    """

    REFERENCE_TIMEFRAME = "1m"

    def __init__(self, config: TimingConfig = None, name: str = "TimingCalculator"):
        self.config = config or TimingConfig()
        self.name = name
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    def row_for(self, timeframe: str) -> TimingRow:
        """Timing row for a chart timeframe."""
        row = self.config.table.get(timeframe)
        if row is not None:
            return row

        reference = self.config.table[self.REFERENCE_TIMEFRAME]
        seconds = TimeUtils.timeframe_seconds(timeframe)
        if seconds is None:
            self.logger.debug(f"Unparseable timeframe {timeframe!r}, using {self.REFERENCE_TIMEFRAME} timing")
            return reference

        scale = seconds / 60.0
        return TimingRow(
            wait_min=reference.wait_min * scale,
            wait_max=reference.wait_max * scale,
            validity=reference.validity * scale,
        )

    def calculate(
        self,
        action: Action,
        confidence: float,
        confluence_count: int,
        context: MarketContext,
        optimal_entry: bool = False,
    ) -> TimingWindow:
        """
        Calculate the timing window for a decision.

        Args:
            action: Final action
            confidence: Final confidence (0-100)
            confluence_count: Number of distinct confluences
            context: Market context
            optimal_entry: Upstream timing flag

        Returns:
            TimingWindow
        """
        cfg = self.config

        if Action(action) is Action.WAIT:
            return TimingWindow(
                enter_now=False,
                wait_seconds=0.0,
                validity_seconds=float(cfg.reevaluation_seconds),
            )

        row = self.row_for(context.timeframe)
        enter_now = (
            confidence >= cfg.enter_now_confidence
            and confluence_count >= cfg.enter_now_confluences
            and bool(optimal_entry)
        )

        if enter_now:
            wait = 0.0
        else:
            progress = clamp((confidence - 50.0) / 50.0, 0.0, 1.0)
            wait = row.wait_max - (row.wait_max - row.wait_min) * progress

        validity = row.validity
        if context.is_otc:
            validity *= cfg.otc_validity_factor

        noise = context.effective_noise
        if noise > cfg.noise_threshold:
            validity *= 1.0 + (noise - cfg.noise_threshold) / 100.0 * cfg.noise_factor

        if confidence > cfg.high_confidence:
            validity *= cfg.high_confidence_factor
        elif confidence < cfg.low_confidence:
            validity *= cfg.low_confidence_factor

        if context.volatility > cfg.volatility_threshold:
            span = 100.0 - cfg.volatility_threshold
            validity *= 1.0 + (context.volatility - cfg.volatility_threshold) / span * cfg.volatility_factor

        window = TimingWindow(
            enter_now=enter_now,
            wait_seconds=round(wait, 2),
            validity_seconds=float(math.ceil(round(validity, 6))),
        )
        self.logger.debug(
            f"Timing {context.timeframe}: enter_now={window.enter_now}, "
            f"wait={window.wait_seconds:.1f}s, valid={window.validity_seconds:.0f}s"
        )
        return window
