"""
Time Utilities

Chart timeframe helpers: timeframe labels ("30s", "1m", "5m", "1h") are
converted to seconds so timing tables can scale to unlisted timeframes.
"""

import re
from typing import Optional

_TIMEFRAME_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd])\s*$", re.IGNORECASE)

_UNIT_SECONDS = {
    's': 1,
    'm': 60,
    'h': 3600,
    'd': 86400,
}


class TimeUtils:
    """Core time utilities."""

    @staticmethod
    def timeframe_seconds(timeframe: str) -> Optional[int]:
        """
        Convert a timeframe label to seconds.

        Args:
            timeframe: Label such as "30s", "1m", "15m", "4h"

        Returns:
            Length in seconds, or None when the label cannot be parsed
        """
        if not isinstance(timeframe, str):
            return None

        match = _TIMEFRAME_PATTERN.match(timeframe)
        if not match:
            return None

        amount, unit = match.groups()
        seconds = int(amount) * _UNIT_SECONDS[unit.lower()]
        return seconds if seconds > 0 else None

    @staticmethod
    def is_scalping_timeframe(timeframe: str) -> bool:
        """True for sub-minute charts, where timing noise dominates."""
        seconds = TimeUtils.timeframe_seconds(timeframe)
        return seconds is not None and seconds < 60
