"""
Signal Normalizer

Converts heterogeneous detector outputs into uniform Signal records.

Accepted inputs:
- Signal instances (passed through, re-clamped)
- Mappings with snake_case or camelCase keys
- Pattern-result records (mapping or object) carrying found / confidence /
  buyScore / sellScore
- Arbitrary objects exposing the same attribute names

Records that cannot be attributed to a source are skipped with a warning;
normalisation never raises on detector output.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from config.settings import SourceCategories
from decision.models import Direction, Signal, TimeframeClass

logger = logging.getLogger(__name__)


DIRECTION_ALIASES: Dict[str, Direction] = {
    'up': Direction.UP,
    'buy': Direction.UP,
    'bullish': Direction.UP,
    'long': Direction.UP,
    'call': Direction.UP,
    'down': Direction.DOWN,
    'sell': Direction.DOWN,
    'bearish': Direction.DOWN,
    'short': Direction.DOWN,
    'put': Direction.DOWN,
    'neutral': Direction.NEUTRAL,
    'wait': Direction.NEUTRAL,
    'sideways': Direction.NEUTRAL,
    'none': Direction.NEUTRAL,
}

# field -> accepted key spellings, first match wins
_FIELD_KEYS = {
    'source': ('source', 'name', 'detector', 'type'),
    'direction': ('direction', 'signal', 'bias'),
    'strength': ('strength',),
    'confidence': ('confidence',),
    'timeframe_class': ('timeframe_class', 'timeframeClass', 'horizon'),
    'found': ('found',),
    'buy_score': ('buy_score', 'buyScore'),
    'sell_score': ('sell_score', 'sellScore'),
    'scale': ('scale',),
    'metadata': ('metadata', 'details'),
}

_MISSING = object()


class SignalNormalizer:
    """
    Normalises raw detector output into Signal records.

    Stateless apart from configuration; safe to share between sessions.
    """

    def __init__(self, sources: Optional[SourceCategories] = None, name: str = "SignalNormalizer"):
        self.sources = sources or SourceCategories()
        self.name = name
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    def normalize(self, raw_signals: Optional[Iterable[Any]]) -> List[Signal]:
        """
        Normalise a batch of detector outputs.

        Args:
            raw_signals: Iterable of Signal / mapping / pattern-result objects

        Returns:
            List of Signal records (records without a source or with
            found == False are dropped)
        """
        if raw_signals is None:
            return []

        signals: List[Signal] = []
        for index, raw in enumerate(raw_signals):
            signal = self.normalize_one(raw)
            if signal is None:
                self.logger.debug(f"Dropped detector output #{index}: {raw!r}")
                continue
            signals.append(signal)

        self.logger.debug(f"Normalised {len(signals)} signal(s)")
        return signals

    def normalize_one(self, raw: Any) -> Optional[Signal]:
        """Normalise a single detector output, or return None to drop it."""
        if raw is None:
            return None

        if isinstance(raw, Signal):
            # Re-run the clamping invariants on a fresh instance
            return Signal(
                source=raw.source,
                direction=raw.direction,
                strength=raw.strength,
                confidence=raw.confidence,
                timeframe_class=raw.timeframe_class,
                metadata=dict(raw.metadata),
            )

        source = self._field(raw, 'source')
        if source is _MISSING or source is None or not str(source).strip():
            self.logger.warning(f"⚠️ Skipping detector output without a source: {raw!r}")
            return None
        source = str(source).strip().lower()

        found = self._field(raw, 'found')
        if found is not _MISSING and not found:
            return None

        confidence = self._number(self._field(raw, 'confidence'))
        strength = self._number(self._field(raw, 'strength'))
        buy_score = self._number(self._field(raw, 'buy_score'))
        sell_score = self._number(self._field(raw, 'sell_score'))

        direction_value = self._field(raw, 'direction')
        if direction_value is not _MISSING and direction_value is not None:
            direction = self.parse_direction(direction_value, source)
        elif buy_score is not None or sell_score is not None:
            direction, winning = self._direction_from_scores(buy_score or 0.0, sell_score or 0.0)
            if strength is None:
                strength = winning
        else:
            direction = Direction.NEUTRAL

        if strength is None:
            strength = confidence
        if confidence is None:
            confidence = strength

        scale = self._field(raw, 'scale')
        if scale == "unit" and (strength or 0.0) <= 1.0 and (confidence or 0.0) <= 1.0:
            strength = (strength or 0.0) * 100.0
            confidence = (confidence or 0.0) * 100.0

        metadata = self._field(raw, 'metadata')
        if not isinstance(metadata, Mapping):
            metadata = {}

        return Signal(
            source=source,
            direction=direction,
            strength=strength if strength is not None else 0.0,
            confidence=confidence if confidence is not None else 0.0,
            timeframe_class=self._timeframe_class(self._field(raw, 'timeframe_class'), source),
            metadata=dict(metadata),
        )

    def parse_direction(self, value: Any, source: str = "") -> Direction:
        """Map a direction label (or Direction) onto Direction; unknown labels are neutral."""
        if isinstance(value, Direction):
            return value
        direction = DIRECTION_ALIASES.get(str(value).strip().lower())
        if direction is None:
            self.logger.warning(f"⚠️ Unknown direction {value!r} from {source or 'detector'}, treating as neutral")
            return Direction.NEUTRAL
        return direction

    def default_horizon(self, source: str) -> TimeframeClass:
        """Horizon assumed for a source that does not report one."""
        return TimeframeClass(self.sources.default_horizons.get(source, TimeframeClass.MEDIUM.value))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _timeframe_class(self, value: Any, source: str) -> TimeframeClass:
        if value is _MISSING or value is None:
            return self.default_horizon(source)
        try:
            return TimeframeClass(str(getattr(value, 'value', value)).strip().lower())
        except ValueError:
            self.logger.warning(f"⚠️ Unknown timeframe class {value!r} from {source}, using default horizon")
            return self.default_horizon(source)

    @staticmethod
    def _direction_from_scores(buy_score: float, sell_score: float):
        if buy_score > sell_score:
            return Direction.UP, buy_score
        if sell_score > buy_score:
            return Direction.DOWN, sell_score
        return Direction.NEUTRAL, buy_score

    @staticmethod
    def _field(raw: Any, field_name: str) -> Any:
        for key in _FIELD_KEYS[field_name]:
            if isinstance(raw, Mapping):
                if key in raw:
                    return raw[key]
            else:
                value = getattr(raw, key, _MISSING)
                if value is not _MISSING:
                    return value
        return _MISSING

    @staticmethod
    def _number(value: Any) -> Optional[float]:
        if value is _MISSING or value is None or isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
