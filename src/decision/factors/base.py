"""
Base class for confluence factor checks.

Factor checks don't decide direction - they inspect the signal set against a
provisional direction and report a confirming factor (confluence), a
contradicting factor (contraindication), or nothing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence
import logging

from config.settings import SourceCategories
from decision.models import Direction, MarketContext, Signal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FactorResult:
    """
    Outcome of one factor check.

    Attributes:
        confluence: Confirming factor label, if any
        contraindication: Contradicting factor label, if any
    """
    confluence: Optional[str] = None
    contraindication: Optional[str] = None

    @classmethod
    def confirms(cls, label: str) -> "FactorResult":
        return cls(confluence=label)

    @classmethod
    def contradicts(cls, label: str) -> "FactorResult":
        return cls(contraindication=label)

    @classmethod
    def none(cls) -> "FactorResult":
        return cls()


class FactorCheck(ABC):
    """
    Base class for confluence factor checks.

    Design Pattern: independent checks
    - Each check sees the same (signals, context, direction)
    - Returns at most one confluence and one contraindication
    - A check that raises is logged and skipped by the caller
    """

    def __init__(self, sources: SourceCategories = None, name: str = None):
        self.sources = sources or SourceCategories()
        self.name = name or self.__class__.__name__
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    @abstractmethod
    def check(
        self,
        signals: Sequence[Signal],
        context: MarketContext,
        direction: Direction,
        optimal_entry: bool = False,
    ) -> FactorResult:
        """
        Inspect signals against a provisional direction.

        Args:
            signals: Normalised signals
            context: Market context
            direction: Provisional direction (UP or DOWN)
            optimal_entry: Upstream timing flag

        Returns:
            FactorResult
        """
        pass

    def log_result(self, result: FactorResult, reason: str = "") -> None:
        """Log factor outcome."""
        if result.confluence:
            self.logger.debug(f"{self.name}: + {result.confluence} {reason}")
        if result.contraindication:
            self.logger.debug(f"{self.name}: - {result.contraindication} {reason}")

    @staticmethod
    def of(signals: Sequence[Signal], names: Sequence[str]) -> list:
        """Signals whose source is one of names."""
        return [s for s in signals if s.source in names]

    @staticmethod
    def net_alignment(signals: Sequence[Signal], direction: Direction) -> int:
        """Aligned minus opposed directional signal count."""
        aligned = sum(1 for s in signals if s.direction is direction)
        opposed = sum(1 for s in signals if s.direction is direction.opposite)
        return aligned - opposed
