"""
Decision engine error taxonomy.

Only structurally invalid input or misconfiguration is an error condition.
Degraded per-call conditions (too few signals, high manipulation score, low
grade) are modelled as WAIT decisions with reasoning, not exceptions.
"""


class DecisionEngineError(Exception):
    """Base class for all decision engine errors."""
    pass


class InsufficientDataError(DecisionEngineError):
    """
    Raised internally when the signal set cannot support a decision.

    Always recovered inside the orchestrator (falls back to WAIT); never
    surfaced to callers of evaluate().
    """
    pass


class InvalidContextError(DecisionEngineError, ValueError):
    """Raised when a MarketContext is malformed (caller bug, fails fast)."""
    pass


class ConfigurationError(DecisionEngineError):
    """Raised at construction/load time when engine configuration is invalid."""
    pass
