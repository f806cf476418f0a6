"""
Decision sessions.

A DecisionSession owns one trading session's BiasState and is its single
writer: evaluations are serialised with a lock so the state advances by
exactly one increment per decision. Independent sessions live in a
SessionRegistry and never share state.
"""

import threading
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import logging

from decision.engine import DecisionOrchestrator
from decision.models import BiasState, Decision, ManipulationAssessment, MarketContext

logger = logging.getLogger(__name__)


DecisionCallback = Callable[[Decision, ManipulationAssessment], None]


class DecisionSession:
    """
    One trading session.

    Usage:
        session = DecisionSession(orchestrator)
        decision, assessment = session.evaluate(signals, context)
    """

    def __init__(
        self,
        orchestrator: Optional[DecisionOrchestrator] = None,
        session_id: Optional[str] = None,
        bias_state: Optional[BiasState] = None,
    ):
        self.orchestrator = orchestrator or DecisionOrchestrator()
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self._bias_state = bias_state.copy() if bias_state is not None else BiasState()
        self._lock = threading.Lock()
        self._callbacks: List[DecisionCallback] = []
        self.decision_count = 0
        self.last_decision: Optional[Decision] = None
        self.logger = logging.getLogger(f"{__name__}.{self.session_id}")

    @property
    def bias_state(self) -> BiasState:
        """Snapshot of the session's bias state."""
        with self._lock:
            return self._bias_state.copy()

    def evaluate(
        self,
        signals: Optional[Iterable[Any]],
        context: MarketContext,
        **kwargs,
    ) -> Tuple[Decision, ManipulationAssessment]:
        """
        Evaluate signals and advance the session's bias state.

        Keyword arguments are passed through to DecisionOrchestrator.evaluate.
        """
        with self._lock:
            decision, assessment, new_state = self.orchestrator.evaluate(
                signals, context, self._bias_state, **kwargs
            )
            self._bias_state = new_state
            self.decision_count += 1
            self.last_decision = decision

        self.logger.debug(
            f"Session {self.session_id} decision #{self.decision_count}: {decision.action.value}",
            extra={'session_id': self.session_id},
        )
        self._emit(decision, assessment)
        return decision, assessment

    def restart(self, market_type: Optional[str] = None) -> None:
        """Start over with empty counters (e.g. new trading session or market)."""
        with self._lock:
            self._bias_state.reset(market_type)
            self.decision_count = 0
            self.last_decision = None
        self.logger.info(f"🔄 Session {self.session_id} restarted")

    def on_decision(self, callback: DecisionCallback) -> None:
        """
        Register callback for finalized decisions.

        Args:
            callback: Function called as callback(decision, assessment)
        """
        self._callbacks.append(callback)
        self.logger.info(f"Registered decision callback: {getattr(callback, '__name__', repr(callback))}")

    def _emit(self, decision: Decision, assessment: ManipulationAssessment) -> None:
        for callback in self._callbacks:
            try:
                callback(decision, assessment)
            except Exception as e:
                self.logger.error(
                    f"Error in decision callback {getattr(callback, '__name__', repr(callback))}: {e}"
                )

    def get_stats(self) -> dict:
        state = self.bias_state
        return {
            'session_id': self.session_id,
            'decision_count': self.decision_count,
            'streak': state.streak,
            'streak_direction': state.streak_direction.value if state.streak_direction else None,
            'market_type': state.market_type,
            'callbacks_registered': len(self._callbacks),
        }


class SessionRegistry:
    """Independent sessions keyed by id, sharing one orchestrator."""

    def __init__(self, orchestrator: Optional[DecisionOrchestrator] = None):
        self.orchestrator = orchestrator or DecisionOrchestrator()
        self._sessions: Dict[str, DecisionSession] = {}
        self._lock = threading.Lock()

    def get_or_create(self, session_id: str) -> DecisionSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = DecisionSession(self.orchestrator, session_id=session_id)
                self._sessions[session_id] = session
                logger.info(f"Created decision session {session_id}")
            return session

    def remove(self, session_id: str) -> Optional[DecisionSession]:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
