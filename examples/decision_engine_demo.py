"""
Decision Engine Demo

Demonstrates how to:
1. Create and configure the decision orchestrator
2. Feed it heterogeneous detector output
3. Watch streak bias correction across a session
4. Handle manipulation aborts and session callbacks
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from decision import (
    BiasState,
    Decision,
    DecisionOrchestrator,
    DecisionSession,
    ManipulationAssessment,
    MarketContext,
    create_decision_orchestrator,
)
from utils.logger import setup_logging


TRENDING_SIGNALS = [
    {'source': 'trendline', 'direction': 'up', 'strength': 85, 'confidence': 90},
    {'source': 'support_resistance', 'direction': 'bullish', 'strength': 80, 'confidence': 88},
    {'source': 'momentum', 'signal': 'BUY', 'strength': 75, 'confidence': 82},
    {'source': 'volume', 'direction': 'up', 'strength': 70, 'confidence': 80},
    # pattern-result record, direction derived from the scores
    {'type': 'candle_pattern', 'found': True, 'buyScore': 78, 'sellScore': 12, 'confidence': 84},
    # unit-scaled detector
    {'detector': 'rsi', 'direction': 'call', 'strength': 0.7, 'confidence': 0.8, 'scale': 'unit'},
]

CONFLICTED_SIGNALS = [
    {'source': 'bull_trap', 'direction': 'down', 'strength': 95, 'confidence': 85},
    {'source': 'momentum', 'direction': 'up', 'strength': 90, 'confidence': 80},
    {'source': 'rsi', 'direction': 'up', 'strength': 90, 'confidence': 80},
    {'source': 'macd', 'direction': 'down', 'strength': 90, 'confidence': 80},
    {'source': 'stochastic', 'direction': 'down', 'strength': 90, 'confidence': 80},
]


def print_decision(decision: Decision, assessment: ManipulationAssessment):
    print(f"\n  Action: {decision.action.value}  (confidence {decision.confidence:.0f}, grade {decision.grade.value})")
    print(f"  Confluences: {decision.confluence_count}  Risk: {decision.risk_level.value}")
    print(f"  Timing: enter_now={decision.timing.enter_now}, "
          f"wait {decision.timing.wait_seconds:.0f}s, valid {decision.timing.validity_seconds:.0f}s")
    print(f"  Expected success rate: {decision.expected_success_rate:.0f}%")
    print(f"  Manipulation: score {assessment.score:.0f} [{assessment.risk_tier.value}] "
          f"-> {assessment.recommendation.value}")
    for factor in assessment.suspicious_factors:
        print(f"    ! {factor}")
    if decision.contraindications:
        print(f"  Contraindications: {', '.join(decision.contraindications)}")
    print(f"  Reasoning:")
    for line in decision.reasoning:
        print(f"    • {line}")


def demo_default_orchestrator():
    """Demo 1: Orchestrator with configuration from config/decision.yaml."""
    print("\n" + "="*80)
    print("DEMO 1: Orchestrator Configuration")
    print("="*80)

    orchestrator = create_decision_orchestrator()

    stats = orchestrator.get_stats()
    print(f"\nOrchestrator: {stats['name']}")
    print(f"  Min signals: {stats['min_signal_count']}")
    print(f"  Ideal confluences: {stats['ideal_confluence_count']}")
    print(f"  OTC loading: {stats['otc_loading']}")
    print(f"  Timing table: {', '.join(stats['timing_table'])}")
    print(f"\n  Factor checks ({len(stats['factor_checks'])}):")
    for name in stats['factor_checks']:
        print(f"    • {name}")


def demo_trending_market():
    """Demo 2: Aligned detectors in a trending market."""
    print("\n" + "="*80)
    print("DEMO 2: Trending Market")
    print("="*80)

    orchestrator = DecisionOrchestrator()
    context = MarketContext(timeframe="1m", volatility=35, trend_strength=85, volume_profile="high")

    decision, assessment, state = orchestrator.evaluate(
        TRENDING_SIGNALS, context, BiasState(), optimal_entry=True
    )
    print_decision(decision, assessment)
    print(f"\n  Bias state after: {state.to_dict()['consecutive_by_direction']}")


def demo_streak_correction():
    """Demo 3: The same setup repeated in one session."""
    print("\n" + "="*80)
    print("DEMO 3: Streak Bias Correction")
    print("="*80)

    session = DecisionSession(DecisionOrchestrator(), session_id="demo")
    context = MarketContext(timeframe="1m", volatility=35, trend_strength=85, volume_profile="high")

    for _ in range(6):
        decision, _ = session.evaluate(TRENDING_SIGNALS, context, optimal_entry=True)
        print(f"  #{session.decision_count}: {decision.action.value:<4} "
              f"confidence {decision.confidence:5.1f}  "
              f"buy x{decision.bias_adjustment:.2f}  "
              f"(buy {decision.buy_score:.2f} / sell {decision.sell_score:.2f})")


def demo_manipulation_abort():
    """Demo 4: Conflicted signals on a fast OTC chart."""
    print("\n" + "="*80)
    print("DEMO 4: Manipulation Screening")
    print("="*80)

    orchestrator = DecisionOrchestrator()
    context = MarketContext(timeframe="30s", market_type="otc", volatility=60, trend_strength=40)

    decision, assessment, _ = orchestrator.evaluate(CONFLICTED_SIGNALS, context, BiasState())
    print_decision(decision, assessment)


def demo_session_callbacks():
    """Demo 5: Reacting to decisions."""
    print("\n" + "="*80)
    print("DEMO 5: Session Callbacks")
    print("="*80)

    session = DecisionSession(session_id="alerts")

    def on_decision(decision: Decision, assessment: ManipulationAssessment):
        """
        Called for every finalized decision.

        In production this would notify the execution layer or push an
        alert; here it just prints the payload keys.
        """
        payload = decision.to_dict()
        print(f"\n🎯 DECISION RECEIVED: {payload['action']} ({payload['grade']})")
        print(f"  Payload keys: {list(payload.keys())}")

    session.on_decision(on_decision)
    session.evaluate(TRENDING_SIGNALS, MarketContext(timeframe="5m", trend_strength=80))
    print(f"\n  Session stats: {session.get_stats()}")


def main():
    """Run all demos."""
    setup_logging("WARNING", json_format=False)

    print("\n" + "="*80)
    print("DECISION ENGINE DEMO")
    print("="*80)

    demo_default_orchestrator()
    demo_trending_market()
    demo_streak_correction()
    demo_manipulation_abort()
    demo_session_callbacks()

    print("\n" + "="*80)
    print("DEMO COMPLETE")
    print("="*80)
    print("\nNext Steps:")
    print("  1. Run tests: pytest")
    print("  2. Tune config/decision.yaml")
    print("  3. Wire detector output into DecisionSession.evaluate")
    print("\n" + "="*80 + "\n")


if __name__ == '__main__':
    main()
