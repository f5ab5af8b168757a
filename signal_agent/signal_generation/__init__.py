"""
Signal Generation Engine.

This module turns a bounded, newest-first history of token prices into a
BUY / HOLD / SELL recommendation with an integer confidence and a rationale,
and reconciles that recommendation with an externally produced AI opinion.

The engine is:
- Deterministic: identical input always yields identical output
- Stateless: every component works on an immutable snapshot
- Quiet: no I/O, no logging, no retries; hosts own all of that
"""

from .core import (
    AIOpinion,
    ComputationError,
    PriceChangeSet,
    PriceObservation,
    SignalDecision,
    SignalType,
    Trend,
    WindowMode,
)

from .signal_generator import LocalSignalGenerator, SignalAnalysis

from .components import (
    PriceChangeCalculator,
    TrendDetector,
    VolatilityEstimator,
    SignalScorer,
    SignalReconciler,
    calculate_price_changes,
    detect_trend,
    calculate_volatility,
    generate_signal,
    reconcile_signal,
)

__all__ = [
    # Core classes
    "AIOpinion",
    "ComputationError",
    "PriceChangeSet",
    "PriceObservation",
    "SignalDecision",
    "SignalType",
    "Trend",
    "WindowMode",
    # Main signal generator
    "LocalSignalGenerator",
    "SignalAnalysis",
    # Component classes
    "PriceChangeCalculator",
    "TrendDetector",
    "VolatilityEstimator",
    "SignalScorer",
    "SignalReconciler",
    # Functional API
    "calculate_price_changes",
    "detect_trend",
    "calculate_volatility",
    "generate_signal",
    "reconcile_signal",
]

__version__ = "1.0.0"
