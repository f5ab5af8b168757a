"""
Components for the signal generation engine.

This module contains the individual components that work together to turn a
price history into a trading signal.
"""

from .price_change_calculator import PriceChangeCalculator, calculate_price_changes
from .trend_detector import TrendDetector, detect_trend
from .volatility_estimator import VolatilityEstimator, calculate_volatility
from .signal_scorer import SignalScorer, generate_signal
from .signal_reconciler import SignalReconciler, reconcile_signal

__all__ = [
    "PriceChangeCalculator",
    "TrendDetector",
    "VolatilityEstimator",
    "SignalScorer",
    "SignalReconciler",
    "calculate_price_changes",
    "detect_trend",
    "calculate_volatility",
    "generate_signal",
    "reconcile_signal",
]
