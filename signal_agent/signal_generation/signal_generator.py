"""
Main Signal Generator class for the signal generation engine.

This class wires the components together so callers can go from a price
history to a decision in one call, without the engine ever touching the
network, the filesystem or a clock.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from .components import (
    PriceChangeCalculator,
    SignalReconciler,
    SignalScorer,
    TrendDetector,
    VolatilityEstimator,
)
from .core import AIOpinion, PriceChangeSet, PriceHistory, SignalDecision


@dataclass(frozen=True)
class SignalAnalysis:
    """Result of analysing one price history."""
    token: Optional[str]
    changes: PriceChangeSet
    decision: SignalDecision


class LocalSignalGenerator:
    """
    Orchestrates the engine components.

    The generator holds configuration only; every method is a pure function
    of its arguments, so one instance can be shared across tokens.
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize the local signal generator.

        Args:
            config: Configuration dictionary, shaped like
                ``SignalGenerationConfig.to_dict()``
        """
        config = config or {}
        self.config = config

        self.price_change_calculator = PriceChangeCalculator(config.get("price_changes", {}))
        self.trend_detector = TrendDetector(config.get("trend_detector", {}))
        self.volatility_estimator = VolatilityEstimator(config.get("volatility", {}))
        self.signal_scorer = SignalScorer(
            config.get("scorer", {}),
            trend_detector=self.trend_detector,
            volatility_estimator=self.volatility_estimator,
        )
        self.signal_reconciler = SignalReconciler(config.get("reconciler", {}))

    def calculate_price_changes(self, history: PriceHistory) -> PriceChangeSet:
        return self.price_change_calculator.calculate(history)

    def generate_signal(self, history: PriceHistory, changes: Optional[PriceChangeSet] = None) -> SignalDecision:
        """
        Generate the mechanical decision for a history.

        Args:
            history: Price observations, newest first
            changes: Precomputed changes for ``history``; computed when omitted

        Returns:
            SignalDecision: The mechanical recommendation

        Raises:
            ComputationError: If the history contains a zero reference price
        """
        if changes is None:
            changes = self.price_change_calculator.calculate(history)
        return self.signal_scorer.generate(history, changes)

    def analyze(self, history: PriceHistory) -> SignalAnalysis:
        """
        Compute price changes and the mechanical decision in one pass.

        Args:
            history: Price observations, newest first

        Returns:
            SignalAnalysis: The changes and decision for the history
        """
        changes = self.price_change_calculator.calculate(history)
        decision = self.signal_scorer.generate(history, changes)
        token = history[0].token if history else None
        return SignalAnalysis(token=token, changes=changes, decision=decision)

    def reconcile(self, decision: SignalDecision, opinion: AIOpinion) -> SignalDecision:
        return self.signal_reconciler.reconcile(decision, opinion)

    @staticmethod
    def extract_price_history(history: PriceHistory, count: int = 10) -> List[float]:
        """
        Return the newest ``count`` prices ordered oldest to newest.

        Args:
            history: Price observations, newest first
            count: Number of prices to return

        Returns:
            List[float]: Prices, oldest first
        """
        newest = history[:max(0, min(count, len(history)))]
        return [observation.price_usd for observation in reversed(newest)]
