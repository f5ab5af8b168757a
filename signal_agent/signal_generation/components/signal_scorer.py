"""
Signal Scorer component for the signal generation engine.

Combines the price change, trend and volatility components into a single
integer score, maps the score to a signal and a base confidence, and builds
the human readable rationale that accompanies every decision.

Scoring contributions (positive is bullish):

    1h change     +3 (> 0.5%)  +1 (> 0.1%)  -3 (< -0.5%)  -1 (< -0.1%)
    6h change     +2 (> 2%)    +1 (> 0.5%)  -2 (< -2%)    -1 (< -0.5%)
    24h change    +1 (> 5%)    -1 (< -5%)
    short trend   +2 up        -2 down
    alignment     +1 both up   -1 both down   x0.8 on divergence
    volatility    x0.7 (> 2%)  x0.85 (> 1%)

Multiplicative adjustments are applied in that order and each one is rounded
to an integer before the next step; changing the order changes the output.
"""

from typing import Dict, List, Optional, Tuple

from ..core import (
    PriceChangeSet,
    PriceHistory,
    SignalDecision,
    SignalType,
    Trend,
    clamp_confidence,
    format_number,
    round_half_up,
)
from .trend_detector import TrendDetector
from .volatility_estimator import VolatilityEstimator

INSUFFICIENT_HISTORY_RATIONALE = (
    "Insufficient price history to generate a reliable signal. "
    "At least 1.5 hours of data needed."
)


class SignalScorer:
    """
    Scores a price history and maps the score to a SignalDecision.
    """

    def __init__(
        self,
        config: Optional[Dict] = None,
        trend_detector: Optional[TrendDetector] = None,
        volatility_estimator: Optional[VolatilityEstimator] = None,
    ):
        """
        Initialize the signal scorer.

        Args:
            config: Configuration dictionary with penalty parameters
            trend_detector: Trend detector to use (a default one is built if omitted)
            volatility_estimator: Volatility estimator to use (a default one is built if omitted)
        """
        config = config or {}
        self.config = config
        self.trend_detector = trend_detector or TrendDetector()
        self.volatility_estimator = volatility_estimator or VolatilityEstimator()

        self.insufficient_data_confidence = config.get("insufficient_data_confidence", 30)
        self.divergence_penalty = config.get("divergence_penalty", 0.8)
        self.high_volatility_threshold = config.get("high_volatility_threshold", 2.0)
        self.high_volatility_penalty = config.get("high_volatility_penalty", 0.7)
        self.moderate_volatility_threshold = config.get("moderate_volatility_threshold", 1.0)
        self.moderate_volatility_penalty = config.get("moderate_volatility_penalty", 0.85)

    def generate(self, history: PriceHistory, changes: PriceChangeSet) -> SignalDecision:
        """
        Generate a trading signal from a history and its price changes.

        Args:
            history: Price observations, newest first
            changes: Price changes computed from the same history

        Returns:
            SignalDecision: The mechanical recommendation
        """
        if not changes.has_enough_data or len(history) < 2:
            return SignalDecision(
                signal_type=SignalType.HOLD,
                confidence=self.insufficient_data_confidence,
                rationale=INSUFFICIENT_HISTORY_RATIONALE,
                price=history[0].price_usd if history else None,
            )

        short_trend = self.trend_detector.detect_short(history)
        long_trend = self.trend_detector.detect_long(history)
        volatility = self.volatility_estimator.estimate(history)
        current = history[0].price_usd

        factors: List[str] = []
        score = 0
        score += self._score_1h(changes.change_1h, factors)
        score += self._score_6h(changes.change_6h, factors)
        score += self._score_24h(changes.change_24h, factors)
        score += self._score_short_trend(short_trend, factors)
        score = self._apply_alignment(score, short_trend, long_trend, factors)
        score = self._apply_volatility(score, volatility, factors)

        signal_type, base_confidence = self.map_score(score)
        confidence = clamp_confidence(base_confidence)

        rationale = "\n".join([
            f"Current price: ${current:.2f}",
            f"Score: {score} (positive=bullish, negative=bearish)",
            f"Short-term trend: {short_trend.value}, Long-term trend: {long_trend.value}",
            f"Volatility: {format_number(volatility)}%",
            "Key factors:",
            *(f"  - {factor}" for factor in factors),
        ])

        return SignalDecision(
            signal_type=signal_type,
            confidence=confidence,
            rationale=rationale,
            factors=tuple(factors),
            score=score,
            short_trend=short_trend,
            long_trend=long_trend,
            volatility=volatility,
            price=current,
        )

    @staticmethod
    def map_score(score: int) -> Tuple[SignalType, float]:
        """
        Map a final score to a signal and base confidence.

        Args:
            score: Final integer score

        Returns:
            Tuple[SignalType, float]: (signal type, base confidence before clamping)
        """
        magnitude = abs(score)
        if score >= 5:
            return SignalType.BUY, min(90, 60 + score * 4)
        if score >= 2:
            return SignalType.BUY, min(75, 50 + score * 5)
        if score <= -5:
            return SignalType.SELL, min(90, 60 + magnitude * 4)
        if score <= -2:
            return SignalType.SELL, min(75, 50 + magnitude * 5)
        return SignalType.HOLD, max(40, 60 - magnitude * 5)

    @staticmethod
    def _score_1h(change: float, factors: List[str]) -> int:
        if change > 0.5:
            factors.append(f"strong 1h upward momentum (+{format_number(change)}%)")
            return 3
        if change > 0.1:
            factors.append(f"mild 1h upward movement (+{format_number(change)}%)")
            return 1
        if change < -0.5:
            factors.append(f"strong 1h downward pressure ({format_number(change)}%)")
            return -3
        if change < -0.1:
            factors.append(f"mild 1h decline ({format_number(change)}%)")
            return -1
        factors.append(f"flat 1h movement ({format_number(change)}%)")
        return 0

    @staticmethod
    def _score_6h(change: float, factors: List[str]) -> int:
        if change > 2:
            factors.append(f"positive 6h trend (+{format_number(change)}%)")
            return 2
        if change > 0.5:
            factors.append(f"slight 6h uptrend (+{format_number(change)}%)")
            return 1
        if change < -2:
            factors.append(f"negative 6h trend ({format_number(change)}%)")
            return -2
        if change < -0.5:
            factors.append(f"slight 6h downtrend ({format_number(change)}%)")
            return -1
        return 0

    @staticmethod
    def _score_24h(change: float, factors: List[str]) -> int:
        if change > 5:
            factors.append(f"bullish 24h context (+{format_number(change)}%)")
            return 1
        if change < -5:
            factors.append(f"bearish 24h context ({format_number(change)}%)")
            return -1
        return 0

    @staticmethod
    def _score_short_trend(trend: Trend, factors: List[str]) -> int:
        if trend is Trend.UP:
            factors.append("consistent upward price action in recent candles")
            return 2
        if trend is Trend.DOWN:
            factors.append("consistent downward price action in recent candles")
            return -2
        factors.append("sideways price action, no clear direction")
        return 0

    def _apply_alignment(self, score: int, short_trend: Trend, long_trend: Trend, factors: List[str]) -> int:
        if long_trend is Trend.UP and short_trend is Trend.UP:
            factors.append("short and long term trends aligned bullish")
            return score + 1
        if long_trend is Trend.DOWN and short_trend is Trend.DOWN:
            factors.append("short and long term trends aligned bearish")
            return score - 1
        if long_trend is not short_trend and short_trend is not Trend.SIDEWAYS:
            factors.append("short and long term trends diverging, reduced confidence")
            return round_half_up(score * self.divergence_penalty)
        return score

    def _apply_volatility(self, score: int, volatility: float, factors: List[str]) -> int:
        if volatility > self.high_volatility_threshold:
            factors.append(f"high volatility ({format_number(volatility)}%) reducing confidence")
            return round_half_up(score * self.high_volatility_penalty)
        if volatility > self.moderate_volatility_threshold:
            factors.append(f"moderate volatility ({format_number(volatility)}%)")
            return round_half_up(score * self.moderate_volatility_penalty)
        return score


def generate_signal(history: PriceHistory, changes: PriceChangeSet) -> SignalDecision:
    """Convenience wrapper around SignalScorer.generate()."""
    return SignalScorer().generate(history, changes)
