"""
Trend Detector component for the signal generation engine.

Classifies recent price action as up, down or sideways by counting
consecutive up-moves and down-moves over a window of the newest prices.
"""

from typing import Dict, Optional

from ..core import PriceHistory, Trend


class TrendDetector:
    """
    Classifies directional consistency over a configurable window.
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize the trend detector.

        Args:
            config: Configuration dictionary with window sizes and threshold
        """
        config = config or {}
        self.config = config
        self.short_window = config.get("short_window", 6)
        self.long_window = config.get("long_window", 24)
        self.direction_threshold = config.get("direction_threshold", 0.6)

    def detect(self, history: PriceHistory, window: Optional[int] = None) -> Trend:
        """
        Detect the trend over the newest ``window`` observations.

        Args:
            history: Price observations, newest first
            window: Number of observations to inspect (defaults to the short window)

        Returns:
            Trend: UP, DOWN or SIDEWAYS
        """
        if window is None:
            window = self.short_window

        newest = history[:max(0, min(window, len(history)))]
        if len(newest) < 2:
            return Trend.SIDEWAYS

        prices = [observation.price_usd for observation in reversed(newest)]

        up_moves = 0
        down_moves = 0
        for previous, current in zip(prices, prices[1:]):
            if current > previous:
                up_moves += 1
            elif current < previous:
                down_moves += 1

        comparisons = len(prices) - 1
        if up_moves / comparisons >= self.direction_threshold:
            return Trend.UP
        if down_moves / comparisons >= self.direction_threshold:
            return Trend.DOWN
        return Trend.SIDEWAYS

    def detect_short(self, history: PriceHistory) -> Trend:
        return self.detect(history, self.short_window)

    def detect_long(self, history: PriceHistory) -> Trend:
        return self.detect(history, self.long_window)


def detect_trend(history: PriceHistory, window: int = 6) -> Trend:
    """Convenience wrapper around TrendDetector.detect()."""
    return TrendDetector().detect(history, window)
