"""
Volatility Estimator component for the signal generation engine.

Volatility is the population standard deviation of the newest prices,
expressed as a percentage of their mean.
"""

import math
from typing import Dict, Optional

from ..core import ComputationError, PriceHistory, round_percent


class VolatilityEstimator:
    """Estimates recent price dispersion."""

    def __init__(self, config: Optional[Dict] = None):
        config = config or {}
        self.config = config
        self.window = config.get("window", 12)

    def estimate(self, history: PriceHistory) -> float:
        """
        Estimate volatility over the newest ``window`` observations.

        Args:
            history: Price observations, newest first

        Returns:
            float: Standard deviation as a percentage of the mean, 2 decimals.
                0.0 when fewer than 2 observations exist.

        Raises:
            ComputationError: If the mean price of the window is zero
        """
        prices = [observation.price_usd for observation in history[:min(self.window, len(history))]]
        if len(prices) < 2:
            return 0.0

        total = 0.0
        for price in prices:
            total += price
        mean = total / len(prices)
        if mean == 0:
            raise ComputationError("Cannot compute volatility: mean price is zero")

        squared = 0.0
        for price in prices:
            squared += (price - mean) ** 2
        std_dev = math.sqrt(squared / len(prices))

        return round_percent(std_dev / mean * 100)


def calculate_volatility(history: PriceHistory, window: int = 12) -> float:
    """Convenience wrapper around VolatilityEstimator.estimate()."""
    return VolatilityEstimator({"window": window}).estimate(history)
