"""
Price Change Calculator component for the signal generation engine.

Derives percentage price deltas over the 1h, 6h and 24h lookback windows
from a newest-first price history.

Two lookup strategies are supported:

- ``index`` (default): a window is a fixed offset into the history, derived
  from the sampling cadence (1h = 2 entries at 30 minute sampling). This is
  the behaviour the published signal history was computed with.
- ``timestamp``: a window is resolved against ``observed_at``; the
  observation nearest to ``newest.observed_at - window`` is used.

In both modes a history that does not reach back far enough falls back to
its oldest observation.
"""

from datetime import timedelta
from typing import Dict, Optional

from ..core import (
    ComputationError,
    PriceChangeSet,
    PriceHistory,
    PriceObservation,
    WindowMode,
    round_percent,
)

DEFAULT_LOOKBACK_WINDOWS = {"1h": 60, "6h": 360, "24h": 1440}


class PriceChangeCalculator:
    """
    Calculates percentage price changes over fixed lookback windows.
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize the price change calculator.

        Args:
            config: Configuration dictionary with window parameters
        """
        config = config or {}
        self.config = config

        self.window_mode = WindowMode(config.get("window_mode", WindowMode.INDEX.value))
        self.sampling_interval_minutes = config.get("sampling_interval_minutes", 30)
        self.lookback_windows = dict(config.get("lookback_windows_minutes", DEFAULT_LOOKBACK_WINDOWS))
        self.min_points = config.get("min_points", 3)

        if self.sampling_interval_minutes <= 0:
            raise ValueError("sampling_interval_minutes must be positive")
        missing = set(DEFAULT_LOOKBACK_WINDOWS) - set(self.lookback_windows)
        if missing:
            raise ValueError(f"Missing lookback windows: {sorted(missing)}")

    def lookback_offsets(self) -> Dict[str, int]:
        """
        Index offsets used for each window in index mode.

        Returns:
            Dict[str, int]: Window name to history index (1h -> 2 at 30 minute sampling)
        """
        return {
            name: minutes // self.sampling_interval_minutes
            for name, minutes in self.lookback_windows.items()
        }

    def calculate(self, history: PriceHistory) -> PriceChangeSet:
        """
        Calculate price changes for a newest-first history.

        Args:
            history: Price observations, newest first

        Returns:
            PriceChangeSet: Rounded deltas and whether enough data exists

        Raises:
            ComputationError: If a reference price is zero
        """
        if not history:
            return PriceChangeSet()

        current = history[0].price_usd
        changes = {}
        for name, minutes in self.lookback_windows.items():
            reference = self._reference_observation(history, name, minutes)
            changes[name] = self._percent_change(current, reference, name)

        return PriceChangeSet(
            change_1h=changes["1h"],
            change_6h=changes["6h"],
            change_24h=changes["24h"],
            has_enough_data=len(history) >= self.min_points,
        )

    def _reference_observation(self, history: PriceHistory, name: str, minutes: int) -> PriceObservation:
        if self.window_mode is WindowMode.TIMESTAMP:
            return self._nearest_by_time(history, minutes)

        offset = self.lookback_offsets()[name]
        if len(history) <= offset:
            return history[-1]
        return history[offset]

    @staticmethod
    def _nearest_by_time(history: PriceHistory, minutes: int) -> PriceObservation:
        target = history[0].observed_at - timedelta(minutes=minutes)
        oldest = history[-1]
        if oldest.observed_at > target:
            return oldest

        best = history[0]
        best_distance = abs(best.observed_at - target)
        for observation in history[1:]:
            distance = abs(observation.observed_at - target)
            # ties resolve to the older observation
            if distance <= best_distance:
                best, best_distance = observation, distance
        return best

    @staticmethod
    def _percent_change(current: float, reference: PriceObservation, window: str) -> float:
        past = reference.price_usd
        if past == 0:
            raise ComputationError(
                f"Cannot compute {window} change for {reference.token}: reference price is zero"
            )
        return round_percent((current - past) / past * 100)


def calculate_price_changes(history: PriceHistory, config: Optional[Dict] = None) -> PriceChangeSet:
    """Convenience wrapper around PriceChangeCalculator.calculate()."""
    return PriceChangeCalculator(config).calculate(history)
