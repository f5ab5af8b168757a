"""
Configuration for the signal generation engine.

This module provides configuration classes for all components of the
signal generation engine. Defaults reproduce the numeric behaviour the
published signal history was produced with, so downstream consumers see the
same values unless a setting is overridden explicitly.
"""

from typing import Any, Dict

from pydantic_settings import BaseSettings, SettingsConfigDict


class PriceChangeConfig(BaseSettings):
    """Configuration for the lookback window price change calculator."""
    model_config = SettingsConfigDict(env_prefix='SIGNAL_CHANGES_')

    # "index" treats each window as a fixed offset into the history,
    # "timestamp" looks up the observation nearest to the window start.
    window_mode: str = "index"
    sampling_interval_minutes: int = 30
    lookback_windows_minutes: Dict[str, int] = {
        "1h": 60,
        "6h": 360,
        "24h": 1440,
    }
    min_points: int = 3


class TrendDetectorConfig(BaseSettings):
    """Configuration for trend classification."""
    model_config = SettingsConfigDict(env_prefix='SIGNAL_TREND_')

    short_window: int = 6
    long_window: int = 24
    direction_threshold: float = 0.6


class VolatilityConfig(BaseSettings):
    """Configuration for the volatility estimator."""
    model_config = SettingsConfigDict(env_prefix='SIGNAL_VOLATILITY_')

    window: int = 12


class SignalScorerConfig(BaseSettings):
    """Configuration for score to signal mapping."""
    model_config = SettingsConfigDict(env_prefix='SIGNAL_SCORER_')

    insufficient_data_confidence: int = 30
    divergence_penalty: float = 0.8
    high_volatility_threshold: float = 2.0
    high_volatility_penalty: float = 0.7
    moderate_volatility_threshold: float = 1.0
    moderate_volatility_penalty: float = 0.85


class SignalReconcilerConfig(BaseSettings):
    """Configuration for merging mechanical signals with AI opinions."""
    model_config = SettingsConfigDict(env_prefix='SIGNAL_RECONCILER_')

    disagreement_factor: float = 0.75
    agreement_cap: int = 95


class SignalGenerationConfig(BaseSettings):
    """Main configuration for the signal generation engine."""
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    price_changes: PriceChangeConfig = PriceChangeConfig()
    trend_detector: TrendDetectorConfig = TrendDetectorConfig()
    volatility: VolatilityConfig = VolatilityConfig()
    scorer: SignalScorerConfig = SignalScorerConfig()
    reconciler: SignalReconcilerConfig = SignalReconcilerConfig()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "price_changes": self.price_changes.model_dump(),
            "trend_detector": self.trend_detector.model_dump(),
            "volatility": self.volatility.model_dump(),
            "scorer": self.scorer.model_dump(),
            "reconciler": self.reconciler.model_dump(),
        }


# Global configuration instance
signal_generation_config = SignalGenerationConfig()
