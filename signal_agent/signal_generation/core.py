"""
Core data structures for the signal generation engine.

Everything in this module is immutable: price histories are handed to the
engine as tuples of frozen observations and every result the engine produces
is a frozen dataclass, so a snapshot can be shared freely between calls.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple


class SignalType(str, Enum):
    """Categorical trading recommendation."""
    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"

    @classmethod
    def parse(cls, value: Any) -> "SignalType":
        """Coerce a string such as ``"buy"`` into a SignalType."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown signal type: {value!r}") from None


class Trend(str, Enum):
    """Directional consistency of recent price action."""
    UP = "up"
    DOWN = "down"
    SIDEWAYS = "sideways"


class WindowMode(str, Enum):
    """How lookback windows are resolved against a price history."""
    INDEX = "index"
    TIMESTAMP = "timestamp"


class ComputationError(ArithmeticError):
    """Raised when a price history cannot produce a defined result."""


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with exact halves rounded toward +inf."""
    return int(math.floor(value + 0.5))


def round_percent(value: float) -> float:
    """Round to 2 decimals, with exact halves rounded away from zero."""
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def clamp_confidence(value: float) -> int:
    """Clamp a confidence value to an integer in [0, 100]."""
    return min(100, max(0, round_half_up(value)))


def format_number(value: float) -> str:
    """Render a 2-decimal number without trailing zeros (``1.50`` -> ``1.5``)."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PriceObservation:
    """
    A single price sample for a token.

    Attributes:
        token: Token symbol, e.g. ``ETH``.
        price_usd: Observed USD price.
        source: Tag of the provider that produced the price.
        observed_at: When the price was sampled.
        change_24h: Provider-reported 24h change in percent, if any.
    """
    token: str
    price_usd: float
    source: str = "unknown"
    observed_at: datetime = field(default_factory=_utcnow)
    change_24h: Optional[float] = None

    def __post_init__(self):
        if isinstance(self.price_usd, bool) or not isinstance(self.price_usd, (int, float)):
            raise ValueError("Price must be a number")
        if not math.isfinite(self.price_usd):
            raise ValueError("Price must be finite")
        if self.price_usd < 0:
            raise ValueError("Price must be non-negative")


@dataclass(frozen=True)
class PriceChangeSet:
    """Percentage price deltas over the 1h, 6h and 24h lookback windows."""
    change_1h: float = 0.0
    change_6h: float = 0.0
    change_24h: float = 0.0
    has_enough_data: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "change1h": self.change_1h,
            "change6h": self.change_6h,
            "change24h": self.change_24h,
            "hasEnoughData": self.has_enough_data,
        }


@dataclass(frozen=True)
class AIOpinion:
    """
    An externally produced opinion about a token.

    Attributes:
        signal_type: The recommended signal.
        confidence: Confidence from 0 to 100.
        report: Free-text narrative accompanying the opinion.
    """
    signal_type: SignalType
    confidence: int
    report: str = ""

    def __post_init__(self):
        object.__setattr__(self, "signal_type", SignalType.parse(self.signal_type))
        if not 0 <= self.confidence <= 100:
            raise ValueError("Confidence must be between 0 and 100")


@dataclass(frozen=True)
class SignalDecision:
    """
    The engine's recommendation for one token and one analysis cycle.

    Attributes:
        signal_type: BUY, HOLD or SELL.
        confidence: Integer confidence from 0 to 100.
        rationale: Multi-line human readable explanation.
        factors: Ordered factor descriptions that contributed to the score.
        score: Final integer score (positive is bullish).
        short_trend: Trend over the short window.
        long_trend: Trend over the long window.
        volatility: Recent volatility in percent of the mean price.
        price: Price at index 0 of the analysed history.
        ai_opinion: The AI opinion the decision was reconciled with, if any.
    """
    signal_type: SignalType
    confidence: int
    rationale: str
    factors: Tuple[str, ...] = ()
    score: int = 0
    short_trend: Trend = Trend.SIDEWAYS
    long_trend: Trend = Trend.SIDEWAYS
    volatility: float = 0.0
    price: Optional[float] = None
    ai_opinion: Optional[AIOpinion] = None

    def __post_init__(self):
        if not isinstance(self.confidence, int) or isinstance(self.confidence, bool):
            raise ValueError("Confidence must be an integer")
        if not 0 <= self.confidence <= 100:
            raise ValueError("Confidence must be between 0 and 100")
        object.__setattr__(self, "factors", tuple(self.factors))

    @property
    def is_reconciled(self) -> bool:
        return self.ai_opinion is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the decision to a JSON-friendly dictionary."""
        data = {
            "signal": self.signal_type.value,
            "confidence": self.confidence,
            "rationale": self.rationale,
            "factors": list(self.factors),
            "score": self.score,
            "shortTrend": self.short_trend.value,
            "longTrend": self.long_trend.value,
            "volatility": self.volatility,
            "price": self.price,
        }
        if self.ai_opinion is not None:
            data["aiOpinion"] = {
                "signal": self.ai_opinion.signal_type.value,
                "confidence": self.ai_opinion.confidence,
                "report": self.ai_opinion.report,
            }
        return data


PriceHistory = Sequence[PriceObservation]
