"""
Unit tests for core signal generation data structures and numeric helpers.
"""

import dataclasses

import pytest

from signal_agent.signal_generation.core import (
    AIOpinion,
    PriceChangeSet,
    PriceObservation,
    SignalDecision,
    SignalType,
    Trend,
    clamp_confidence,
    format_number,
    round_half_up,
    round_percent,
)


class TestRounding:
    """Test the rounding helpers shared by every component."""

    def test_round_half_up_rounds_halves_toward_positive_infinity(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(-2.5) == -2
        assert round_half_up(8.5) == 9
        assert round_half_up(2.4) == 2
        assert round_half_up(-2.6) == -3

    def test_round_percent_rounds_halves_away_from_zero(self):
        assert round_percent(0.125) == 0.13
        assert round_percent(-0.125) == -0.13
        assert round_percent(1.234) == 1.23

    def test_clamp_confidence(self):
        assert clamp_confidence(-5) == 0
        assert clamp_confidence(130) == 100
        assert clamp_confidence(67.5) == 68

    def test_format_number_drops_trailing_zeros(self):
        assert format_number(1.5) == "1.5"
        assert format_number(2.0) == "2"
        assert format_number(-0.75) == "-0.75"
        assert format_number(-0.001) == "0"


class TestPriceObservation:
    """Test the PriceObservation data class."""

    def test_observation_creation(self):
        observation = PriceObservation(token="ETH", price_usd=2000.0, source="coingecko")

        assert observation.token == "ETH"
        assert observation.price_usd == 2000.0
        assert observation.source == "coingecko"
        assert observation.observed_at.tzinfo is not None
        assert observation.change_24h is None

    def test_observation_validation(self):
        with pytest.raises(ValueError, match="Price must be non-negative"):
            PriceObservation(token="ETH", price_usd=-1.0)

        with pytest.raises(ValueError, match="Price must be finite"):
            PriceObservation(token="ETH", price_usd=float("nan"))

        with pytest.raises(ValueError, match="Price must be a number"):
            PriceObservation(token="ETH", price_usd="2000")

    def test_observation_is_immutable(self):
        observation = PriceObservation(token="ETH", price_usd=2000.0)

        with pytest.raises(dataclasses.FrozenInstanceError):
            observation.price_usd = 1.0


class TestAIOpinion:
    """Test the AIOpinion data class."""

    def test_signal_type_is_coerced_from_string(self):
        opinion = AIOpinion(signal_type="buy", confidence=70)

        assert opinion.signal_type is SignalType.BUY

    def test_unknown_signal_type_is_rejected(self):
        with pytest.raises(ValueError, match="Unknown signal type"):
            AIOpinion(signal_type="STRONG_BUY", confidence=70)

    def test_confidence_bounds(self):
        with pytest.raises(ValueError, match="Confidence must be between 0 and 100"):
            AIOpinion(signal_type=SignalType.SELL, confidence=101)


class TestSignalDecision:
    """Test the SignalDecision data class."""

    def test_decision_validation(self):
        with pytest.raises(ValueError, match="Confidence must be an integer"):
            SignalDecision(signal_type=SignalType.BUY, confidence=70.5, rationale="")

        with pytest.raises(ValueError, match="Confidence must be between 0 and 100"):
            SignalDecision(signal_type=SignalType.BUY, confidence=-1, rationale="")

    def test_factors_are_stored_as_tuple(self):
        decision = SignalDecision(
            signal_type=SignalType.HOLD,
            confidence=60,
            rationale="",
            factors=["a", "b"],
        )

        assert decision.factors == ("a", "b")
        assert not decision.is_reconciled

    def test_decision_to_dict(self):
        opinion = AIOpinion(signal_type=SignalType.BUY, confidence=80, report="looks strong")
        decision = SignalDecision(
            signal_type=SignalType.BUY,
            confidence=75,
            rationale="Score: 4",
            factors=("strong 1h upward momentum (+0.6%)",),
            score=4,
            short_trend=Trend.UP,
            long_trend=Trend.SIDEWAYS,
            volatility=0.4,
            price=2000.0,
            ai_opinion=opinion,
        )

        data = decision.to_dict()

        assert data["signal"] == "BUY"
        assert data["confidence"] == 75
        assert data["shortTrend"] == "up"
        assert data["longTrend"] == "sideways"
        assert data["factors"] == ["strong 1h upward momentum (+0.6%)"]
        assert data["aiOpinion"] == {"signal": "BUY", "confidence": 80, "report": "looks strong"}


class TestPriceChangeSet:
    def test_defaults(self):
        changes = PriceChangeSet()

        assert changes.to_dict() == {
            "change1h": 0.0,
            "change6h": 0.0,
            "change24h": 0.0,
            "hasEnoughData": False,
        }
