"""
Persisted record types for the Token Signal Agent.

These records are what the storage layer writes to disk and what the paid
endpoints and the dashboard read back. Their ``to_dict()`` output uses the
camelCase field names existing consumers depend on, so field names here must
not change without a migration.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from signal_agent.signal_generation.core import (
    PriceChangeSet,
    PriceObservation,
    SignalDecision,
)

RUN_STATUSES = ("success", "partial", "failed")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """Render a datetime as an ISO string with millisecond precision and a Z suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO timestamp written by to_iso() (or any offset-aware ISO string)."""
    moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class PriceQuote:
    """
    A live price returned by a data provider.

    Attributes:
        token: The token symbol or contract address requested.
        price_usd: The current USD price.
        change_24h: Provider-reported 24h change in percent, if available.
        source: The provider tag, e.g. ``coingecko``.
        fetched_at: When the quote was fetched.
    """
    token: str
    price_usd: float
    change_24h: Optional[float] = None
    source: str = "coingecko"
    fetched_at: datetime = field(default_factory=utc_now)


@dataclass
class PriceEntry:
    """A stored price sample."""
    token: str
    price_usd: float
    source: str
    timestamp: str
    change_24h: Optional[float] = None

    @classmethod
    def from_quote(cls, quote: PriceQuote) -> "PriceEntry":
        return cls(
            token=quote.token,
            price_usd=quote.price_usd,
            source=quote.source,
            timestamp=to_iso(quote.fetched_at),
            change_24h=quote.change_24h,
        )

    def to_observation(self) -> PriceObservation:
        return PriceObservation(
            token=self.token,
            price_usd=self.price_usd,
            source=self.source,
            observed_at=parse_iso(self.timestamp),
            change_24h=self.change_24h,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "priceUSD": self.price_usd,
            "change24h": self.change_24h,
            "source": self.source,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceEntry":
        return cls(
            token=data["token"],
            price_usd=float(data["priceUSD"]),
            source=data.get("source", "unknown"),
            timestamp=data["timestamp"],
            change_24h=_optional_float(data.get("change24h")),
        )


@dataclass
class SignalRecord:
    """A persisted, reconciled signal for one token and one analysis run."""
    token: str
    signal: str
    confidence: int
    price_at_signal: float
    change_1h: float
    change_6h: float
    change_24h: float
    ai_report: str = ""
    rationale: str = ""
    id: str = field(default_factory=new_id)
    timestamp: str = field(default_factory=lambda: to_iso(utc_now()))

    @classmethod
    def from_decision(
        cls,
        token: str,
        decision: SignalDecision,
        changes: PriceChangeSet,
        price_at_signal: float,
    ) -> "SignalRecord":
        """
        Build a record from a (reconciled) decision.

        Args:
            token: The token the decision is for.
            decision: The final decision; its AI opinion supplies ``ai_report``.
            changes: The price changes the decision was computed from.
            price_at_signal: The price fetched in this run.
        """
        return cls(
            token=token,
            signal=decision.signal_type.value,
            confidence=decision.confidence,
            price_at_signal=price_at_signal,
            change_1h=changes.change_1h,
            change_6h=changes.change_6h,
            change_24h=changes.change_24h,
            ai_report=decision.ai_opinion.report if decision.ai_opinion else "",
            rationale=decision.rationale,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "token": self.token,
            "signal": self.signal,
            "confidence": self.confidence,
            "priceAtSignal": self.price_at_signal,
            "change1h": self.change_1h,
            "change6h": self.change_6h,
            "change24h": self.change_24h,
            "aiReport": self.ai_report,
            "rationale": self.rationale,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignalRecord":
        return cls(
            id=data.get("id") or new_id(),
            token=data["token"],
            signal=data["signal"],
            confidence=int(data["confidence"]),
            price_at_signal=float(data["priceAtSignal"]),
            change_1h=float(data.get("change1h", 0.0)),
            change_6h=float(data.get("change6h", 0.0)),
            change_24h=float(data.get("change24h", 0.0)),
            ai_report=data.get("aiReport", ""),
            rationale=data.get("rationale", ""),
            timestamp=data["timestamp"],
        )


@dataclass
class EarningEntry:
    """One paid call."""
    endpoint: str
    amount_usdc: float
    caller_address: str
    id: str = field(default_factory=new_id)
    timestamp: str = field(default_factory=lambda: to_iso(utc_now()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "endpoint": self.endpoint,
            "amountUSDC": self.amount_usdc,
            "callerAddress": self.caller_address,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EarningEntry":
        return cls(
            id=data.get("id") or new_id(),
            endpoint=data["endpoint"],
            amount_usdc=float(data["amountUSDC"]),
            caller_address=data.get("callerAddress", "unknown"),
            timestamp=data["timestamp"],
        )


@dataclass
class EarningsSummary:
    """Running totals of paid calls plus the most recent entries."""
    total_earned: float = 0.0
    earned_today: float = 0.0
    earned_this_week: float = 0.0
    total_calls: int = 0
    calls_today: int = 0
    entries: List[EarningEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalEarned": self.total_earned,
            "earnedToday": self.earned_today,
            "earnedThisWeek": self.earned_this_week,
            "totalCalls": self.total_calls,
            "callsToday": self.calls_today,
            "entries": [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EarningsSummary":
        return cls(
            total_earned=float(data.get("totalEarned", 0.0)),
            earned_today=float(data.get("earnedToday", 0.0)),
            earned_this_week=float(data.get("earnedThisWeek", 0.0)),
            total_calls=int(data.get("totalCalls", 0)),
            calls_today=int(data.get("callsToday", 0)),
            entries=[EarningEntry.from_dict(entry) for entry in data.get("entries", [])],
        )


@dataclass
class AgentRun:
    """
    Summary of one scheduled analysis run.

    Attributes:
        status: ``success`` when every token produced a signal, ``partial``
            when some did, ``failed`` when none did.
        tokens_processed: Tokens that produced a signal.
        signals_generated: Number of signals written.
        prices_fetched: Number of tokens a price fetch was attempted for.
        ai_calls_made: Number of AI opinions obtained.
        duration_ms: Wall-clock duration of the run.
        error: Summary of failures, if any.
    """
    status: str
    tokens_processed: List[str]
    signals_generated: int
    prices_fetched: int
    ai_calls_made: int
    duration_ms: int
    error: Optional[str] = None
    id: str = field(default_factory=new_id)
    timestamp: str = field(default_factory=lambda: to_iso(utc_now()))

    def __post_init__(self):
        if self.status not in RUN_STATUSES:
            raise ValueError(f"Run status must be one of {RUN_STATUSES}")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "status": self.status,
            "tokensProcessed": list(self.tokens_processed),
            "signalsGenerated": self.signals_generated,
            "pricesFetched": self.prices_fetched,
            "aiCallsMade": self.ai_calls_made,
            "durationMs": self.duration_ms,
            "timestamp": self.timestamp,
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentRun":
        return cls(
            id=data.get("id") or new_id(),
            status=data["status"],
            tokens_processed=list(data.get("tokensProcessed", [])),
            signals_generated=int(data.get("signalsGenerated", 0)),
            prices_fetched=int(data.get("pricesFetched", 0)),
            ai_calls_made=int(data.get("aiCallsMade", 0)),
            duration_ms=int(data.get("durationMs", 0)),
            error=data.get("error"),
            timestamp=data["timestamp"],
        )


@dataclass
class WalletBalance:
    """ETH and USDC holdings of one address, formatted the way the chain skills report them."""
    address: str
    network: str
    eth: str
    usdc: str
    timestamp: str = field(default_factory=lambda: to_iso(utc_now()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "network": self.network,
            "balances": {"ETH": self.eth, "USDC": self.usdc},
            "timestamp": self.timestamp,
        }


@dataclass
class TransactionInfo:
    """
    A decoded transaction.

    Attributes:
        value: Transferred ETH, e.g. ``"0.010000 ETH"``.
        gas_used: Gas used as a decimal string, ``"pending"`` without a receipt.
        status: ``success``, ``reverted`` or ``pending``.
        block_number: None until the transaction is mined.
    """
    hash: str
    network: str
    from_address: str
    to_address: Optional[str]
    value: str
    gas_used: str
    status: str
    block_number: Optional[int]
    explorer_url: str
    timestamp: str = field(default_factory=lambda: to_iso(utc_now()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "network": self.network,
            "from": self.from_address,
            "to": self.to_address,
            "value": self.value,
            "gasUsed": self.gas_used,
            "status": self.status,
            "blockNumber": self.block_number,
            "explorerUrl": self.explorer_url,
            "timestamp": self.timestamp,
        }


def _optional_float(value: Any) -> Optional[float]:
    """Accept numbers and legacy ``"1.23%"`` strings."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip().rstrip("%")
        if not value:
            return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
