"""
Pytest configuration and shared fixtures for the Token Signal Agent test suite.

This module provides common fixtures and configuration for all test categories,
so price histories, storage and stub collaborators are built the same way
across the whole suite.
"""

import base64
import json
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import httpx
import pytest

from signal_agent.agents.base import BaseAgent
from signal_agent.agents.data_structures import AgentConfig, MarketAnalysis, PriceSnapshot
from signal_agent.api.payments import PaymentGate
from signal_agent.data.data_structures import PriceQuote, TransactionInfo, WalletBalance
from signal_agent.data.providers.base_chain_provider import ChainRPCError
from signal_agent.data.providers.base_provider import BasePriceProvider
from signal_agent.data.storage import JsonStorage
from signal_agent.signal_generation import AIOpinion, PriceObservation, SignalType


# ==============================
# Pytest Configuration
# ==============================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for component interactions"
    )


NEWEST = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


# ==============================
# Price History Fixtures
# ==============================

def build_history(
    prices: Sequence[float],
    token: str = "ETH",
    interval_minutes: int = 30,
    newest: datetime = NEWEST,
) -> Tuple[PriceObservation, ...]:
    """Build a newest-first history sampled every ``interval_minutes``."""
    return tuple(
        PriceObservation(
            token=token,
            price_usd=price,
            source="test",
            observed_at=newest - timedelta(minutes=interval_minutes * index),
        )
        for index, price in enumerate(prices)
    )


@pytest.fixture
def make_history() -> Callable[..., Tuple[PriceObservation, ...]]:
    """Factory fixture for newest-first price histories."""
    return build_history


@pytest.fixture
def rising_history() -> Tuple[PriceObservation, ...]:
    """24 points, each 1% above the one before it."""
    oldest_first = [100.0 * 1.01 ** step for step in range(24)]
    return build_history(list(reversed(oldest_first)))


@pytest.fixture
def choppy_history() -> Tuple[PriceObservation, ...]:
    """12 points moving +-0.05% around 100 in pairs, so recent moves include flats."""
    return build_history([100.05, 100.05, 99.95, 99.95] * 3)


# ==============================
# Storage Fixtures
# ==============================

@pytest.fixture
def storage(tmp_path) -> JsonStorage:
    """Storage writing to a per-test temporary directory."""
    return JsonStorage(
        data_dir=str(tmp_path / "data"),
        max_price_entries=48,
        max_signal_entries=100,
        max_earning_entries=200,
        max_run_entries=50,
    )


# ==============================
# Stub Collaborators
# ==============================

class StubPriceProvider(BasePriceProvider):
    """Serves fixed quotes; tokens without a price return None."""

    name = "stub"

    def __init__(self, prices: Optional[Dict[str, float]] = None, errors: Optional[Dict[str, Exception]] = None):
        self.prices = dict(prices or {})
        self.errors = dict(errors or {})
        self.calls: List[str] = []

    async def get_price(self, token: str) -> Optional[PriceQuote]:
        self.calls.append(token)
        if token not in self.prices:
            token = token.upper()
        if token in self.errors:
            raise self.errors[token]
        if token not in self.prices:
            return None
        return PriceQuote(token=token, price_usd=self.prices[token], change_24h=1.5, source=self.name)


class StubOpinionAgent(BaseAgent):
    """Returns a fixed opinion without calling a language model."""

    def __init__(self, signal: SignalType = SignalType.HOLD, confidence: int = 50, report: str = "stub report"):
        super().__init__(config=AgentConfig(name="stub_analyst"), llm_client=None)
        self.opinion = AIOpinion(signal_type=signal, confidence=confidence, report=report)
        self.snapshots: List[PriceSnapshot] = []

    async def analyze(self, snapshot: PriceSnapshot) -> MarketAnalysis:
        self.snapshots.append(snapshot)
        return self.create_analysis(snapshot, self.opinion.report)

    def get_user_prompt(self, snapshot: PriceSnapshot) -> str:
        return snapshot.token

    def create_analysis(self, snapshot: PriceSnapshot, response: str) -> MarketAnalysis:
        return MarketAnalysis(token=snapshot.token, opinion=self.opinion, raw_response=response)

    def get_system_prompt(self) -> str:
        return ""



class StubChainProvider:
    """Serves fixed balances and transactions; ``error`` makes every lookup fail."""

    network = "base-sepolia"

    def __init__(
        self,
        balances: Optional[Dict[str, Tuple[str, str]]] = None,
        transactions: Optional[Dict[str, TransactionInfo]] = None,
        error: Optional[str] = None,
    ):
        self.balances = dict(balances or {})
        self.transactions = dict(transactions or {})
        self.error = error
        self.calls: List[str] = []

    async def get_balance(self, address: str) -> WalletBalance:
        self.calls.append(address)
        if self.error:
            raise ChainRPCError(self.error)
        eth, usdc = self.balances.get(address, ("0.000000", "0.00"))
        return WalletBalance(address=address, network=self.network, eth=eth, usdc=usdc)

    async def fetch_balance(self, address: str) -> Optional[WalletBalance]:
        try:
            return await self.get_balance(address)
        except ChainRPCError:
            return None

    async def get_transaction(self, tx_hash: str) -> Optional[TransactionInfo]:
        self.calls.append(tx_hash)
        if self.error:
            raise ChainRPCError(self.error)
        return self.transactions.get(tx_hash)

@pytest.fixture
def price_provider() -> StubPriceProvider:
    return StubPriceProvider({"ETH": 2000.0, "WETH": 2001.0, "CBETH": 2150.0})


@pytest.fixture
def opinion_agent() -> StubOpinionAgent:
    return StubOpinionAgent(SignalType.HOLD, 50)


# ==============================
# Payment Fixtures
# ==============================

PAY_TO = "0x1111111111111111111111111111111111111111"
PAYER = "0x2222222222222222222222222222222222222222"


def encode_payment(payer: str = PAYER) -> str:
    """A base64 X-PAYMENT header for an exact-scheme USDC transfer."""
    payload = {
        "x402Version": 1,
        "scheme": "exact",
        "network": "base-sepolia",
        "payload": {"signature": "0xsig", "authorization": {"from": payer, "to": PAY_TO, "value": "50000"}},
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()


class FacilitatorStub:
    """Answers /verify and /settle and records what it was sent."""

    def __init__(self, verify: Optional[Dict] = None, settle: Optional[Dict] = None, status_code: int = 200):
        self.verify = verify if verify is not None else {"isValid": True, "payer": PAYER}
        self.settle = settle if settle is not None else {
            "success": True,
            "transaction": "0xtx",
            "network": "base-sepolia",
            "payer": PAYER,
        }
        self.status_code = status_code
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "unavailable"})
        body = self.verify if request.url.path.endswith("/verify") else self.settle
        return httpx.Response(200, json=body)

    @property
    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]


def make_gate(facilitator: FacilitatorStub, enabled: bool = True, public_url: Optional[str] = None) -> PaymentGate:
    return PaymentGate(
        pay_to=PAY_TO,
        network="base-sepolia",
        facilitator_url="https://facilitator.test/",
        asset="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
        route_prices_usd={"signal": 0.05, "report": 0.10, "watchlist": 0.03},
        enabled=enabled,
        public_url=public_url,
        transport=httpx.MockTransport(facilitator),
    )


@pytest.fixture
def facilitator() -> FacilitatorStub:
    return FacilitatorStub()
