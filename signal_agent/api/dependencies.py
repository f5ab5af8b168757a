"""
Shared FastAPI dependencies.

Every collaborator is created lazily once per process. Tests replace them
through ``app.dependency_overrides``.
"""
from functools import lru_cache

from signal_agent.agents.data_structures import AgentConfig
from signal_agent.agents.market_analyst import MarketAnalystAgent
from signal_agent.api.payments import PaymentGate
from signal_agent.data.providers.base_chain_provider import BaseChainProvider
from signal_agent.data.providers.base_provider import BasePriceProvider
from signal_agent.data.providers.coingecko_provider import CoinGeckoProvider
from signal_agent.data.storage import JsonStorage
from signal_agent.llm.client import LLMClient


@lru_cache(maxsize=1)
def get_storage() -> JsonStorage:
    return JsonStorage()


@lru_cache(maxsize=1)
def get_price_provider() -> BasePriceProvider:
    return CoinGeckoProvider()


@lru_cache(maxsize=1)
def get_chain_provider() -> BaseChainProvider:
    return BaseChainProvider()


@lru_cache(maxsize=1)
def get_market_analyst() -> MarketAnalystAgent:
    return MarketAnalystAgent(config=AgentConfig(name="market_analyst"), llm_client=LLMClient())


@lru_cache(maxsize=1)
def get_payment_gate() -> PaymentGate:
    return PaymentGate.from_settings()
