"""
Unit tests for the CoinGecko price provider.
"""
import asyncio
from contextlib import contextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from signal_agent.data.cache import CacheManager
from signal_agent.data.providers.coingecko_provider import (
    COINGECKO_IDS,
    CoinGeckoProvider,
    is_contract_address,
)

CBETH_ADDRESS = "0x2Ae3F1Ec7F1F5012CFEab0185bfc7aa3cf0DEc22"


@contextmanager
def mock_coingecko(payload=None, status=200, error=None):
    """Patch aiohttp.ClientSession so session.get() answers with ``payload``."""
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.json = AsyncMock(return_value=payload)

    mock_session = MagicMock()
    if error is not None:
        mock_session.get.side_effect = error
    mock_session.get.return_value.__aenter__.return_value = mock_response
    mock_session.get.return_value.__aexit__.return_value = False

    with patch('aiohttp.ClientSession') as mock_session_class:
        mock_session_class.return_value.__aenter__.return_value = mock_session
        mock_session_class.return_value.__aexit__.return_value = False
        yield mock_session


class TestCoinGeckoProvider:
    """Test suite for CoinGeckoProvider class."""

    @pytest.fixture
    def provider(self):
        """Create a CoinGeckoProvider instance for testing."""
        return CoinGeckoProvider(
            base_url="https://api.coingecko.test/api/v3",
            api_key="",
            rate_limit=100,
            period=1.0,
            cache=CacheManager(),
            cache_ttl_seconds=30,
        )

    def test_is_contract_address(self):
        assert is_contract_address(CBETH_ADDRESS)
        assert is_contract_address(f"  {CBETH_ADDRESS.lower()} ")
        assert not is_contract_address("ETH")
        assert not is_contract_address("0x1234")

    def test_supports(self, provider):
        assert provider.supports("eth")
        assert provider.supports(CBETH_ADDRESS)
        assert not provider.supports("DOGE")

    def test_headers(self, provider):
        assert "x-cg-demo-api-key" not in provider._headers()

        provider.api_key = "demo-key"

        assert provider._headers()["x-cg-demo-api-key"] == "demo-key"

    @pytest.mark.asyncio
    async def test_get_price_for_symbol(self, provider):
        payload = {"ethereum": {"usd": 2011.37, "usd_24h_change": 1.23456}}

        with mock_coingecko(payload) as mock_session:
            quote = await provider.get_price("eth")

        assert quote.token == "ETH"
        assert quote.price_usd == 2011.37
        assert quote.change_24h == 1.23
        assert quote.source == "coingecko"

        args, kwargs = mock_session.get.call_args
        assert args[0] == "https://api.coingecko.test/api/v3/simple/price"
        assert kwargs["params"]["ids"] == "ethereum"
        assert kwargs["params"]["include_24hr_change"] == "true"

    @pytest.mark.asyncio
    async def test_get_price_for_contract_address(self, provider):
        payload = {CBETH_ADDRESS.lower(): {"usd": 2150.5}}

        with mock_coingecko(payload) as mock_session:
            quote = await provider.get_price(CBETH_ADDRESS)

        assert quote.token == CBETH_ADDRESS
        assert quote.price_usd == 2150.5
        assert quote.change_24h is None

        args, kwargs = mock_session.get.call_args
        assert args[0].endswith("/simple/token_price/base")
        assert kwargs["params"]["contract_addresses"] == CBETH_ADDRESS.lower()

    @pytest.mark.asyncio
    async def test_unsupported_symbol_makes_no_request(self, provider):
        with mock_coingecko({}) as mock_session:
            quote = await provider.get_price("DOGE")

        assert quote is None
        mock_session.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_error_status_returns_none(self, provider):
        with mock_coingecko({"status": {"error_code": 429}}, status=429):
            assert await provider.get_price("ETH") is None

    @pytest.mark.asyncio
    async def test_client_error_returns_none(self, provider):
        with mock_coingecko(error=aiohttp.ClientError("connection reset")):
            assert await provider.get_price("ETH") is None

    @pytest.mark.asyncio
    async def test_timeout_returns_none(self, provider):
        with mock_coingecko(error=asyncio.TimeoutError()) as mock_session:
            assert await provider.get_price("ETH") is None

        mock_session.get.assert_called_once()

    def test_session_timeout(self, provider):
        assert provider.timeout.total == 15.0
        assert CoinGeckoProvider(timeout_seconds=2.5).timeout.total == 2.5

    @pytest.mark.asyncio
    async def test_missing_price_returns_none(self, provider):
        with mock_coingecko({"ethereum": {}}):
            assert await provider.get_price("ETH") is None

    @pytest.mark.asyncio
    async def test_quotes_are_cached(self, provider):
        payload = {"weth": {"usd": 2000.0, "usd_24h_change": -0.5}}

        with mock_coingecko(payload) as mock_session:
            first = await provider.get_price("WETH")
            second = await provider.get_price("weth")

        assert first is second
        assert mock_session.get.call_count == 1

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, provider):
        with mock_coingecko(status=500) as mock_session:
            await provider.get_price("DAI")
            await provider.get_price("DAI")

        assert mock_session.get.call_count == 2

    def test_tracked_tokens_have_ids(self):
        for token in ("ETH", "WETH", "CBETH"):
            assert token in COINGECKO_IDS
