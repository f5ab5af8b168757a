"""
Price provider implementation for fetching token prices from CoinGecko.

Symbols are resolved through a fixed CoinGecko id map; anything that looks
like a contract address is looked up through the Base token-price endpoint
instead. The public tier is heavily rate limited, so requests go through a
throttler and quotes are cached for a short TTL.
"""
import asyncio
import re
from typing import Any, Dict, Optional

import aiohttp
from asyncio_throttle import Throttler

from signal_agent.config.settings import settings
from signal_agent.data.cache import CacheManager
from signal_agent.data.data_structures import PriceQuote
from signal_agent.data.providers.base_provider import BasePriceProvider
from signal_agent.signal_generation.core import round_percent
from signal_agent.utils.logging import get_logger

logger = get_logger(__name__)

# CoinGecko token ID mapping
COINGECKO_IDS: Dict[str, str] = {
    "ETH": "ethereum",
    "WETH": "weth",
    "CBETH": "coinbase-wrapped-staked-eth",
    "USDC": "usd-coin",
    "DAI": "dai",
    "USDT": "tether",
}

# Base mainnet contract addresses, for reference in the catalog
TOKEN_ADDRESSES: Dict[str, str] = {
    "ETH": "0x4200000000000000000000000000000000000006",
    "WETH": "0x4200000000000000000000000000000000000006",
    "USDC": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    "USDT": "0xfde4C96c8593536E31F229EA8f37b2ADa2699bb2",
    "DAI": "0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb",
    "CBETH": "0x2Ae3F1Ec7F1F5012CFEab0185bfc7aa3cf0DEc22",
}

_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_contract_address(token: str) -> bool:
    return bool(_ADDRESS_PATTERN.match(token.strip()))


class CoinGeckoProvider(BasePriceProvider):
    """
    A price provider that fetches USD prices from CoinGecko.

    No API key is required for the public tier; when one is configured it is
    sent in the ``x-cg-demo-api-key`` header.
    """

    name = "coingecko"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        rate_limit: Optional[int] = None,
        period: Optional[float] = None,
        cache: Optional[CacheManager] = None,
        cache_ttl_seconds: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        """
        Initialize the CoinGecko provider.

        Args:
            base_url: API base URL (default: DATA_COINGECKO_BASE_URL)
            api_key: Optional demo API key
            rate_limit: Number of requests allowed per period
            period: Time period in seconds for the rate limit
            cache: Quote cache, shared with other callers if given
            cache_ttl_seconds: How long a quote stays fresh; 0 disables caching
            timeout_seconds: Total timeout per request
        """
        self.base_url = (base_url or settings.data.COINGECKO_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.data.COINGECKO_API_KEY
        self.throttler = Throttler(
            rate_limit or settings.data.COINGECKO_RATE_LIMIT,
            period or settings.data.COINGECKO_RATE_PERIOD,
        )
        self.cache = cache or CacheManager()
        self.cache_ttl_seconds = (
            cache_ttl_seconds if cache_ttl_seconds is not None else settings.data.QUOTE_CACHE_TTL_SECONDS
        )
        self.timeout = aiohttp.ClientTimeout(
            total=timeout_seconds if timeout_seconds is not None else settings.data.REQUEST_TIMEOUT_SECONDS
        )

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": settings.data.USER_AGENT,
        }
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key
        return headers

    def supports(self, token: str) -> bool:
        return is_contract_address(token) or token.strip().upper() in COINGECKO_IDS

    async def get_price(self, token: str) -> Optional[PriceQuote]:
        """
        Fetches the current price of a symbol or contract address.

        Returns:
            A PriceQuote whose ``token`` is the upper-cased symbol, or the
            address as given. None for unknown symbols and upstream failures.
        """
        token = token.strip()
        if is_contract_address(token):
            lookup_key = token.lower()
            url = f"{self.base_url}/simple/token_price/base"
            params = {
                "contract_addresses": lookup_key,
                "vs_currencies": "usd",
                "include_24hr_change": "true",
            }
            resolved = token
        else:
            resolved = token.upper()
            lookup_key = COINGECKO_IDS.get(resolved)
            if lookup_key is None:
                logger.warning("Unsupported token", token=token)
                return None
            url = f"{self.base_url}/simple/price"
            params = {
                "ids": lookup_key,
                "vs_currencies": "usd",
                "include_24hr_change": "true",
            }

        cache_key = f"coingecko:{lookup_key}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        data = await self._get_json(url, params, resolved)
        if data is None:
            return None

        quote = self._parse_quote(data, lookup_key, resolved)
        if quote is not None:
            self.cache.set(cache_key, quote, self.cache_ttl_seconds)
            logger.info(
                "Price fetched",
                token=resolved,
                price_usd=quote.price_usd,
                change_24h=quote.change_24h,
            )
        return quote

    async def _get_json(self, url: str, params: Dict[str, str], token: str) -> Optional[Dict[str, Any]]:
        try:
            async with self.throttler, aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(url, params=params, headers=self._headers()) as response:
                    if response.status != 200:
                        logger.error("CoinGecko returned an error status", token=token, status=response.status)
                        return None
                    return await response.json()
        except aiohttp.ClientError as e:
            logger.error("HTTP error fetching price from CoinGecko", token=token, error=str(e))
            return None
        except asyncio.TimeoutError:
            logger.error("Timed out fetching price from CoinGecko", token=token, timeout_seconds=self.timeout.total)
            return None

    @staticmethod
    def _parse_quote(data: Dict[str, Any], lookup_key: str, token: str) -> Optional[PriceQuote]:
        entry = data.get(lookup_key) if isinstance(data, dict) else None
        if not entry or not entry.get("usd"):
            logger.error("No price data in CoinGecko response", token=token)
            return None

        try:
            price = float(entry["usd"])
            change = entry.get("usd_24h_change")
            change_24h = round_percent(float(change)) if change is not None else None
        except (TypeError, ValueError) as e:
            logger.error("Error parsing CoinGecko price", token=token, error=str(e))
            return None

        return PriceQuote(token=token, price_usd=price, change_24h=change_24h, source="coingecko")
