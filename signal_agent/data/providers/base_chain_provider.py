"""
Read-only Base chain data over plain JSON-RPC.

Only two things are needed from the chain: the ETH and USDC balance of an
address and the decoded details of a transaction. Both are a couple of
``eth_*`` calls, so no web3 client is involved.
"""
import asyncio
import re
from typing import Any, List, Optional

import aiohttp

from signal_agent.config.settings import settings
from signal_agent.data.data_structures import TransactionInfo, WalletBalance
from signal_agent.utils.logging import get_logger

logger = get_logger(__name__)

# balanceOf(address)
BALANCE_OF_SELECTOR = "0x70a08231"

WEI_PER_ETH = 10 ** 18
USDC_UNITS = 10 ** 6

_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
_TX_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


class ChainRPCError(Exception):
    """Raised when the RPC endpoint is unreachable or answers with an error."""


def is_valid_address(address: str) -> bool:
    return bool(_ADDRESS_PATTERN.match(address))


def is_tx_hash(value: str) -> bool:
    return bool(_TX_HASH_PATTERN.match(value))


def _hex_to_int(value: Optional[str]) -> int:
    # empty call results come back as "0x"
    return int(value, 16) if value and value != "0x" else 0


class BaseChainProvider:
    """
    Balance and transaction lookups on Base mainnet or Base Sepolia.
    """

    def __init__(
        self,
        network: Optional[str] = None,
        rpc_url: Optional[str] = None,
        usdc_address: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        """
        Args:
            network: ``base`` for mainnet, anything else means Base Sepolia
                (default: PAYMENTS_NETWORK).
            rpc_url: JSON-RPC endpoint override.
            usdc_address: USDC contract override.
            timeout_seconds: Total timeout per RPC call.
        """
        self.network = network or settings.payments.NETWORK
        mainnet = self.network == "base"
        self.rpc_url = rpc_url or (
            settings.data.BASE_MAINNET_RPC_URL if mainnet else settings.data.BASE_SEPOLIA_RPC_URL
        )
        self.usdc_address = usdc_address or (
            settings.data.USDC_MAINNET_ADDRESS if mainnet else settings.data.USDC_SEPOLIA_ADDRESS
        )
        self.explorer_url = "https://basescan.org" if mainnet else "https://sepolia.basescan.org"
        self.timeout = aiohttp.ClientTimeout(
            total=timeout_seconds if timeout_seconds is not None else settings.data.REQUEST_TIMEOUT_SECONDS
        )

    async def _rpc(self, method: str, params: List[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.rpc_url, json=body) as response:
                    if response.status != 200:
                        raise ChainRPCError(f"RPC HTTP error: {response.status}")
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ChainRPCError(f"RPC request failed: {e}") from e

        if data.get("error"):
            raise ChainRPCError(f"RPC error: {data['error'].get('message', 'unknown error')}")
        return data.get("result")

    async def get_eth_balance(self, address: str) -> str:
        wei = _hex_to_int(await self._rpc("eth_getBalance", [address, "latest"]))
        return f"{wei / WEI_PER_ETH:.6f}"

    async def get_usdc_balance(self, address: str) -> str:
        padded = address[2:].lower().rjust(64, "0")
        raw = _hex_to_int(await self._rpc("eth_call", [
            {"to": self.usdc_address, "data": BALANCE_OF_SELECTOR + padded},
            "latest",
        ]))
        return f"{raw / USDC_UNITS:.2f}"

    async def get_balance(self, address: str) -> WalletBalance:
        """
        ETH and USDC balance of an address.

        Raises:
            ValueError: The address is not a 0x-prefixed 40 hex character string.
            ChainRPCError: Either lookup failed.
        """
        address = address.strip()
        if not is_valid_address(address):
            raise ValueError("invalid ethereum address")

        eth, usdc = await asyncio.gather(
            self.get_eth_balance(address),
            self.get_usdc_balance(address),
        )
        logger.info("Balance fetched", address=address[:10], network=self.network, eth=eth, usdc=usdc)
        return WalletBalance(address=address, network=self.network, eth=eth, usdc=usdc)

    async def fetch_balance(self, address: str) -> Optional[WalletBalance]:
        """Like get_balance(), but returns None instead of raising."""
        try:
            return await self.get_balance(address)
        except (ValueError, ChainRPCError) as e:
            logger.error("Error fetching balance", address=address[:10], error=str(e))
            return None

    async def get_transaction(self, tx_hash: str) -> Optional[TransactionInfo]:
        """
        Decode a transaction and its receipt.

        Returns:
            None when the node does not know the transaction.

        Raises:
            ValueError: Not a 0x-prefixed 64 hex character hash.
            ChainRPCError: Either lookup failed.
        """
        tx_hash = tx_hash.strip()
        if not is_tx_hash(tx_hash):
            raise ValueError("invalid transaction hash")

        tx, receipt = await asyncio.gather(
            self._rpc("eth_getTransactionByHash", [tx_hash]),
            self._rpc("eth_getTransactionReceipt", [tx_hash]),
        )
        if not tx:
            return None

        if receipt:
            status = "success" if receipt.get("status") == "0x1" else "reverted"
            gas_used = str(_hex_to_int(receipt.get("gasUsed")))
        else:
            status = "pending"
            gas_used = "pending"

        block_number = tx.get("blockNumber")
        info = TransactionInfo(
            hash=tx.get("hash", tx_hash),
            network=self.network,
            from_address=tx.get("from", ""),
            to_address=tx.get("to"),
            value=f"{_hex_to_int(tx.get('value')) / WEI_PER_ETH:.6f} ETH",
            gas_used=gas_used,
            status=status,
            block_number=_hex_to_int(block_number) if block_number else None,
            explorer_url=f"{self.explorer_url}/tx/{tx_hash}",
        )
        logger.info("Transaction fetched", hash=tx_hash[:18], status=status)
        return info
