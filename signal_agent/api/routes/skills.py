"""
Free skill routes: live token prices, Base chain lookups and the AI analyst chat.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from signal_agent.agents.market_analyst import MarketAnalystAgent
from signal_agent.api.dependencies import get_chain_provider, get_market_analyst, get_price_provider
from signal_agent.config.settings import settings
from signal_agent.data.data_structures import to_iso, utc_now
from signal_agent.data.providers.base_chain_provider import (
    BaseChainProvider,
    ChainRPCError,
    is_tx_hash,
    is_valid_address,
)
from signal_agent.data.providers.base_provider import BasePriceProvider
from signal_agent.data.providers.coingecko_provider import COINGECKO_IDS, is_contract_address
from signal_agent.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


class ChatMessage(BaseModel):
    role: str = "user"
    content: str


class ChatRequest(BaseModel):
    messages: Optional[List[ChatMessage]] = None
    context: Optional[str] = None


def analyst_dependency() -> MarketAnalystAgent:
    try:
        return get_market_analyst()
    except ValueError as e:
        logger.error("AI analyst unavailable", error=str(e))
        raise HTTPException(status_code=503, detail="AI analyst is not configured")


@router.get("/price/{token}", response_model=Dict[str, Any])
async def get_price(token: str, provider: BasePriceProvider = Depends(get_price_provider)):
    """
    Current USD price for a supported symbol or any Base contract address.
    """
    token = token.strip()
    if not is_contract_address(token) and token.upper() not in COINGECKO_IDS:
        raise HTTPException(
            status_code=400,
            detail=f"unsupported token: {token}. Supported: {', '.join(COINGECKO_IDS)} or a Base contract address",
        )

    quote = await provider.get_price(token)
    if quote is None:
        raise HTTPException(
            status_code=502,
            detail="price data unavailable, the upstream provider may be rate limiting",
        )

    return {
        "token": quote.token,
        "network": settings.payments.NETWORK,
        "priceUSD": quote.price_usd,
        "change24h": quote.change_24h,
        "source": quote.source,
        "timestamp": to_iso(utc_now()),
    }


@router.post("/chat", response_model=Dict[str, Any])
async def chat(request: ChatRequest, analyst: MarketAnalystAgent = Depends(analyst_dependency)):
    """
    Free-form conversation with the market analyst.
    """
    if not request.messages:
        raise HTTPException(status_code=400, detail="messages array is required")

    try:
        response = await analyst.chat(
            [message.model_dump() for message in request.messages],
            context=request.context,
        )
    except Exception as e:
        logger.error("Chat failed", error=str(e))
        raise HTTPException(status_code=500, detail="failed to generate response")

    return {"response": response}


@router.get("/balance/{address}", response_model=Dict[str, Any])
async def get_balance(address: str, chain: BaseChainProvider = Depends(get_chain_provider)):
    """
    ETH and USDC balance of any address on the configured Base network.
    """
    address = address.strip()
    if not is_valid_address(address):
        raise HTTPException(
            status_code=400,
            detail="invalid ethereum address, expected 0x followed by 40 hex characters",
        )

    try:
        balance = await chain.get_balance(address)
    except ChainRPCError as e:
        logger.error("Balance lookup failed", address=address[:10], error=str(e))
        raise HTTPException(status_code=502, detail=f"failed to fetch balance: {e}")

    return balance.to_dict()


@router.get("/tx/{tx_hash}", response_model=Dict[str, Any])
async def get_transaction(tx_hash: str, chain: BaseChainProvider = Depends(get_chain_provider)):
    """
    Decoded transaction details with a block explorer link.
    """
    tx_hash = tx_hash.strip()
    if not is_tx_hash(tx_hash):
        raise HTTPException(
            status_code=400,
            detail="invalid transaction hash, expected 0x followed by 64 hex characters",
        )

    try:
        info = await chain.get_transaction(tx_hash)
    except ChainRPCError as e:
        logger.error("Transaction lookup failed", hash=tx_hash[:18], error=str(e))
        raise HTTPException(status_code=502, detail=f"failed to fetch transaction: {e}")

    if info is None:
        raise HTTPException(
            status_code=404,
            detail="transaction not found, it may not exist or may not be indexed yet",
        )
    return info.to_dict()
