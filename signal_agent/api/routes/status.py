"""
API routes for service health and the skill catalog.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from signal_agent.api.dependencies import get_payment_gate, get_storage
from signal_agent.api.payments import PaymentGate
from signal_agent.config.settings import settings
from signal_agent.data.data_structures import to_iso, utc_now
from signal_agent.data.storage import JsonStorage
from signal_agent.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)

SERVER_NAME = "token-signal-agent"


def _now() -> str:
    return to_iso(utc_now())


def _price_label(amount_usd: float) -> str:
    return f"${amount_usd:.2f}"


@router.get("/health", response_model=Dict[str, Any])
async def health_check(storage: JsonStorage = Depends(get_storage)):
    """
    Health check including the storage files.
    """
    health = storage.health_check()
    return {
        "status": "ok" if health["ok"] else "degraded",
        "server": SERVER_NAME,
        "network": settings.payments.NETWORK,
        "storage": health,
        "timestamp": _now(),
    }


@router.get("/catalog", response_model=Dict[str, Any])
async def catalog(gate: PaymentGate = Depends(get_payment_gate)):
    """
    Every skill this server offers, with its price.
    """
    tokens = ", ".join(settings.agent.TOKENS)
    return {
        "server": SERVER_NAME,
        "network": gate.network,
        "payTo": gate.pay_to,
        "skills": [
            {"endpoint": "/price/{token}", "method": "GET", "price": "free",
             "description": "Get USD price for ETH, WETH, CBETH, USDC, DAI, USDT or a Base contract address"},
            {"endpoint": "/chat", "method": "POST", "price": "free",
             "description": "Chat with the AI market analyst"},
            {"endpoint": "/balance/{address}", "method": "GET", "price": "free",
             "description": "ETH and USDC balance of any address on Base"},
            {"endpoint": "/tx/{hash}", "method": "GET", "price": "free",
             "description": "Decoded transaction details with an explorer link"},
            {"endpoint": "/signal/{token}", "method": "GET", "price": _price_label(gate.price_usd("signal")),
             "description": f"AI-powered market signal (BUY/HOLD/SELL) for {tokens}"},
            {"endpoint": "/report/{token}", "method": "GET", "price": _price_label(gate.price_usd("report")),
             "description": "Full AI analysis report for a token"},
            {"endpoint": "/watchlist", "method": "GET", "price": _price_label(gate.price_usd("watchlist")),
             "description": "Signals for all tracked tokens in one call"},
        ],
        "timestamp": _now(),
    }
