"""
Paid routes: signals, reports and the watchlist, gated by x402 payments.

Payment is verified before the handler looks at the request, so an
unsupported token still needs a payment header. Settlement and the earnings
entry only happen once the handler produced a successful response.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from signal_agent.api.dependencies import get_payment_gate, get_storage
from signal_agent.api.payments import PAYMENT_RESPONSE_HEADER, PaymentContext, PaymentGate
from signal_agent.config.settings import settings
from signal_agent.data.data_structures import to_iso, utc_now
from signal_agent.data.storage import JsonStorage
from signal_agent.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)

SIGNAL_TREND_LENGTH = 5


def _supported_token(token: str, storage: JsonStorage) -> str:
    """Configured tokens plus any token a run has stored data for."""
    token = token.strip().upper()
    supported = [symbol.upper() for symbol in settings.agent.TOKENS]
    supported += [symbol.upper() for symbol in storage.get_tracked_tokens() if symbol.upper() not in supported]
    if token not in supported:
        raise HTTPException(
            status_code=400,
            detail=f"unsupported token: {token}. Supported: {', '.join(supported)}",
        )
    return token


async def _paid_response(
    body: Dict[str, Any],
    payment: PaymentContext,
    endpoint: str,
    gate: PaymentGate,
    storage: JsonStorage,
) -> JSONResponse:
    settlement = await gate.settle(payment)
    headers = {PAYMENT_RESPONSE_HEADER: settlement} if settlement else None

    if payment.is_paid:
        try:
            storage.write_earning_entry(endpoint, payment.amount_usd, payment.payer)
        except OSError as e:
            # settled payments always get their response
            logger.error("Failed to log earning", endpoint=endpoint, error=str(e))

    return JSONResponse(content=body, headers=headers)


@router.get("/signal/{token}")
async def get_signal(
    token: str,
    request: Request,
    gate: PaymentGate = Depends(get_payment_gate),
    storage: JsonStorage = Depends(get_storage),
):
    """
    Latest signal for a tracked token.
    """
    payment = await gate.verify_request(request, "signal")
    token = _supported_token(token, storage)

    signal = storage.get_latest_signal(token)
    if signal is None:
        raise HTTPException(status_code=404, detail=f"no signal available yet for {token}, check back soon")
    latest_price = storage.get_latest_price(token)

    body = {
        "token": signal.token,
        "signal": signal.signal,
        "confidence": signal.confidence,
        "priceAtSignal": signal.price_at_signal,
        "change1h": signal.change_1h,
        "change6h": signal.change_6h,
        "change24h": signal.change_24h,
        "currentPrice": latest_price.price_usd if latest_price else signal.price_at_signal,
        "currentChange24h": latest_price.change_24h if latest_price else None,
        "generatedAt": signal.timestamp,
    }
    logger.info("Served signal", token=token, signal=signal.signal, confidence=signal.confidence)
    return await _paid_response(body, payment, f"/signal/{token}", gate, storage)


@router.get("/report/{token}")
async def get_report(
    token: str,
    request: Request,
    gate: PaymentGate = Depends(get_payment_gate),
    storage: JsonStorage = Depends(get_storage),
):
    """
    Full AI report for a tracked token plus its recent signal trend.
    """
    payment = await gate.verify_request(request, "report")
    token = _supported_token(token, storage)

    history = storage.get_signal_history(token)
    if not history:
        raise HTTPException(status_code=404, detail=f"no report available yet for {token}, check back soon")
    signal = history[0]
    latest_price = storage.get_latest_price(token)

    body = {
        "token": signal.token,
        "signal": signal.signal,
        "confidence": signal.confidence,
        "priceAtSignal": signal.price_at_signal,
        "aiReport": signal.ai_report,
        "rationale": signal.rationale,
        "generatedAt": signal.timestamp,
        "currentPrice": latest_price.price_usd if latest_price else None,
        "signalTrend": [
            {"signal": s.signal, "confidence": s.confidence, "timestamp": s.timestamp}
            for s in history[:SIGNAL_TREND_LENGTH]
        ],
    }
    logger.info("Served report", token=token)
    return await _paid_response(body, payment, f"/report/{token}", gate, storage)


@router.get("/watchlist")
async def get_watchlist(
    request: Request,
    gate: PaymentGate = Depends(get_payment_gate),
    storage: JsonStorage = Depends(get_storage),
):
    """
    Latest signal for every token that has one.
    """
    payment = await gate.verify_request(request, "watchlist")

    signals = storage.get_all_latest_signals()
    if not signals:
        raise HTTPException(status_code=404, detail="no signals available yet, check back soon")

    entries = []
    for signal in signals:
        latest_price = storage.get_latest_price(signal.token)
        entries.append({
            "token": signal.token,
            "signal": signal.signal,
            "confidence": signal.confidence,
            "priceAtSignal": signal.price_at_signal,
            "change1h": signal.change_1h,
            "change6h": signal.change_6h,
            "change24h": signal.change_24h,
            "currentPrice": latest_price.price_usd if latest_price else signal.price_at_signal,
            "generatedAt": signal.timestamp,
        })

    body = {"signals": entries, "generatedAt": to_iso(utc_now())}
    logger.info("Served watchlist", signals=len(entries))
    return await _paid_response(body, payment, "/watchlist", gate, storage)
