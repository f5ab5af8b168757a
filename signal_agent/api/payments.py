"""
x402 pay-per-call gate for the paid endpoints.

A paid request must carry an ``X-PAYMENT`` header: a base64-encoded JSON
payment payload. Without it the caller receives HTTP 402 and the payment
requirements for the route. With it, the payload is verified with the
facilitator before the handler runs, and settled after the handler produced a
successful response. The settlement receipt goes back in
``X-PAYMENT-RESPONSE``.
"""
import base64
import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx
from fastapi import Request

from signal_agent.config.settings import settings
from signal_agent.utils.logging import get_logger

logger = get_logger(__name__)

X402_VERSION = 1
PAYMENT_HEADER = "X-PAYMENT"
PAYMENT_RESPONSE_HEADER = "X-PAYMENT-RESPONSE"
USDC_DECIMALS = 6

ROUTE_DESCRIPTIONS: Dict[str, str] = {
    "signal": "AI-powered market signal (BUY/HOLD/SELL) with confidence score",
    "report": "Full AI-generated market analysis report for a token",
    "watchlist": "Signals for all tracked tokens in one call",
}


class PaymentRequired(Exception):
    """
    Raised when a paid request has no valid payment.

    The app turns this into an HTTP 402 response carrying ``body``.
    """

    def __init__(self, body: Dict[str, Any]):
        super().__init__(body.get("error", "Payment required"))
        self.body = body


class FacilitatorError(Exception):
    """Raised when the facilitator cannot be reached or answers garbage."""


@dataclass
class PaymentContext:
    """A verified payment waiting to be settled."""
    route: str
    amount_usd: float
    payer: str = "unknown"
    payload: Optional[Dict[str, Any]] = None
    requirements: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payload is not None


def usd_to_atomic(amount_usd: float) -> str:
    """Convert a USD price to a USDC atomic amount, e.g. 0.05 -> "50000"."""
    return str(int(Decimal(str(amount_usd)).scaleb(USDC_DECIMALS)))


def decode_payment_header(header: str) -> Dict[str, Any]:
    """
    Decode an ``X-PAYMENT`` header.

    Raises:
        ValueError: If the header is not base64-encoded JSON object.
    """
    try:
        decoded = json.loads(base64.b64decode(header, validate=True).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise ValueError(f"Malformed payment header: {e}") from e
    if not isinstance(decoded, dict):
        raise ValueError("Malformed payment header: expected a JSON object")
    return decoded


def extract_payer(payload: Optional[Dict[str, Any]]) -> str:
    """The payer address from ``payload.authorization.from``, or ``unknown``."""
    try:
        payer = payload["payload"]["authorization"]["from"]
    except (KeyError, TypeError):
        return "unknown"
    return payer or "unknown"


def encode_settlement(settlement: Dict[str, Any]) -> str:
    return base64.b64encode(json.dumps(settlement).encode("utf-8")).decode("ascii")


class PaymentGate:
    """
    Verifies and settles x402 payments with a facilitator.
    """

    def __init__(
        self,
        pay_to: str,
        network: str,
        facilitator_url: str,
        asset: str,
        route_prices_usd: Dict[str, float],
        max_timeout_seconds: int = 60,
        request_timeout_seconds: float = 15.0,
        enabled: bool = True,
        public_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            pay_to: Address that receives payments.
            network: Payment network, e.g. ``base-sepolia``.
            facilitator_url: Base URL of the x402 facilitator.
            asset: Token contract the price is denominated in (USDC).
            route_prices_usd: Price per route key in USD.
            max_timeout_seconds: Validity window advertised to payers.
            request_timeout_seconds: Timeout for facilitator calls.
            enabled: When False every request passes unpaid.
            public_url: External base URL used in ``resource``.
            transport: httpx transport override, mainly for tests.
        """
        self.pay_to = pay_to
        self.network = network
        self.facilitator_url = facilitator_url.rstrip("/")
        self.asset = asset
        self.route_prices_usd = dict(route_prices_usd)
        self.max_timeout_seconds = max_timeout_seconds
        self.request_timeout_seconds = request_timeout_seconds
        self.enabled = enabled
        self.public_url = public_url.rstrip("/") if public_url else None
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "PaymentGate":
        return cls(
            pay_to=settings.payments.PAY_TO,
            network=settings.payments.NETWORK,
            facilitator_url=settings.payments.FACILITATOR_URL,
            asset=settings.payments.USDC_ADDRESS,
            route_prices_usd=settings.payments.ROUTE_PRICES_USD,
            max_timeout_seconds=settings.payments.MAX_TIMEOUT_SECONDS,
            request_timeout_seconds=settings.payments.VERIFY_TIMEOUT_SECONDS,
            enabled=settings.payments.ENABLED,
            public_url=settings.api.PUBLIC_URL,
        )

    def price_usd(self, route: str) -> float:
        if route not in self.route_prices_usd:
            raise KeyError(f"No price configured for route: {route}")
        return self.route_prices_usd[route]

    def requirements(self, route: str, resource: str) -> Dict[str, Any]:
        """Payment requirements for one route, in x402 ``accepts`` form."""
        return {
            "scheme": "exact",
            "network": self.network,
            "maxAmountRequired": usd_to_atomic(self.price_usd(route)),
            "resource": resource,
            "description": ROUTE_DESCRIPTIONS.get(route, route),
            "mimeType": "application/json",
            "payTo": self.pay_to,
            "maxTimeoutSeconds": self.max_timeout_seconds,
            "asset": self.asset,
            "extra": {"name": "USDC", "version": "2"},
        }

    def _resource_url(self, request: Request) -> str:
        base = self.public_url or str(request.base_url).rstrip("/")
        return f"{base}{request.url.path}"

    def _payment_required(self, requirements: Dict[str, Any], error: str) -> PaymentRequired:
        return PaymentRequired({
            "x402Version": X402_VERSION,
            "error": error,
            "accepts": [requirements],
        })

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=self.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(f"{self.facilitator_url}/{path}", json=body)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Facilitator request failed", path=path, error=str(e))
            raise FacilitatorError(str(e)) from e
        if not isinstance(data, dict):
            raise FacilitatorError(f"Unexpected facilitator response for {path}")
        return data

    async def verify_request(self, request: Request, route: str) -> PaymentContext:
        """
        Check the request's payment before the handler runs.

        Returns:
            PaymentContext: The verified payment (unpaid when the gate is disabled).

        Raises:
            PaymentRequired: Missing, malformed or rejected payment.
            FacilitatorError: The facilitator could not be reached.
        """
        amount = self.price_usd(route)
        if not self.enabled:
            return PaymentContext(route=route, amount_usd=amount)

        requirements = self.requirements(route, self._resource_url(request))
        header = request.headers.get(PAYMENT_HEADER)
        if not header:
            raise self._payment_required(requirements, f"{PAYMENT_HEADER} header is required")

        try:
            payload = decode_payment_header(header)
        except ValueError as e:
            raise self._payment_required(requirements, str(e))

        verification = await self._post("verify", {
            "x402Version": payload.get("x402Version", X402_VERSION),
            "paymentPayload": payload,
            "paymentRequirements": requirements,
        })
        if not verification.get("isValid"):
            reason = verification.get("invalidReason") or "payment verification failed"
            logger.warning("Payment rejected", route=route, reason=reason)
            raise self._payment_required(requirements, reason)

        payer = verification.get("payer") or extract_payer(payload)
        return PaymentContext(
            route=route,
            amount_usd=amount,
            payer=payer,
            payload=payload,
            requirements=requirements,
        )

    async def settle(self, payment: PaymentContext) -> Optional[str]:
        """
        Settle a verified payment after the handler succeeded.

        Returns:
            The ``X-PAYMENT-RESPONSE`` header value, or None for unpaid requests.

        Raises:
            PaymentRequired: The facilitator refused to settle.
            FacilitatorError: The facilitator could not be reached.
        """
        if not payment.is_paid:
            return None

        settlement = await self._post("settle", {
            "x402Version": payment.payload.get("x402Version", X402_VERSION),
            "paymentPayload": payment.payload,
            "paymentRequirements": payment.requirements,
        })
        if not settlement.get("success"):
            reason = settlement.get("errorReason") or "payment settlement failed"
            logger.warning("Settlement failed", route=payment.route, reason=reason)
            raise self._payment_required(payment.requirements, reason)

        logger.info(
            "Payment settled",
            route=payment.route,
            payer=payment.payer,
            transaction=settlement.get("transaction"),
        )
        return encode_settlement(settlement)
