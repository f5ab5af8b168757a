"""
Unit tests for the x402 payment gate.
"""
import base64
import json
from typing import Optional

import pytest
from fastapi import Request

from signal_agent.api.payments import (
    PAYMENT_HEADER,
    FacilitatorError,
    PaymentContext,
    PaymentRequired,
    decode_payment_header,
    encode_settlement,
    extract_payer,
    usd_to_atomic,
)
from tests.conftest import PAY_TO, PAYER, FacilitatorStub, encode_payment, make_gate


def make_request(path: str = "/signal/ETH", payment: Optional[str] = None) -> Request:
    headers = [(PAYMENT_HEADER.lower().encode(), payment.encode())] if payment else []
    return Request({
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "server": ("testserver", 80),
        "root_path": "",
        "path": path,
        "query_string": b"",
        "headers": headers,
    })


class TestHelpers:
    @pytest.mark.parametrize("amount,expected", [
        (0.05, "50000"),
        (0.10, "100000"),
        (0.03, "30000"),
        (1, "1000000"),
    ])
    def test_usd_to_atomic(self, amount, expected):
        assert usd_to_atomic(amount) == expected

    def test_decode_payment_header(self):
        assert decode_payment_header(encode_payment())["payload"]["authorization"]["from"] == PAYER

    @pytest.mark.parametrize("header", [
        "not base64!",
        base64.b64encode(b"not json").decode(),
        base64.b64encode(b"[1, 2]").decode(),
    ])
    def test_decode_malformed_header(self, header):
        with pytest.raises(ValueError, match="Malformed payment header"):
            decode_payment_header(header)

    def test_extract_payer(self):
        assert extract_payer(decode_payment_header(encode_payment())) == PAYER
        assert extract_payer({"payload": {}}) == "unknown"
        assert extract_payer(None) == "unknown"

    def test_encode_settlement(self):
        encoded = encode_settlement({"success": True, "transaction": "0xtx"})

        assert json.loads(base64.b64decode(encoded)) == {"success": True, "transaction": "0xtx"}


class TestPaymentGate:
    def test_requirements(self):
        gate = make_gate(FacilitatorStub())

        requirements = gate.requirements("report", "http://testserver/report/ETH")

        assert requirements["scheme"] == "exact"
        assert requirements["maxAmountRequired"] == "100000"
        assert requirements["payTo"] == PAY_TO
        assert requirements["resource"] == "http://testserver/report/ETH"
        assert requirements["extra"] == {"name": "USDC", "version": "2"}

    def test_unknown_route_has_no_price(self):
        with pytest.raises(KeyError):
            make_gate(FacilitatorStub()).price_usd("chat")

    @pytest.mark.asyncio
    async def test_missing_header_requires_payment(self):
        facilitator = FacilitatorStub()
        gate = make_gate(facilitator)

        with pytest.raises(PaymentRequired) as exc_info:
            await gate.verify_request(make_request(), "signal")

        body = exc_info.value.body
        assert body["x402Version"] == 1
        assert body["accepts"][0]["maxAmountRequired"] == "50000"
        assert body["accepts"][0]["resource"] == "http://testserver/signal/ETH"
        assert facilitator.requests == []

    @pytest.mark.asyncio
    async def test_public_url_is_advertised(self):
        gate = make_gate(FacilitatorStub(), public_url="https://signals.example.com/")

        with pytest.raises(PaymentRequired) as exc_info:
            await gate.verify_request(make_request("/watchlist"), "watchlist")

        assert exc_info.value.body["accepts"][0]["resource"] == "https://signals.example.com/watchlist"

    @pytest.mark.asyncio
    async def test_malformed_header_requires_payment(self):
        gate = make_gate(FacilitatorStub())

        with pytest.raises(PaymentRequired, match="Malformed payment header"):
            await gate.verify_request(make_request(payment="garbage"), "signal")

    @pytest.mark.asyncio
    async def test_valid_payment(self):
        facilitator = FacilitatorStub()
        gate = make_gate(facilitator)

        payment = await gate.verify_request(make_request(payment=encode_payment()), "signal")

        assert payment.is_paid
        assert payment.payer == PAYER
        assert payment.amount_usd == 0.05
        assert facilitator.paths == ["/verify"]
        sent = json.loads(facilitator.requests[0].content)
        assert sent["paymentRequirements"]["maxAmountRequired"] == "50000"
        assert sent["paymentPayload"]["payload"]["authorization"]["from"] == PAYER

    @pytest.mark.asyncio
    async def test_rejected_payment(self):
        gate = make_gate(FacilitatorStub(verify={"isValid": False, "invalidReason": "insufficient_funds"}))

        with pytest.raises(PaymentRequired) as exc_info:
            await gate.verify_request(make_request(payment=encode_payment()), "signal")

        assert exc_info.value.body["error"] == "insufficient_funds"

    @pytest.mark.asyncio
    async def test_facilitator_outage(self):
        gate = make_gate(FacilitatorStub(status_code=503))

        with pytest.raises(FacilitatorError):
            await gate.verify_request(make_request(payment=encode_payment()), "signal")

    @pytest.mark.asyncio
    async def test_settle(self):
        facilitator = FacilitatorStub()
        gate = make_gate(facilitator)
        payment = await gate.verify_request(make_request(payment=encode_payment()), "signal")

        header = await gate.settle(payment)

        assert facilitator.paths == ["/verify", "/settle"]
        assert json.loads(base64.b64decode(header))["transaction"] == "0xtx"

    @pytest.mark.asyncio
    async def test_failed_settlement(self):
        gate = make_gate(FacilitatorStub(settle={"success": False, "errorReason": "nonce_reused"}))
        payment = await gate.verify_request(make_request(payment=encode_payment()), "signal")

        with pytest.raises(PaymentRequired, match="nonce_reused"):
            await gate.settle(payment)

    @pytest.mark.asyncio
    async def test_disabled_gate_lets_requests_through_unpaid(self):
        facilitator = FacilitatorStub()
        gate = make_gate(facilitator, enabled=False)

        payment = await gate.verify_request(make_request(), "signal")

        assert not payment.is_paid
        assert await gate.settle(payment) is None
        assert facilitator.requests == []

    @pytest.mark.asyncio
    async def test_unpaid_context_is_not_settled(self):
        gate = make_gate(FacilitatorStub())

        assert await gate.settle(PaymentContext(route="signal", amount_usd=0.05)) is None
