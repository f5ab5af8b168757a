"""
Integration tests for the free endpoints: health, catalog, price, chain lookups, chat, dashboard and monitoring.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from signal_agent import __version__
from signal_agent.api.app import app
from signal_agent.api.dependencies import (
    get_chain_provider,
    get_payment_gate,
    get_price_provider,
    get_storage,
)
from signal_agent.api.routes.monitoring import reset_metrics
from signal_agent.api.routes.skills import analyst_dependency
from signal_agent.data.data_structures import TransactionInfo
from tests.conftest import PAY_TO, PAYER, StubChainProvider, StubPriceProvider, make_gate

CBETH_ADDRESS = "0x2Ae3F1Ec7F1F5012CFEab0185bfc7aa3cf0DEc22"
TX_HASH = "0x" + "cd" * 32


@pytest.fixture
def analyst():
    analyst = MagicMock()
    analyst.chat = AsyncMock(return_value="ETH is range bound between 1,980 and 2,020.")
    return analyst


@pytest.fixture
def chain():
    return StubChainProvider(
        balances={PAYER: ("0.250000", "12.50")},
        transactions={
            TX_HASH: TransactionInfo(
                hash=TX_HASH,
                network="base-sepolia",
                from_address=PAYER,
                to_address=PAY_TO,
                value="0.010000 ETH",
                gas_used="21000",
                status="success",
                block_number=16,
                explorer_url=f"https://sepolia.basescan.org/tx/{TX_HASH}",
            ),
        },
    )


@pytest.fixture
def client(storage, facilitator, analyst, chain):
    provider = StubPriceProvider({"ETH": 2011.37, CBETH_ADDRESS: 2150.5})
    gate = make_gate(facilitator)
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_payment_gate] = lambda: gate
    app.dependency_overrides[get_price_provider] = lambda: provider
    app.dependency_overrides[analyst_dependency] = lambda: analyst
    app.dependency_overrides[get_chain_provider] = lambda: chain
    reset_metrics()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.mark.integration
class TestStatusRoutes:

    def test_root(self, client):
        assert client.get("/").json() == {"message": "Token Signal Agent API", "version": __version__}

    def test_health(self, client, storage):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["server"] == "token-signal-agent"
        assert body["storage"]["ok"] is True
        assert (storage.data_dir / "earnings.json").exists()
        assert body["timestamp"].endswith("Z")

    def test_catalog(self, client):
        body = client.get("/catalog").json()

        assert body["payTo"] == PAY_TO
        assert body["network"] == "base-sepolia"
        prices = {skill["endpoint"]: skill["price"] for skill in body["skills"]}
        assert prices == {
            "/price/{token}": "free",
            "/chat": "free",
            "/balance/{address}": "free",
            "/tx/{hash}": "free",
            "/signal/{token}": "$0.05",
            "/report/{token}": "$0.10",
            "/watchlist": "$0.03",
        }


@pytest.mark.integration
class TestPriceSkill:

    def test_symbol(self, client):
        response = client.get("/price/eth")

        assert response.status_code == 200
        body = response.json()
        assert body["priceUSD"] == 2011.37
        assert body["change24h"] == 1.5
        assert body["source"] == "stub"
        assert body["timestamp"].endswith("Z")

    def test_contract_address(self, client):
        assert client.get(f"/price/{CBETH_ADDRESS}").json()["priceUSD"] == 2150.5

    def test_unsupported_token(self, client):
        response = client.get("/price/DOGE")

        assert response.status_code == 400
        assert "unsupported token" in response.json()["detail"]

    def test_upstream_failure(self, client):
        assert client.get("/price/USDC").status_code == 502


@pytest.mark.integration
class TestChainSkills:

    def test_balance(self, client):
        response = client.get(f"/balance/{PAYER}")

        assert response.status_code == 200
        body = response.json()
        assert body["address"] == PAYER
        assert body["network"] == "base-sepolia"
        assert body["balances"] == {"ETH": "0.250000", "USDC": "12.50"}
        assert body["timestamp"].endswith("Z")

    @pytest.mark.parametrize("address", ["0x1234", "vitalik.eth", "0x" + "g" * 40])
    def test_balance_invalid_address(self, client, chain, address):
        response = client.get(f"/balance/{address}")

        assert response.status_code == 400
        assert "invalid ethereum address" in response.json()["detail"]
        assert chain.calls == []

    def test_balance_rpc_failure(self, client, chain):
        chain.error = "connection refused"

        response = client.get(f"/balance/{PAYER}")

        assert response.status_code == 502
        assert "connection refused" in response.json()["detail"]

    def test_transaction(self, client):
        response = client.get(f"/tx/{TX_HASH}")

        assert response.status_code == 200
        body = response.json()
        assert body["from"] == PAYER
        assert body["to"] == PAY_TO
        assert body["status"] == "success"
        assert body["blockNumber"] == 16
        assert body["explorerUrl"].endswith(TX_HASH)

    def test_transaction_not_found(self, client):
        response = client.get("/tx/0x" + "ef" * 32)

        assert response.status_code == 404
        assert "transaction not found" in response.json()["detail"]

    def test_transaction_invalid_hash(self, client):
        assert client.get("/tx/0xdeadbeef").status_code == 400

    def test_transaction_rpc_failure(self, client, chain):
        chain.error = "rate limited"

        assert client.get(f"/tx/{TX_HASH}").status_code == 502


@pytest.mark.integration
class TestChatSkill:

    def test_chat(self, client, analyst):
        response = client.post("/chat", json={
            "messages": [{"role": "user", "content": "How is ETH doing?"}],
            "context": "ETH BUY 72%",
        })

        assert response.status_code == 200
        assert response.json() == {"response": "ETH is range bound between 1,980 and 2,020."}
        args, kwargs = analyst.chat.call_args
        assert args[0] == [{"role": "user", "content": "How is ETH doing?"}]
        assert kwargs["context"] == "ETH BUY 72%"

    @pytest.mark.parametrize("payload", [{}, {"messages": []}])
    def test_messages_required(self, client, payload):
        response = client.post("/chat", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == "messages array is required"

    def test_analyst_failure(self, client, analyst):
        analyst.chat.side_effect = RuntimeError("upstream timeout")

        assert client.post("/chat", json={"messages": [{"content": "hi"}]}).status_code == 500


@pytest.mark.integration
class TestDashboardRoutes:

    def test_dashboard_data(self, client, storage):
        storage.write_earning_entry("/signal/ETH", 0.05, "0xabc")

        body = client.get("/dashboard/data").json()

        assert set(body) == {"prices", "signals", "earnings", "runs"}
        assert body["earnings"]["totalEarned"] == 0.05

    def test_collections(self, client):
        assert client.get("/dashboard/prices").json() == []
        assert client.get("/dashboard/signals").json() == []
        assert client.get("/dashboard/runs").json() == []
        assert client.get("/dashboard/earnings").json()["totalCalls"] == 0


@pytest.mark.integration
class TestMonitoringRoutes:

    def test_metrics(self, client):
        client.get("/signal/ETH")

        payload = client.get("/monitoring/metrics").json()

        for field in (
            "timestamp",
            "uptime_seconds",
            "requests_total",
            "errors_total",
            "payments_required_total",
            "average_request_duration_seconds",
            "error_rate",
        ):
            assert field in payload
        assert payload["payments_required_total"] == 1
        assert isinstance(payload["performance"], dict)

    def test_metrics_without_performance(self, client):
        payload = client.get("/monitoring/metrics", params={"include_performance": "false"}).json()

        assert "performance" not in payload

    def test_ping(self, client):
        body = client.get("/monitoring/ping").json()

        assert body["status"] == "pong"
        assert body["timestamp"].endswith("Z")

    def test_timestamps_are_utc_with_milliseconds(self, client):
        for path in ("/health", "/catalog", "/monitoring/metrics", "/monitoring/ping"):
            timestamp = client.get(path).json()["timestamp"]

            assert timestamp.endswith("Z"), path
            assert len(timestamp.split(".")[1]) == 4, path
