"""Integration tests for the live delivery stream."""

import pytest
from fastapi import FastAPI, WebSocketDisconnect
from fastapi.testclient import TestClient
from logistics.api.errors import register_error_handlers
from logistics.api.routes import delivery_router, driver_router
from logistics.fanout.hub import get_hub

OPERATOR = {"X-Actor-Id": "op-1", "X-Actor-Role": "operator", "X-Company-Id": "co-1"}
OPERATOR_STREAM = "/deliveries/stream?role=operator&actor_id=op-1&company_id=co-1"


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(delivery_router)
    app.include_router(driver_router)
    register_error_handlers(app)
    return TestClient(app)


def _create(client, customer_id="cust-1"):
    response = client.post(
        "/deliveries",
        json={"customer_id": customer_id, "customer_name": "Ana Ruiz", "customer_address": "12 Harbour Road"},
        headers=OPERATOR,
    )
    return response.json()["delivery_id"]


class TestDeliveryStream:
    def test_initial_snapshot_on_connect(self, client):
        delivery_id = _create(client)

        with client.websocket_connect(OPERATOR_STREAM) as ws:
            message = ws.receive_json()

        assert message["type"] == "snapshot"
        assert [d["id"] for d in message["deliveries"]] == [delivery_id]

    def test_change_pushes_new_snapshot(self, client):
        with client.websocket_connect(OPERATOR_STREAM) as ws:
            assert ws.receive_json()["deliveries"] == []

            delivery_id = _create(client)
            message = ws.receive_json()

        assert message["type"] == "snapshot"
        assert message["deliveries"][0]["id"] == delivery_id
        assert message["deliveries"][0]["status"] == "pending"

    def test_refresh_resends_snapshot(self, client):
        _create(client)

        with client.websocket_connect(OPERATOR_STREAM) as ws:
            ws.receive_json()
            ws.send_text("refresh")
            message = ws.receive_json()

        assert message["type"] == "snapshot"
        assert len(message["deliveries"]) == 1

    def test_customer_stream_is_scoped(self, client):
        _create(client, customer_id="cust-2")
        mine = _create(client, customer_id="cust-1")

        with client.websocket_connect("/deliveries/stream?role=customer&actor_id=cust-1") as ws:
            message = ws.receive_json()

        assert [d["id"] for d in message["deliveries"]] == [mine]

    def test_unknown_role_is_refused(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/deliveries/stream?role=supplier&actor_id=x") as ws:
                ws.receive_json()

    def test_operator_without_company_is_refused(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/deliveries/stream?role=operator&actor_id=op-1") as ws:
                ws.receive_json()

    def test_disconnect_releases_subscription(self, client):
        with client.websocket_connect(OPERATOR_STREAM) as ws:
            ws.receive_json()
            assert len(get_hub().subscriptions()) == 1

        assert get_hub().subscriptions() == []
