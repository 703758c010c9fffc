import base64

import pytest
from fastapi.testclient import TestClient

from lottery_checkout.main import app
from lottery_checkout.routes import deps
from lottery_checkout.routes.deps import get_orchestrator
from lottery_checkout.services.gateway import SimulatedGateway

from .conftest import future_year, png_bytes

LINES = [
    {"id": "1", "main_numbers": [3, 14, 15, 26, 35], "power_number": 9},
    {"id": "2", "main_numbers": [1, 2], "power_number": None},
]


@pytest.fixture
def client(orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def start_order(client, has_multiplier=False):
    response = client.post(
        "/api/checkout/orders",
        json={"game_id": "powerball", "tier": "Standard", "lines": LINES, "has_multiplier": has_multiplier},
    )
    assert response.status_code == 200
    return response.json()


def act(client, action, data=None):
    return client.post(f"/api/payments/session/actions/{action}", json={"data": data or {}})


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "lottery-checkout"}


def test_games(client):
    games = client.get("/api/games").json()
    assert "powerball" in [g["id"] for g in games]
    assert client.get("/api/games/keno").status_code == 404


def test_methods(client):
    methods = {m["method"]: m for m in client.get("/api/payments/methods").json()}
    assert len(methods) == 8
    assert methods["PROMPTPAY"]["settlement_currency"] == "THB"
    assert methods["ALIPAY"]["settlement_currency"] == "CNY"
    assert methods["BANK"]["capability"] == "manual_proof"


def test_quote(client):
    response = client.post(
        "/api/checkout/quote",
        json={"game_id": "powerball", "tier": "Syndicate", "lines": LINES, "has_multiplier": True},
    )
    quote = response.json()
    assert quote["complete_lines"] == 1
    assert quote["total"] == "16.00"
    assert quote["eligible"] is True


def test_order_without_complete_lines(client):
    response = client.post(
        "/api/checkout/orders",
        json={"game_id": "powerball", "lines": [LINES[1]]},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "invalid"
    assert "lines" in body["fields"]


def test_order_with_out_of_range_numbers(client):
    response = client.post(
        "/api/checkout/orders",
        json={"game_id": "powerball", "lines": [{"id": "1", "main_numbers": [1, 1, 1, 1, 1], "power_number": 999}]},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "invalid"
    assert "lines.1" in body["fields"]


def test_card_checkout_issues_ticket(client):
    order = start_order(client, has_multiplier=True)
    assert order["amount_usd"] == "6.00"
    assert order["lines"] == 1

    session = client.post("/api/payments/session", json={"method": "CARD"}).json()
    assert session["state"] == "awaiting_action"
    assert session["proceed_action"] == "pay"

    response = act(
        client,
        "pay",
        {
            "number": "4242 4242 4242 4242",
            "expiry_month": "12",
            "expiry_year": future_year(),
            "cvv": "123",
            "cardholder_name": "Somchai Jaidee",
            "save_card": True,
        },
    )
    assert response.json()["state"] == "succeeded"

    status = client.get("/api/checkout/status").json()
    assert status["view"] == "success"

    tickets = client.get("/api/tickets").json()
    assert len(tickets) == 1
    assert tickets[0]["id"] == order["order_id"]
    assert tickets[0]["status"] == "PENDING"
    assert client.get(f"/api/tickets/{order['order_id']}").status_code == 200

    cards = client.get("/api/cards").json()
    assert [c["last4"] for c in cards] == ["4242"]
    assert client.delete(f"/api/cards/{cards[0]['id']}").status_code == 200
    assert client.delete(f"/api/cards/{cards[0]['id']}").status_code == 404


def test_invalid_card_form_returns_fields(client):
    start_order(client)
    client.post("/api/payments/session", json={"method": "CARD"})

    response = act(client, "pay", {"number": "1234", "expiry_month": "13", "cvv": "1"})
    assert response.status_code == 400
    fields = response.json()["fields"]
    assert {"number", "expiry_month", "expiry_year", "cvv", "cardholder_name"} <= set(fields)


def test_no_session(client):
    response = client.get("/api/payments/session")
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_unknown_action(client):
    start_order(client)
    client.post("/api/payments/session", json={"method": "PROMPTPAY"})
    response = act(client, "pay")
    assert response.status_code == 400


def test_new_order_conflicts_with_active_session(client):
    start_order(client)
    client.post("/api/payments/session", json={"method": "PROMPTPAY"})

    response = client.post("/api/checkout/orders", json={"game_id": "powerball", "lines": LINES})
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"


def test_cancel_returns_to_method_selection(client):
    start_order(client)
    session = client.post("/api/payments/session", json={"method": "ALIPAY"}).json()
    assert session["settlement_currency"] == "CNY"
    assert session["countdown_remaining"] == 900

    response = client.post("/api/payments/session/cancel")
    assert response.json()["state"] == "cancelled"
    assert client.get("/api/checkout/status").json()["view"] == "method_selection"
    assert client.get("/api/tickets").json() == []


def test_bank_transfer_upload_reaches_processing(client):
    start_order(client)
    client.post("/api/payments/session", json={"method": "BANK"})
    act(client, "continue")

    response = act(
        client,
        "upload",
        {
            "filename": "slip.png",
            "content_type": "image/png",
            "content_base64": base64.b64encode(png_bytes()).decode(),
        },
    )
    assert response.status_code == 200

    session = act(client, "submit").json()
    assert session["state"] == "confirming"
    assert session["cancel_action"] is None

    response = client.post("/api/payments/session/cancel")
    assert response.status_code == 409
    assert response.json()["code"] == "busy"


def test_leave_checkout(client):
    start_order(client)
    client.post("/api/payments/session", json={"method": "WECHAT"})
    status = client.post("/api/checkout/leave").json()
    assert status["view"] == "number_selection"
    assert status["order"] is None


def test_default_orchestrator_publishes_on_shared_event_bus(monkeypatch):
    monkeypatch.setattr(deps, "orchestrator", None)
    monkeypatch.setattr(deps, "gateway", SimulatedGateway(latency=0))
    assert deps.get_orchestrator().events is deps.get_event_bus()
