"""Tests for the Smart Pay HTTP routes."""
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.database import get_db_session
from app.core.dependencies import get_smartpay_service, get_smartpay_settings
from app.core.exceptions import SmartPayAuthenticationError
from app.core.security import SecretBox
from app.main import app
from app.services.provider_settings_service import (
    REFRESH_TOKEN_TEST_KEY,
    SIGNING_KEY_TEST_KEY,
)
from app.services.relay_service import RelayDispatcher
from app.services.smartpay_service import SmartPayService, sign_status

from conftest import (
    OTHER_SIGNING_KEY,
    SIGNING_KEY,
    FakeGateway,
    RecordingStatusLogger,
    make_batch,
    make_notification,
    make_result,
)


@pytest.fixture
def gateway():
    return FakeGateway(
        batches=[make_batch([make_result("INV-1", "COMPLETED")], more=False)]
    )


@pytest.fixture
def relayed():
    return []


@pytest.fixture
def client(gateway, relayed, provider_settings):
    def handler(request):
        relayed.append(request)
        return httpx.Response(200)

    service = SmartPayService(
        gateway=gateway,
        status_log=RecordingStatusLogger(),
        relay_factory=lambda: RelayDispatcher(transport=httpx.MockTransport(handler)),
    )
    app.dependency_overrides[get_smartpay_settings] = lambda: provider_settings
    app.dependency_overrides[get_smartpay_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _checkout_body(method="ideal"):
    return {
        "invoice_number": "INV-1",
        "payment_method": method,
        "baskets": [
            {
                "psp_price_in_vat": "19.95",
                "lines": [
                    {"connected_item_id": "101", "title": "Coffee", "quantity": 1, "price": "19.95"}
                ],
            }
        ],
        "customer": {
            "firstname": "Jane",
            "lastname": "Jansen",
            "street": "Dorpsstraat",
            "zipcode": "1234 AB",
            "city": "Utrecht",
            "country": "NL",
        },
    }


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


class TestCheckoutRoute:
    def test_success(self, client, gateway):
        resp = client.post("/api/v1/smartpay/checkout", json=_checkout_body())
        assert resp.status_code == 200
        data = resp.json()
        assert data["successful"] is True
        assert data["action"] == "Redirect"
        assert data["action_data"] == gateway.redirect_url

    def test_unsupported_brand(self, client, provider_settings):
        resp = client.post("/api/v1/smartpay/checkout", json=_checkout_body("bitcoin"))
        data = resp.json()
        assert data == {
            "successful": False,
            "action": "Redirect",
            "action_data": provider_settings.fail_url,
            "error_message": "Unknown or unsupported payment method 'bitcoin'",
        }

    def test_invalid_quantity_rejected(self, client):
        body = _checkout_body()
        body["baskets"][0]["lines"][0]["quantity"] = 0
        resp = client.post("/api/v1/smartpay/checkout", json=body)
        assert resp.status_code == 422


class TestReturnRoute:
    def test_completed_redirects_to_success(self, client, provider_settings):
        params = {
            "order_id": "INV-1",
            "status": "COMPLETED",
            "signature": sign_status("INV-1", "COMPLETED", SIGNING_KEY),
        }
        resp = client.get("/api/v1/smartpay/return", params=params, follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == provider_settings.success_url

    def test_bad_signature_redirects_to_fail(self, client, provider_settings):
        params = {
            "order_id": "INV-1",
            "status": "COMPLETED",
            "signature": sign_status("INV-1", "COMPLETED", OTHER_SIGNING_KEY),
        }
        resp = client.get("/api/v1/smartpay/return", params=params, follow_redirects=False)
        assert resp.headers["location"] == provider_settings.fail_url


class TestStatusUpdateRoute:
    def test_completed(self, client):
        params = {
            "order_id": "INV-1",
            "status": "COMPLETED",
            "signature": sign_status("INV-1", "COMPLETED", SIGNING_KEY),
        }
        resp = client.get("/api/v1/smartpay/status-update", params=params)
        assert resp.status_code == 200
        assert resp.json()["successful"] is True

    def test_missing_params(self, client):
        resp = client.get("/api/v1/smartpay/status-update")
        assert resp.status_code == 200
        assert resp.json()["successful"] is False


class TestWebhookRoute:
    def test_valid_notification_relays(self, client, gateway, relayed):
        resp = client.post(
            "/api/v1/smartpay/webhook",
            content=json.dumps(make_notification().to_wire()),
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 200
        assert resp.json()["received"] is True
        assert gateway.retrieve_calls == 1
        assert len(relayed) == 1
        assert relayed[0].url.params["order_id"] == "INV-1"

    @pytest.mark.parametrize(
        "body",
        [
            "garbage",
            json.dumps(make_notification(OTHER_SIGNING_KEY).to_wire()),
        ],
    )
    def test_invalid_notification_still_accepted(self, client, gateway, relayed, body):
        resp = client.post("/api/v1/smartpay/webhook", content=body)
        assert resp.status_code == 200
        assert resp.json()["received"] is True
        assert gateway.retrieve_calls == 0
        assert relayed == []


class FakeResult:
    def __init__(self, rows):
        self._rows = rows

    def all(self):
        return self._rows


class StoredSecretsSession:
    def __init__(self, values):
        self.values = values

    async def execute(self, statement):
        return FakeResult(list(self.values.items()))


@pytest.fixture
def undecryptable_client(monkeypatch, gateway, relayed):
    """Client whose stored secrets were encrypted with a different key."""
    foreign_box = SecretBox("fedcba9876543210fedcba9876543210")
    session = StoredSecretsSession(
        {
            REFRESH_TOKEN_TEST_KEY: foreign_box.encrypt("refresh-token"),
            SIGNING_KEY_TEST_KEY: foreign_box.encrypt(SIGNING_KEY),
        }
    )
    monkeypatch.setattr(settings, "SECRETS_ENCRYPTION_KEY", "0123456789abcdef0123456789abcdef")
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")

    def handler(request):
        relayed.append(request)
        return httpx.Response(200)

    service = SmartPayService(
        gateway=gateway,
        status_log=RecordingStatusLogger(),
        relay_factory=lambda: RelayDispatcher(transport=httpx.MockTransport(handler)),
    )
    app.dependency_overrides[get_db_session] = lambda: session
    app.dependency_overrides[get_smartpay_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestUndecryptableCredentials:
    def test_return_redirects_to_fail(self, undecryptable_client):
        params = {
            "order_id": "INV-1",
            "status": "COMPLETED",
            "signature": sign_status("INV-1", "COMPLETED", SIGNING_KEY),
        }
        resp = undecryptable_client.get(
            "/api/v1/smartpay/return", params=params, follow_redirects=False
        )
        assert resp.status_code == 302
        assert resp.headers["location"] == settings.SMARTPAY_FAIL_URL

    def test_checkout_redirects_to_fail(self, undecryptable_client, gateway):
        gateway.announce_error = SmartPayAuthenticationError("Missing refresh token")
        resp = undecryptable_client.post("/api/v1/smartpay/checkout", json=_checkout_body())
        assert resp.status_code == 200
        data = resp.json()
        assert data["successful"] is False
        assert data["action_data"] == settings.SMARTPAY_FAIL_URL

    def test_webhook_still_acknowledged(self, undecryptable_client, gateway, relayed):
        resp = undecryptable_client.post(
            "/api/v1/smartpay/webhook",
            content=json.dumps(make_notification().to_wire()),
        )
        assert resp.status_code == 200
        assert resp.json()["received"] is True
        assert gateway.retrieve_calls == 0
        assert relayed == []
