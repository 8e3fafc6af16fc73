"""Shared test fixtures."""
import base64
from decimal import Decimal
from typing import List, Optional

import pytest

from app.schemas.payments import (
    BasketLine,
    SmartPayCredentials,
    SmartPaySettings,
    ShoppingBasket,
)
from app.schemas.smartpay import (
    ApiNotification,
    MerchantOrder,
    MerchantOrderResponse,
    MerchantOrderResult,
    MerchantOrderStatusResponse,
    Money,
    SmartPayEnvironment,
)
from app.services.signing import calculate_signature
from app.services.smartpay_gateway import SmartPayGateway
from app.services.status_log_service import StatusLogger


SIGNING_KEY = base64.b64encode(b"test-signing-key-0123456789abcdef").decode()
OTHER_SIGNING_KEY = base64.b64encode(b"some-other-signing-key-987654321").decode()


class FakeGateway(SmartPayGateway):
    """In-memory Smart Pay: records announces, replays status batches."""

    def __init__(
        self,
        batches: Optional[List[MerchantOrderStatusResponse]] = None,
        announce_error: Optional[Exception] = None,
        redirect_url: str = "https://betalen.rabobank.nl/pay/abc123",
    ):
        self.batches = list(batches or [])
        self.announce_error = announce_error
        self.redirect_url = redirect_url
        self.announced: List[MerchantOrder] = []
        self.retrieve_calls = 0

    async def announce(self, order, credentials, environment):
        self.announced.append(order)
        if self.announce_error is not None:
            raise self.announce_error
        return MerchantOrderResponse(redirect_url=self.redirect_url, omnikassa_order_id="ok-1")

    async def retrieve_announcement(self, notification, environment):
        self.retrieve_calls += 1
        return self.batches.pop(0)


class RecordingStatusLogger(StatusLogger):
    def __init__(self):
        super().__init__(session_factory=None, timeout=1.0)
        self.entries = []

    async def log(self, provider, order_id, status_code):
        self.entries.append((provider, order_id, status_code))


def sign(model, key: str = SIGNING_KEY):
    return model.model_copy(
        update={"signature": calculate_signature(model.signature_data(), key)}
    )


def make_result(order_id: str, status: str) -> MerchantOrderResult:
    return MerchantOrderResult(
        merchant_order_id=order_id,
        omnikassa_order_id=f"ok-{order_id}",
        poi_id=2004,
        order_status=status,
        order_status_date_time="2026-10-16T10:00:00.000+02:00",
        error_code="",
        paid_amount=Money(currency="EUR", amount=1995),
        total_amount=Money(currency="EUR", amount=1995),
    )


def make_batch(results, more: bool, key: str = SIGNING_KEY) -> MerchantOrderStatusResponse:
    return sign(
        MerchantOrderStatusResponse(
            more_order_results_available=more,
            order_results=results,
            signature="",
        ),
        key,
    )


def make_notification(key: str = SIGNING_KEY) -> ApiNotification:
    return sign(
        ApiNotification(
            authentication="notification-token",
            expiry="2026-10-16T10:05:00.000+02:00",
            event_name="merchant.order.status.changed",
            poi_id=2004,
            signature="",
        ),
        key,
    )


@pytest.fixture
def signing_key():
    return SIGNING_KEY


@pytest.fixture
def provider_settings():
    return SmartPaySettings(
        id="rabosmartpay",
        title="Rabo Smart Pay",
        success_url="https://shop.example/success",
        fail_url="https://shop.example/fail",
        pending_url="https://shop.example/pending",
        webhook_url="https://shop.example/api/v1/smartpay/status-update?psp=rabosmartpay",
        environment=SmartPayEnvironment.SANDBOX,
        credentials=SmartPayCredentials(
            refresh_token="refresh-token",
            signing_key=SIGNING_KEY,
        ),
    )


@pytest.fixture
def customer():
    return {
        "firstname": "Jane",
        "lastname": "Jansen",
        "street": "Dorpsstraat",
        "housenumber": "12",
        "housenumber_suffix": "B",
        "zipcode": "1234 AB",
        "city": "Utrecht",
        "country": "NL",
    }


@pytest.fixture
def baskets():
    return [
        ShoppingBasket(
            id="basket-1",
            psp_price_in_vat=Decimal("24.95"),
            lines=[
                BasketLine(
                    connected_item_id="101",
                    title="Coffee beans",
                    description="Arabica, 1kg",
                    quantity=1,
                    price=Decimal("19.95"),
                ),
                BasketLine(
                    connected_item_id="102",
                    title="",
                    description="Shipping costs",
                    quantity=1,
                    price=Decimal("5.00"),
                ),
            ],
        ),
        ShoppingBasket(
            id="basket-2",
            psp_price_in_vat=Decimal("10.05"),
            lines=[
                BasketLine(
                    connected_item_id="201",
                    title="Mug",
                    description="Ceramic mug",
                    quantity=2,
                    price=Decimal("5.025"),
                ),
            ],
        ),
    ]
