"""
Pydantic models for the storefront-facing Smart Pay routes.

                 /api/v1/smartpay/checkout | return | status-update | webhook
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.smartpay import PaymentStatus, SmartPayEnvironment


# ──────────────────────────────────────────────────────────────────────
#  Settings / credentials
# ──────────────────────────────────────────────────────────────────────


class SmartPayCredentials(BaseModel):
    """Refresh token and signing key for one environment."""

    model_config = ConfigDict(frozen=True)

    refresh_token: str = ""
    signing_key: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.refresh_token and self.signing_key)

    def __repr__(self) -> str:
        return f"SmartPayCredentials(complete={self.is_complete})"


class SmartPaySettings(BaseModel):
    """Everything one Smart Pay operation needs, resolved per request."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: Optional[str] = None
    success_url: str
    fail_url: str
    pending_url: str = ""
    # Where Smart Pay sends the customer back to; defaults to success_url
    return_url: str = ""
    webhook_url: str = ""
    currency: str = "EUR"
    environment: SmartPayEnvironment = SmartPayEnvironment.SANDBOX
    credentials: SmartPayCredentials = Field(default_factory=SmartPayCredentials)


# ──────────────────────────────────────────────────────────────────────
#  Checkout – POST /api/v1/smartpay/checkout
# ──────────────────────────────────────────────────────────────────────


class BasketLine(BaseModel):
    connected_item_id: str
    title: Optional[str] = None
    description: Optional[str] = None
    quantity: int = Field(gt=0)
    price: Decimal


class ShoppingBasket(BaseModel):
    """
    A basket as priced by the shop's basket service.

    ``psp_price_in_vat`` is the basket total the PSP should charge,
    computed upstream.
    """

    id: Optional[str] = None
    psp_price_in_vat: Decimal
    lines: List[BasketLine] = Field(default_factory=list)


class CheckoutRequest(BaseModel):
    invoice_number: str = Field(min_length=1)
    payment_method: str = Field(description="External payment method name, e.g. 'ideal'")
    baskets: List[ShoppingBasket] = Field(min_length=1)
    # Customer details keyed like the shop stores them: firstname, street,
    # zipcode, country, shipping_street, ...
    customer: Dict[str, Optional[str]] = Field(default_factory=dict)


class PaymentRequestAction(str, Enum):
    REDIRECT = "Redirect"


class PaymentRequestResult(BaseModel):
    successful: bool
    action: PaymentRequestAction = PaymentRequestAction.REDIRECT
    action_data: str
    error_message: Optional[str] = None


# ──────────────────────────────────────────────────────────────────────
#  Status update – GET /api/v1/smartpay/status-update
# ──────────────────────────────────────────────────────────────────────


class StatusUpdateResult(BaseModel):
    successful: bool
    status: Optional[str] = None
    order_id: Optional[str] = None


# ──────────────────────────────────────────────────────────────────────
#  Webhook – POST /api/v1/smartpay/webhook
# ──────────────────────────────────────────────────────────────────────


class RelayOutcome(BaseModel):
    order_id: str
    status: PaymentStatus
    url: str
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


class RelayReport(BaseModel):
    """What one notification poll did."""

    accepted: bool = False
    batches: int = 0
    in_progress: int = 0
    skipped: int = 0
    aborted: bool = False
    relays: List[RelayOutcome] = Field(default_factory=list)

    @property
    def failed(self) -> List[RelayOutcome]:
        return [r for r in self.relays if not r.ok]


class WebhookAck(BaseModel):
    received: bool = True
    data: Optional[Dict[str, Any]] = None
