"""
Smart Pay Checkout Route.

Endpoint:
  POST /api/v1/smartpay/checkout — Announce an order and get the PSP redirect

The response always carries a redirect: the Smart Pay payment page on
success, the configured fail URL otherwise (with error_message set).
"""

import logging

from fastapi import APIRouter, Depends

from app.core.dependencies import get_smartpay_service, get_smartpay_settings
from app.schemas.payments import CheckoutRequest, PaymentRequestResult, SmartPaySettings
from app.services.smartpay_service import SmartPayService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/checkout",
    response_model=PaymentRequestResult,
    summary="Start a Rabo Smart Pay payment",
    description=(
        "Maps the shopping baskets and customer details to a Smart Pay merchant "
        "order, announces it and returns the redirect URL for the customer. "
    ),
    tags=["smartpay", "payments"],
)
async def create_checkout(
    body: CheckoutRequest,
    provider_settings: SmartPaySettings = Depends(get_smartpay_settings),
    service: SmartPayService = Depends(get_smartpay_service),
):
    """
    POST /api/v1/smartpay/checkout

    Announce the order to Smart Pay with the payment brand forced, so the
    customer cannot switch payment method on the PSP page.
    """
    return await service.handle_payment_request(body, provider_settings)
