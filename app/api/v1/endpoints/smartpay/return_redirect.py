"""
Smart Pay Return Route.

Endpoint:
  GET /api/v1/smartpay/return — Customer returns from the Smart Pay page

Query: order_id, status, signature. The signature is verified before the
status is trusted:
  COMPLETED          → success URL
  IN_PROGRESS        → pending URL (success URL when none configured)
  CANCELLED/EXPIRED  → fail URL
  anything else      → fail URL
  illegal signature  → fail URL
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from app.core.dependencies import get_smartpay_service, get_smartpay_settings
from app.schemas.payments import SmartPaySettings
from app.services.smartpay_service import SmartPayService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/return",
    response_class=RedirectResponse,
    status_code=302,
    summary="Redirect the customer after returning from Smart Pay",
    tags=["smartpay", "payments"],
)
async def return_from_psp(
    request: Request,
    provider_settings: SmartPaySettings = Depends(get_smartpay_settings),
    service: SmartPayService = Depends(get_smartpay_service),
):
    """
    GET /api/v1/smartpay/return

    Idempotent: the same query string always yields the same redirect.
    """
    url = service.get_redirect_url_on_return(request.query_params, provider_settings)
    return RedirectResponse(url=url, status_code=302)
