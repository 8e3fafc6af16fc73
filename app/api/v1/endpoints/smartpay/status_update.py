"""
Smart Pay Status Update Route.

Endpoint:
  GET /api/v1/smartpay/status-update — Receive a relayed, signed status

This is the URL the notification poller relays terminal statuses to
(SMARTPAY_WEBHOOK_URL). Query: order_id, status, signature.
"""

import logging

from fastapi import APIRouter, Depends, Request

from app.core.dependencies import get_smartpay_service, get_smartpay_settings
from app.schemas.payments import SmartPaySettings, StatusUpdateResult
from app.services.smartpay_service import SmartPayService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/status-update",
    response_model=StatusUpdateResult,
    summary="Process a relayed Smart Pay status",
    tags=["smartpay", "webhooks"],
)
async def process_status_update(
    request: Request,
    provider_settings: SmartPaySettings = Depends(get_smartpay_settings),
    service: SmartPayService = Depends(get_smartpay_service),
):
    result = await service.process_status_update(request.query_params, provider_settings)

    logger.info(
        f"[smartpay] status update — order={result.order_id}, "
        f"successful={result.successful}, status={result.status}"
    )
    return result
