"""
Smart Pay Webhook Route.

Endpoint:
  POST /api/v1/smartpay/webhook — Receive notifications from Smart Pay

The body is the PSP notification envelope. Processing polls all queued
order results and relays terminal statuses to the status-update URL.

The response is always 200: Smart Pay is never told about invalid
signatures or relay failures, so it has no reason to retry and cause
duplicate relays.
"""

import logging

from fastapi import APIRouter, Depends, Request

from app.core.dependencies import get_smartpay_service, get_smartpay_settings
from app.schemas.payments import SmartPaySettings, WebhookAck
from app.services.smartpay_service import SmartPayService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/webhook",
    response_model=WebhookAck,
    summary="Receive Rabo Smart Pay notifications",
    tags=["smartpay", "webhooks"],
)
async def handle_smartpay_webhook(
    request: Request,
    provider_settings: SmartPaySettings = Depends(get_smartpay_settings),
    service: SmartPayService = Depends(get_smartpay_service),
):
    """
    POST /api/v1/smartpay/webhook

    Poll and relay the queued order results, then acknowledge.
    """
    body = await request.body()

    logger.info(f"[smartpay] webhook received — {len(body)} bytes")

    try:
        report = await service.handle_notification(body, provider_settings)
    except Exception:
        logger.exception("[smartpay] unexpected error while handling notification")
        return WebhookAck()

    logger.info(
        f"[smartpay] webhook processed — accepted={report.accepted}, "
        f"batches={report.batches}, relays={len(report.relays)}, "
        f"failed={len(report.failed)}, aborted={report.aborted}"
    )

    return WebhookAck(
        data={
            "accepted": report.accepted,
            "batches": report.batches,
        }
    )
