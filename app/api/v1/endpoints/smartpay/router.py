"""
Smart Pay Router Aggregator.

Combines all Smart Pay sub-routers into a single router with
prefix /smartpay. When registered in the main app under /api/v1,
the full paths become:

  POST /api/v1/smartpay/checkout        — Announce order, get PSP redirect
  GET  /api/v1/smartpay/return          — Customer return from the PSP
  GET  /api/v1/smartpay/status-update   — Relayed signed status
  POST /api/v1/smartpay/webhook         — Smart Pay notification receiver

"""

from fastapi import APIRouter

from app.api.v1.endpoints.smartpay.checkout import router as checkout_router
from app.api.v1.endpoints.smartpay.return_redirect import router as return_router
from app.api.v1.endpoints.smartpay.status_update import router as status_update_router
from app.api.v1.endpoints.smartpay.webhook import router as webhook_router

# Main Smart Pay router; prefix is applied in api.py as /smartpay
smartpay_router = APIRouter()

smartpay_router.include_router(checkout_router)
smartpay_router.include_router(return_router)
smartpay_router.include_router(status_update_router)
smartpay_router.include_router(webhook_router)
