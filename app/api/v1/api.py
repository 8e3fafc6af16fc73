from fastapi import APIRouter

from app.api.v1.endpoints.smartpay.router import smartpay_router

api_router = APIRouter()

# Rabo Smart Pay routes, prefix /smartpay
# Full paths: /api/v1/smartpay/checkout, /api/v1/smartpay/webhook, etc.
api_router.include_router(
    smartpay_router,
    prefix="/smartpay",
    tags=["smartpay"],
)
