"""
Rabo Smart Pay (OmniKassa) gateway.

The protocol logic in ``SmartPayService`` only talks to the narrow
``SmartPayGateway`` interface: announce an order, retrieve queued order
results. ``HttpSmartPayGateway`` is the httpx implementation against the
real API; tests substitute an in-memory double.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.core.exceptions import ExternalServiceError, SmartPayAuthenticationError
from app.schemas.payments import SmartPayCredentials
from app.schemas.smartpay import (
    AccessToken,
    ApiNotification,
    MerchantOrder,
    MerchantOrderResponse,
    MerchantOrderStatusResponse,
    SmartPayEnvironment,
)

logger = logging.getLogger(__name__)


REFRESH_PATH = "gatekeeper/refresh"
ORDER_PATH = "order/server/api/v2/order"
EVENT_RESULTS_PATH = "order/server/api/events/results/{event_name}"

AUTH_FAILURE_CODES = {401, 403}


def resolve_environment(environment_name: Optional[str] = None) -> SmartPayEnvironment:
    """Acceptance and live talk to production; everything else to the sandbox."""
    name = (environment_name or settings.ENVIRONMENT).lower()
    if name in ("acceptance", "live"):
        return SmartPayEnvironment.PRODUCTION
    return SmartPayEnvironment.SANDBOX


class SmartPayGateway(ABC):
    """The PSP capabilities the payment flows depend on."""

    @abstractmethod
    async def announce(
        self,
        order: MerchantOrder,
        credentials: SmartPayCredentials,
        environment: SmartPayEnvironment,
    ) -> MerchantOrderResponse:
        """Submit a merchant order and return the PSP redirect."""
        ...

    @abstractmethod
    async def retrieve_announcement(
        self,
        notification: ApiNotification,
        environment: SmartPayEnvironment,
    ) -> MerchantOrderStatusResponse:
        """Fetch the next batch of order results for a notification."""
        ...


class HttpSmartPayGateway(SmartPayGateway):

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else settings.SMARTPAY_HTTP_TIMEOUT
        self._transport = transport

    # ──────────────────────────────────────────────────────────────
    # URL / client resolution
    # ──────────────────────────────────────────────────────────────

    @staticmethod
    def base_url(environment: SmartPayEnvironment) -> str:
        url = (
            settings.SMARTPAY_PRODUCTION_API_URL
            if environment is SmartPayEnvironment.PRODUCTION
            else settings.SMARTPAY_SANDBOX_API_URL
        )
        return url if url.endswith("/") else f"{url}/"

    def _client(self, environment: SmartPayEnvironment) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url(environment),
            timeout=self.timeout,
            transport=self._transport,
        )

    @staticmethod
    def _parse(resp: httpx.Response, what: str) -> Dict[str, Any]:
        try:
            return resp.json()
        except ValueError as e:
            raise ExternalServiceError(
                f"Smart Pay {what} returned a non-JSON body",
                details={"status_code": resp.status_code},
            ) from e

    # ──────────────────────────────────────────────────────────────
    # Authentication
    # ──────────────────────────────────────────────────────────────

    async def _get_access_token(
        self, client: httpx.AsyncClient, refresh_token: str
    ) -> str:
        """Exchange the refresh token for a short-lived access token."""
        if not refresh_token:
            raise SmartPayAuthenticationError("No refresh token configured")

        resp = await client.get(
            REFRESH_PATH,
            headers={"Authorization": f"Bearer {refresh_token}"},
        )
        if resp.status_code in AUTH_FAILURE_CODES:
            logger.error(
                f"[smartpay] GET {REFRESH_PATH} rejected refresh token: HTTP {resp.status_code}"
            )
            raise SmartPayAuthenticationError(
                "Refresh token rejected",
                details={"status_code": resp.status_code},
            )
        if resp.status_code != 200:
            raise ExternalServiceError(
                f"Smart Pay token refresh failed: HTTP {resp.status_code}",
                details={"body": resp.text[:500]},
            )

        try:
            token = AccessToken.model_validate(self._parse(resp, "token refresh"))
        except ValidationError as e:
            raise SmartPayAuthenticationError("No access token in refresh response") from e
        return token.token

    # ──────────────────────────────────────────────────────────────
    # Announce
    # ──────────────────────────────────────────────────────────────

    async def announce(
        self,
        order: MerchantOrder,
        credentials: SmartPayCredentials,
        environment: SmartPayEnvironment,
    ) -> MerchantOrderResponse:
        try:
            async with self._client(environment) as client:
                access_token = await self._get_access_token(
                    client, credentials.refresh_token
                )
                resp = await client.post(
                    ORDER_PATH,
                    json=order.to_wire(),
                    headers={
                        "Content-Type": "application/json",
                        "Authorization": f"Bearer {access_token}",
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"[smartpay] POST {ORDER_PATH} error: {e}")
            raise ExternalServiceError(f"Smart Pay announce failed: {e}") from e

        logger.info(
            f"[smartpay] POST {ORDER_PATH} — HTTP {resp.status_code}, "
            f"merchantOrderId={order.merchant_order_id}"
        )

        if resp.status_code in AUTH_FAILURE_CODES:
            raise SmartPayAuthenticationError(
                "Access token rejected",
                details={"status_code": resp.status_code},
            )
        if resp.status_code >= 400:
            raise ExternalServiceError(
                f"Smart Pay announce failed: HTTP {resp.status_code}",
                details={"body": resp.text[:500]},
            )

        try:
            return MerchantOrderResponse.model_validate(self._parse(resp, "announce"))
        except ValidationError as e:
            raise ExternalServiceError("Smart Pay announce response has no redirectUrl") from e

    # ──────────────────────────────────────────────────────────────
    # Order results
    # ──────────────────────────────────────────────────────────────

    async def retrieve_announcement(
        self,
        notification: ApiNotification,
        environment: SmartPayEnvironment,
    ) -> MerchantOrderStatusResponse:
        path = EVENT_RESULTS_PATH.format(event_name=notification.event_name)
        try:
            async with self._client(environment) as client:
                resp = await client.get(
                    path,
                    headers={"Authorization": f"Bearer {notification.authentication}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"[smartpay] GET {path} error: {e}")
            raise ExternalServiceError(f"Smart Pay order results fetch failed: {e}") from e

        logger.info(f"[smartpay] GET {path} — HTTP {resp.status_code}")

        if resp.status_code in AUTH_FAILURE_CODES:
            raise SmartPayAuthenticationError(
                "Notification token rejected",
                details={"status_code": resp.status_code},
            )
        if resp.status_code >= 400:
            raise ExternalServiceError(
                f"Smart Pay order results fetch failed: HTTP {resp.status_code}",
                details={"body": resp.text[:500]},
            )

        try:
            return MerchantOrderStatusResponse.model_validate(
                self._parse(resp, "order results")
            )
        except ValidationError as e:
            raise ExternalServiceError("Smart Pay order results response is malformed") from e
