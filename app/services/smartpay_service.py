"""
Rabo Smart Pay Payment Service.

Orchestrates the three Smart Pay flows:

  checkout       → map baskets to a merchant order, announce it, redirect
  return         → verify the signed (order_id, status) tuple from the
                   browser and pick the success / pending / fail URL
  notification   → on a PSP webhook ping, poll queued order results,
                   verify each batch and relay terminal statuses to the
                   shop's own status-update URL

Credentials and environment are passed in with every call
(``SmartPaySettings``); the service itself holds no per-request state.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError

from app.core.config import settings
from app.core.exceptions import (
    ExternalServiceError,
    MappingError,
    SignatureError,
    SmartPayAuthenticationError,
    UnavailableContextError,
)
from app.schemas.payments import (
    CheckoutRequest,
    PaymentRequestAction,
    PaymentRequestResult,
    RelayReport,
    SmartPaySettings,
    StatusUpdateResult,
)
from app.schemas.smartpay import (
    ApiNotification,
    PaymentCompletedResponse,
    PaymentStatus,
)
from app.services.order_mapper import build_order
from app.services.relay_service import RelayDispatcher, build_relay_url
from app.services.signing import calculate_signature, is_valid_signature, validate_signature
from app.services.smartpay_gateway import HttpSmartPayGateway, SmartPayGateway
from app.services.status_log_service import StatusLogger, status_logger

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════
# Constants
# ══════════════════════════════════════════════════════════════════════

PROVIDER_NAME = "rabosmartpay"

# Query parameter carrying our invoice number on return and relay
INVOICE_NUMBER_PARAM = "order_id"
STATUS_PARAM = "status"
SIGNATURE_PARAM = "signature"

AUTHENTICATION_FAILED_MESSAGE = "Failed to authenticate with Rabo Smart Pay API"
ANNOUNCE_FAILED_MESSAGE = "Failed to announce the order to Rabo Smart Pay"

STATUS_UPDATE_MESSAGES = {
    PaymentStatus.CANCELLED: "User cancelled the order at the PSP.",
    PaymentStatus.EXPIRED: "The order expired at the PSP.",
}
UNKNOWN_STATUS_MESSAGE = "Unknown status; unable to process status update."
ILLEGAL_SIGNATURE_MESSAGE = "Illegal signature received; unable to process status update."
NO_REQUEST_MESSAGE = "Request not available; unable to process status update."


# ══════════════════════════════════════════════════════════════════════
# Pure helper functions
# ══════════════════════════════════════════════════════════════════════


def get_invoice_number_from_request(query: Optional[Mapping[str, Any]]) -> str:
    if query is None:
        return ""
    return str(query.get(INVOICE_NUMBER_PARAM) or "")


def sign_status(order_id: str, status: str, signing_key: str) -> str:
    """Signature over (order_id, status), as carried by return and relay URLs."""
    return calculate_signature([order_id, status], signing_key)


def create_payment_completed_response(
    query: Optional[Mapping[str, Any]], signing_key: str
) -> PaymentCompletedResponse:
    """
    Rebuild the signed status tuple from request query parameters.

    Raises UnavailableContextError without a query and SignatureError when
    the tuple is not signed with ``signing_key``.
    """
    if query is None:
        raise UnavailableContextError()

    response = PaymentCompletedResponse(
        order_id=str(query.get(INVOICE_NUMBER_PARAM) or ""),
        status=str(query.get(STATUS_PARAM) or ""),
        signature=str(query.get(SIGNATURE_PARAM) or ""),
    )
    validate_signature(response, signing_key)
    return response


def _decode_notification(
    body: Union[bytes, str, Mapping[str, Any], None],
) -> Optional[ApiNotification]:
    if not body:
        return None
    try:
        if isinstance(body, (bytes, str)):
            body = json.loads(body)
        return ApiNotification.model_validate(body)
    except (ValueError, ValidationError) as e:
        logger.warning(f"[smartpay] unreadable notification body: {e}")
        return None


# ══════════════════════════════════════════════════════════════════════
# SmartPayService class
# ══════════════════════════════════════════════════════════════════════


class SmartPayService:
    """
    Rabo Smart Pay operations: checkout announce, the customer return,
    relayed status updates and notification polling.

    Credentials and environment arrive with every call in SmartPaySettings;
    the instance holds only its collaborators.
    """

    def __init__(
        self,
        gateway: Optional[SmartPayGateway] = None,
        status_log: Optional[StatusLogger] = None,
        relay_factory: Optional[Callable[[], RelayDispatcher]] = None,
        max_poll_batches: Optional[int] = None,
    ) -> None:
        self.gateway = gateway or HttpSmartPayGateway()
        self.status_log = status_log or status_logger
        self.relay_factory = relay_factory or RelayDispatcher
        self.max_poll_batches = max_poll_batches or settings.SMARTPAY_MAX_POLL_BATCHES

    # ──────────────────────────────────────────────────────────────
    # Checkout
    # ──────────────────────────────────────────────────────────────

    async def handle_payment_request(
        self,
        checkout: CheckoutRequest,
        provider_settings: SmartPaySettings,
    ) -> PaymentRequestResult:
        """
        Announce the checkout to Smart Pay and return where to send the
        customer. Every failure redirects to the fail URL; nothing retries.
        """
        try:
            order = build_order(
                baskets=checkout.baskets,
                customer=checkout.customer,
                return_url=provider_settings.return_url or provider_settings.success_url,
                invoice_number=checkout.invoice_number,
                payment_method=checkout.payment_method,
                currency=provider_settings.currency,
            )
        except MappingError as e:
            logger.warning(
                f"[smartpay] checkout mapping failed — invoice={checkout.invoice_number}, "
                f"kind={e.details.get('kind')}: {e.message}"
            )
            return self._failed_request(provider_settings, e.message)

        try:
            response = await self.gateway.announce(
                order, provider_settings.credentials, provider_settings.environment
            )
        except SmartPayAuthenticationError as e:
            logger.error(
                f"[smartpay] announce authentication failed — invoice={checkout.invoice_number}: {e.message}"
            )
            return self._failed_request(provider_settings, AUTHENTICATION_FAILED_MESSAGE)
        except ExternalServiceError as e:
            logger.error(
                f"[smartpay] announce failed — invoice={checkout.invoice_number}: {e.message}"
            )
            return self._failed_request(provider_settings, ANNOUNCE_FAILED_MESSAGE)

        logger.info(
            f"[smartpay] order announced — invoice={checkout.invoice_number}, "
            f"omnikassaOrderId={response.omnikassa_order_id}"
        )
        return PaymentRequestResult(
            successful=True,
            action=PaymentRequestAction.REDIRECT,
            action_data=response.redirect_url,
        )

    @staticmethod
    def _failed_request(
        provider_settings: SmartPaySettings, message: str
    ) -> PaymentRequestResult:
        return PaymentRequestResult(
            successful=False,
            action=PaymentRequestAction.REDIRECT,
            action_data=provider_settings.fail_url,
            error_message=message,
        )

    # ──────────────────────────────────────────────────────────────
    # Return from the PSP
    # ──────────────────────────────────────────────────────────────

    def get_redirect_url_on_return(
        self,
        query: Optional[Mapping[str, Any]],
        provider_settings: SmartPaySettings,
    ) -> str:
        """
        Smart Pay only has one return URL; the signed status in its query
        decides where the customer goes next.
        """
        try:
            response = create_payment_completed_response(
                query, provider_settings.credentials.signing_key
            )
        except UnavailableContextError:
            return provider_settings.fail_url
        except SignatureError:
            logger.warning(
                f"[smartpay] return with illegal signature — "
                f"order={get_invoice_number_from_request(query)}"
            )
            return provider_settings.fail_url

        status = response.payment_status
        logger.info(f"[smartpay] return — order={response.order_id}, status={status.value}")

        if status is PaymentStatus.COMPLETED:
            return provider_settings.success_url
        if status is PaymentStatus.IN_PROGRESS:
            # No dedicated pending page: treat as success
            return provider_settings.pending_url or provider_settings.success_url
        return provider_settings.fail_url

    # ──────────────────────────────────────────────────────────────
    # Status update (relay target)
    # ──────────────────────────────────────────────────────────────

    async def process_status_update(
        self,
        query: Optional[Mapping[str, Any]],
        provider_settings: SmartPaySettings,
    ) -> StatusUpdateResult:
        try:
            response = create_payment_completed_response(
                query, provider_settings.credentials.signing_key
            )
        except UnavailableContextError:
            return StatusUpdateResult(successful=False, status=NO_REQUEST_MESSAGE)
        except SignatureError:
            return StatusUpdateResult(
                successful=False,
                status=ILLEGAL_SIGNATURE_MESSAGE,
                order_id=get_invoice_number_from_request(query) or None,
            )

        status = response.payment_status
        await self.status_log.log(PROVIDER_NAME, response.order_id, status.code)

        if status is PaymentStatus.COMPLETED:
            return StatusUpdateResult(successful=True, order_id=response.order_id)
        return StatusUpdateResult(
            successful=False,
            status=STATUS_UPDATE_MESSAGES.get(status, UNKNOWN_STATUS_MESSAGE),
            order_id=response.order_id,
        )

    # ──────────────────────────────────────────────────────────────
    # Notification polling
    # ──────────────────────────────────────────────────────────────

    async def handle_notification(
        self,
        body: Union[bytes, str, Mapping[str, Any], None],
        provider_settings: SmartPaySettings,
    ) -> RelayReport:
        """
        Handle one webhook ping from Smart Pay.

        Invalid input is dropped silently: the caller is the PSP and is not
        told about validation failures. Batches are fetched until the PSP
        reports no more results. Relays already sent are not undone when a
        later batch fails verification.
        """
        report = RelayReport()
        signing_key = provider_settings.credentials.signing_key

        notification = _decode_notification(body)
        if notification is None:
            return report

        if not is_valid_signature(notification, signing_key):
            logger.warning(
                f"[smartpay] notification with illegal signature — event={notification.event_name}"
            )
            return report

        report.accepted = True
        relay_base_url = provider_settings.webhook_url
        if not relay_base_url:
            logger.warning("[smartpay] no relay URL configured; terminal statuses will not be relayed")

        async with self.relay_factory() as dispatcher:
            while True:
                if report.batches >= self.max_poll_batches:
                    logger.warning(
                        f"[smartpay] stopped polling after {report.batches} batches — "
                        f"event={notification.event_name}"
                    )
                    break

                try:
                    response = await self.gateway.retrieve_announcement(
                        notification, provider_settings.environment
                    )
                except (SmartPayAuthenticationError, ExternalServiceError) as e:
                    logger.error(f"[smartpay] order results fetch failed: {e.message}")
                    report.aborted = True
                    break

                report.batches += 1

                if not is_valid_signature(response, signing_key):
                    logger.warning(
                        f"[smartpay] order results batch {report.batches} has an illegal signature; aborting"
                    )
                    report.aborted = True
                    break

                logger.info(
                    f"[smartpay] batch {report.batches} — {len(response.order_results)} results, "
                    f"more={response.more_order_results_available}"
                )

                for result in response.order_results:
                    status = result.payment_status
                    await self.status_log.log(
                        PROVIDER_NAME, result.merchant_order_id, status.code
                    )

                    # Only definitive statuses are relayed
                    if not status.is_terminal:
                        report.in_progress += 1
                        continue

                    if not relay_base_url:
                        report.skipped += 1
                        continue

                    signature = sign_status(
                        result.merchant_order_id, result.order_status, signing_key
                    )
                    dispatcher.submit(
                        result.merchant_order_id,
                        status,
                        build_relay_url(
                            relay_base_url,
                            result.merchant_order_id,
                            result.order_status,
                            signature,
                        ),
                    )

                if not response.more_order_results_available:
                    break

            report.relays = await dispatcher.wait()

        if report.failed:
            logger.error(
                f"[smartpay] {len(report.failed)} of {len(report.relays)} relays failed — "
                f"event={notification.event_name}"
            )
        return report


# Module-level singleton
smartpay_service = SmartPayService()
