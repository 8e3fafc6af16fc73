"""
Relay of verified Smart Pay statuses to the shop's own status-update URL.

Each relay is a GET carrying ``order_id``, ``status`` and ``signature``.
Relays run as tracked tasks behind a semaphore with a per-call timeout;
the caller awaits them all and gets one RelayOutcome per relay.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Set

import httpx

from app.core.config import settings
from app.schemas.payments import RelayOutcome
from app.schemas.smartpay import PaymentStatus

logger = logging.getLogger(__name__)


def build_relay_url(base_url: str, order_id: str, status: str, signature: str) -> str:
    """Append the signed status tuple to the relay base URL's query string."""
    url = httpx.URL(base_url)
    return str(
        url.copy_merge_params(
            {"order_id": order_id, "status": status, "signature": signature}
        )
    )


class RelayDispatcher:
    """
    Bounded fan-out of relay calls for a single notification.

    Not shared between notifications: every poll creates its own dispatcher.
    """

    def __init__(
        self,
        max_concurrency: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else settings.RELAY_TIMEOUT
        self._semaphore = asyncio.Semaphore(
            max_concurrency or settings.RELAY_MAX_CONCURRENCY
        )
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)
        self._tasks: Set[asyncio.Task[RelayOutcome]] = set()

    async def __aenter__(self) -> "RelayDispatcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self._client.aclose()

    def submit(self, order_id: str, status: PaymentStatus, url: str) -> None:
        task = asyncio.create_task(self._relay(order_id, status, url))
        self._tasks.add(task)

    async def _relay(self, order_id: str, status: PaymentStatus, url: str) -> RelayOutcome:
        async with self._semaphore:
            try:
                resp = await asyncio.wait_for(self._client.get(url), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.error(
                    f"[smartpay] relay timed out after {self.timeout}s — order={order_id}"
                )
                return RelayOutcome(
                    order_id=order_id, status=status, url=url, ok=False, error="timeout"
                )
            except httpx.HTTPError as e:
                logger.error(f"[smartpay] relay error — order={order_id}: {e}")
                return RelayOutcome(
                    order_id=order_id, status=status, url=url, ok=False, error=str(e)
                )

        ok = resp.status_code < 400
        if ok:
            logger.info(
                f"[smartpay] relayed — order={order_id}, status={status.value}, "
                f"HTTP {resp.status_code}"
            )
        else:
            logger.error(
                f"[smartpay] relay rejected — order={order_id}, status={status.value}, "
                f"HTTP {resp.status_code}"
            )
        return RelayOutcome(
            order_id=order_id,
            status=status,
            url=url,
            ok=ok,
            status_code=resp.status_code,
        )

    async def wait(self) -> List[RelayOutcome]:
        """Wait for every submitted relay and return their outcomes."""
        if not self._tasks:
            return []
        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        outcomes: List[RelayOutcome] = []
        for result in results:
            if isinstance(result, RelayOutcome):
                outcomes.append(result)
            else:
                logger.error(f"[smartpay] relay task crashed: {result!r}")
        self._tasks.clear()
        return outcomes
