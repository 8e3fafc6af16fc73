import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.models.status_log import PaymentStatusLog

logger = logging.getLogger(__name__)


class StatusLogger:
    """Append-only log of every payment status observed from a PSP."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        timeout: Optional[float] = None,
    ):
        self._session_factory = session_factory
        self.timeout = timeout if timeout is not None else settings.STATUS_LOG_TIMEOUT

    def _get_session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            from app.core.database import async_session_factory

            self._session_factory = async_session_factory
        return self._session_factory

    async def _insert(self, provider: str, order_id: str, status_code: int) -> None:
        async with self._get_session_factory()() as session:
            session.add(
                PaymentStatusLog(
                    provider=provider,
                    order_id=order_id,
                    status_code=status_code,
                )
            )
            await session.commit()

    async def log(self, provider: str, order_id: str, status_code: int) -> None:
        """Best effort: failures are logged, never raised."""
        logger.info(
            f"[{provider}] status observed — order={order_id}, status_code={status_code}"
        )
        try:
            await asyncio.wait_for(
                self._insert(provider, order_id, status_code), timeout=self.timeout
            )
        except Exception as e:
            logger.error(
                f"[{provider}] failed to write status log for order {order_id}: {e}"
            )


status_logger = StatusLogger()
