from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.schemas.payments import SmartPaySettings
from app.services.provider_settings_service import ProviderSettingsService
from app.services.smartpay_service import SmartPayService, smartpay_service


async def get_smartpay_settings(
    session: AsyncSession = Depends(get_db_session),
) -> SmartPaySettings:
    """Credentials are loaded fresh for every request."""
    return await ProviderSettingsService(session).get_provider_settings()


def get_smartpay_service() -> SmartPayService:
    return smartpay_service
