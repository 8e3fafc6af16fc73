import logging
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import SecretBox
from app.models.provider_detail import PaymentProviderDetail
from app.schemas.payments import SmartPayCredentials, SmartPaySettings
from app.services.smartpay_gateway import resolve_environment

logger = logging.getLogger(__name__)

REFRESH_TOKEN_LIVE_KEY = "raboomnikassarefreshtokenlive"
REFRESH_TOKEN_TEST_KEY = "raboomnikassarefreshtokentest"
SIGNING_KEY_LIVE_KEY = "raboomnikassasigningkeylive"
SIGNING_KEY_TEST_KEY = "raboomnikassasigningkeytest"

CREDENTIAL_KEYS = (
    REFRESH_TOKEN_LIVE_KEY,
    REFRESH_TOKEN_TEST_KEY,
    SIGNING_KEY_LIVE_KEY,
    SIGNING_KEY_TEST_KEY,
)


def uses_test_credentials(environment_name: Optional[str] = None) -> bool:
    return (environment_name or settings.ENVIRONMENT).lower() in ("development", "test")


def resolve_credentials(
    values: Mapping[str, Optional[str]],
    environment_name: Optional[str] = None,
    secret_box: Optional[SecretBox] = None,
) -> SmartPayCredentials:
    """
    Pick and decrypt the test or live credential pair.

    Secrets that do not decrypt give empty credentials, so every flow
    ends at the fail URL or as a no-op instead of an error response.
    """
    box = secret_box or SecretBox()
    if uses_test_credentials(environment_name):
        refresh_key, signing_key = REFRESH_TOKEN_TEST_KEY, SIGNING_KEY_TEST_KEY
    else:
        refresh_key, signing_key = REFRESH_TOKEN_LIVE_KEY, SIGNING_KEY_LIVE_KEY
    try:
        return SmartPayCredentials(
            refresh_token=box.decrypt(values.get(refresh_key)),
            signing_key=box.decrypt(values.get(signing_key)),
        )
    except ValueError:
        logger.error(
            f"[smartpay] stored credentials ({refresh_key}, {signing_key}) could not be "
            f"decrypted; continuing without credentials"
        )
        return SmartPayCredentials()


class ProviderSettingsService:
    def __init__(self, session: AsyncSession, secret_box: Optional[SecretBox] = None):
        self.session = session
        self.secret_box = secret_box or SecretBox()

    async def _load_values(self, provider_id: str) -> dict[str, Optional[str]]:
        result = await self.session.execute(
            select(PaymentProviderDetail.key, PaymentProviderDetail.value).where(
                PaymentProviderDetail.provider_id == provider_id,
                PaymentProviderDetail.key.in_(CREDENTIAL_KEYS),
            )
        )
        return {key: value for key, value in result.all()}

    async def get_provider_settings(
        self,
        provider_id: Optional[str] = None,
        environment_name: Optional[str] = None,
    ) -> SmartPaySettings:
        provider_id = provider_id or settings.SMARTPAY_PROVIDER_ID
        values = await self._load_values(provider_id)

        if values:
            credentials = resolve_credentials(values, environment_name, self.secret_box)
        else:
            logger.warning(
                f"[smartpay] no stored credentials for provider {provider_id}"
            )
            credentials = SmartPayCredentials()

        return SmartPaySettings(
            id=provider_id,
            title="Rabo Smart Pay",
            success_url=settings.SMARTPAY_SUCCESS_URL,
            fail_url=settings.SMARTPAY_FAIL_URL,
            pending_url=settings.SMARTPAY_PENDING_URL,
            return_url=settings.SMARTPAY_RETURN_URL,
            webhook_url=settings.SMARTPAY_WEBHOOK_URL,
            currency=settings.SMARTPAY_CURRENCY,
            environment=resolve_environment(environment_name),
            credentials=credentials,
        )
