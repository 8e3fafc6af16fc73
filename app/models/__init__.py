from app.models.base import Base, TimestampMixin
from app.models.provider_detail import PaymentProviderDetail
from app.models.status_log import PaymentStatusLog

__all__ = [
    "Base",
    "TimestampMixin",
    "PaymentProviderDetail",
    "PaymentStatusLog",
]
