from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, generate_prefixed_id


def generate_provider_detail_id() -> str:
    return generate_prefixed_id("ppd")


class PaymentProviderDetail(TimestampMixin, Base):
    """One keyed (encrypted) setting of a payment service provider."""

    __tablename__ = "payment_provider_details"

    __table_args__ = (
        UniqueConstraint("provider_id", "key", name="uq_provider_detail_key"),
    )

    id: Mapped[str] = mapped_column(
        String(50), primary_key=True, default=generate_provider_detail_id
    )
    provider_id: Mapped[str] = mapped_column(String(255), index=True)
    key: Mapped[str] = mapped_column(String(255))
    value: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<PaymentProviderDetail {self.provider_id}:{self.key}>"
