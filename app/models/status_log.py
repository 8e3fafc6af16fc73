from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, generate_prefixed_id


def generate_status_log_id() -> str:
    return generate_prefixed_id("psl")


class PaymentStatusLog(TimestampMixin, Base):
    __tablename__ = "payment_status_logs"

    id: Mapped[str] = mapped_column(
        String(50), primary_key=True, default=generate_status_log_id
    )
    provider: Mapped[str] = mapped_column(String(100), index=True)
    order_id: Mapped[str] = mapped_column(String(255), index=True)
    status_code: Mapped[int] = mapped_column(Integer)

    def __repr__(self) -> str:
        return f"<PaymentStatusLog {self.provider}:{self.order_id}={self.status_code}>"
