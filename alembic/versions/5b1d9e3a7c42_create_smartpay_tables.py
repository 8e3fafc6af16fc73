"""create payment_provider_details and payment_status_logs

Revision ID: 5b1d9e3a7c42
Revises:
Create Date: 2026-10-16 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "5b1d9e3a7c42"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "payment_provider_details",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("provider_id", sa.String(length=255), nullable=False),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("provider_id", "key", name="uq_provider_detail_key"),
    )
    op.create_index(
        op.f("ix_payment_provider_details_provider_id"),
        "payment_provider_details",
        ["provider_id"],
        unique=False,
    )

    op.create_table(
        "payment_status_logs",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("provider", sa.String(length=100), nullable=False),
        sa.Column("order_id", sa.String(length=255), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_payment_status_logs_provider"),
        "payment_status_logs",
        ["provider"],
        unique=False,
    )
    op.create_index(
        op.f("ix_payment_status_logs_order_id"),
        "payment_status_logs",
        ["order_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index(
        op.f("ix_payment_status_logs_order_id"),
        table_name="payment_status_logs",
    )
    op.drop_index(
        op.f("ix_payment_status_logs_provider"),
        table_name="payment_status_logs",
    )
    op.drop_table("payment_status_logs")
    op.drop_index(
        op.f("ix_payment_provider_details_provider_id"),
        table_name="payment_provider_details",
    )
    op.drop_table("payment_provider_details")
