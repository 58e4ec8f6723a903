"""contract sync baseline

Revision ID: 0001_contract_sync_baseline
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
import sqlmodel

revision = "0001_contract_sync_baseline"
down_revision = None
branch_labels = None
depends_on = None

CONTRACT_STATUS = sa.Enum("DRAFT", "ACTIVE", "FROZEN", "CANCELLED", name="contractstatus")
BILLING_STATUS = sa.Enum(
    "PENDING", "PAID", "OVERDUE", "CANCELLED", "REJECTED", "REFUNDED", "UNKNOWN", name="billingstatus"
)
SIGNATURE_STATUS = sa.Enum(
    "PENDING", "PARTIALLY_SIGNED", "SIGNED", "CANCELLED", "REFUSED", "EXPIRED", name="signaturestatus"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "contacts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        *_timestamps(),
        sa.Column("owner_id", sa.Uuid(), nullable=True),
        sa.Column("full_name", sqlmodel.AutoString(length=255), nullable=False),
        sa.Column("email", sqlmodel.AutoString(length=255), nullable=True),
        sa.Column("cpf", sqlmodel.AutoString(length=32), nullable=True),
        sa.Column("phone_number", sqlmodel.AutoString(length=32), nullable=True),
    )
    op.create_index("ix_contacts_id", "contacts", ["id"])
    op.create_index("ix_contacts_owner_id", "contacts", ["owner_id"])

    op.create_table(
        "contracts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        *_timestamps(),
        sa.Column("contact_id", sa.Uuid(), sa.ForeignKey("contacts.id"), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=True),
        sa.Column("owner_id", sa.Uuid(), nullable=True),
        sa.Column("status", CONTRACT_STATUS, nullable=False),
        sa.Column("contract_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("installments", sa.Integer(), nullable=True),
        sa.Column("reported_at", sa.DateTime(), nullable=True),
        sa.Column("first_payment_at", sa.DateTime(), nullable=True),
        sa.Column("vindi_customer_id", sqlmodel.AutoString(length=64), nullable=True),
        sa.Column("vindi_subscription_id", sqlmodel.AutoString(length=64), nullable=True),
        sa.Column("vindi_bill_id", sqlmodel.AutoString(length=64), nullable=True),
        sa.Column("vindi_status", BILLING_STATUS, nullable=True),
        sa.Column("clicksign_document_key", sqlmodel.AutoString(length=128), nullable=True),
        sa.Column("clicksign_status", SIGNATURE_STATUS, nullable=True),
        sa.Column("paid_installments", sa.Integer(), nullable=True),
        sa.Column("last_payment_at", sa.DateTime(), nullable=True),
    )
    for column in (
        "id",
        "contact_id",
        "product_id",
        "owner_id",
        "status",
        "vindi_customer_id",
        "vindi_subscription_id",
        "vindi_bill_id",
        "clicksign_document_key",
    ):
        op.create_index(f"ix_contracts_{column}", "contracts", [column])

    op.create_table(
        "contract_cancellations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        *_timestamps(),
        sa.Column("contract_id", sa.Uuid(), sa.ForeignKey("contracts.id"), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("reason_code", sqlmodel.AutoString(length=64), nullable=False),
        sa.Column("detail", sqlmodel.AutoString(), nullable=True),
        sa.Column("contract_month", sa.Integer(), nullable=True),
        sa.Column("meetings_completed", sa.Integer(), nullable=True),
    )
    op.create_index("ix_contract_cancellations_id", "contract_cancellations", ["id"])
    op.create_index(
        "ix_contract_cancellations_contract_id", "contract_cancellations", ["contract_id"], unique=True
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        *_timestamps(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sqlmodel.AutoString(length=255), nullable=False),
        sa.Column("message", sqlmodel.AutoString(), nullable=False),
        sa.Column("type", sqlmodel.AutoString(length=64), nullable=False),
        sa.Column("link", sqlmodel.AutoString(length=255), nullable=True),
        sa.Column("read_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_notifications_id", "notifications", ["id"])
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_read_at", "notifications", ["read_at"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("contract_cancellations")
    op.drop_table("contracts")
    op.drop_table("contacts")
    bind = op.get_bind()
    for enum in (SIGNATURE_STATUS, BILLING_STATUS, CONTRACT_STATUS):
        enum.drop(bind, checkfirst=True)
