from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlmodel import Field, Relationship

from contractsync.models.base import TimestampedModel, UUIDModel
from contractsync.models.contact import Contact


class ContractStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    FROZEN = "frozen"
    CANCELLED = "cancelled"


class BillingStatus(str, Enum):
    """Espelho do status de cobrança na Vindi."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    REFUNDED = "refunded"
    UNKNOWN = "unknown"


class SignatureStatus(str, Enum):
    """Espelho do status do envelope na ClickSign."""

    PENDING = "pending"
    PARTIALLY_SIGNED = "partially_signed"
    SIGNED = "signed"
    CANCELLED = "cancelled"
    REFUSED = "refused"
    EXPIRED = "expired"


class Contract(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "contracts"

    contact_id: UUID = Field(foreign_key="contacts.id", index=True)
    product_id: UUID | None = Field(default=None, index=True)
    owner_id: UUID | None = Field(default=None, index=True)

    status: ContractStatus = Field(default=ContractStatus.DRAFT, index=True)
    contract_value: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)
    installments: int | None = Field(default=None)
    reported_at: datetime | None = Field(default=None)
    first_payment_at: datetime | None = Field(default=None)

    # Vínculo com a Vindi (preenchido de forma assíncrona)
    vindi_customer_id: str | None = Field(default=None, max_length=64, index=True)
    vindi_subscription_id: str | None = Field(default=None, max_length=64, index=True)
    vindi_bill_id: str | None = Field(default=None, max_length=64, index=True)
    vindi_status: BillingStatus | None = Field(default=None)

    # Vínculo com a ClickSign
    clicksign_document_key: str | None = Field(default=None, max_length=128, index=True)
    clicksign_status: SignatureStatus | None = Field(default=None)

    # Metadados auxiliares do último pagamento (last write wins)
    paid_installments: int | None = Field(default=None)
    last_payment_at: datetime | None = Field(default=None)

    contact: Optional[Contact] = Relationship()


class ContractCancellation(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "contract_cancellations"

    contract_id: UUID = Field(foreign_key="contracts.id", index=True, unique=True)
    cancelled_at: datetime | None = Field(default=None)
    reason_code: str = Field(max_length=64)
    detail: str | None = Field(default=None)
    contract_month: int | None = Field(default=None)
    meetings_completed: int | None = Field(default=None)
