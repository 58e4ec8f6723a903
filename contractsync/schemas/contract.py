from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from contractsync.models.contract import BillingStatus, ContractStatus, SignatureStatus
from contractsync.schemas.common import IDModel, Timestamped


class ContractRead(IDModel, Timestamped):
    contact_id: UUID
    product_id: UUID | None = None
    owner_id: UUID | None = None
    status: ContractStatus
    contract_value: Decimal | None = None
    installments: int | None = None
    reported_at: datetime | None = None
    first_payment_at: datetime | None = None
    vindi_customer_id: str | None = None
    vindi_subscription_id: str | None = None
    vindi_bill_id: str | None = None
    vindi_status: BillingStatus | None = None
    clicksign_document_key: str | None = None
    clicksign_status: SignatureStatus | None = None
    paid_installments: int | None = None
    last_payment_at: datetime | None = None


class ContractCancel(BaseModel):
    reason_code: str = Field(min_length=1, max_length=64)
    detail: str | None = None
    cancelled_at: datetime | None = None
    meetings_completed: int | None = Field(default=None, ge=0)


class ContractCancellationRead(IDModel, Timestamped):
    contract_id: UUID
    cancelled_at: datetime | None = None
    reason_code: str
    detail: str | None = None
    contract_month: int | None = None
    meetings_completed: int | None = None


class PaymentInstallment(BaseModel):
    id: str
    installment_number: int
    amount: float
    status: str
    due_date: datetime | None = None
    paid_at: datetime | None = None
    payment_url: str | None = None
    payment_method: str | None = None


class PaymentSummary(BaseModel):
    success: bool = True
    is_up_to_date: bool
    overdue_count: int
    paid_count: int
    total_count: int
    total_amount: float
    paid_amount: float
    installments: list[PaymentInstallment]
    vindi_status: BillingStatus | None = None
    contract_total_amount: float
    contract_total_installments: int
