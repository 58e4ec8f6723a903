from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

LinkageMode = Literal["vindi", "clicksign", "all"]


class LinkageSweepRequest(BaseModel):
    mode: LinkageMode = "all"
    batch_size: int | None = Field(default=None, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class ContractIdsRequest(BaseModel):
    contract_ids: list[UUID] = Field(default_factory=list)


class LinkageResult(BaseModel):
    contract_id: UUID
    name: str | None = None
    email: str | None = None
    vindi: str | None = None
    vindi_match: str | None = None
    vindi_customer_id: str | None = None
    vindi_subscription_id: str | None = None
    vindi_bill_id: str | None = None
    clicksign: str | None = None
    clicksign_document_key: str | None = None
    updated: bool = False
    errors: list[str] = Field(default_factory=list)


class LinkageSweepResponse(BaseModel):
    success: bool = True
    mode: LinkageMode
    offset: int
    batch_size: int
    processed: int
    next_offset: int
    done: bool
    vindi_linked: int
    clicksign_linked: int
    results: list[LinkageResult]


class FrozenSweepResponse(BaseModel):
    success: bool = True
    checked: int
    frozen: int
    unfrozen: int
    frozen_ids: list[UUID]
    unfrozen_ids: list[UUID]
    skipped_ids: list[UUID]


class PaymentStatusEntry(BaseModel):
    status: str
    details: str | None = None
    overdue_count: int = 0
    days_late: int | None = None


class PaymentStatusResponse(BaseModel):
    success: bool = True
    statuses: dict[str, PaymentStatusEntry]


class CancellationDateEntry(BaseModel):
    cancellation_id: UUID
    contract_id: UUID
    client: str | None = None
    date: str | None = None
    source: Literal["distrato_envelope", "linked_envelope", "not_found"]
    envelope: str | None = None


class CancellationDateResponse(BaseModel):
    success: bool = True
    updated: int
    details: list[CancellationDateEntry]


class SignatureDateEntry(BaseModel):
    contract_id: UUID
    name: str | None = None
    status: Literal["updated", "not_found"]
    match_method: Literal["key_match", "name_match"] | None = None
    old_date: str | None = None
    new_date: str | None = None


class SignatureDateResponse(BaseModel):
    success: bool = True
    total: int
    updated: int
    results: list[SignatureDateEntry]
