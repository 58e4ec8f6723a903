from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="allow")


class VindiRef(_Lenient):
    id: int | str | None = None


class VindiChargeBill(_Lenient):
    id: int | str | None = None
    subscription: VindiRef | None = None


class VindiBillData(_Lenient):
    id: int | str | None = None
    subscription: VindiRef | None = None


class VindiChargeData(_Lenient):
    id: int | str | None = None
    installment: int | None = None
    installments: int | None = None
    paid_at: str | None = None
    bill: VindiChargeBill | None = None


class VindiEventData(_Lenient):
    bill: VindiBillData | None = None
    charge: VindiChargeData | None = None
    subscription: VindiRef | None = None


class VindiEvent(_Lenient):
    type: str
    data: VindiEventData


class VindiWebhookPayload(_Lenient):
    event: VindiEvent

    @property
    def subscription_id(self) -> str | None:
        data = self.event.data
        candidates: list[Any] = [
            data.subscription.id if data.subscription else None,
            data.bill.subscription.id if data.bill and data.bill.subscription else None,
            data.charge.bill.subscription.id
            if data.charge and data.charge.bill and data.charge.bill.subscription
            else None,
        ]
        return next((str(value) for value in candidates if value not in (None, "")), None)

    @property
    def bill_id(self) -> str | None:
        data = self.event.data
        candidates: list[Any] = [
            data.bill.id if data.bill else None,
            data.charge.bill.id if data.charge and data.charge.bill else None,
        ]
        return next((str(value) for value in candidates if value not in (None, "")), None)


class ClicksignEventInfo(_Lenient):
    name: str | None = None
    occurred_at: str | None = None


class ClicksignDocument(_Lenient):
    key: str | None = None
    status: str | None = None
    auto_close: bool | None = None


class ClicksignSigner(_Lenient):
    key: str | None = None
    email: str | None = None
    name: str | None = None


class ClicksignWebhookPayload(_Lenient):
    event: ClicksignEventInfo | None = None
    document: ClicksignDocument | None = None
    signer: ClicksignSigner | None = None
    account: dict[str, Any] | None = None
