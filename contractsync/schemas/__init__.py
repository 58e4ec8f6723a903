from contractsync.schemas.contract import ContractCancel, ContractRead, PaymentSummary
from contractsync.schemas.sweeps import (
    CancellationDateResponse,
    ContractIdsRequest,
    FrozenSweepResponse,
    LinkageSweepRequest,
    LinkageSweepResponse,
    PaymentStatusResponse,
    SignatureDateResponse,
)
from contractsync.schemas.webhooks import ClicksignWebhookPayload, VindiWebhookPayload

__all__ = [
    "CancellationDateResponse",
    "ClicksignWebhookPayload",
    "ContractCancel",
    "ContractIdsRequest",
    "ContractRead",
    "FrozenSweepResponse",
    "LinkageSweepRequest",
    "LinkageSweepResponse",
    "PaymentStatusResponse",
    "PaymentSummary",
    "SignatureDateResponse",
    "VindiWebhookPayload",
]
