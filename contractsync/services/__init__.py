from contractsync.services.backfill import CancellationDateBackfill, SignatureDateBackfill
from contractsync.services.clicksign import ClicksignClient
from contractsync.services.contract import ContractService
from contractsync.services.http_client import ProviderError
from contractsync.services.notification import NotificationEmitter
from contractsync.services.payments import PaymentSummaryService
from contractsync.services.reconciliation import FrozenContractSweep, LinkageSweep, PaymentStatusSweep
from contractsync.services.state_machine import ContractStateMachine
from contractsync.services.vindi import VindiClient
from contractsync.services.webhooks import ClicksignWebhookService, VindiWebhookService

__all__ = [
    "CancellationDateBackfill",
    "ClicksignClient",
    "ClicksignWebhookService",
    "ContractService",
    "ContractStateMachine",
    "FrozenContractSweep",
    "LinkageSweep",
    "NotificationEmitter",
    "PaymentStatusSweep",
    "PaymentSummaryService",
    "ProviderError",
    "SignatureDateBackfill",
    "VindiClient",
    "VindiWebhookService",
]
