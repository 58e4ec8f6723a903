# noqa: F401 to ensure models are imported for metadata
from contractsync.models.contact import Contact
from contractsync.models.contract import Contract, ContractCancellation
from contractsync.models.notification import Notification

__all__ = [
    "Contact",
    "Contract",
    "ContractCancellation",
    "Notification",
]
