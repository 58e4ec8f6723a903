from . import contacts, contracts, health, sweeps, webhooks

__all__ = [
    "contacts",
    "contracts",
    "health",
    "sweeps",
    "webhooks",
]
