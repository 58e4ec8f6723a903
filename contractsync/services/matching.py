"""Resolução heurística de identidade entre contatos locais e recursos dos provedores.

Nenhuma função deste módulo levanta exceção quando não há correspondência:
ausência de match é um resultado normal (``None``). Erros de rede do provedor,
por outro lado, são propagados para quem chamou decidir (pular ou falhar).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Protocol, Sequence

from contractsync.core.logging_setup import logger
from contractsync.models.contact import Contact
from contractsync.services.clicksign import Envelope
from contractsync.services.vindi import VindiBill, VindiCustomer, VindiSubscription
from contractsync.utils.text import digits_only, name_tokens, normalize_name

MIN_REGISTRY_CODE_DIGITS = 11
MIN_PHONE_DIGITS = 10
DISTRATO = "distrato"
CONTRACT_ENVELOPE_HINTS = ("planejamento", "contrato", "prestacao", "envelope de")


class CustomerDirectory(Protocol):
    def search_customers(self, field_name: str, value: str) -> list[VindiCustomer]: ...


class BillingDirectory(Protocol):
    def find_subscription(self, customer_id: str, *, active_only: bool = True) -> VindiSubscription | None: ...

    def find_latest_bill(self, customer_id: str) -> VindiBill | None: ...


@dataclass(frozen=True)
class ContactQuery:
    full_name: str | None = None
    email: str | None = None
    cpf: str | None = None
    phone: str | None = None

    @classmethod
    def from_contact(cls, contact: Contact) -> "ContactQuery":
        return cls(
            full_name=contact.full_name,
            email=contact.email,
            cpf=contact.cpf,
            phone=contact.phone_number,
        )


@dataclass(frozen=True)
class CustomerMatch:
    customer_id: str
    strategy: str


@dataclass(frozen=True)
class BillingLink:
    subscription: VindiSubscription | None = None
    bill: VindiBill | None = None

    @property
    def found(self) -> bool:
        return self.subscription is not None or self.bill is not None


# ----------------------------------------------------------------------
# Estratégias de busca de cliente na Vindi
# ----------------------------------------------------------------------
Predicate = Callable[[ContactQuery], tuple[str, str] | None]


def email_predicate(query: ContactQuery) -> tuple[str, str] | None:
    email = (query.email or "").strip().lower()
    return ("email", email) if email else None


def registry_code_predicate(query: ContactQuery) -> tuple[str, str] | None:
    digits = digits_only(query.cpf)
    return ("registry_code", digits) if len(digits) >= MIN_REGISTRY_CODE_DIGITS else None


def name_predicate(query: ContactQuery) -> tuple[str, str] | None:
    name = " ".join((query.full_name or "").split())
    return ("name", f'"{name}"') if name else None


def phone_predicate(query: ContactQuery) -> tuple[str, str] | None:
    digits = digits_only(query.phone)
    return ("phone", digits) if len(digits) >= MIN_PHONE_DIGITS else None


DEFAULT_STRATEGIES: tuple[tuple[str, Predicate], ...] = (
    ("email", email_predicate),
    ("registry_code", registry_code_predicate),
    ("name", name_predicate),
    ("phone", phone_predicate),
)


class CustomerMatcher:
    """Cascata email → CPF/CNPJ → nome → telefone; a primeira estratégia com resultado vence."""

    def __init__(
        self,
        directory: CustomerDirectory,
        strategies: Sequence[tuple[str, Predicate]] = DEFAULT_STRATEGIES,
    ) -> None:
        self.directory = directory
        self.strategies = tuple(strategies)

    def match(self, query: ContactQuery) -> CustomerMatch | None:
        for label, predicate in self.strategies:
            criteria = predicate(query)
            if criteria is None:
                continue
            customers = self.directory.search_customers(*criteria)
            if customers:
                logger.info("Cliente Vindi %s encontrado por %s", customers[0].id, label)
                return CustomerMatch(customer_id=customers[0].id, strategy=label)
        return None


def resolve_billing(directory: BillingDirectory, customer_id: str) -> BillingLink:
    """Assinatura ativa primeiro; sem ela, a fatura mais recente de qualquer status."""
    subscription = directory.find_subscription(customer_id, active_only=True)
    if subscription is not None:
        return BillingLink(subscription=subscription)
    return BillingLink(bill=directory.find_latest_bill(customer_id))


# ----------------------------------------------------------------------
# Envelopes da ClickSign
# ----------------------------------------------------------------------
def envelope_matches_name(envelope_name: str | None, client_name: str | None) -> bool:
    normalized_client = normalize_name(client_name)
    tokens = name_tokens(client_name)
    if not tokens:
        return False
    normalized_envelope = normalize_name(envelope_name)
    if normalized_client in normalized_envelope:
        return True
    if len(tokens) >= 2:
        return tokens[0] in normalized_envelope and tokens[-1] in normalized_envelope
    return False


def find_distrato_envelope(envelopes: Iterable[Envelope], client_name: str | None) -> Envelope | None:
    """Distrato mais recente (maior ``created`` em ordem lexicográfica) cujo nome cita o cliente."""
    matches = [
        envelope
        for envelope in envelopes
        if DISTRATO in normalize_name(envelope.name) and envelope_matches_name(envelope.name, client_name)
    ]
    if not matches:
        return None
    return max(matches, key=lambda envelope: envelope.created or "")


def find_contract_envelope(envelopes: Iterable[Envelope], client_name: str | None) -> Envelope | None:
    """Envelope do contrato (não distrato) do cliente; prefere nomes típicos de contrato."""
    matches = [envelope for envelope in envelopes if envelope_matches_name(envelope.name, client_name)]
    if not matches:
        return None
    for envelope in matches:
        name = normalize_name(envelope.name)
        if DISTRATO not in name and any(hint in name for hint in CONTRACT_ENVELOPE_HINTS):
            return envelope
    non_distrato = [envelope for envelope in matches if DISTRATO not in normalize_name(envelope.name)]
    return non_distrato[0] if non_distrato else None
