from __future__ import annotations

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlmodel import Session, select

from contractsync.core.logging_setup import logger
from contractsync.models.contract import Contract, ContractCancellation
from contractsync.schemas.sweeps import (
    CancellationDateEntry,
    CancellationDateResponse,
    SignatureDateEntry,
    SignatureDateResponse,
)
from contractsync.services.clicksign import ClicksignClient, Envelope
from contractsync.services.http_client import ProviderError
from contractsync.services.matching import find_contract_envelope, find_distrato_envelope
from contractsync.services.reconciliation import require_client
from contractsync.services.state_machine import ContractStateMachine
from contractsync.utils.dates import parse_timestamp, utcnow


def load_envelopes(clicksign: ClicksignClient) -> list[Envelope]:
    """Todos os envelopes da conta; falha total vira lista vazia (cada contrato cai em not_found)."""
    try:
        return clicksign.list_envelopes()
    except ProviderError as exc:
        logger.error("Falha ao listar envelopes da ClickSign: %s", exc)
        return []


class CancellationDateBackfill:
    """Corrige ``cancelled_at`` usando a data real do distrato na ClickSign."""

    def __init__(self, session: Session, *, clicksign: ClicksignClient | None) -> None:
        self.session = session
        self.clicksign = clicksign

    def _fetch_envelope(self, key: str) -> Envelope | None:
        try:
            return self.clicksign.get_envelope(key)
        except ProviderError as exc:
            logger.warning("Envelope %s não encontrado na ClickSign: %s", key, exc)
            return None

    def _resolve(
        self,
        client_name: str | None,
        document_key: str | None,
        envelopes: list[Envelope],
        by_id: dict[str, Envelope],
    ) -> tuple[str | None, str, Envelope | None]:
        if client_name:
            distrato = find_distrato_envelope(envelopes, client_name)
            if distrato is not None and (distrato.created or distrato.modified):
                return distrato.created or distrato.modified, "distrato_envelope", distrato
        if document_key:
            envelope = by_id.get(document_key) or self._fetch_envelope(document_key)
            if envelope is not None and (envelope.modified or envelope.created):
                return envelope.modified or envelope.created, "linked_envelope", envelope
        return None, "not_found", None

    def run(self, contract_ids: Sequence[UUID]) -> CancellationDateResponse:
        if not contract_ids:
            return CancellationDateResponse(updated=0, details=[])
        require_client(self.clicksign, "clicksign")

        rows = self.session.exec(
            select(ContractCancellation, Contract)
            .join(Contract, Contract.id == ContractCancellation.contract_id)
            .where(ContractCancellation.contract_id.in_(list(contract_ids)))
            .order_by(ContractCancellation.contract_id)
        ).all()
        envelopes = load_envelopes(self.clicksign)
        by_id = {envelope.id: envelope for envelope in envelopes}
        logger.info("Backfill de cancelamentos: %s registros, %s envelopes", len(rows), len(envelopes))

        updated = 0
        details: list[CancellationDateEntry] = []
        for cancellation, contract in rows:
            client_name = contract.contact.full_name if contract.contact else None
            raw_date, source, envelope = self._resolve(
                client_name, contract.clicksign_document_key, envelopes, by_id
            )
            cancelled_at = parse_timestamp(raw_date)
            if cancelled_at is None:
                source, envelope = "not_found", None
            else:
                if cancellation.cancelled_at != cancelled_at:
                    cancellation.cancelled_at = cancelled_at
                    cancellation.updated_at = utcnow()
                    self.session.add(cancellation)
                    self.session.commit()
                    logger.info("Cancelamento do contrato %s datado em %s (%s)", contract.id, raw_date, source)
                updated += 1
            details.append(
                CancellationDateEntry(
                    cancellation_id=cancellation.id,
                    contract_id=contract.id,
                    client=client_name,
                    date=raw_date if cancelled_at else None,
                    source=source,
                    envelope=envelope.name if envelope else None,
                )
            )
        return CancellationDateResponse(updated=updated, details=details)


class SignatureDateBackfill:
    """Preenche ``reported_at`` com a data de criação do envelope do contrato."""

    def __init__(self, session: Session, *, clicksign: ClicksignClient | None) -> None:
        self.session = session
        self.clicksign = clicksign
        self.state_machine = ContractStateMachine(session)

    def run(self, contract_ids: Sequence[UUID]) -> SignatureDateResponse:
        if not contract_ids:
            return SignatureDateResponse(total=0, updated=0, results=[])
        envelopes = load_envelopes(require_client(self.clicksign, "clicksign"))
        by_id = {envelope.id: envelope for envelope in envelopes}

        contracts = self.session.exec(
            select(Contract).where(Contract.id.in_(list(contract_ids))).order_by(Contract.id)
        ).all()
        results: list[SignatureDateEntry] = []
        for contract in contracts:
            name = contract.contact.full_name if contract.contact else None
            old_date = _isoformat(contract.reported_at)
            created: str | None = None
            method = None
            link_key = None

            linked = by_id.get(contract.clicksign_document_key or "")
            if linked is not None and linked.created:
                created, method = linked.created, "key_match"
            elif name:
                envelope = find_contract_envelope(envelopes, name)
                if envelope is not None and envelope.created:
                    created, method = envelope.created, "name_match"
                    if not contract.clicksign_document_key:
                        link_key = envelope.id

            reported_at = parse_timestamp(created)
            if reported_at is None:
                results.append(SignatureDateEntry(contract_id=contract.id, name=name, status="not_found"))
                continue

            self.state_machine.apply(
                contract,
                linkage={"clicksign_document_key": link_key} if link_key else None,
                metadata={"reported_at": reported_at},
            )
            results.append(
                SignatureDateEntry(
                    contract_id=contract.id,
                    name=name,
                    status="updated",
                    match_method=method,
                    old_date=old_date,
                    new_date=_isoformat(reported_at),
                )
            )

        return SignatureDateResponse(
            total=len(contracts),
            updated=sum(1 for entry in results if entry.status == "updated"),
            results=results,
        )


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
