from __future__ import annotations

from typing import Any

from sqlmodel import Session

from contractsync.core.logging_setup import logger
from contractsync.services.clicksign import ClicksignClient
from contractsync.services.http_client import ProviderError
from contractsync.services.reconciliation import FrozenContractSweep, LinkageSweep
from contractsync.services.vindi import VindiClient

# Rotina periódica: congelamento/descongelamento e vínculos pendentes

MAX_LINKAGE_BATCHES = 500


def run_scheduled_sweeps(
    session: Session,
    *,
    vindi: VindiClient | None,
    clicksign: ClicksignClient | None,
) -> dict[str, Any]:
    summary: dict[str, Any] = {}

    try:
        frozen = FrozenContractSweep(session, vindi=vindi).run()
        summary["frozen_contracts"] = {
            "checked": frozen.checked,
            "frozen": frozen.frozen,
            "unfrozen": frozen.unfrozen,
            "skipped": len(frozen.skipped_ids),
        }
    except ProviderError as exc:
        logger.error("Varredura de contratos congelados não executada: %s", exc)
        summary["frozen_contracts"] = {"error": str(exc)}

    mode = "all" if vindi is not None and clicksign is not None else "clicksign" if clicksign else "vindi"
    sweep = LinkageSweep(session, vindi=vindi, clicksign=clicksign)
    offset = 0
    processed = linked = 0
    try:
        for _ in range(MAX_LINKAGE_BATCHES):
            result = sweep.run(mode=mode, offset=offset)
            processed += result.processed
            linked += result.vindi_linked + result.clicksign_linked
            offset = result.next_offset
            if result.done:
                break
        else:
            logger.warning("Varredura de vínculos interrompida após %s lotes", MAX_LINKAGE_BATCHES)
        summary["linkage"] = {"mode": mode, "processed": processed, "linked": linked}
    except ProviderError as exc:
        logger.error("Varredura de vínculos não executada: %s", exc)
        summary["linkage"] = {"error": str(exc)}

    logger.info("Varreduras agendadas concluídas: %s", summary)
    return summary
