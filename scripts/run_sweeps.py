"""Executa as varreduras periódicas (cron): contratos congelados e vínculos pendentes."""

from sqlmodel import Session

from contractsync.api.deps import build_clicksign_client, build_vindi_client
from contractsync.db.session import engine
from contractsync.services.scheduler import run_scheduled_sweeps

vindi = build_vindi_client()
clicksign = build_clicksign_client()
try:
    with Session(engine) as session:
        summary = run_scheduled_sweeps(session, vindi=vindi, clicksign=clicksign)
    print(summary)
finally:
    for client in (vindi, clicksign):
        if client is not None:
            client.close()
