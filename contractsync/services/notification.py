from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from contractsync.core.config import settings
from contractsync.core.logging_setup import logger
from contractsync.models.contract import Contract
from contractsync.models.notification import Notification


class NotificationEmitter:
    """Grava notificações para o dono do contrato. Quem chama decide quando houve transição."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def emit(
        self,
        *,
        user_id: UUID | None,
        title: str,
        message: str,
        type: str,
        link: str | None = None,
    ) -> Notification | None:
        if user_id is None:
            logger.info("Notificação '%s' descartada: contrato sem responsável", title)
            return None
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            link=link or settings.notification_link,
        )
        self.session.add(notification)
        self.session.commit()
        self.session.refresh(notification)
        logger.info("Notificação criada para o usuário %s: %s", user_id, title)
        return notification

    def notify_owner(self, contract: Contract, *, title: str, message: str, type: str) -> Notification | None:
        return self.emit(user_id=contract.owner_id, title=title, message=message, type=type)

    def notify_owner_safely(self, contract: Contract, **kwargs) -> Notification | None:
        # Falha na notificação não interrompe webhook nem varredura
        try:
            return self.notify_owner(contract, **kwargs)
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("Erro ao criar notificação do contrato %s: %s", contract.id, exc)
            return None


def contact_name(contract: Contract) -> str:
    contact = contract.contact
    return (contact.full_name if contact and contact.full_name else None) or "Cliente"
