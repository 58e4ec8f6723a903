from datetime import datetime
from uuid import UUID

from sqlmodel import Field

from contractsync.models.base import TimestampedModel, UUIDModel


class Notification(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "notifications"

    user_id: UUID = Field(index=True)
    title: str = Field(max_length=255)
    message: str
    type: str = Field(max_length=64)
    link: str | None = Field(default=None, max_length=255)
    read_at: datetime | None = Field(default=None, index=True)
