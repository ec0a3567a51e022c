from datetime import datetime
from typing import Any, Dict
from sqlalchemy import String, JSON, ForeignKey, Enum as SQLAEnum
from sqlalchemy.orm import Mapped, mapped_column
from .base import Base, new_id, utcnow
from .enums import ActorType
from homeplanner.db.types import UTCDateTime

class Log(Base):
    """Audit log entry (event.create, event.update, event.delete, ...)."""

    __tablename__ = "logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    family_id: Mapped[str | None] = mapped_column(ForeignKey("families.id", ondelete="CASCADE"), index=True)
    actor_id: Mapped[str | None] = mapped_column(String(36))
    actor_type: Mapped[ActorType] = mapped_column(
        SQLAEnum(ActorType, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)

    def __repr__(self):
        return f"<Log(action={self.action}, actor_id={self.actor_id})>"
