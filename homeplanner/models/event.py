from datetime import datetime, date
from typing import Any, Dict
from sqlalchemy import String, Boolean, Date, JSON, ForeignKey, Index, UniqueConstraint, CheckConstraint, Enum as SQLAEnum
from sqlalchemy.orm import Mapped, mapped_column
from .base import Base, new_id, utcnow
from .enums import EventType, ParticipantType
from homeplanner.db.types import UTCDateTime

def _enum_values(enum_cls):
    return [member.value for member in enum_cls]

class Event(Base):
    """A schedulable item, possibly recurring."""

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    family_id: Mapped[str] = mapped_column(ForeignKey("families.id", ondelete="CASCADE"), nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    is_all_day: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    event_type: Mapped[EventType] = mapped_column(
        SQLAEnum(EventType, values_callable=_enum_values, native_enum=False),
        default=EventType.ELASTIC,
        nullable=False
    )
    # {"frequency": "daily|weekly|monthly", "interval": 1, "end_date": "YYYY-MM-DD"}
    recurrence_pattern: Mapped[Dict[str, Any] | None] = mapped_column(JSON(none_as_null=True))

    # Synced events are mirrored from an external calendar and are read-only here
    is_synced: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    external_calendar_id: Mapped[str | None] = mapped_column(String(36))

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime())

    __table_args__ = (
        Index('ix_event_family_dates', 'family_id', 'start_time', 'end_time'),
        CheckConstraint('end_time > start_time', name='time_order'),
    )

    def __repr__(self):
        return f"<Event(id={self.id}, title={self.title})>"

    @property
    def pattern(self):
        """The embedded recurrence pattern as a value object."""
        from homeplanner.schemas.event import RecurrencePattern

        if not self.recurrence_pattern:
            return None
        return RecurrencePattern.model_validate(self.recurrence_pattern)

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence_pattern)

    @property
    def duration(self):
        return self.end_time - self.start_time

class EventParticipant(Base):
    """Association between an event and a family member or child."""

    __tablename__ = "event_participants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    event_id: Mapped[str] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_type: Mapped[ParticipantType] = mapped_column(
        SQLAEnum(ParticipantType, values_callable=_enum_values, native_enum=False),
        nullable=False
    )
    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    child_id: Mapped[str | None] = mapped_column(ForeignKey("children.id", ondelete="CASCADE"))

    __table_args__ = (
        CheckConstraint(
            "(user_id IS NOT NULL AND child_id IS NULL) OR (user_id IS NULL AND child_id IS NOT NULL)",
            name='single_participant'
        ),
    )

    @property
    def participant_id(self) -> str:
        return self.user_id if self.participant_type == ParticipantType.USER else self.child_id

    def __repr__(self):
        return f"<EventParticipant(event_id={self.event_id}, {self.participant_type.value}={self.participant_id})>"

class EventException(Base):
    """Per-occurrence override (reschedule or cancellation) of a recurring event."""

    __tablename__ = "event_exceptions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    event_id: Mapped[str] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    original_date: Mapped[date] = mapped_column(Date, nullable=False)
    new_start_time: Mapped[datetime | None] = mapped_column(UTCDateTime())
    new_end_time: Mapped[datetime | None] = mapped_column(UTCDateTime())
    is_cancelled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    # At most one override per occurrence
    __table_args__ = (
        UniqueConstraint('event_id', 'original_date', name='uq_event_exception_date'),
    )

    def __repr__(self):
        return f"<EventException(event_id={self.event_id}, original_date={self.original_date}, cancelled={self.is_cancelled})>"
