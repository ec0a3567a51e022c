from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from sqlalchemy import select, delete as sql_delete, and_, or_, exists
from sqlalchemy.ext.asyncio import AsyncSession

from homeplanner.models.base import utcnow
from homeplanner.models.family import Child
from homeplanner.models.enums import EventType, ParticipantType
from homeplanner.models.event import Event, EventParticipant, EventException
from homeplanner.models.user import User
from homeplanner.schemas.event import (
    ConflictingEvent, EventParticipantResponse, ParticipantReference
)
from homeplanner.domain.conflicts import find_blocker_conflicts


async def find_by_id(db: AsyncSession, event_id: str) -> Optional[Event]:
    """Get an event by id"""
    result = await db.execute(select(Event).where(Event.id == event_id))
    return result.scalar_one_or_none()


async def find_by_date_range(
    db: AsyncSession,
    family_id: str,
    start_date: datetime,
    end_date: datetime,
    participant_ids: Optional[Sequence[str]] = None,
    event_type: Optional[EventType] = None,
    include_synced: bool = True
) -> List[Event]:
    """Get the family's events that may produce occurrences in the range.

    Single events must overlap the range. Recurring series qualify when they
    started before its end or have an occurrence moved to before its end;
    expansion narrows them down.
    """
    moved_into_range = exists().where(
        and_(
            EventException.event_id == Event.id,
            EventException.is_cancelled.is_(False),
            EventException.new_start_time <= end_date
        )
    )
    query = select(Event).where(
        and_(
            Event.family_id == family_id,
            or_(
                and_(
                    Event.recurrence_pattern.is_(None),
                    Event.start_time <= end_date,
                    Event.end_time > start_date
                ),
                and_(
                    Event.recurrence_pattern.is_not(None),
                    or_(Event.start_time <= end_date, moved_into_range)
                )
            )
        )
    )

    if event_type is not None:
        query = query.where(Event.event_type == event_type)
    if not include_synced:
        query = query.where(Event.is_synced.is_(False))
    if participant_ids:
        query = query.where(
            exists().where(
                and_(
                    EventParticipant.event_id == Event.id,
                    or_(
                        EventParticipant.user_id.in_(participant_ids),
                        EventParticipant.child_id.in_(participant_ids)
                    )
                )
            )
        )

    result = await db.execute(query.order_by(Event.start_time, Event.id))
    return list(result.scalars().all())


async def create(db: AsyncSession, family_id: str, **fields: Any) -> Event:
    """Create a new event"""
    db_event = Event(family_id=family_id, **fields)
    db.add(db_event)
    await db.flush()
    return db_event


async def update(db: AsyncSession, event: Event, fields: Dict[str, Any]) -> Event:
    """Apply field changes to an event"""
    for field, value in fields.items():
        setattr(event, field, value)
    event.updated_at = utcnow()
    await db.flush()
    return event


async def delete(db: AsyncSession, event_id: str) -> None:
    """Delete an event with its participants and exceptions"""
    await db.execute(sql_delete(EventParticipant).where(EventParticipant.event_id == event_id))
    await db.execute(sql_delete(EventException).where(EventException.event_id == event_id))
    await db.execute(sql_delete(Event).where(Event.id == event_id))
    await db.flush()


# --- Exceptions ---
async def get_exception(db: AsyncSession, event_id: str, original_date: date) -> Optional[EventException]:
    result = await db.execute(
        select(EventException).where(
            and_(
                EventException.event_id == event_id,
                EventException.original_date == original_date
            )
        )
    )
    return result.scalar_one_or_none()


async def create_exception(
    db: AsyncSession,
    event_id: str,
    original_date: date,
    new_start_time: Optional[datetime] = None,
    new_end_time: Optional[datetime] = None,
    is_cancelled: bool = False
) -> EventException:
    """Create the override for one occurrence, replacing any earlier one"""
    exception = await get_exception(db, event_id, original_date)
    if exception is None:
        exception = EventException(event_id=event_id, original_date=original_date)
        db.add(exception)

    exception.new_start_time = new_start_time
    exception.new_end_time = new_end_time
    exception.is_cancelled = is_cancelled
    await db.flush()
    return exception


async def get_exceptions(db: AsyncSession, event_id: str) -> List[EventException]:
    result = await db.execute(
        select(EventException)
        .where(EventException.event_id == event_id)
        .order_by(EventException.original_date)
    )
    return list(result.scalars().all())


async def get_exceptions_for_events(
    db: AsyncSession,
    event_ids: Sequence[str]
) -> Dict[str, List[EventException]]:
    grouped: Dict[str, List[EventException]] = {event_id: [] for event_id in event_ids}
    if not event_ids:
        return grouped

    result = await db.execute(
        select(EventException).where(EventException.event_id.in_(event_ids))
    )
    for exception in result.scalars().all():
        grouped[exception.event_id].append(exception)
    return grouped


async def delete_exceptions(db: AsyncSession, event_id: str) -> None:
    """Delete every exception of an event"""
    await db.execute(sql_delete(EventException).where(EventException.event_id == event_id))
    await db.flush()


# --- Participants ---
def _participant_query():
    return (
        select(EventParticipant, User.full_name, User.email, User.avatar_url, Child.name)
        .outerjoin(User, EventParticipant.user_id == User.id)
        .outerjoin(Child, EventParticipant.child_id == Child.id)
    )


def _to_participant(row) -> EventParticipantResponse:
    participant, full_name, email, avatar_url, child_name = row
    if participant.participant_type == ParticipantType.USER:
        return EventParticipantResponse(
            id=participant.user_id,
            name=full_name or email or participant.user_id,
            type=ParticipantType.USER,
            avatar_url=avatar_url
        )
    return EventParticipantResponse(
        id=participant.child_id,
        name=child_name or participant.child_id,
        type=ParticipantType.CHILD
    )


async def get_participants(db: AsyncSession, event_id: str) -> List[EventParticipantResponse]:
    """Get the participants of an event with their display names"""
    result = await db.execute(
        _participant_query().where(EventParticipant.event_id == event_id)
    )
    return [_to_participant(row) for row in result.all()]


async def get_participants_for_events(
    db: AsyncSession,
    event_ids: Sequence[str]
) -> Dict[str, List[EventParticipantResponse]]:
    grouped: Dict[str, List[EventParticipantResponse]] = {event_id: [] for event_id in event_ids}
    if not event_ids:
        return grouped

    result = await db.execute(
        _participant_query().where(EventParticipant.event_id.in_(event_ids))
    )
    for row in result.all():
        grouped[row[0].event_id].append(_to_participant(row))
    return grouped


async def add_participants(
    db: AsyncSession,
    event_id: str,
    participants: Sequence[ParticipantReference]
) -> None:
    for participant in participants:
        db.add(EventParticipant(
            event_id=event_id,
            participant_type=participant.type,
            user_id=participant.id if participant.type == ParticipantType.USER else None,
            child_id=participant.id if participant.type == ParticipantType.CHILD else None
        ))
    await db.flush()


async def remove_participants(db: AsyncSession, event_id: str) -> None:
    """Remove every participant of an event"""
    await db.execute(sql_delete(EventParticipant).where(EventParticipant.event_id == event_id))
    await db.flush()


async def set_participants(
    db: AsyncSession,
    event_id: str,
    participants: Sequence[ParticipantReference]
) -> None:
    """Replace the participant set of an event"""
    await remove_participants(db, event_id)
    # Duplicates in the request collapse to one association
    await add_participants(db, event_id, list(dict.fromkeys(participants)))


# --- Conflicts ---
async def find_blockers(
    db: AsyncSession,
    family_id: str,
    start_time: datetime,
    end_time: datetime
) -> List[Tuple[Event, List[EventParticipantResponse]]]:
    """Blocker events of the family whose base interval overlaps the range"""
    result = await db.execute(
        select(Event).where(
            and_(
                Event.family_id == family_id,
                Event.event_type == EventType.BLOCKER,
                Event.start_time < end_time,
                Event.end_time > start_time
            )
        ).order_by(Event.start_time, Event.id)
    )
    events = list(result.scalars().all())
    participants = await get_participants_for_events(db, [e.id for e in events])
    return [(event, participants[event.id]) for event in events]


def to_conflicting_event(event: Event, participants: List[EventParticipantResponse]) -> ConflictingEvent:
    return ConflictingEvent(
        id=event.id,
        title=event.title,
        start_time=event.start_time,
        end_time=event.end_time,
        participants=participants
    )


async def check_conflicts(
    db: AsyncSession,
    family_id: str,
    start_time: datetime,
    end_time: datetime,
    participants: Sequence[ParticipantReference],
    exclude_event_id: Optional[str] = None
) -> List[ConflictingEvent]:
    """Blocker events sharing a participant whose interval overlaps the candidate"""
    if not participants:
        return []

    candidates = [
        (event, [p.reference() for p in refs], refs)
        for event, refs in await find_blockers(db, family_id, start_time, end_time)
    ]
    display = {event.id: refs for event, _, refs in candidates}
    matches = find_blocker_conflicts(
        [(event, keys) for event, keys, _ in candidates],
        start_time,
        end_time,
        participants,
        exclude_event_id
    )
    return [to_conflicting_event(event, display[event.id]) for event, _ in matches]
