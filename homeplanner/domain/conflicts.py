from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from homeplanner.models.enums import EventType
from homeplanner.models.event import Event
from homeplanner.schemas.event import ParticipantReference


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap: touching intervals do not collide."""
    return a_start < b_end and b_start < a_end


def shares_participant(
    a: Iterable[ParticipantReference],
    b: Iterable[ParticipantReference]
) -> bool:
    keys = {(ref.id, ref.type) for ref in a}
    return any((ref.id, ref.type) in keys for ref in b)


def find_blocker_conflicts(
    candidates: Iterable[Tuple[Event, Sequence[ParticipantReference]]],
    start_time: datetime,
    end_time: datetime,
    participants: Sequence[ParticipantReference],
    exclude_event_id: Optional[str] = None
) -> List[Tuple[Event, Sequence[ParticipantReference]]]:
    """Filter (event, participants) pairs down to those colliding with the interval."""
    if not participants:
        return []

    conflicts = []
    for event, refs in candidates:
        if event.event_type != EventType.BLOCKER:
            continue
        if exclude_event_id is not None and event.id == exclude_event_id:
            continue
        if not intervals_overlap(start_time, end_time, event.start_time, event.end_time):
            continue
        if shares_participant(participants, refs):
            conflicts.append((event, refs))
    return conflicts
