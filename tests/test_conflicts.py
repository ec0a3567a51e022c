from datetime import datetime, UTC

from homeplanner.domain.conflicts import find_blocker_conflicts, intervals_overlap, shares_participant
from homeplanner.models import Event, EventType, ParticipantType
from homeplanner.schemas.event import ParticipantReference


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


ALEX = ParticipantReference(id="alex", type=ParticipantType.USER)
KIM = ParticipantReference(id="kim", type=ParticipantType.CHILD)


def make_event(event_id: str, start: datetime, end: datetime, event_type=EventType.BLOCKER) -> Event:
    return Event(id=event_id, family_id="fam", title=event_id, start_time=start, end_time=end, event_type=event_type)


def test_overlap_is_half_open():
    assert intervals_overlap(utc(2024, 3, 4, 9), utc(2024, 3, 4, 10), utc(2024, 3, 4, 9, 30), utc(2024, 3, 4, 11))
    assert not intervals_overlap(utc(2024, 3, 4, 9), utc(2024, 3, 4, 10), utc(2024, 3, 4, 10), utc(2024, 3, 4, 11))
    assert not intervals_overlap(utc(2024, 3, 4, 10), utc(2024, 3, 4, 11), utc(2024, 3, 4, 9), utc(2024, 3, 4, 10))


def test_participants_match_on_id_and_type():
    assert shares_participant([ALEX, KIM], [KIM])
    assert not shares_participant([ALEX], [ParticipantReference(id="alex", type=ParticipantType.CHILD)])
    assert not shares_participant([], [ALEX])


def test_find_blocker_conflicts():
    candidates = [
        (make_event("overlapping", utc(2024, 3, 4, 9), utc(2024, 3, 4, 10)), [ALEX]),
        (make_event("other-person", utc(2024, 3, 4, 9), utc(2024, 3, 4, 10)), [KIM]),
        (make_event("elastic", utc(2024, 3, 4, 9), utc(2024, 3, 4, 10), EventType.ELASTIC), [ALEX]),
        (make_event("touching", utc(2024, 3, 4, 10), utc(2024, 3, 4, 11)), [ALEX]),
        (make_event("self", utc(2024, 3, 4, 9), utc(2024, 3, 4, 10)), [ALEX]),
    ]
    conflicts = find_blocker_conflicts(
        candidates, utc(2024, 3, 4, 9, 30), utc(2024, 3, 4, 10), [ALEX], exclude_event_id="self"
    )
    assert [event.id for event, _ in conflicts] == ["overlapping"]


def test_no_participants_means_no_conflicts():
    candidates = [(make_event("busy", utc(2024, 3, 4, 9), utc(2024, 3, 4, 10)), [ALEX])]
    assert find_blocker_conflicts(candidates, utc(2024, 3, 4, 9), utc(2024, 3, 4, 10), []) == []
