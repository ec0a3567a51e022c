from datetime import date, datetime, UTC

import pytest

from homeplanner.core.exceptions import ConflictError, ForbiddenError, ValidationError
from homeplanner.domain.validators import (
    can_modify, check_conflicts, validate_event_times, validate_participants, validate_scope
)
from homeplanner.models import Child, EditScope, Event, EventType, FamilyMember, ParticipantType
from homeplanner.schemas.event import ConflictingEvent, ParticipantReference, RecurrencePattern


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


MEMBERS = [FamilyMember(family_id="fam", user_id="alex")]
CHILDREN = [Child(id="kim", family_id="fam", name="Kim")]
WEEKLY = RecurrencePattern(frequency="weekly", end_date=date(2024, 4, 1))


def test_known_participants_pass():
    validate_participants(
        [ParticipantReference(id="alex", type=ParticipantType.USER),
         ParticipantReference(id="kim", type=ParticipantType.CHILD)],
        MEMBERS,
        CHILDREN
    )


def test_unknown_participant_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        validate_participants(
            [ParticipantReference(id="stranger", type=ParticipantType.USER)], MEMBERS, CHILDREN
        )
    assert exc_info.value.detail == "Participant stranger not found in family"
    assert exc_info.value.fields == {"participants": "invalid"}


def test_participant_type_must_match():
    # A member id passed as a child is not a child of the family
    with pytest.raises(ValidationError):
        validate_participants(
            [ParticipantReference(id="alex", type=ParticipantType.CHILD)], MEMBERS, CHILDREN
        )


def test_can_modify():
    event = Event(is_synced=False)
    can_modify(event, True)

    with pytest.raises(ForbiddenError, match="do not have access"):
        can_modify(event, False)

    with pytest.raises(ForbiddenError, match="Synced events cannot be modified"):
        can_modify(Event(is_synced=True), True)


def test_scope_all_is_always_legal():
    validate_scope(EditScope.ALL, None, None)
    validate_scope(EditScope.ALL, WEEKLY, None)


@pytest.mark.parametrize("scope", [EditScope.THIS, EditScope.FUTURE])
def test_partial_scopes_need_pattern_and_date(scope):
    validate_scope(scope, WEEKLY, date(2024, 3, 11))
    with pytest.raises(ValidationError):
        validate_scope(scope, None, date(2024, 3, 11))
    with pytest.raises(ValidationError):
        validate_scope(scope, WEEKLY, None)


def test_check_conflicts_only_fails_blockers():
    conflict = ConflictingEvent(id="e1", title="Dentist", start_time=utc(2024, 3, 4, 9), end_time=utc(2024, 3, 4, 10))
    check_conflicts(EventType.ELASTIC, [conflict])
    check_conflicts(EventType.BLOCKER, [])

    with pytest.raises(ConflictError) as exc_info:
        check_conflicts(EventType.BLOCKER, [conflict])
    assert exc_info.value.conflicts == [conflict]
    assert exc_info.value.status_code == 409


def test_validate_event_times():
    validate_event_times(utc(2024, 3, 4, 9), utc(2024, 3, 4, 10), WEEKLY)

    with pytest.raises(ValidationError):
        validate_event_times(utc(2024, 3, 4, 10), utc(2024, 3, 4, 10))

    with pytest.raises(ValidationError):
        validate_event_times(
            utc(2024, 3, 4, 9),
            utc(2024, 3, 4, 10),
            RecurrencePattern(frequency="daily", end_date=date(2024, 3, 4))
        )
