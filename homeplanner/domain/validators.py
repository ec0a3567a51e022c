"""Pure business-rule checks.

Each validator returns ``None`` when the rule holds and raises the matching
``SchedulingError`` subclass otherwise. None of them touch storage.
"""
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from homeplanner.core.exceptions import ConflictError, ForbiddenError, ValidationError
from homeplanner.models.enums import EditScope, EventType, ParticipantType
from homeplanner.models.event import Event
from homeplanner.models.family import Child, FamilyMember
from homeplanner.schemas.event import ConflictingEvent, ParticipantReference, RecurrencePattern


def validate_participants(
    participants: Iterable[ParticipantReference],
    family_members: Iterable[FamilyMember],
    family_children: Iterable[Child]
) -> None:
    member_ids = {member.user_id for member in family_members}
    child_ids = {child.id for child in family_children}

    for participant in participants:
        if participant.type == ParticipantType.USER:
            known = participant.id in member_ids
        else:
            known = participant.id in child_ids
        if not known:
            raise ValidationError(
                f"Participant {participant.id} not found in family",
                fields={"participants": "invalid"}
            )


def can_modify(event: Event, requester_is_family_member: bool) -> None:
    if not requester_is_family_member:
        raise ForbiddenError("You do not have access to this event")
    if event.is_synced:
        raise ForbiddenError("Synced events cannot be modified")


def validate_scope(
    scope: EditScope,
    recurrence_pattern: Optional[RecurrencePattern],
    occurrence_date: Optional[date]
) -> None:
    if scope == EditScope.ALL:
        return
    if recurrence_pattern is None:
        raise ValidationError(
            f"Scope '{scope.value}' requires a recurring event",
            fields={"scope": "invalid"}
        )
    if occurrence_date is None:
        raise ValidationError(
            f"Scope '{scope.value}' requires an occurrence date",
            fields={"date": "required"}
        )


def check_conflicts(event_type: EventType, conflicts: Sequence[ConflictingEvent]) -> None:
    """Blockers must not collide; elastic events only carry the information."""
    if event_type == EventType.BLOCKER and conflicts:
        raise ConflictError(
            "This blocker event conflicts with existing blocker events",
            conflicts
        )


def validate_event_times(
    start_time: datetime,
    end_time: datetime,
    recurrence_pattern: Optional[RecurrencePattern] = None
) -> None:
    if end_time <= start_time:
        raise ValidationError(
            "End time must be after start time",
            fields={"end_time": "must be after start_time"}
        )
    if recurrence_pattern is not None and recurrence_pattern.end_date <= start_time.date():
        raise ValidationError(
            "Recurrence end date must be after start time",
            fields={"recurrence_pattern": "end_date must be after start_time"}
        )
