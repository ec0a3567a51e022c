"""Scheduling engine: the only entry point for event reads and mutations.

Every public operation returns a ``Result``. Business-rule failures travel as
typed ``SchedulingError`` values; anything unexpected is logged, the session is
rolled back and the caller receives a generic ``InternalError``.

Mutations follow one order: load the event, check membership and synced
immutability, validate participants and scope, detect blocker conflicts,
commit, then write the audit log. All checks run before the first write.
"""
from datetime import date, datetime
from functools import wraps
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from homeplanner.core.config import settings
from homeplanner.core.exceptions import (
    ForbiddenError, InternalError, NotFoundError, SchedulingError, ValidationError
)
from homeplanner.core.logging import audit_logger, scheduling_logger
from homeplanner.core.metrics import record_audit_failure, record_conflicts, record_operation
from homeplanner.core.result import Result
from homeplanner.crud import child as crud_child
from homeplanner.crud import event as crud_event
from homeplanner.crud import family as crud_family
from homeplanner.crud import log as crud_log
from homeplanner.domain.conflicts import find_blocker_conflicts
from homeplanner.domain.occurrences import ResolvedOccurrence, expand_event, resolve_occurrence
from homeplanner.domain.recurrence import occurrence_on
from homeplanner.domain.validators import (
    can_modify, check_conflicts, validate_event_times, validate_participants, validate_scope
)
from homeplanner.models.enums import EditScope, EventType
from homeplanner.models.event import Event
from homeplanner.schemas.event import (
    EventCreate, EventCreateResponse, EventDetails, EventExceptionResponse, EventFilter,
    EventListResponse, EventOccurrenceResponse, EventParticipantResponse, EventResponse,
    EventUpdate, EventUpdateResponse, EventValidate, FieldError, Pagination,
    ParticipantReference, ValidationResult
)

# Base event columns a scope `all` update may change
UPDATABLE_FIELDS = ("title", "start_time", "end_time", "is_all_day", "event_type")


def scheduling_operation(name: str):
    """Wrap a service coroutine so it returns a ``Result`` instead of raising."""
    def decorator(func):
        @wraps(func)
        async def wrapper(self: "SchedulingService", *args, **kwargs) -> Result:
            try:
                value = await func(self, *args, **kwargs)
            except SchedulingError as e:
                await self.db.rollback()
                record_operation(name, e.error_type)
                scheduling_logger.info(
                    f"{name} rejected: {e.detail}",
                    extra={"operation": name, "error_type": e.error_type}
                )
                return Result.fail(e)
            except Exception as e:
                await self.db.rollback()
                record_operation(name, InternalError.error_type)
                scheduling_logger.error(
                    f"{name} failed: {e.__class__.__name__}",
                    extra={"operation": name},
                    exc_info=True
                )
                return Result.fail(InternalError())
            record_operation(name, "ok")
            return Result.ok(value)
        return wrapper
    return decorator


def _event_payload(event: Event) -> Dict[str, Any]:
    return EventResponse.model_validate(event).model_dump()


def _references(participants: Sequence[EventParticipantResponse]) -> List[ParticipantReference]:
    return [p.reference() for p in participants]


class SchedulingService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # --- helpers ---
    async def _require_member(self, family_id: str, requester_id: str, detail: str) -> None:
        if not await crud_family.is_user_member(self.db, family_id, requester_id):
            raise ForbiddenError(detail)

    async def _load_event(self, event_id: str, family_id: Optional[str] = None) -> Event:
        event = await crud_event.find_by_id(self.db, event_id)
        # An event outside the caller's family is indistinguishable from a missing one
        if event is None or (family_id is not None and event.family_id != family_id):
            raise NotFoundError("Event", event_id)
        return event

    async def _validate_participants(
        self,
        family_id: str,
        participants: Sequence[ParticipantReference]
    ) -> None:
        if not participants:
            return
        members = await crud_family.get_family_members(self.db, family_id)
        children = await crud_child.find_by_family_id(self.db, family_id)
        validate_participants(participants, members, children)

    async def _detect_conflicts(
        self,
        family_id: str,
        event_type: EventType,
        start_time: datetime,
        end_time: datetime,
        participants: Sequence[ParticipantReference],
        exclude_event_id: Optional[str] = None
    ) -> None:
        if event_type != EventType.BLOCKER:
            return
        conflicts = await crud_event.check_conflicts(
            self.db, family_id, start_time, end_time, participants, exclude_event_id
        )
        if conflicts:
            record_conflicts(event_type.value, len(conflicts))
            scheduling_logger.warning(
                "Blocker conflict detected",
                extra={
                    "family_id": family_id,
                    "event_id": exclude_event_id,
                    "conflicting_event_ids": [c.id for c in conflicts]
                }
            )
        check_conflicts(event_type, conflicts)

    @staticmethod
    def _require_occurrence(event: Event, occurrence_date: date):
        occurrence = occurrence_on(event.start_time, event.end_time, event.pattern, occurrence_date)
        if occurrence is None:
            raise ValidationError(
                f"Event has no occurrence on {occurrence_date.isoformat()}",
                fields={"date": "invalid"}
            )
        return occurrence

    async def _audit(
        self,
        family_id: str,
        actor_id: str,
        action: str,
        details: Dict[str, Any]
    ) -> None:
        """Write an audit entry after the primary commit; failures only get logged."""
        try:
            await crud_log.create(self.db, family_id, actor_id, action, details)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            record_audit_failure(action)
            audit_logger.warning(
                f"Failed to write audit log: {e.__class__.__name__}",
                extra={"family_id": family_id, "user_id": actor_id, "action": action},
                exc_info=True
            )

    # --- reads ---
    @scheduling_operation("list_events")
    async def list_events(
        self,
        family_id: str,
        start_date: datetime,
        end_date: datetime,
        filters: Optional[EventFilter],
        requester_id: str
    ) -> EventListResponse:
        """Resolved occurrences of the family's events inside the window, paginated."""
        filters = filters or EventFilter()
        await self._require_member(family_id, requester_id, "You do not have access to this family")
        if end_date < start_date:
            raise ValidationError(
                "End date must not be before start date",
                fields={"end_date": "must not be before start_date"}
            )

        limit = min(max(filters.limit, 1), settings.MAX_PAGE_SIZE)
        offset = max(filters.offset, 0)

        events = await crud_event.find_by_date_range(
            self.db,
            family_id,
            start_date,
            end_date,
            participant_ids=filters.participant_ids,
            event_type=filters.event_type,
            include_synced=filters.include_synced
        )
        event_ids = [event.id for event in events]
        exceptions = await crud_event.get_exceptions_for_events(self.db, event_ids)
        participants = await crud_event.get_participants_for_events(self.db, event_ids)

        occurrences = [
            (event, occurrence)
            for event in events
            for occurrence in expand_event(event, exceptions[event.id], start_date, end_date)
        ]
        occurrences.sort(key=lambda item: (item[1].start_time, item[0].id))
        total = len(occurrences)
        page = occurrences[offset:offset + limit]

        # Blocker occurrences are flagged against the family's blockers overlapping the page
        blocker_page = [occ for event, occ in page if event.event_type == EventType.BLOCKER]
        blockers = []
        if blocker_page:
            found = await crud_event.find_blockers(
                self.db,
                family_id,
                min(occ.start_time for occ in blocker_page),
                max(occ.end_time for occ in blocker_page)
            )
            blockers = [(event, _references(refs)) for event, refs in found]

        items = []
        for event, occurrence in page:
            has_conflict = False
            if event.event_type == EventType.BLOCKER:
                has_conflict = bool(find_blocker_conflicts(
                    blockers,
                    occurrence.start_time,
                    occurrence.end_time,
                    _references(participants[event.id]),
                    exclude_event_id=event.id
                ))
            items.append(EventOccurrenceResponse(**{
                **_event_payload(event),
                "start_time": occurrence.start_time,
                "end_time": occurrence.end_time,
                "original_date": occurrence.original_date,
                "participants": participants[event.id],
                "has_conflict": has_conflict
            }))

        scheduling_logger.debug(
            f"Listed {len(items)} of {total} occurrences",
            extra={"family_id": family_id, "user_id": requester_id}
        )
        return EventListResponse(
            events=items,
            pagination=Pagination(
                total=total,
                limit=limit,
                offset=offset,
                has_more=offset + len(items) < total
            )
        )

    @scheduling_operation("get_event")
    async def get_event_by_id(
        self,
        event_id: str,
        occurrence_date: Optional[date],
        requester_id: str,
        family_id: Optional[str] = None
    ) -> EventDetails:
        event = await self._load_event(event_id, family_id)
        await self._require_member(event.family_id, requester_id, "You do not have access to this event")

        participants = await crud_event.get_participants(self.db, event.id)
        exceptions = await crud_event.get_exceptions(self.db, event.id)

        payload = _event_payload(event)
        is_cancelled = False
        if occurrence_date is not None and event.is_recurring:
            occurrence = occurrence_on(event.start_time, event.end_time, event.pattern, occurrence_date)
            if occurrence is None:
                raise NotFoundError("Occurrence", occurrence_date.isoformat())
            exception = next((e for e in exceptions if e.original_date == occurrence_date), None)
            resolved = resolve_occurrence(occurrence, exception)
            if resolved is None:
                is_cancelled = True
                resolved = ResolvedOccurrence(occurrence_date, occurrence.start_time, occurrence.end_time)
            payload.update(start_time=resolved.start_time, end_time=resolved.end_time)

        return EventDetails(
            **payload,
            participants=participants,
            exceptions=[EventExceptionResponse.model_validate(e) for e in exceptions],
            original_date=occurrence_date if event.is_recurring else None,
            is_cancelled=is_cancelled
        )

    # --- writes ---
    @scheduling_operation("create_event")
    async def create_event(self, command: EventCreate, requester_id: str) -> EventCreateResponse:
        family_id = command.family_id
        await self._require_member(family_id, requester_id, "You do not have access to this family")

        participants = list(dict.fromkeys(command.participants or []))
        validate_event_times(command.start_time, command.end_time, command.recurrence_pattern)
        await self._validate_participants(family_id, participants)
        await self._detect_conflicts(
            family_id, command.event_type, command.start_time, command.end_time, participants
        )

        event = await crud_event.create(
            self.db,
            family_id,
            title=command.title,
            start_time=command.start_time,
            end_time=command.end_time,
            is_all_day=command.is_all_day,
            event_type=command.event_type,
            recurrence_pattern=command.recurrence_pattern.to_storage() if command.recurrence_pattern else None
        )
        await crud_event.add_participants(self.db, event.id, participants)
        await self.db.commit()

        response = EventCreateResponse(
            **_event_payload(event),
            participants=await crud_event.get_participants(self.db, event.id)
        )
        scheduling_logger.info(
            "Event created",
            extra={"family_id": family_id, "event_id": event.id, "user_id": requester_id}
        )
        await self._audit(family_id, requester_id, "event.create", {
            "event_id": event.id,
            "title": event.title,
            "event_type": event.event_type.value
        })
        return response

    @scheduling_operation("update_event")
    async def update_event(
        self,
        event_id: str,
        command: EventUpdate,
        scope: EditScope,
        occurrence_date: Optional[date],
        requester_id: str,
        family_id: Optional[str] = None
    ) -> EventUpdateResponse:
        event = await self._load_event(event_id, family_id)
        is_member = await crud_family.is_user_member(self.db, event.family_id, requester_id)
        can_modify(event, is_member)

        pattern = event.pattern
        validate_scope(scope, pattern, occurrence_date)
        changes = command.model_dump(exclude_unset=True)
        if scope == EditScope.FUTURE and changes:
            # The old series only ends here; the caller creates the successor series
            raise ValidationError(
                "Scope future only ends the series; create a new event for changed fields",
                fields={field: "not allowed with scope future" for field in sorted(changes)}
            )
        if scope != EditScope.FUTURE and not changes:
            raise ValidationError("At least one field must be updated")

        if command.participants is not None:
            participants = list(dict.fromkeys(command.participants))
            await self._validate_participants(event.family_id, participants)
        else:
            participants = _references(await crud_event.get_participants(self.db, event.id))
        event_type = command.event_type or event.event_type

        exception = None
        if scope == EditScope.THIS:
            occurrence = self._require_occurrence(event, occurrence_date)
            exception = await crud_event.get_exception(self.db, event.id, occurrence_date)
            current = resolve_occurrence(occurrence, exception) or occurrence
            start_time = command.start_time or current.start_time
            end_time = command.end_time or current.end_time
            validate_event_times(start_time, end_time)
            await self._detect_conflicts(
                event.family_id, event_type, start_time, end_time, participants, event.id
            )
            await crud_event.create_exception(
                self.db,
                event.id,
                occurrence_date,
                new_start_time=command.start_time or (exception.new_start_time if exception else None),
                new_end_time=command.end_time or (exception.new_end_time if exception else None)
            )

        elif scope == EditScope.FUTURE:
            self._require_occurrence(event, occurrence_date)
            if occurrence_date <= event.start_time.date():
                # Only the first occurrence remains, so the series collapses to a single event
                await crud_event.update(self.db, event, {"recurrence_pattern": None})
                await crud_event.delete_exceptions(self.db, event.id)
            else:
                truncated = pattern.model_copy(update={"end_date": occurrence_date}).to_storage()
                await crud_event.update(self.db, event, {"recurrence_pattern": truncated})

        else:
            fields = {k: changes[k] for k in UPDATABLE_FIELDS if changes.get(k) is not None}
            if "recurrence_pattern" in changes:
                new_pattern = command.recurrence_pattern
                fields["recurrence_pattern"] = new_pattern.to_storage() if new_pattern else None
            else:
                new_pattern = pattern
            start_time = fields.get("start_time", event.start_time)
            end_time = fields.get("end_time", event.end_time)
            validate_event_times(start_time, end_time, new_pattern)
            await self._detect_conflicts(
                event.family_id, event_type, start_time, end_time, participants, event.id
            )
            await crud_event.update(self.db, event, fields)
            if command.participants is not None:
                await crud_event.set_participants(self.db, event.id, participants)
            if pattern is not None:
                await crud_event.delete_exceptions(self.db, event.id)

        await self.db.commit()

        response = EventUpdateResponse(
            **_event_payload(event),
            participants=await crud_event.get_participants(self.db, event.id),
            exception_created=scope == EditScope.THIS
        )
        scheduling_logger.info(
            f"Event updated ({scope.value})",
            extra={"family_id": event.family_id, "event_id": event.id, "user_id": requester_id}
        )
        await self._audit(event.family_id, requester_id, "event.update", {
            "event_id": event.id,
            "scope": scope.value,
            "occurrence_date": occurrence_date.isoformat() if occurrence_date else None,
            "fields": sorted(changes)
        })
        return response

    @scheduling_operation("delete_event")
    async def delete_event(
        self,
        event_id: str,
        scope: EditScope,
        occurrence_date: Optional[date],
        requester_id: str,
        family_id: Optional[str] = None
    ) -> None:
        event = await self._load_event(event_id, family_id)
        is_member = await crud_family.is_user_member(self.db, event.family_id, requester_id)
        can_modify(event, is_member)

        pattern = event.pattern
        validate_scope(scope, pattern, occurrence_date)
        if scope != EditScope.ALL:
            self._require_occurrence(event, occurrence_date)

        if scope == EditScope.THIS:
            await crud_event.create_exception(self.db, event.id, occurrence_date, is_cancelled=True)
        elif scope == EditScope.FUTURE and occurrence_date > event.start_time.date():
            # end_date is inclusive, so the split occurrence itself is cancelled too
            truncated = pattern.model_copy(update={"end_date": occurrence_date}).to_storage()
            await crud_event.update(self.db, event, {"recurrence_pattern": truncated})
            await crud_event.create_exception(self.db, event.id, occurrence_date, is_cancelled=True)
        else:
            await crud_event.delete(self.db, event.id)

        family = event.family_id
        await self.db.commit()

        scheduling_logger.info(
            f"Event deleted ({scope.value})",
            extra={"family_id": family, "event_id": event_id, "user_id": requester_id}
        )
        await self._audit(family, requester_id, "event.delete", {
            "event_id": event_id,
            "scope": scope.value,
            "occurrence_date": occurrence_date.isoformat() if occurrence_date else None
        })

    @scheduling_operation("validate_event")
    async def validate_event(self, command: EventValidate, requester_id: str) -> ValidationResult:
        """Dry run of create/update checks. Nothing is written."""
        await self._require_member(command.family_id, requester_id, "You do not have access to this family")

        participants = list(dict.fromkeys(command.participants or []))
        errors = []
        try:
            await self._validate_participants(command.family_id, participants)
        except ValidationError as e:
            errors.append(FieldError(field="participants", message=e.detail))

        conflicts = []
        if command.event_type == EventType.BLOCKER:
            conflicts = await crud_event.check_conflicts(
                self.db,
                command.family_id,
                command.start_time,
                command.end_time,
                participants,
                command.exclude_event_id
            )

        return ValidationResult(valid=not errors and not conflicts, errors=errors, conflicts=conflicts)
