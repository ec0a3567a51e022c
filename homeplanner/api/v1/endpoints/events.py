from datetime import date, datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from homeplanner.core.security import get_current_user_id
from homeplanner.db.database import get_db
from homeplanner.models.enums import EditScope, EventType
from homeplanner.schemas.event import (
    EventCreate,
    EventCreateBody,
    EventCreateResponse,
    EventDetails,
    EventFilter,
    EventListResponse,
    EventUpdate,
    EventUpdateResponse,
    EventValidate,
    EventValidateBody,
    ValidationResult,
    as_utc
)
from homeplanner.services.scheduling import SchedulingService
from homeplanner.core.logging import events_logger as logger

router = APIRouter(
    prefix="/families/{family_id}/events",
    tags=["Events"],
    responses={
        401: {"description": "Not authenticated"},
        403: {"description": "Not a member of the family"},
        404: {"description": "Event not found"},
        500: {"description": "Internal server error"}
    }
)


def get_scheduling_service(db: AsyncSession = Depends(get_db)) -> SchedulingService:
    return SchedulingService(db)


@router.get(
    "/",
    response_model=EventListResponse,
    summary="List event occurrences in a date range",
    description="""
    Retrieve the family's events within a date range.

    * Recurring events are expanded into occurrences, exceptions applied
    * Cancelled occurrences are omitted
    * Blocker occurrences carry a `has_conflict` flag
    * Pagination applies to the expanded occurrence list (max 100 per page)
    """
)
async def list_events(
    *,
    family_id: str,
    start_date: datetime = Query(..., description="Start of date range (ISO format)"),
    end_date: datetime = Query(..., description="End of date range (ISO format)"),
    participant_ids: Optional[List[str]] = Query(None, description="Only events with any of these participants"),
    event_type: Optional[EventType] = Query(None, description="Only events of this type"),
    include_synced: bool = Query(True, description="Include events mirrored from external calendars"),
    limit: int = Query(100, ge=1, le=100, description="Occurrences per page"),
    offset: int = Query(0, ge=0, description="Occurrences to skip"),
    service: SchedulingService = Depends(get_scheduling_service),
    current_user_id: str = Depends(get_current_user_id)
) -> EventListResponse:
    filters = EventFilter(
        participant_ids=participant_ids,
        event_type=event_type,
        include_synced=include_synced,
        limit=limit,
        offset=offset
    )
    result = await service.list_events(
        family_id, as_utc(start_date), as_utc(end_date), filters, current_user_id
    )
    return result.unwrap()


@router.post(
    "/",
    response_model=EventCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new event",
    description="""
    Create a new event.

    Blocker events are rejected with 409 when they overlap another blocker
    sharing a participant; elastic events are always accepted.
    """
)
async def create_event(
    *,
    family_id: str,
    event_in: EventCreateBody,
    service: SchedulingService = Depends(get_scheduling_service),
    current_user_id: str = Depends(get_current_user_id)
) -> EventCreateResponse:
    command = EventCreate(family_id=family_id, **event_in.model_dump())
    result = await service.create_event(command, current_user_id)
    return result.unwrap()


@router.post(
    "/validate",
    response_model=ValidationResult,
    summary="Validate an event without saving it",
    description="Dry run of participant and conflict checks for live editing feedback."
)
async def validate_event(
    *,
    family_id: str,
    event_in: EventValidateBody,
    service: SchedulingService = Depends(get_scheduling_service),
    current_user_id: str = Depends(get_current_user_id)
) -> ValidationResult:
    command = EventValidate(family_id=family_id, **event_in.model_dump())
    result = await service.validate_event(command, current_user_id)
    return result.unwrap()


@router.get(
    "/{event_id}",
    response_model=EventDetails,
    summary="Get event by ID",
    description="""
    Retrieve an event with its participants and exceptions.

    With `date`, a recurring event is returned as that occurrence: its times
    reflect any reschedule and `is_cancelled` reports a cancellation.
    """
)
async def get_event(
    *,
    family_id: str,
    event_id: str,
    occurrence_date: Optional[date] = Query(None, alias="date", description="Occurrence date (YYYY-MM-DD)"),
    service: SchedulingService = Depends(get_scheduling_service),
    current_user_id: str = Depends(get_current_user_id)
) -> EventDetails:
    result = await service.get_event_by_id(
        event_id, occurrence_date, current_user_id, family_id=family_id
    )
    return result.unwrap()


@router.patch(
    "/{event_id}",
    response_model=EventUpdateResponse,
    summary="Update event",
    description="""
    Partially update an event.

    * `scope=this`: reschedule one occurrence (`date` required)
    * `scope=future`: end the series at `date`; the body must be empty (`{}`)
    * `scope=all`: change the event itself; a recurring series loses its exceptions
    """
)
async def update_event(
    *,
    family_id: str,
    event_id: str,
    event_in: EventUpdate,
    scope: EditScope = Query(EditScope.ALL, description="Which occurrences the change applies to"),
    occurrence_date: Optional[date] = Query(None, alias="date", description="Occurrence date (YYYY-MM-DD)"),
    service: SchedulingService = Depends(get_scheduling_service),
    current_user_id: str = Depends(get_current_user_id)
) -> EventUpdateResponse:
    result = await service.update_event(
        event_id, event_in, scope, occurrence_date, current_user_id, family_id=family_id
    )
    event = result.unwrap()
    logger.info(
        "Event updated",
        extra={"family_id": family_id, "event_id": event_id, "user_id": current_user_id}
    )
    return event


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete event",
    description="""
    Delete an event or part of a series.

    * `scope=this`: cancel one occurrence (`date` required)
    * `scope=future`: cancel the occurrence on `date` and everything after it
    * `scope=all`: delete the event with its participants and exceptions
    """
)
async def delete_event(
    *,
    family_id: str,
    event_id: str,
    scope: EditScope = Query(EditScope.ALL, description="Which occurrences to delete"),
    occurrence_date: Optional[date] = Query(None, alias="date", description="Occurrence date (YYYY-MM-DD)"),
    service: SchedulingService = Depends(get_scheduling_service),
    current_user_id: str = Depends(get_current_user_id)
) -> Response:
    result = await service.delete_event(
        event_id, scope, occurrence_date, current_user_id, family_id=family_id
    )
    result.unwrap()
    logger.info(
        "Event deleted",
        extra={"family_id": family_id, "event_id": event_id, "user_id": current_user_id}
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
