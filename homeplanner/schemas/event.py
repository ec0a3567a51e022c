from datetime import date, datetime, UTC
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from homeplanner.models.enums import EventType, ParticipantType, RecurrenceFrequency


# --- Base Schemas ---
class BaseSchema(BaseModel):
    """Base schema with common configuration."""
    model_config = ConfigDict(from_attributes=True)


def as_utc(v: Any) -> Any:
    """Parse ISO strings and make every instant timezone-aware UTC."""
    if isinstance(v, str):
        try:
            v = datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValueError("Invalid datetime format") from e
    if isinstance(v, datetime):
        return v.replace(tzinfo=UTC) if v.tzinfo is None else v.astimezone(UTC)
    return v


# --- Recurrence ---
class RecurrencePattern(BaseSchema):
    """Fixed cadence with a mandatory, inclusive end date."""
    frequency: RecurrenceFrequency
    interval: int = Field(1, gt=0, description="Every N units of frequency")
    end_date: date

    def to_storage(self) -> Dict[str, Any]:
        """Persisted JSON shape."""
        return {
            "frequency": self.frequency.value,
            "interval": self.interval,
            "end_date": self.end_date.isoformat()
        }


# --- Participants ---
class ParticipantReference(BaseSchema):
    """A family member (`user`) or child taking part in an event."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str = Field(..., min_length=1)
    type: ParticipantType


class EventParticipantResponse(BaseSchema):
    id: str
    name: str
    type: ParticipantType
    avatar_url: Optional[str] = None

    def reference(self) -> ParticipantReference:
        return ParticipantReference(id=self.id, type=self.type)


# --- Commands ---
class EventCreateBody(BaseSchema):
    """Event fields as sent in a request body; the family comes from the URL."""
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=200)
    start_time: datetime
    end_time: datetime
    is_all_day: bool = False
    event_type: EventType = EventType.ELASTIC
    recurrence_pattern: Optional[RecurrencePattern] = None
    participants: Optional[List[ParticipantReference]] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_datetime(cls, v: Any) -> Any:
        return as_utc(v)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Event title is required")
        return v

    @model_validator(mode="after")
    def validate_dates(self) -> "EventCreateBody":
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        if self.recurrence_pattern and self.recurrence_pattern.end_date <= self.start_time.date():
            raise ValueError("Recurrence end date must be after start time")
        return self


class EventCreate(EventCreateBody):
    family_id: str


class EventUpdate(BaseSchema):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_all_day: Optional[bool] = None
    event_type: Optional[EventType] = None
    recurrence_pattern: Optional[RecurrencePattern] = None
    participants: Optional[List[ParticipantReference]] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_datetime(cls, v: Any) -> Any:
        return as_utc(v)

    @model_validator(mode="after")
    def validate_update(self) -> "EventUpdate":
        if self.start_time is not None and self.end_time is not None:
            if self.end_time <= self.start_time:
                raise ValueError("End time must be after start time")
        return self


class EventValidateBody(BaseSchema):
    """Dry-run command used for live feedback while an event is being edited."""
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=200)
    start_time: datetime
    end_time: datetime
    is_all_day: Optional[bool] = None
    event_type: EventType
    participants: Optional[List[ParticipantReference]] = None
    exclude_event_id: Optional[str] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_datetime(cls, v: Any) -> Any:
        return as_utc(v)

    @model_validator(mode="after")
    def validate_dates(self) -> "EventValidateBody":
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class EventValidate(EventValidateBody):
    family_id: str


class EventFilter(BaseSchema):
    participant_ids: Optional[List[str]] = None
    event_type: Optional[EventType] = None
    include_synced: bool = True
    limit: int = 100
    offset: int = 0


# --- Responses ---
class EventResponse(BaseSchema):
    id: str
    family_id: str
    title: str
    start_time: datetime
    end_time: datetime
    is_all_day: bool
    event_type: EventType
    recurrence_pattern: Optional[RecurrencePattern] = None
    is_synced: bool
    external_calendar_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class EventCreateResponse(EventResponse):
    participants: List[EventParticipantResponse] = []


class EventUpdateResponse(EventCreateResponse):
    exception_created: bool = False


class EventOccurrenceResponse(EventResponse):
    """One resolved occurrence in a listing."""
    participants: List[EventParticipantResponse] = []
    has_conflict: bool = False
    original_date: Optional[date] = None


class EventExceptionResponse(BaseSchema):
    id: str
    event_id: str
    original_date: date
    new_start_time: Optional[datetime] = None
    new_end_time: Optional[datetime] = None
    is_cancelled: bool


class EventDetails(EventResponse):
    participants: List[EventParticipantResponse] = []
    exceptions: List[EventExceptionResponse] = []
    original_date: Optional[date] = None
    is_cancelled: bool = False


class Pagination(BaseSchema):
    total: int
    limit: int
    offset: int
    has_more: bool


class EventListResponse(BaseSchema):
    events: List[EventOccurrenceResponse]
    pagination: Pagination


# --- Conflicts and dry-run validation ---
class ConflictingEvent(BaseSchema):
    """Read-only projection describing a colliding blocker event."""
    id: str
    title: str
    start_time: datetime
    end_time: datetime
    participants: List[EventParticipantResponse] = []


class FieldError(BaseSchema):
    field: str
    message: str


class ValidationResult(BaseSchema):
    valid: bool
    errors: List[FieldError] = []
    conflicts: List[ConflictingEvent] = []
