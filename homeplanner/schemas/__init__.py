from .event import (
    BaseSchema,
    RecurrencePattern,
    ParticipantReference,
    EventParticipantResponse,
    EventCreateBody,
    EventCreate,
    EventUpdate,
    EventValidateBody,
    EventValidate,
    EventFilter,
    EventResponse,
    EventCreateResponse,
    EventUpdateResponse,
    EventOccurrenceResponse,
    EventExceptionResponse,
    EventDetails,
    Pagination,
    EventListResponse,
    ConflictingEvent,
    FieldError,
    ValidationResult,
)

__all__ = [
    "BaseSchema",
    "RecurrencePattern",
    "ParticipantReference",
    "EventParticipantResponse",
    "EventCreateBody",
    "EventCreate",
    "EventUpdate",
    "EventValidateBody",
    "EventValidate",
    "EventFilter",
    "EventResponse",
    "EventCreateResponse",
    "EventUpdateResponse",
    "EventOccurrenceResponse",
    "EventExceptionResponse",
    "EventDetails",
    "Pagination",
    "EventListResponse",
    "ConflictingEvent",
    "FieldError",
    "ValidationResult",
]
