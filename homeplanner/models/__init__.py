from .base import Base
from .enums import EventType, ParticipantType, RecurrenceFrequency, EditScope, FamilyRole, ActorType
from .user import User
from .family import Family, FamilyMember, Child
from .event import Event, EventParticipant, EventException
from .log import Log

# For convenience, export all models
__all__ = [
    "Base",
    "EventType",
    "ParticipantType",
    "RecurrenceFrequency",
    "EditScope",
    "FamilyRole",
    "ActorType",
    "User",
    "Family",
    "FamilyMember",
    "Child",
    "Event",
    "EventParticipant",
    "EventException",
    "Log",
]
