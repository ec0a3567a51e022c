from enum import Enum

class EventType(str, Enum):
    """Blockers are hard commitments; elastic events may overlap anything."""
    ELASTIC = "elastic"
    BLOCKER = "blocker"

class ParticipantType(str, Enum):
    USER = "user"
    CHILD = "child"

class RecurrenceFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

class EditScope(str, Enum):
    """Blast radius of a mutation on a recurring event."""
    THIS = "this"
    FUTURE = "future"
    ALL = "all"

class FamilyRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"

class ActorType(str, Enum):
    USER = "user"
    SYSTEM = "system"
