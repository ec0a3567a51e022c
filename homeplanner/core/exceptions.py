from typing import Any, Dict, List
from fastapi import status


class SchedulingError(Exception):
    """Base class for errors raised by the scheduling engine."""
    error_type = "scheduling_error"

    def __init__(
        self,
        detail: str | dict[str, Any] = "An error occurred",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    ) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)

    def to_dict(self) -> Dict[str, Any]:
        """Error body shared by the HTTP handler and the dry-run validator."""
        return {
            "detail": self.detail,
            "status_code": self.status_code,
            "type": self.error_type
        }


class ValidationError(SchedulingError):
    """Malformed input or a participant that does not belong to the family."""
    error_type = "validation_error"

    def __init__(self, detail: str = "Validation error", fields: Dict[str, str] | None = None):
        super().__init__(detail, status.HTTP_400_BAD_REQUEST)
        self.fields = fields or {}

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["fields"] = self.fields
        return body


class ForbiddenError(SchedulingError):
    """Requester is not a family member, or the event is read-only."""
    error_type = "forbidden"

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(detail, status.HTTP_403_FORBIDDEN)


class NotFoundError(SchedulingError):
    error_type = "not_found"

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} with id {resource_id} not found", status.HTTP_404_NOT_FOUND)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(SchedulingError):
    """A blocker event collides with another blocker sharing a participant.

    Carries the full list of conflicting events so callers can render them.
    This is a business rule failure and must not be retried.
    """
    error_type = "conflict"

    def __init__(self, detail: str, conflicts: List[Any]):
        super().__init__(detail, status.HTTP_409_CONFLICT)
        self.conflicts = list(conflicts)

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["conflicts"] = [
            c.model_dump(mode="json") if hasattr(c, "model_dump") else c
            for c in self.conflicts
        ]
        return body


class InternalError(SchedulingError):
    """Unexpected storage failure. Never carries storage-layer detail."""
    error_type = "server_error"

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(detail, status.HTTP_500_INTERNAL_SERVER_ERROR)
