from typing import Generic, Optional, TypeVar

from homeplanner.core.exceptions import SchedulingError

T = TypeVar("T")


class Result(Generic[T]):
    """Tagged outcome of a scheduling operation: a payload or a typed error."""

    __slots__ = ("value", "error")

    def __init__(self, value: Optional[T] = None, error: Optional[SchedulingError] = None):
        self.value = value
        self.error = error

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: SchedulingError) -> "Result[T]":
        return cls(error=error)

    @property
    def success(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the payload, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.value

    def __repr__(self):
        if self.success:
            return f"<Result ok={self.value!r}>"
        return f"<Result error={self.error.__class__.__name__}: {self.error.detail!r}>"
