"""Lazy expansion of a recurring event into concrete occurrences."""
from datetime import date, datetime, timedelta
from typing import Iterator, NamedTuple, Optional

from dateutil.relativedelta import relativedelta

from homeplanner.models.enums import RecurrenceFrequency
from homeplanner.schemas.event import RecurrencePattern


class Occurrence(NamedTuple):
    start_time: datetime
    end_time: datetime

    @property
    def original_date(self) -> date:
        return self.start_time.date()


def add_interval(start: datetime, frequency: RecurrenceFrequency, steps: int) -> datetime:
    """Step `start` forward by `steps` units of `frequency`.

    Monthly steps keep the day of month when the target month has it and
    clamp to the month's last day otherwise.
    """
    if frequency == RecurrenceFrequency.DAILY:
        return start + relativedelta(days=steps)
    if frequency == RecurrenceFrequency.WEEKLY:
        return start + relativedelta(weeks=steps)
    return start + relativedelta(months=steps)


class OccurrenceSeries:
    """Iterable over the occurrences of a pattern, optionally bounded by a window.

    Every step is computed from the base start so month-end clamping never
    drifts. Each `iter()` restarts from the first occurrence.
    """

    def __init__(
        self,
        start_time: datetime,
        end_time: datetime,
        pattern: RecurrencePattern,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None
    ):
        self.start_time = start_time
        self.duration: timedelta = end_time - start_time
        self.pattern = pattern
        self.window_start = window_start
        self.window_end = window_end

    def __iter__(self) -> Iterator[Occurrence]:
        step = 0
        while True:
            current = add_interval(self.start_time, self.pattern.frequency, step * self.pattern.interval)
            step += 1
            if current.date() > self.pattern.end_date:
                return
            if self.window_end is not None and current > self.window_end:
                return
            if self.window_start is not None and current < self.window_start:
                continue
            yield Occurrence(current, current + self.duration)

    def __repr__(self):
        return (
            f"<OccurrenceSeries(start={self.start_time.isoformat()}, "
            f"{self.pattern.frequency.value}/{self.pattern.interval}, until={self.pattern.end_date})>"
        )


def occurrence_on(
    start_time: datetime,
    end_time: datetime,
    pattern: Optional[RecurrencePattern],
    day: date
) -> Optional[Occurrence]:
    """Return the unmodified occurrence whose start falls on `day`, if any."""
    if pattern is None:
        if start_time.date() == day:
            return Occurrence(start_time, end_time)
        return None

    for occurrence in OccurrenceSeries(start_time, end_time, pattern):
        if occurrence.original_date == day:
            return occurrence
        if occurrence.original_date > day:
            break
    return None
