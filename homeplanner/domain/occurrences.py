from datetime import date, datetime
from typing import Iterable, List, NamedTuple, Optional, Sequence

from homeplanner.domain.recurrence import Occurrence, OccurrenceSeries, occurrence_on
from homeplanner.models.event import Event, EventException


class ResolvedOccurrence(NamedTuple):
    """An occurrence after its exception (if any) has been applied."""
    original_date: date
    start_time: datetime
    end_time: datetime


def resolve_occurrence(
    occurrence: Occurrence,
    exception: Optional[EventException]
) -> Optional[ResolvedOccurrence]:
    if exception is None:
        return ResolvedOccurrence(occurrence.original_date, occurrence.start_time, occurrence.end_time)
    if exception.is_cancelled:
        return None
    return ResolvedOccurrence(
        occurrence.original_date,
        exception.new_start_time or occurrence.start_time,
        exception.new_end_time or occurrence.end_time
    )


def resolve_occurrences(
    occurrences: Iterable[Occurrence],
    exceptions: Sequence[EventException]
) -> List[ResolvedOccurrence]:
    """Apply per-date overrides to raw occurrences; cancelled ones are dropped."""
    by_date = {exc.original_date: exc for exc in exceptions}
    resolved = []
    for occurrence in occurrences:
        item = resolve_occurrence(occurrence, by_date.get(occurrence.original_date))
        if item is not None:
            resolved.append(item)
    return resolved


def _in_window(occurrence: ResolvedOccurrence, window_start: datetime, window_end: datetime) -> bool:
    return occurrence.start_time <= window_end and occurrence.end_time > window_start


def expand_event(
    event: Event,
    exceptions: Sequence[EventException],
    window_start: datetime,
    window_end: datetime
) -> List[ResolvedOccurrence]:
    """Concrete occurrences of `event` whose resolved interval meets the window.

    The window is applied after exceptions, so a rescheduled occurrence is
    listed where it was moved to and not where it originally fell.
    """
    pattern = event.pattern
    if pattern is None:
        single = ResolvedOccurrence(event.start_time.date(), event.start_time, event.end_time)
        return [single] if _in_window(single, window_start, window_end) else []

    duration = event.duration
    raw = list(OccurrenceSeries(event.start_time, event.end_time, pattern, window_start - duration, window_end))
    seen = {occurrence.original_date for occurrence in raw}

    # Occurrences moved into the window from a slot outside it
    for exception in exceptions:
        if exception.original_date in seen or exception.is_cancelled:
            continue
        if exception.new_start_time is None and exception.new_end_time is None:
            continue
        occurrence = occurrence_on(event.start_time, event.end_time, pattern, exception.original_date)
        if occurrence is not None:
            raw.append(occurrence)

    resolved = [
        occurrence
        for occurrence in resolve_occurrences(raw, exceptions)
        if _in_window(occurrence, window_start, window_end)
    ]
    resolved.sort(key=lambda occurrence: occurrence.start_time)
    return resolved
