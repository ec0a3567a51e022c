from datetime import date, datetime, timedelta, UTC

from homeplanner.domain.recurrence import Occurrence, OccurrenceSeries, add_interval, occurrence_on
from homeplanner.models.enums import RecurrenceFrequency
from homeplanner.schemas.event import RecurrencePattern


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


def pattern(frequency: str, end_date: date, interval: int = 1) -> RecurrencePattern:
    return RecurrencePattern(frequency=frequency, interval=interval, end_date=end_date)


def test_daily_series_includes_end_date():
    series = OccurrenceSeries(
        utc(2024, 3, 4, 9), utc(2024, 3, 4, 10), pattern("daily", date(2024, 3, 8))
    )
    starts = [o.start_time for o in series]
    assert starts == [utc(2024, 3, d, 9) for d in range(4, 9)]


def test_every_occurrence_keeps_base_duration():
    series = OccurrenceSeries(
        utc(2024, 3, 4, 9), utc(2024, 3, 4, 10, 30), pattern("daily", date(2024, 3, 10))
    )
    assert all(o.end_time - o.start_time == timedelta(minutes=90) for o in series)


def test_weekly_with_interval():
    series = OccurrenceSeries(
        utc(2024, 3, 4, 17), utc(2024, 3, 4, 18), pattern("weekly", date(2024, 4, 1), interval=2)
    )
    assert [o.original_date for o in series] == [date(2024, 3, 4), date(2024, 3, 18), date(2024, 4, 1)]


def test_monthly_clamps_to_month_end_without_drift():
    series = OccurrenceSeries(
        utc(2024, 1, 31, 8), utc(2024, 1, 31, 9), pattern("monthly", date(2024, 4, 30))
    )
    assert [o.original_date for o in series] == [
        date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)
    ]


def test_window_bounds_emission():
    series = OccurrenceSeries(
        utc(2024, 3, 4, 9), utc(2024, 3, 4, 10),
        pattern("daily", date(2024, 3, 31)),
        window_start=utc(2024, 3, 6),
        window_end=utc(2024, 3, 7, 23, 59)
    )
    assert [o.original_date for o in series] == [date(2024, 3, 6), date(2024, 3, 7)]


def test_series_restarts_on_each_iteration():
    series = OccurrenceSeries(
        utc(2024, 3, 4, 9), utc(2024, 3, 4, 10), pattern("daily", date(2024, 3, 6))
    )
    assert list(series) == list(series)
    assert len(list(series)) == 3


def test_add_interval():
    start = utc(2024, 1, 31, 12)
    assert add_interval(start, RecurrenceFrequency.DAILY, 1) == utc(2024, 2, 1, 12)
    assert add_interval(start, RecurrenceFrequency.WEEKLY, 2) == utc(2024, 2, 14, 12)
    assert add_interval(start, RecurrenceFrequency.MONTHLY, 1) == utc(2024, 2, 29, 12)


def test_occurrence_on_matching_day():
    weekly = pattern("weekly", date(2024, 4, 30))
    found = occurrence_on(utc(2024, 3, 4, 17), utc(2024, 3, 4, 18), weekly, date(2024, 3, 18))
    assert found == Occurrence(utc(2024, 3, 18, 17), utc(2024, 3, 18, 18))


def test_occurrence_on_missing_day():
    weekly = pattern("weekly", date(2024, 4, 30))
    assert occurrence_on(utc(2024, 3, 4, 17), utc(2024, 3, 4, 18), weekly, date(2024, 3, 19)) is None
    # After the series has ended
    assert occurrence_on(utc(2024, 3, 4, 17), utc(2024, 3, 4, 18), weekly, date(2024, 5, 6)) is None


def test_occurrence_on_single_event():
    assert occurrence_on(utc(2024, 3, 4, 17), utc(2024, 3, 4, 18), None, date(2024, 3, 4)) is not None
    assert occurrence_on(utc(2024, 3, 4, 17), utc(2024, 3, 4, 18), None, date(2024, 3, 5)) is None
