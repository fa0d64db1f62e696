from datetime import date

import pytest

from studio_booking.schemas import BookingRecord
from studio_booking.slots import (
    DEFAULT_DAY_SLOTS,
    booking_slots,
    calendar_summary,
    day_bounds,
    day_schedule,
    exclude_own_slots,
    filter_bookings,
    parse_day,
    status_counts,
    taken_slots,
)
from tests.helpers import utc


def record(start, end, status="pending", booking_id="b1", user_id="user-a"):
    return BookingRecord(
        id=booking_id,
        user_id=user_id,
        user_name="Alice",
        start_time=start,
        end_time=end,
        status=status,
        reason="Band Practice",
        created_at=utc(2026, 1, 1, 8, 0),
    )


def test_two_hour_booking_occupies_start_hours_only():
    assert booking_slots(utc(2026, 1, 8, 10, 0), utc(2026, 1, 8, 12, 0)) == ["10:00", "11:00"]


def test_half_hour_offset_keeps_minutes():
    assert booking_slots(utc(2026, 1, 8, 10, 30), utc(2026, 1, 8, 12, 0)) == ["10:30", "11:30"]


def test_empty_window_occupies_nothing():
    assert booking_slots(utc(2026, 1, 8, 12, 0), utc(2026, 1, 8, 12, 0)) == []
    assert booking_slots(utc(2026, 1, 8, 12, 0), utc(2026, 1, 8, 10, 0)) == []


def test_rejected_bookings_do_not_occupy_slots():
    bookings = [
        record(utc(2026, 1, 8, 10), utc(2026, 1, 8, 11), status="pending", booking_id="p"),
        record(utc(2026, 1, 8, 13), utc(2026, 1, 8, 14), status="approved", booking_id="a"),
        record(utc(2026, 1, 8, 15), utc(2026, 1, 8, 17), status="rejected", booking_id="r"),
    ]
    assert taken_slots(bookings, "2026-01-08") == ["10:00", "13:00"]


def test_taken_slots_ignores_other_days_and_repeats():
    bookings = [
        record(utc(2026, 1, 8, 10), utc(2026, 1, 8, 12), booking_id="one"),
        record(utc(2026, 1, 8, 11), utc(2026, 1, 8, 13), booking_id="two"),
        record(utc(2026, 1, 9, 10), utc(2026, 1, 9, 12), booking_id="tomorrow"),
    ]
    assert taken_slots(bookings, date(2026, 1, 8)) == ["10:00", "11:00", "12:00"]


def test_exclude_own_slots_frees_the_booking_window():
    own = record(utc(2026, 1, 8, 10), utc(2026, 1, 8, 12))
    assert exclude_own_slots(["09:00", "10:00", "11:00", "12:00"], own) == ["09:00", "12:00"]


def test_day_schedule_marks_taken_hours():
    schedule = day_schedule(["10:00", "11:00"])

    assert [s.time for s in schedule] == DEFAULT_DAY_SLOTS
    assert DEFAULT_DAY_SLOTS[0] == "09:00" and DEFAULT_DAY_SLOTS[-1] == "18:00"
    unavailable = [s.time for s in schedule if not s.available]
    assert unavailable == ["10:00", "11:00"]


def test_parse_day_accepts_dates_and_timestamps():
    assert parse_day("2026-01-08") == date(2026, 1, 8)
    assert parse_day("2026-01-08T23:30:00Z") == date(2026, 1, 8)
    assert parse_day(utc(2026, 1, 8, 5)) == date(2026, 1, 8)

    with pytest.raises(ValueError):
        parse_day("not-a-date")


def test_day_bounds_cover_one_day():
    start, end = day_bounds("2026-01-08")
    assert start == utc(2026, 1, 8)
    assert end == utc(2026, 1, 9)


def test_filter_by_status_and_today_view():
    bookings = [
        record(utc(2026, 1, 8, 10), utc(2026, 1, 8, 11), status="pending", booking_id="p"),
        record(utc(2026, 1, 9, 10), utc(2026, 1, 9, 11), status="approved", booking_id="a"),
    ]

    assert [b.id for b in filter_bookings(bookings, "approved")] == ["a"]
    assert [b.id for b in filter_bookings(bookings, "today", on=date(2026, 1, 8))] == ["p"]
    assert len(filter_bookings(bookings, None)) == 2


def test_counts_and_calendar_summary():
    bookings = [
        record(utc(2026, 1, 8, 10), utc(2026, 1, 8, 11), status="pending", booking_id="p"),
        record(utc(2026, 1, 8, 12), utc(2026, 1, 8, 13), status="approved", booking_id="a"),
        record(utc(2026, 1, 9, 12), utc(2026, 1, 9, 13), status="rejected", booking_id="r"),
    ]

    counts = status_counts(bookings)
    assert (counts.pending, counts.approved, counts.rejected) == (1, 1, 1)

    summary = calendar_summary(bookings)
    assert summary["2026-01-08"].approved == 1
    assert summary["2026-01-08"].pending == 1
    assert summary["2026-01-09"].approved == 0
    assert summary["2026-01-09"].pending == 0
