"""
Hourly slot calculations for the studio calendar.

A slot is an ``HH:MM`` label in the studio time zone. A booking occupies the
labels visited by walking from its start in one-hour steps while the walk is
still before its end, so 10:00-12:00 occupies 10:00 and 11:00 and 10:30-12:00
occupies 10:30 and 11:30.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional

from dateutil import parser

from .config import STUDIO_TZ, STUDIO_OPEN_HOUR, STUDIO_CLOSE_HOUR
from .schemas import ensure_utc, TimeSlot, StatusCounts, DaySummary

ACTIVE_STATUSES = ("pending", "approved")
SLOT_STEP = timedelta(hours=1)
SLOT_FORMAT = "%H:%M"

DEFAULT_DAY_SLOTS = [f"{h:02d}:00" for h in range(STUDIO_OPEN_HOUR, STUDIO_CLOSE_HOUR + 1)]


def parse_day(value) -> date:
    """Accept a date, a datetime or an ISO string and return the studio-local date."""
    if isinstance(value, datetime):
        return local_time(value).date()
    if isinstance(value, date):
        return value

    value = (value or "").strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        return local_time(parser.isoparse(value)).date()


def local_time(dt: datetime) -> datetime:
    return ensure_utc(dt).astimezone(STUDIO_TZ)


def slot_label(dt: datetime) -> str:
    return local_time(dt).strftime(SLOT_FORMAT)


def today() -> date:
    return datetime.now(timezone.utc).astimezone(STUDIO_TZ).date()


def day_bounds(day) -> tuple[datetime, datetime]:
    """UTC [start, end) window covering one studio-local day."""
    d = parse_day(day)
    start = datetime.combine(d, time.min, tzinfo=STUDIO_TZ)
    end = datetime.combine(d + timedelta(days=1), time.min, tzinfo=STUDIO_TZ)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def starts_on(booking, day) -> bool:
    return local_time(booking.start_time).date() == parse_day(day)


def booking_slots(start: datetime, end: datetime) -> list[str]:
    labels = []
    current = ensure_utc(start)
    end = ensure_utc(end)
    while current < end:
        labels.append(slot_label(current))
        current = current + SLOT_STEP
    return labels


def taken_slots(bookings: Iterable, day) -> list[str]:
    """Labels occupied on ``day`` by pending and approved bookings, first-seen order, no repeats."""
    d = parse_day(day)
    seen = set()
    taken = []
    for b in bookings:
        if b.status not in ACTIVE_STATUSES or not starts_on(b, d):
            continue
        for label in booking_slots(b.start_time, b.end_time):
            if label not in seen:
                seen.add(label)
                taken.append(label)
    return taken


def exclude_own_slots(slots: Iterable[str], booking) -> list[str]:
    """Drop the labels inside the booking's own window so it can be re-timed over itself."""
    own_start = slot_label(booking.start_time)
    own_end = slot_label(booking.end_time)
    return [s for s in slots if s < own_start or s >= own_end]


def day_schedule(taken: Iterable[str], slots: Optional[list[str]] = None) -> list[TimeSlot]:
    taken = set(taken)
    return [TimeSlot(time=s, available=s not in taken) for s in (slots or DEFAULT_DAY_SLOTS)]


def filter_bookings(bookings: Iterable, view: Optional[str], on: Optional[date] = None) -> list:
    if not view:
        return list(bookings)
    if view == "today":
        d = on or today()
        return [b for b in bookings if starts_on(b, d)]
    return [b for b in bookings if b.status == view]


def status_counts(bookings: Iterable) -> StatusCounts:
    counts = StatusCounts()
    for b in bookings:
        if b.status in ("pending", "approved", "rejected"):
            setattr(counts, b.status, getattr(counts, b.status) + 1)
    return counts


def calendar_summary(bookings: Iterable) -> dict[str, DaySummary]:
    summary: dict[str, DaySummary] = {}
    for b in bookings:
        key = local_time(b.start_time).date().isoformat()
        day = summary.setdefault(key, DaySummary())
        if b.status == "approved":
            day.approved += 1
        elif b.status == "pending":
            day.pending += 1
    return summary
