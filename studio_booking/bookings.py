import logging

from .errors import Result, ValidationError
from .schemas import BookingRecord, NewBooking, BookingUpdate, ensure_utc
from .slots import day_bounds, taken_slots
from .store import BookingStore

logger = logging.getLogger(__name__)

ADMIN_STATUSES = ("approved", "rejected")


class BookingService:
    """
    Booking lifecycle: create, edit, delete and status changes.

    New bookings always start ``pending``. Status changes are unguarded, any
    status may be overwritten with ``approved`` or ``rejected``. Overlapping
    bookings are accepted; slot occupancy is advisory only.
    """

    def __init__(self, store: BookingStore):
        self.store = store

    async def create(self, data: NewBooking) -> Result[BookingRecord]:
        if ensure_utc(data.end_time) <= ensure_utc(data.start_time):
            return Result.failure(ValidationError("End time must be after start time"))
        if not (data.reason or "").strip():
            return Result.failure(ValidationError("Reason is required"))

        data = data.model_copy(update={"reason": data.reason.strip(), "status": "pending"})
        return await self.store.create(data)

    async def edit(self, booking_id: str, updates: BookingUpdate) -> Result[BookingRecord]:
        if not updates.model_dump(exclude_none=True):
            return Result.failure(ValidationError("Nothing to update"))
        if updates.reason is not None:
            if not updates.reason.strip():
                return Result.failure(ValidationError("Reason is required"))
            updates = updates.model_copy(update={"reason": updates.reason.strip()})

        if updates.start_time is not None or updates.end_time is not None:
            current = await self.store.get(booking_id)
            if not current.ok:
                return current
            start = updates.start_time or current.data.start_time
            end = updates.end_time or current.data.end_time
            if ensure_utc(end) <= ensure_utc(start):
                return Result.failure(ValidationError("End time must be after start time"))

        return await self.store.update_fields(booking_id, updates)

    async def delete(self, booking_id: str) -> Result[None]:
        return await self.store.delete(booking_id)

    async def set_status(self, booking_id: str, status: str) -> Result[BookingRecord]:
        if status not in ADMIN_STATUSES:
            return Result.failure(ValidationError(f"Invalid status: {status}. Allowed: {list(ADMIN_STATUSES)}"))
        result = await self.store.update_status(booking_id, status)
        if result.ok:
            logger.info("Booking %s set to %s", booking_id, status)
        return result

    # -------- QUERIES --------

    async def get(self, booking_id: str) -> Result[BookingRecord]:
        return await self.store.get(booking_id)

    async def list_all(self) -> Result[list[BookingRecord]]:
        return await self.store.fetch_all()

    async def list_for_user(self, user_id: str) -> Result[list[BookingRecord]]:
        return await self.store.fetch_by_user(user_id)

    async def list_for_date(self, day) -> Result[list[BookingRecord]]:
        try:
            start, end = day_bounds(day)
        except (TypeError, ValueError, OverflowError):
            return Result.failure(ValidationError(f"Invalid date: {day}"))
        return await self.store.fetch_by_date_range(start, end)

    async def list_by_status(self, status: str) -> Result[list[BookingRecord]]:
        return await self.store.fetch_by_status(status)

    async def get_taken_slots(self, day) -> Result[list[str]]:
        bookings = await self.list_for_date(day)
        if not bookings.ok:
            return Result.failure(bookings.error)
        return Result.success(taken_slots(bookings.data, day))
