import logging
from typing import Awaitable, Callable, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError

from .errors import Result, NotFoundError, RemoteError, UnexpectedError
from .events import build_event, BOOKING_INSERTED, BOOKING_UPDATED, BOOKING_DELETED
from .models import Booking
from .schemas import BookingRecord, NewBooking, BookingUpdate, ensure_utc

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[dict], Awaitable[None]]

ORDERINGS = {
    "created_at": Booking.created_at.desc(),
    "start_time": Booking.start_time.asc(),
}


class BookingStore:
    """
    Query/command surface over the bookings table.

    Every call returns a ``Result``. Database failures come back as
    ``RemoteError`` and anything else as ``UnexpectedError``; nothing is
    raised to the caller. Successful commands hand a change event to
    ``on_change``.
    """

    def __init__(self, session_factory, on_change: Optional[ChangeHandler] = None):
        self._session_factory = session_factory
        self._on_change = on_change

    # -------- QUERIES --------

    async def fetch_all(self, order_by: str = "created_at") -> Result[list[BookingRecord]]:
        return await self._fetch(select(Booking), order_by, "Failed to fetch bookings")

    async def fetch_by_user(self, user_id: str, order_by: str = "created_at") -> Result[list[BookingRecord]]:
        stmt = select(Booking).where(Booking.user_id == user_id)
        return await self._fetch(stmt, order_by, "Failed to fetch your bookings")

    async def fetch_by_date_range(self, start, end, order_by: str = "start_time") -> Result[list[BookingRecord]]:
        stmt = select(Booking).where(
            Booking.start_time >= ensure_utc(start),
            Booking.start_time < ensure_utc(end),
        )
        return await self._fetch(stmt, order_by, "Failed to fetch bookings for date")

    async def fetch_by_status(self, status: str, order_by: str = "created_at") -> Result[list[BookingRecord]]:
        stmt = select(Booking).where(Booking.status == status)
        return await self._fetch(stmt, order_by, "Failed to fetch bookings")

    async def get(self, booking_id: str) -> Result[BookingRecord]:
        try:
            async with self._session_factory() as db:
                booking = await db.get(Booking, booking_id)
                if not booking:
                    return Result.failure(NotFoundError("Booking not found"))
                return Result.success(BookingRecord.model_validate(booking))
        except SQLAlchemyError as e:
            logger.error("Fetch booking error: %s", e)
            return Result.failure(RemoteError("Failed to fetch booking"))
        except Exception:
            logger.exception("Unexpected fetch error")
            return Result.failure(UnexpectedError())

    async def _fetch(self, stmt, order_by: str, failure_message: str) -> Result[list[BookingRecord]]:
        try:
            stmt = stmt.order_by(ORDERINGS[order_by])
            async with self._session_factory() as db:
                res = await db.execute(stmt)
                rows = res.scalars().all()
            return Result.success([BookingRecord.model_validate(r) for r in rows])
        except SQLAlchemyError as e:
            logger.error("%s: %s", failure_message, e)
            return Result.failure(RemoteError(failure_message))
        except Exception:
            logger.exception("Unexpected fetch error")
            return Result.failure(UnexpectedError())

    # -------- COMMANDS --------

    async def create(self, data: NewBooking) -> Result[BookingRecord]:
        try:
            async with self._session_factory() as db:
                booking = Booking(
                    user_id=data.user_id,
                    user_name=data.user_name,
                    start_time=ensure_utc(data.start_time),
                    end_time=ensure_utc(data.end_time),
                    reason=data.reason,
                    status="pending",  # always starts as pending
                )
                db.add(booking)
                await db.commit()
                await db.refresh(booking)
                record = BookingRecord.model_validate(booking)
        except SQLAlchemyError as e:
            logger.error("Create booking error: %s", e)
            return Result.failure(RemoteError("Failed to create booking"))
        except Exception:
            logger.exception("Unexpected create error")
            return Result.failure(UnexpectedError())

        await self._emit(BOOKING_INSERTED, record)
        return Result.success(record)

    async def update_fields(self, booking_id: str, updates: BookingUpdate) -> Result[BookingRecord]:
        fields = updates.model_dump(exclude_unset=True, exclude_none=True)
        for key in ("start_time", "end_time"):
            if key in fields:
                fields[key] = ensure_utc(fields[key])
        return await self._update(booking_id, fields, "Failed to update booking")

    async def update_status(self, booking_id: str, status: str) -> Result[BookingRecord]:
        return await self._update(booking_id, {"status": status}, "Failed to update booking status")

    async def _update(self, booking_id: str, fields: dict, failure_message: str) -> Result[BookingRecord]:
        try:
            async with self._session_factory() as db:
                booking = await db.get(Booking, booking_id)
                if not booking:
                    return Result.failure(NotFoundError("Booking not found"))

                for key, value in fields.items():
                    setattr(booking, key, value)

                await db.commit()
                await db.refresh(booking)
                record = BookingRecord.model_validate(booking)
        except SQLAlchemyError as e:
            logger.error("%s: %s", failure_message, e)
            return Result.failure(RemoteError(failure_message))
        except Exception:
            logger.exception("Unexpected update error")
            return Result.failure(UnexpectedError())

        await self._emit(BOOKING_UPDATED, record)
        return Result.success(record)

    async def delete(self, booking_id: str) -> Result[None]:
        try:
            async with self._session_factory() as db:
                res = await db.execute(delete(Booking).where(Booking.id == booking_id))
                await db.commit()
                if res.rowcount == 0:
                    return Result.failure(NotFoundError("Booking not found"))
        except SQLAlchemyError as e:
            logger.error("Delete booking error: %s", e)
            return Result.failure(RemoteError("Failed to delete booking"))
        except Exception:
            logger.exception("Unexpected delete error")
            return Result.failure(UnexpectedError())

        await self._emit(BOOKING_DELETED, None, booking_id)
        return Result.success(None)

    async def _emit(self, event_type: str, record: Optional[BookingRecord], booking_id: str | None = None):
        if not self._on_change:
            return
        event = build_event(
            event_type,
            {"id": record.id if record else booking_id, "status": record.status if record else None},
        )
        try:
            await self._on_change(event)
        except Exception:
            # the write already happened; subscribers catch up on the next change
            logger.exception("Booking change relay failed for %s", event_type)
