"""
Per-client state cells.

``BookingState`` keeps a refreshable, non-authoritative copy of every
booking and replaces it wholesale whenever the change feed fires.
``AuthState`` tracks who is signed in. Both are started explicitly and must
be closed to drop their subscriptions.
"""

import inspect
import logging
from datetime import date
from typing import Callable, Optional

from .auth import AuthService
from .bookings import BookingService
from .notifier import BookingChangeFeed, Subscription
from .schemas import BookingRecord, BookingUpdate, NewBooking, StatusCounts, UserProfile
from .slots import filter_bookings, parse_day, starts_on, status_counts

logger = logging.getLogger(__name__)


class BookingState:
    def __init__(self, service: BookingService, feed: BookingChangeFeed, on_replace: Optional[Callable] = None):
        self.service = service
        self.feed = feed
        self._on_replace = on_replace
        self.bookings: list[BookingRecord] = []
        self.is_loading = True
        self._subscription: Optional[Subscription] = None

    async def start(self):
        await self.refresh()
        self._subscription = self.feed.subscribe(self._replace)

    def close(self):
        if self._subscription:
            self._subscription.cancel()
            self._subscription = None

    async def _replace(self, bookings: list[BookingRecord]):
        self.bookings = bookings
        if self._on_replace:
            outcome = self._on_replace(bookings)
            if inspect.isawaitable(outcome):
                await outcome

    async def refresh(self):
        result = await self.service.list_all()
        if result.ok:
            await self._replace(result.data)
        self.is_loading = False

    # -------- MUTATIONS --------

    async def add_booking(self, booking: NewBooking) -> bool:
        return await self._after(await self.service.create(booking))

    async def update_booking(self, booking_id: str, updates: BookingUpdate) -> bool:
        return await self._after(await self.service.edit(booking_id, updates))

    async def delete_booking(self, booking_id: str) -> bool:
        return await self._after(await self.service.delete(booking_id))

    async def update_booking_status(self, booking_id: str, status: str) -> bool:
        return await self._after(await self.service.set_status(booking_id, status))

    async def _after(self, result) -> bool:
        if not result.ok:
            logger.info("Booking mutation failed: %s", result.error)
            return False
        await self.refresh()
        return True

    # -------- SELECTORS --------

    def get_bookings_for_date(self, day) -> list[BookingRecord]:
        d = parse_day(day)
        return [b for b in self.bookings if starts_on(b, d)]

    def get_user_bookings(self, user_id: str) -> list[BookingRecord]:
        return [b for b in self.bookings if b.user_id == user_id]

    def get_approved_bookings(self) -> list[BookingRecord]:
        return [b for b in self.bookings if b.status == "approved"]

    def filter(self, view: Optional[str], on: Optional[date] = None) -> list[BookingRecord]:
        return filter_bookings(self.bookings, view, on)

    def counts(self) -> StatusCounts:
        return status_counts(self.bookings)

    async def get_taken_slots(self, day) -> list[str]:
        result = await self.service.get_taken_slots(day)
        return result.data or []


class AuthState:
    def __init__(self, auth: AuthService):
        self.auth = auth
        self.user: Optional[UserProfile] = None
        self.access_token: Optional[str] = None
        self.is_loading = True
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    async def start(self, token: str | None = None):
        # listen before restoring so a concurrent sign-out is not missed
        self._unsubscribe = self.auth.on_auth_state_change(
            self._on_change,
            applies_to=lambda session: session.access_token == (self.access_token or token),
        )

        restored = await self.auth.restore_session(token)
        if restored.data:
            self.user = restored.data
            self.access_token = token
        self.is_loading = False

    def close(self):
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, profile: Optional[UserProfile]):
        self.user = profile
        if profile is None:
            self.access_token = None
        self.is_loading = False

    async def login(self, email: str, password: str) -> bool:
        result = await self.auth.login(email, password)
        if not result.ok:
            return False
        self.user = result.data.profile
        self.access_token = result.data.access_token
        return True

    async def register(self, email: str, password: str, name: str, role: str = "user") -> bool:
        result = await self.auth.register(email, password, name, role)
        if not result.ok:
            return False
        self.user = result.data
        return True

    async def logout(self):
        await self.auth.logout(self.access_token)
        self.user = None
        self.access_token = None
