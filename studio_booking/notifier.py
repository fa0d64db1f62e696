import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Union

from .errors import Result
from .schemas import BookingRecord

logger = logging.getLogger(__name__)

BookingsHandler = Callable[[list[BookingRecord]], Union[None, Awaitable[None]]]


class Subscription:
    """Unregister token handed back by ``BookingChangeFeed.subscribe``."""

    def __init__(self, feed: "BookingChangeFeed", handler: BookingsHandler):
        self._feed = feed
        self.handler = handler
        self.active = True

    def cancel(self):
        if self.active:
            self._feed._remove(self)
            self.active = False


class BookingChangeFeed:
    """
    One producer (the booking store), many consumers.

    Any change to any booking triggers a single full re-fetch, and every
    subscriber receives the complete collection. No diffing: consumers
    replace their copy wholesale. Re-fetches run one at a time, so
    snapshots reach subscribers in the order the changes were seen.
    """

    def __init__(self, fetch_all: Callable[[], Awaitable[Result[list[BookingRecord]]]]):
        self._fetch_all = fetch_all
        self._subscriptions: list[Subscription] = []
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, handler: BookingsHandler) -> Subscription:
        sub = Subscription(self, handler)
        self._subscriptions.append(sub)
        return sub

    def _remove(self, sub: Subscription):
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    async def notify(self, event: dict | None = None) -> int:
        """Re-fetch and deliver to every subscriber. Returns how many handlers were called."""
        if not self._subscriptions:
            return 0

        async with self._lock:
            logger.debug("Booking change detected (%s), refetching", (event or {}).get("event_type"))
            result = await self._fetch_all()
            if not result.ok:
                logger.warning("Booking refetch after change failed: %s", result.error)
                return 0

            delivered = 0
            for sub in list(self._subscriptions):
                try:
                    outcome = sub.handler(list(result.data))
                    if inspect.isawaitable(outcome):
                        await outcome
                    delivered += 1
                except Exception:
                    logger.exception("Booking change handler failed")
            return delivered

    def dispatch(self, event: dict | None = None) -> asyncio.Task:
        """Schedule ``notify`` in the background so writers do not wait on subscribers."""
        task = asyncio.create_task(self.notify(event))
        self._pending.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task):
        self._pending.discard(task)
        if not task.cancelled() and task.exception():
            logger.error("Booking change delivery failed: %s", task.exception())

    async def drain(self):
        """Wait until every dispatched delivery has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self):
        for sub in list(self._subscriptions):
            sub.cancel()
