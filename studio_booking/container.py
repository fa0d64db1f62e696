import asyncio
import logging

from .auth import AuthService
from .bookings import BookingService
from .consumer import BookingEventConsumer
from .events import to_json
from .identity import IdentityProvider
from .notifier import BookingChangeFeed
from .profiles import ProfileDirectory
from .publisher import RabbitPublisher
from .store import BookingStore

logger = logging.getLogger(__name__)


class Studio:
    """
    Process-wide wiring of the booking core.

    Built once with its collaborators, started on application startup and
    closed on shutdown. Changes made through the store reach the local feed in
    the background, or through RabbitMQ when the consumer is bound so that every
    instance refreshes.
    """

    def __init__(self, session_factory, redis, publisher: RabbitPublisher | None = None):
        self.redis = redis
        self.publisher = publisher or RabbitPublisher(None)

        self.store = BookingStore(session_factory, on_change=self._relay_change)
        self.changes = BookingChangeFeed(self.store.fetch_all)
        self.consumer = BookingEventConsumer(self.changes, redis, self.publisher.url)

        self.profiles = ProfileDirectory(session_factory)
        self.identity = IdentityProvider(session_factory, redis)
        self.auth = AuthService(self.identity, self.profiles)
        self.bookings = BookingService(self.store)

        self._stop_event = asyncio.Event()
        self._consumer_task = None

    async def _relay_change(self, event: dict):
        # events only come back to this instance once its queue is bound
        if self.publisher.enabled and self.consumer.ready:
            if await self.publisher.publish(event["event_type"], to_json(event)):
                return
        self.changes.dispatch(event)

    async def start(self):
        if not self.publisher.enabled:
            return

        try:
            await self.publisher.connect()
        except Exception as e:
            logger.warning("RabbitMQ connect failed at startup; continuing with local events: %s", e)

        self._consumer_task = asyncio.create_task(self.consumer.start_with_retry(self._stop_event))

    async def close(self):
        self._stop_event.set()
        if self._consumer_task:
            try:
                await self._consumer_task
            except Exception:
                logger.exception("Consumer task ended with an error")
            self._consumer_task = None

        await self.changes.drain()
        self.changes.close()

        try:
            await self.consumer.close()
        except Exception:
            logger.exception("Consumer close failed")
        try:
            await self.publisher.close()
        except Exception:
            logger.exception("Publisher close failed")
