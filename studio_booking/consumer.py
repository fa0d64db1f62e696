import asyncio
import json
import logging

import aio_pika
from aio_pika import ExchangeType

from .events import BOOKING_EVENTS
from .notifier import BookingChangeFeed
from .publisher import EXCHANGE_NAME

logger = logging.getLogger(__name__)

IDEMPOTENCY_TTL_SECONDS = 60 * 60  # 1 hour
RETRY_SECONDS = 5


def processed_key(event_id: str) -> str:
    return f"processed_event:{event_id}"


class BookingEventConsumer:
    """
    Feeds booking change events from the shared exchange into the local feed.

    Each instance binds its own exclusive queue, so every instance sees every
    change and refreshes its own subscribers.
    """

    def __init__(self, feed: BookingChangeFeed, redis, url: str | None):
        self.feed = feed
        self.redis = redis
        self.url = url
        self._connection = None

    @property
    def ready(self) -> bool:
        """True once the queue is bound and events come back to this instance."""
        return self._connection is not None and not self._connection.is_closed

    async def _already_processed(self, event_id: str) -> bool:
        key = processed_key(event_id)
        # SET NX: only the first delivery of an event id wins
        created = await self.redis.set(key, "1", ex=IDEMPOTENCY_TTL_SECONDS, nx=True)
        return not created

    async def handle_message(self, message: aio_pika.abc.AbstractIncomingMessage):
        async with message.process(requeue=False):
            try:
                payload = json.loads(message.body.decode("utf-8"))
            except Exception:
                return

            event_id = payload.get("event_id")
            event_type = payload.get("event_type")

            if not event_id or event_type not in BOOKING_EVENTS:
                return

            if await self._already_processed(event_id):
                return

            await self.feed.notify(payload)

    async def _connect_and_consume(self):
        connection = await aio_pika.connect_robust(self.url)
        channel = await connection.channel()
        await channel.set_qos(prefetch_count=50)

        exchange = await channel.declare_exchange(
            EXCHANGE_NAME,
            ExchangeType.TOPIC,
            durable=True,
        )

        queue = await channel.declare_queue(exclusive=True, auto_delete=True)
        for rk in BOOKING_EVENTS:
            await queue.bind(exchange, routing_key=rk)

        await queue.consume(self.handle_message)
        logger.info("Booking change consumer started")
        return connection

    async def start_with_retry(self, stop_event: asyncio.Event):
        if not self.url:
            return None

        while not stop_event.is_set():
            try:
                self._connection = await self._connect_and_consume()
                return self._connection
            except Exception as e:
                logger.warning("Consumer connect failed, retrying in %ss: %s", RETRY_SECONDS, e)
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=RETRY_SECONDS)
                except asyncio.TimeoutError:
                    continue
        return None

    async def close(self):
        if self._connection and not self._connection.is_closed:
            await self._connection.close()
        self._connection = None
