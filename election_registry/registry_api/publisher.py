"""RabbitMQ publisher for registry events."""
import asyncio
import logging
from datetime import datetime
from typing import Optional

import aio_pika
from aio_pika import connect_robust, Message, DeliveryMode
from aio_pika.abc import AbstractChannel, AbstractRobustConnection
from aio_pika.pool import Pool

from ..shared import RegistryEvent
from .config import settings

logger = logging.getLogger(__name__)


class RabbitMQPublisher:
    """Async RabbitMQ publisher with connection pooling."""

    def __init__(self):
        self.connection_pool: Optional[Pool] = None
        self.channel_pool: Optional[Pool] = None
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    @property
    def is_initialized(self) -> bool:
        return self.channel_pool is not None

    async def get_connection(self) -> AbstractRobustConnection:
        """Get a new robust connection for the pool."""
        return await connect_robust(settings.rabbitmq_url)

    async def get_channel(self) -> AbstractChannel:
        """Get a channel from the pool."""
        async with self.connection_pool.acquire() as connection:
            return await connection.channel()

    async def initialize(self):
        """Initialize connection and channel pools."""
        try:
            self.connection_pool = Pool(
                self.get_connection,
                max_size=settings.RABBITMQ_POOL_SIZE
            )
            self.channel_pool = Pool(
                self.get_channel,
                max_size=settings.RABBITMQ_POOL_SIZE
            )

            # Declare exchange
            async with self.channel_pool.acquire() as channel:
                await channel.declare_exchange(
                    settings.RABBITMQ_EXCHANGE,
                    aio_pika.ExchangeType.TOPIC,
                    durable=True
                )

            logger.info("RabbitMQ publisher initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize RabbitMQ publisher: {e}")
            raise

    async def publish_event(self, event: RegistryEvent) -> bool:
        """
        Publish a registry event to RabbitMQ.

        Args:
            event: Event emitted by the registry

        Returns:
            bool: True if published successfully, False otherwise
        """
        if not self.is_initialized:
            logger.error(f"Publisher not initialized, dropping event sequence={event.sequence}")
            return False

        try:
            async with self.channel_pool.acquire() as channel:
                exchange = await channel.get_exchange(settings.RABBITMQ_EXCHANGE)

                message = Message(
                    body=event.to_json().encode(),
                    delivery_mode=DeliveryMode.PERSISTENT,
                    content_type="application/json",
                    timestamp=datetime.utcnow()
                )

                await exchange.publish(message, routing_key=event.routing_key)

                logger.info(
                    f"Published event to RabbitMQ: "
                    f"type={event.event_type.value}, sequence={event.sequence}"
                )
                return True

        except Exception as e:
            logger.error(f"Failed to publish event to RabbitMQ: {e}")
            return False

    def on_event(self, event: RegistryEvent) -> None:
        """
        Registry listener: queue the event for publication.

        The registry calls listeners synchronously, so events go onto a queue
        drained by a single worker task on the running loop. One worker keeps
        broker order equal to sequence order.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error(
                f"No running event loop, event sequence={event.sequence} not published"
            )
            return

        if self._worker is None or self._worker.done() or self._worker.get_loop() is not loop:
            self._queue = asyncio.Queue()
            self._worker = loop.create_task(self._drain())

        self._queue.put_nowait(event)

    async def _drain(self):
        """Publish queued events one at a time."""
        while True:
            event = await self._queue.get()
            try:
                await self.publish_event(event)
            finally:
                self._queue.task_done()

    async def flush(self):
        """Wait for queued events to be published."""
        if self._worker is not None and not self._worker.done():
            await self._queue.join()

    async def _stop_worker(self):
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        self._queue = None

    async def check_health(self) -> bool:
        """
        Check RabbitMQ connection health.

        Returns:
            bool: True if healthy, False otherwise
        """
        if not self.is_initialized:
            return False
        try:
            async with self.channel_pool.acquire() as channel:
                await channel.declare_queue("health_check", auto_delete=True)
                return True
        except Exception as e:
            logger.error(f"RabbitMQ health check failed: {e}")
            return False

    async def close(self):
        """Close all connections and channels."""
        try:
            await self.flush()
            await self._stop_worker()
            if self.channel_pool:
                await self.channel_pool.close()
            if self.connection_pool:
                await self.connection_pool.close()
            logger.info("RabbitMQ publisher closed successfully")
        except Exception as e:
            logger.error(f"Error closing RabbitMQ publisher: {e}")


# Global publisher instance
publisher = RabbitMQPublisher()
