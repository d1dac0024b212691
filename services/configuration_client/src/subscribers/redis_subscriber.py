import asyncio
from typing import Optional

import redis.asyncio as redis
from redis.asyncio.client import PubSub

from shared.common_utils.connection_events import ConnectionState
from shared.common_utils.logger import logger
from shared.common_utils.redis_client import RedisConnection
from .base import MessageHandler, Subscriber


class RedisSubscriber(Subscriber):
    """Redis pub/sub channels, one channel per configuration name."""

    name = "Redis"

    def __init__(
        self,
        connection: RedisConnection,
        poll_timeout: float = 1.0,
        retry_delay: float = 1.0,
        owns_connection: bool = False,
    ):
        super().__init__()
        self.connection = connection
        self.owns_connection = owns_connection
        self.poll_timeout = poll_timeout
        self.retry_delay = retry_delay
        self._pubsub: Optional[PubSub] = None
        self._listener_task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        async with self._lock:
            if self._pubsub is not None:
                return
            client = await self.connection.initialize()
            self._pubsub = client.pubsub(ignore_subscribe_messages=True)

    async def subscribe(self, topic: str, handler: MessageHandler) -> None:
        if self._pubsub is None:
            raise RuntimeError("Subscriber has not been initialized")

        logger.info(f"Subscribing to Redis channel '{topic}'.")
        if self._register(topic, handler):
            await self._pubsub.subscribe(topic)

        if self._listener_task is None:
            self._listener_task = asyncio.create_task(self._listen(), name="RedisSubscriber-listener")

    async def _listen(self) -> None:
        failing = False
        while True:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=self.poll_timeout
                )
            except (redis.ConnectionError, redis.TimeoutError, OSError) as e:
                if not failing:
                    self.connection.events.emit(ConnectionState.FAILED, str(e))
                    failing = True
                await asyncio.sleep(self.retry_delay)
                continue

            if failing:
                self.connection.events.emit(ConnectionState.RESTORED)
                failing = False

            if message is None or message.get("type") != "message":
                continue

            await self._dispatch(message["channel"], message["data"])

    async def close(self) -> None:
        if self._listener_task is not None:
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
            self._listener_task = None
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        if self.owns_connection:
            await self.connection.close()
