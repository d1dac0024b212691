import asyncio
from typing import Optional

from aio_pika.abc import AbstractIncomingMessage, AbstractQueue

from shared.common_utils.logger import logger
from shared.common_utils.rabbitmq_client import RabbitMQClient
from .base import MessageHandler, Subscriber


class RabbitMqSubscriber(Subscriber):
    """Private queue bound to the notification exchange once per subscribed topic."""

    name = "RabbitMQ"

    def __init__(self, client: RabbitMQClient, owns_connection: bool = False):
        super().__init__()
        self.client = client
        self.owns_connection = owns_connection
        self._queue: Optional[AbstractQueue] = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        async with self._lock:
            if self._queue is not None:
                return
            self._queue = await self.client.open_consumer(self._on_message)

    async def subscribe(self, topic: str, handler: MessageHandler) -> None:
        if self._queue is None:
            raise RuntimeError("Subscriber has not been initialized")

        logger.info(f"Subscribing to RabbitMQ routing key '{topic}'.")
        if self._register(topic, handler):
            await self.client.bind(self._queue, topic)

    async def _on_message(self, message: AbstractIncomingMessage) -> None:
        async with message.process():
            await self._dispatch(message.routing_key, message.body.decode("utf-8"))

    async def close(self) -> None:
        # the queue is exclusive and auto-deleted with its channel
        self._queue = None
        if self.owns_connection:
            await self.client.close()
