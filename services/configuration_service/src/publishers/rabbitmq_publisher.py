import asyncio

import aio_pika

from shared.common_utils.exceptions import PublishError
from shared.common_utils.logger import logger
from shared.common_utils.rabbitmq_client import RabbitMQClient
from .base import Publisher


class RabbitMqPublisher(Publisher):
    name = "RabbitMQ"

    def __init__(self, client: RabbitMQClient):
        if client is None:
            raise ValueError("client cannot be None.")
        self.client = client

    async def initialize(self) -> None:
        logger.info(f"Initializing {self.name} publisher on exchange {self.client.exchange_name}.")
        await self.client.initialize()

    async def publish(self, topic: str, message: str) -> None:
        logger.info(f"Publishing message with routing key {topic}.")
        try:
            await self.client.publish_message(message_body=message, routing_key=topic)
        except (aio_pika.exceptions.AMQPError, ConnectionError, OSError, asyncio.TimeoutError) as e:
            raise PublishError(f"Failed to publish with routing key {topic}: {e}", topic=topic) from e
