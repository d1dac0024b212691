import redis.asyncio as redis

from shared.common_utils.exceptions import PublishError
from shared.common_utils.logger import logger
from shared.common_utils.redis_client import RedisConnection
from .base import Publisher


class RedisPublisher(Publisher):
    name = "Redis"

    def __init__(self, connection: RedisConnection):
        if connection is None:
            raise ValueError("connection cannot be None.")
        self.connection = connection

    async def initialize(self) -> None:
        logger.info(f"Initializing {self.name} publisher for {self.connection.redis_url}.")
        await self.connection.initialize()

    async def publish(self, topic: str, message: str) -> None:
        logger.info(f"Publishing message to channel {topic}.")
        try:
            client = self.connection.get_client()
            receivers = await client.publish(topic, message)
        except (redis.RedisError, RuntimeError, OSError) as e:
            raise PublishError(f"Failed to publish to Redis channel {topic}: {e}", topic=topic) from e
        logger.info(f"Message received by {receivers} clients.")
