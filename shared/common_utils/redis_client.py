import asyncio
from typing import Optional

import redis.asyncio as redis

from .connection_events import ConnectionEvents, ConnectionState
from .logger import logger


class RedisConnection:
    """
    Process-wide Redis handle shared by publishers and subscribers.

    Create one per process and pass it to every adapter that needs it.
    ``initialize()`` may be called any number of times; only the first call
    connects. ``close()`` tears the pool down once. Reconnection after a transient
    failure is left to redis-py's retry policy.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        socket_timeout: float = 5,
        health_check_interval: int = 30,
        events: Optional[ConnectionEvents] = None,
    ):
        self.redis_url = redis_url
        self.socket_timeout = socket_timeout
        self.health_check_interval = health_check_interval
        self.events = events or ConnectionEvents("Redis")
        self.redis_pool: Optional[redis.ConnectionPool] = None
        self.redis_client: Optional[redis.Redis] = None
        self._initialized = False
        self._lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> redis.Redis:
        """Initialize Redis connection pool"""
        async with self._lock:
            if self._initialized:
                return self.redis_client

            self.redis_pool = redis.ConnectionPool.from_url(
                self.redis_url,
                retry_on_timeout=True,
                retry_on_error=[redis.ConnectionError, redis.TimeoutError],
                health_check_interval=self.health_check_interval,
                socket_connect_timeout=self.socket_timeout,
                decode_responses=True,
            )
            self.redis_client = redis.Redis(connection_pool=self.redis_pool)

            try:
                await self.redis_client.ping()
            except (redis.ConnectionError, redis.TimeoutError, OSError) as e:
                self.events.emit(ConnectionState.FAILED, str(e))
                await self.redis_pool.disconnect()
                self.redis_pool = None
                self.redis_client = None
                raise

            self._initialized = True
            self.events.emit(ConnectionState.CONNECTED)
            logger.info("Redis connection initialized successfully")
            return self.redis_client

    def get_client(self) -> redis.Redis:
        if not self._initialized:
            raise RuntimeError("Redis connection has not been initialized")
        return self.redis_client

    async def close(self) -> None:
        async with self._lock:
            if not self._initialized:
                return
            await self.redis_client.aclose()
            await self.redis_pool.disconnect()
            self.redis_client = None
            self.redis_pool = None
            self._initialized = False
            self.events.emit(ConnectionState.CLOSED, "Closed by owner")
