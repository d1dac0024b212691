from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, List

from shared.common_utils.logger import logger

MessageHandler = Callable[[str], Awaitable[None]]


class Subscriber(ABC):
    """
    Receives change notifications from the bus.

    Handlers registered for a topic are awaited one message at a time, in arrival
    order, on the subscriber's own listener task.
    """

    name: str = "Subscriber"

    def __init__(self):
        self._handlers: Dict[str, List[MessageHandler]] = {}

    @abstractmethod
    async def initialize(self) -> None:
        """Open the receive side. Idempotent."""

    @abstractmethod
    async def subscribe(self, topic: str, handler: MessageHandler) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    def _register(self, topic: str, handler: MessageHandler) -> bool:
        """Store the handler; returns True when the topic is new to this subscriber."""
        is_new = topic not in self._handlers
        self._handlers.setdefault(topic, []).append(handler)
        return is_new

    async def _dispatch(self, topic: str, message: str) -> None:
        handlers = self._handlers.get(topic, [])
        logger.info(f"Received message on {self.name} topic '{topic}' for {len(handlers)} handler(s).")
        for handler in list(handlers):
            try:
                await handler(message)
            except Exception as e:
                logger.error(f"Handler for {self.name} topic '{topic}' failed: {e}", exc_info=True)
