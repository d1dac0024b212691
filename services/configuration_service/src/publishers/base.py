from abc import ABC, abstractmethod


class Publisher(ABC):
    """Sends change notifications for a single path. Fire-and-forget, no retries."""

    name: str = "Publisher"

    @abstractmethod
    async def initialize(self) -> None:
        """Open the underlying bus connection. Safe to call more than once."""

    @abstractmethod
    async def publish(self, topic: str, message: str) -> None:
        """Send ``message`` on ``topic``; adapter failures surface as PublishError."""
