from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Callable, List, Optional

from .logger import logger


class ConnectionState(str, Enum):
    """Observable state changes of a bus connection."""
    CONNECTED = "CONNECTED"
    FAILED = "FAILED"
    RESTORED = "RESTORED"
    CLOSED = "CLOSED"


@dataclass
class ConnectionEvent:
    source: str
    state: ConnectionState
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


ConnectionListener = Callable[[ConnectionEvent], None]


def log_connection_event(event: ConnectionEvent) -> None:
    if event.state in (ConnectionState.FAILED, ConnectionState.CLOSED):
        logger.error(f"{event.source} connection {event.state.value.lower()}. Reason: {event.reason or 'N/A'}")
    else:
        logger.info(f"{event.source} connection {event.state.value.lower()}.")


class ConnectionEvents:
    """
    Fan-out of connection state changes to registered listeners.

    Kept outside the publish/subscribe contract; listeners are for logging and
    metrics only. A listener that raises is logged and skipped.
    """

    def __init__(self, source: str, log_events: bool = True):
        self.source = source
        self._listeners: List[ConnectionListener] = []
        if log_events:
            self._listeners.append(log_connection_event)

    def add_listener(self, listener: ConnectionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def emit(self, state: ConnectionState, reason: Optional[str] = None) -> ConnectionEvent:
        event = ConnectionEvent(source=self.source, state=state, reason=reason)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Connection event listener failed: {e}", exc_info=True)
        return event
