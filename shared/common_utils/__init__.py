from .connection_events import ConnectionEvent, ConnectionEvents, ConnectionState
from .exceptions import (
    ConfigurationWarning,
    FormatError,
    PublishError,
    RemoteConfigurationError,
    StoreCycleError,
    TransportError,
)
from .fingerprint import fingerprint, fingerprints_match
from .rabbitmq_client import RabbitMQClient
from .redis_client import RedisConnection
from .logger import logger

__all__ = [
    "ConnectionEvent",
    "ConnectionEvents",
    "ConnectionState",
    "ConfigurationWarning",
    "FormatError",
    "PublishError",
    "RemoteConfigurationError",
    "StoreCycleError",
    "TransportError",
    "fingerprint",
    "fingerprints_match",
    "RabbitMQClient",
    "RedisConnection",
    "logger",
]
