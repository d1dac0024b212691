from .base import Publisher
from .rabbitmq_publisher import RabbitMqPublisher
from .redis_publisher import RedisPublisher

__all__ = ["Publisher", "RabbitMqPublisher", "RedisPublisher"]
