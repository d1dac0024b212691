from .base import MessageHandler, Subscriber
from .rabbitmq_subscriber import RabbitMqSubscriber
from .redis_subscriber import RedisSubscriber

__all__ = ["MessageHandler", "Subscriber", "RabbitMqSubscriber", "RedisSubscriber"]
