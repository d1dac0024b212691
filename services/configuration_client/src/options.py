from dataclasses import dataclass, field
from typing import Callable, List, Optional

import httpx

from shared.common_utils.rabbitmq_client import RabbitMQClient
from shared.common_utils.redis_client import RedisConnection
from .parsers import ConfigurationFileParser
from .subscribers import RabbitMqSubscriber, RedisSubscriber, Subscriber

SubscriberFactory = Callable[[], Subscriber]


@dataclass
class ConfigurationOptions:
    """One remote document."""
    configuration_name: str
    optional: bool = False
    reload_on_change: bool = False
    parser: Optional[ConfigurationFileParser] = None


@dataclass
class RemoteConfigurationSource:
    """Everything one RemoteConfigurationProvider needs."""
    configuration_name: str
    service_uri: str
    optional: bool = False
    reload_on_change: bool = False
    parser: Optional[ConfigurationFileParser] = None
    request_timeout: float = 60.0
    transport: Optional[httpx.AsyncBaseTransport] = None
    create_subscriber: Optional[SubscriberFactory] = None


@dataclass
class RemoteConfigurationOptions:
    """
    Remote sources that share one service endpoint and one subscriber.

    The subscriber factory is wrapped so that every source gets the same instance,
    and with it the same bus connection.
    """
    service_uri: Optional[str] = None
    request_timeout: float = 60.0
    transport: Optional[httpx.AsyncBaseTransport] = None
    configurations: List[ConfigurationOptions] = field(default_factory=list)
    _subscriber_factory: Optional[SubscriberFactory] = None
    _subscriber: Optional[Subscriber] = None

    def add_configuration(
        self,
        configuration_name: str,
        optional: bool = False,
        reload_on_change: bool = False,
        parser: Optional[ConfigurationFileParser] = None,
    ) -> "RemoteConfigurationOptions":
        if not configuration_name:
            raise ValueError("configuration_name cannot be empty")
        self.configurations.append(
            ConfigurationOptions(
                configuration_name=configuration_name,
                optional=optional,
                reload_on_change=reload_on_change,
                parser=parser,
            )
        )
        return self

    def add_subscriber(self, factory: SubscriberFactory) -> "RemoteConfigurationOptions":
        self._subscriber_factory = factory
        self._subscriber = None
        return self

    def add_redis_subscriber(self, redis_url: str) -> "RemoteConfigurationOptions":
        return self.add_subscriber(lambda: RedisSubscriber(RedisConnection(redis_url), owns_connection=True))

    def add_rabbitmq_subscriber(
        self, rabbitmq_url: str, exchange_name: str = "remote-configuration"
    ) -> "RemoteConfigurationOptions":
        return self.add_subscriber(
            lambda: RabbitMqSubscriber(
                RabbitMQClient("remote_configuration_client", rabbitmq_url, exchange_name=exchange_name),
                owns_connection=True,
            )
        )

    def shared_subscriber(self) -> Subscriber:
        if self._subscriber is None:
            self._subscriber = self._subscriber_factory()
        return self._subscriber

    def build_sources(self) -> List[RemoteConfigurationSource]:
        if not self.service_uri:
            raise ValueError("service_uri must be set before adding remote configuration")

        create_subscriber = self.shared_subscriber if self._subscriber_factory else None
        return [
            RemoteConfigurationSource(
                configuration_name=configuration.configuration_name,
                service_uri=self.service_uri,
                optional=configuration.optional,
                reload_on_change=configuration.reload_on_change,
                parser=configuration.parser,
                request_timeout=self.request_timeout,
                transport=self.transport,
                create_subscriber=create_subscriber,
            )
            for configuration in self.configurations
        ]
