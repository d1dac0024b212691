"""
Configuration Client Source Package
Loads remote configuration documents and reloads them on change notifications.
"""

from .flat_map import FlatMap, KEY_DELIMITER
from .options import (
    ConfigurationOptions,
    RemoteConfigurationOptions,
    RemoteConfigurationSource,
)
from .provider import ProviderState, RemoteConfigurationProvider
from .configuration import (
    ConfigurationBuilder,
    ConfigurationRoot,
    FileConfigurationProvider,
    MemoryConfigurationProvider,
)
from .parsers import (
    ConfigurationFileParser,
    IniConfigurationFileParser,
    JsonConfigurationFileParser,
    ParserRegistry,
    XmlConfigurationFileParser,
    YamlConfigurationFileParser,
    default_registry,
    flatten,
    resolve_parser,
)
from .subscribers import RabbitMqSubscriber, RedisSubscriber, Subscriber

__all__ = [
    # Flat data
    "FlatMap",
    "KEY_DELIMITER",

    # Options
    "ConfigurationOptions",
    "RemoteConfigurationOptions",
    "RemoteConfigurationSource",

    # Providers
    "ProviderState",
    "RemoteConfigurationProvider",
    "FileConfigurationProvider",
    "MemoryConfigurationProvider",
    "ConfigurationBuilder",
    "ConfigurationRoot",

    # Parsers
    "ConfigurationFileParser",
    "IniConfigurationFileParser",
    "JsonConfigurationFileParser",
    "XmlConfigurationFileParser",
    "YamlConfigurationFileParser",
    "ParserRegistry",
    "default_registry",
    "flatten",
    "resolve_parser",

    # Subscribers
    "Subscriber",
    "RedisSubscriber",
    "RabbitMqSubscriber",
]
