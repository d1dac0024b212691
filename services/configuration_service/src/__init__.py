"""
Configuration Service Source Package
Serves configuration files from a store and publishes a notification whenever one changes.
"""

from .storages import ConfigStore, FileSystemStore, GitStore
from .publishers import Publisher, RabbitMqPublisher, RedisPublisher
from .configuration_service import ConfigurationService, ServiceState
from .hosted_service import HostedConfigurationService
from .routes import create_router
from .app import build_publisher, build_store, create_app

__all__ = [
    # Stores
    "ConfigStore",
    "FileSystemStore",
    "GitStore",

    # Publishers
    "Publisher",
    "RedisPublisher",
    "RabbitMqPublisher",

    # Service
    "ConfigurationService",
    "ServiceState",
    "HostedConfigurationService",

    # HTTP
    "create_router",
    "create_app",
    "build_store",
    "build_publisher",
]
