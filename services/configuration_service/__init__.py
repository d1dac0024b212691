"""
Configuration Service
Central source of configuration files for all services, with change notifications over Redis or RabbitMQ.
"""

from .src import ConfigurationService, HostedConfigurationService, create_app

__version__ = "0.1.0"
__all__ = [
    "ConfigurationService",
    "HostedConfigurationService",
    "create_app",
]
