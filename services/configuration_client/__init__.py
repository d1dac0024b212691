"""
Configuration Client
Composes layered configuration from local and remote sources for any service.
"""

from .src import (
    ConfigurationBuilder,
    ConfigurationRoot,
    FlatMap,
    RemoteConfigurationOptions,
    RemoteConfigurationProvider,
)

__version__ = "0.1.0"
__all__ = [
    "ConfigurationBuilder",
    "ConfigurationRoot",
    "FlatMap",
    "RemoteConfigurationOptions",
    "RemoteConfigurationProvider",
]
