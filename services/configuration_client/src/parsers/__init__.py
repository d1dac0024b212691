"""
Configuration file parsers.

Every structured format is reduced to the same ``:``-delimited flat key space.
"""

import os
from typing import Callable, Dict, Optional

from .base import ConfigurationFileParser, MappingNode, flatten
from .ini_parser import IniConfigurationFileParser
from .json_parser import JsonConfigurationFileParser
from .xml_parser import XmlConfigurationFileParser
from .yaml_parser import YamlConfigurationFileParser

ParserFactory = Callable[[], ConfigurationFileParser]


class ParserRegistry:
    """Maps file extensions to parser factories. Unknown extensions use the default."""

    def __init__(self, default: ParserFactory = JsonConfigurationFileParser):
        self._factories: Dict[str, ParserFactory] = {}
        self._default = default

    def register(self, extension: str, factory: ParserFactory) -> None:
        extension = extension.lower()
        if not extension.startswith("."):
            extension = f".{extension}"
        self._factories[extension] = factory

    def for_extension(self, extension: str) -> ConfigurationFileParser:
        return self._factories.get(extension.lower(), self._default)()

    def for_name(self, name: str) -> ConfigurationFileParser:
        return self.for_extension(os.path.splitext(name)[1])


default_registry = ParserRegistry()
default_registry.register(".ini", IniConfigurationFileParser)
default_registry.register(".xml", XmlConfigurationFileParser)
default_registry.register(".yml", YamlConfigurationFileParser)
default_registry.register(".yaml", YamlConfigurationFileParser)
default_registry.register(".json", JsonConfigurationFileParser)


def resolve_parser(
    name: str,
    parser: Optional[ConfigurationFileParser] = None,
    registry: Optional[ParserRegistry] = None,
) -> ConfigurationFileParser:
    """Explicit parser first, then the registry entry for the name's extension."""
    if parser is not None:
        return parser
    return (registry or default_registry).for_name(name)


__all__ = [
    "ConfigurationFileParser",
    "MappingNode",
    "flatten",
    "IniConfigurationFileParser",
    "JsonConfigurationFileParser",
    "XmlConfigurationFileParser",
    "YamlConfigurationFileParser",
    "ParserRegistry",
    "default_registry",
    "resolve_parser",
]
