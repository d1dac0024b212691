import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Union

import aiofiles

from shared.common_utils.exceptions import FormatError
from shared.common_utils.logger import logger
from .flat_map import FlatMap, KEY_DELIMITER
from .options import RemoteConfigurationOptions
from .parsers import ConfigurationFileParser, MappingNode, flatten, resolve_parser
from .provider import RemoteConfigurationProvider
from .subscribers import Subscriber


class ConfigurationProvider(Protocol):
    data: FlatMap

    async def initialize(self) -> None: ...

    async def subscribe_to_updates(self, queue: Optional[asyncio.Queue] = None) -> asyncio.Queue: ...

    async def dispose(self) -> None: ...


def _to_node(value: Any):
    if isinstance(value, Mapping):
        return MappingNode((str(name), _to_node(child)) for name, child in value.items())
    if isinstance(value, (list, tuple)):
        return [_to_node(child) for child in value]
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class MemoryConfigurationProvider:
    """In-process values, nested or already flat."""

    def __init__(self, values: Mapping[str, Any]):
        self.data = flatten(_to_node(values))

    async def initialize(self) -> None:
        pass

    async def subscribe_to_updates(self, queue: Optional[asyncio.Queue] = None) -> asyncio.Queue:
        return queue or asyncio.Queue()

    async def dispose(self) -> None:
        pass


class FileConfigurationProvider:
    """A local document read once at build time."""

    def __init__(
        self,
        path: Union[str, Path],
        optional: bool = False,
        parser: Optional[ConfigurationFileParser] = None,
    ):
        self.path = Path(path)
        self.optional = optional
        self._parser = resolve_parser(self.path.name, parser)
        self.data = FlatMap.empty()

    async def initialize(self) -> None:
        try:
            async with aiofiles.open(self.path, "rb") as f:
                content = await f.read()
        except FileNotFoundError:
            if self.optional:
                logger.warning(f"Optional configuration file not found at {self.path}. Using empty config.")
                return
            raise
        try:
            self.data = self._parser.parse(content)
        except FormatError as e:
            if self.optional:
                logger.error(f"Optional configuration file {self.path} is malformed and was not applied: {e}")
                return
            raise
        logger.info(f"Configuration loaded from {self.path}")

    async def subscribe_to_updates(self, queue: Optional[asyncio.Queue] = None) -> asyncio.Queue:
        return queue or asyncio.Queue()

    async def dispose(self) -> None:
        pass


class ConfigurationRoot:
    """
    Layered view over several providers.

    Later providers override earlier ones. Lookups are case-insensitive and always
    read each provider's current map, so reloads are visible immediately.
    """

    def __init__(self, providers: List[ConfigurationProvider], subscribers: Optional[List[Subscriber]] = None):
        self.providers = providers
        self._subscribers = subscribers if subscribers is not None else []

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        for provider in reversed(self.providers):
            data = provider.data
            if key in data:
                return data[key]
        return default

    def __getitem__(self, key: str) -> Optional[str]:
        for provider in reversed(self.providers):
            data = provider.data
            if key in data:
                return data[key]
        raise KeyError(key)

    def __contains__(self, key: str) -> bool:
        return any(key in provider.data for provider in self.providers)

    def as_dict(self) -> Dict[str, Optional[str]]:
        merged: Dict[str, Optional[str]] = {}
        display: Dict[str, str] = {}
        for provider in self.providers:
            for key, value in provider.data.items():
                folded = key.casefold()
                display.setdefault(folded, key)
                merged[folded] = value
        return {display[folded]: merged[folded] for folded in sorted(merged)}

    def get_section(self, section: str) -> Dict[str, Optional[str]]:
        """Entries below ``section`` with the section prefix removed."""
        prefix = (section + KEY_DELIMITER).casefold()
        return {
            key[len(prefix):]: value
            for key, value in self.as_dict().items()
            if key.casefold().startswith(prefix)
        }

    async def subscribe_to_updates(self) -> asyncio.Queue:
        queue = asyncio.Queue()
        for provider in self.providers:
            await provider.subscribe_to_updates(queue)
        return queue

    async def dispose(self) -> None:
        for provider in self.providers:
            await provider.dispose()
        for subscriber in self._subscribers:
            try:
                await subscriber.close()
            except Exception as e:
                logger.error(f"Error closing {subscriber.name} subscriber: {e}", exc_info=True)


class ConfigurationBuilder:
    """Collects configuration sources and loads them in order."""

    def __init__(self):
        self._factories: List[Callable[[], List[ConfigurationProvider]]] = []

    def add_memory(self, values: Mapping[str, Any]) -> "ConfigurationBuilder":
        self._factories.append(lambda: [MemoryConfigurationProvider(values)])
        return self

    def add_file(
        self,
        path: Union[str, Path],
        optional: bool = False,
        parser: Optional[ConfigurationFileParser] = None,
    ) -> "ConfigurationBuilder":
        self._factories.append(lambda: [FileConfigurationProvider(path, optional, parser)])
        return self

    def add_remote(self, configure: Callable[[RemoteConfigurationOptions], None]) -> "ConfigurationBuilder":
        options = RemoteConfigurationOptions()
        configure(options)
        sources = options.build_sources()
        self._factories.append(lambda: [RemoteConfigurationProvider(source) for source in sources])
        return self

    async def build(self) -> ConfigurationRoot:
        """
        Create and load every provider.

        A required source that fails aborts the build; providers created so far are
        disposed before the error propagates.
        """
        providers: List[ConfigurationProvider] = []
        subscribers: List[Subscriber] = []
        root = ConfigurationRoot(providers, subscribers)
        try:
            for factory in self._factories:
                for provider in factory():
                    providers.append(provider)
                    try:
                        await provider.initialize()
                    finally:
                        subscriber = getattr(provider, "subscriber", None)
                        if subscriber is not None and subscriber not in subscribers:
                            subscribers.append(subscriber)
        except Exception as e:
            logger.error(f"Failed to build configuration: {e}")
            await root.dispose()
            raise
        return root
