import asyncio
import warnings
from datetime import datetime, UTC
from enum import Enum
from typing import Optional, Set, Tuple
from urllib.parse import quote

import httpx

from shared.common_utils.exceptions import ConfigurationWarning, FormatError, TransportError
from shared.common_utils.fingerprint import fingerprint, fingerprints_match
from shared.common_utils.logger import logger
from .flat_map import FlatMap
from .options import RemoteConfigurationSource
from .parsers import resolve_parser
from .subscribers import Subscriber


class ProviderState(str, Enum):
    UNLOADED = "UNLOADED"
    LOADING = "LOADING"
    LOADED = "LOADED"
    RELOADING = "RELOADING"
    DISPOSED = "DISPOSED"


class RemoteConfigurationProvider:
    """
    Loads one named document from the configuration service and keeps it current.

    The flattened data is replaced as a whole on every successful load, so readers
    always see either the previous map or the new one. Reloads triggered by bus
    notifications never overlap; notifications that arrive during a reload are
    folded into a single follow-up reload.
    """

    def __init__(self, source: RemoteConfigurationSource):
        if source is None:
            raise ValueError("source cannot be None")
        if not source.configuration_name:
            raise ValueError("configuration_name cannot be empty")
        if not source.service_uri:
            raise ValueError("service_uri cannot be empty")

        self._source = source
        self._client: Optional[httpx.AsyncClient] = None
        self._data = FlatMap.empty()
        self._fingerprint: Optional[str] = None
        self._state = ProviderState.UNLOADED
        self._subscriber: Optional[Subscriber] = None
        self._reload_lock = asyncio.Lock()
        self._reload_requested = False
        self._pending_fingerprint: Optional[str] = None
        self._update_subscribers: Set[asyncio.Queue] = set()

        logger.info(f"Initializing remote configuration source for configuration '{source.configuration_name}'.")

        if source.parser is None:
            logger.info(
                f"A file parser was not specified for '{source.configuration_name}'. "
                f"Resolving parser from the file extension."
            )
        self._parser = resolve_parser(source.configuration_name, source.parser)
        logger.info(f"Using parser {self._parser.name}.")

    @property
    def name(self) -> str:
        return self._source.configuration_name

    @property
    def state(self) -> ProviderState:
        return self._state

    @property
    def data(self) -> FlatMap:
        return self._data

    @property
    def fingerprint(self) -> Optional[str]:
        return self._fingerprint

    @property
    def subscriber(self) -> Optional[Subscriber]:
        return self._subscriber

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._data.get(key, default)

    async def initialize(self) -> None:
        """Subscribe for change notifications if requested, then load."""
        if self._source.reload_on_change and self._subscriber is None:
            await self._subscribe()
        await self.load()

    async def _subscribe(self) -> None:
        if self._source.create_subscriber is None:
            message = "ReloadOnChange is enabled but a subscriber has not been configured."
            logger.warning(message)
            warnings.warn(message, ConfigurationWarning, stacklevel=3)
            return

        subscriber = self._source.create_subscriber()
        logger.info(
            f"Initializing remote configuration {subscriber.name} subscriber "
            f"for configuration '{self.name}'."
        )
        await subscriber.initialize()
        await subscriber.subscribe(self.name, self._on_change_notification)
        self._subscriber = subscriber

    async def load(self) -> None:
        """
        Fetch, fingerprint and parse the document, then swap in the new data.

        Raises TransportError or FormatError for a required source. An optional
        source keeps its previous data (empty on the first load) instead. Runs
        under the reload lock; notifications that arrive meanwhile are applied
        once the fetch completes.
        """
        async with self._reload_lock:
            await self._load()
            await self._apply_pending_reloads()

    async def _load(self) -> None:
        if self._state == ProviderState.DISPOSED:
            raise RuntimeError(f"Provider for '{self.name}' has been disposed")

        first_load = self._state == ProviderState.UNLOADED
        self._state = ProviderState.LOADING if first_load else ProviderState.RELOADING
        try:
            result = await self._request_configuration()
        except BaseException:
            self._state = ProviderState.UNLOADED if first_load else ProviderState.LOADED
            raise

        self._state = ProviderState.LOADED
        if result is None:
            return

        self._fingerprint, self._data = result
        logger.info(f"Configuration updated for '{self.name}'.")
        await self._notify_subscribers()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._source.service_uri,
                timeout=self._source.request_timeout,
                transport=self._source.transport,
            )
        return self._client

    async def _request_configuration(self) -> Optional[Tuple[str, FlatMap]]:
        client = self._get_client()
        logger.info(f"Requesting remote configuration '{self.name}' from '{client.base_url}'...")

        try:
            response = await client.get(quote(self.name, safe=""))
        except httpx.HTTPError as e:
            if self._source.optional:
                logger.warning(f"Optional configuration '{self.name}' could not be requested: {e}")
                return None
            raise TransportError(f"Error calling remote configuration endpoint for '{self.name}': {e}") from e

        if not response.is_success:
            status_message = (
                f"Received response status code {response.status_code}({response.reason_phrase}) "
                f"from endpoint for configuration '{self.name}'."
            )
            logger.warning(status_message)
            if self._source.optional:
                return None
            raise TransportError(
                f"Error calling remote configuration endpoint: {response.status_code} - {response.reason_phrase}",
                status_code=response.status_code,
            )

        body = response.content
        logger.info(f"Parsing remote configuration response ({len(body):,} bytes) for configuration '{self.name}'.")

        content_fingerprint = fingerprint(body)
        logger.info(f"Computed hash for configuration '{self.name}' is {content_fingerprint}.")

        try:
            data = self._parser.parse(body)
        except FormatError as e:
            if self._source.optional:
                logger.error(f"Optional configuration '{self.name}' is malformed and was not applied: {e}")
                return None
            raise

        return content_fingerprint, data

    async def _on_change_notification(self, message: str) -> None:
        logger.info(
            f"Received remote configuration change notification for configuration '{self.name}' "
            f"with hash {message}. Current hash is {self._fingerprint}."
        )
        if fingerprints_match(message, self._fingerprint):
            logger.info(
                f"Configuration '{self.name}' current hash {self._fingerprint} matches new hash. "
                f"Configuration will not be updated."
            )
            return
        await self.reload(message)

    async def reload(self, expected_fingerprint: Optional[str] = None) -> None:
        """
        Run a reload, or fold the request into the load or reload already running.

        A failed reload is logged and leaves the current data in place.
        """
        self._reload_requested = True
        self._pending_fingerprint = expected_fingerprint

        if self._reload_lock.locked():
            logger.info(f"Load of '{self.name}' already in progress; reload request coalesced.")
            return

        async with self._reload_lock:
            await self._apply_pending_reloads()

    async def _apply_pending_reloads(self) -> None:
        # caller holds the reload lock
        while self._reload_requested and self._state != ProviderState.DISPOSED:
            self._reload_requested = False
            if fingerprints_match(self._pending_fingerprint, self._fingerprint):
                logger.info(f"Configuration '{self.name}' is already at hash {self._fingerprint}.")
                continue
            try:
                await self._load()
            except Exception as e:
                logger.error(f"Reloading configuration '{self.name}' failed; keeping previous data: {e}")

    async def subscribe_to_updates(self, queue: Optional[asyncio.Queue] = None) -> asyncio.Queue:
        """Subscribe to reload notifications. Pass a queue to share it across providers."""
        queue = queue or asyncio.Queue()
        self._update_subscribers.add(queue)
        return queue

    async def unsubscribe_from_updates(self, queue: asyncio.Queue) -> None:
        self._update_subscribers.discard(queue)

    async def _notify_subscribers(self) -> None:
        for queue in self._update_subscribers:
            await queue.put({
                "configuration_name": self.name,
                "checksum": self._fingerprint,
                "timestamp": datetime.now(UTC).isoformat(),
            })

    async def dispose(self) -> None:
        if self._state == ProviderState.DISPOSED:
            return
        self._state = ProviderState.DISPOSED
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
