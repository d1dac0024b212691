import asyncio
from enum import Enum
from typing import Iterable, Optional

from shared.common_utils.exceptions import PublishError
from shared.common_utils.logger import logger
from .publishers import Publisher
from .storages import ConfigStore


class ServiceState(str, Enum):
    CREATED = "CREATED"
    INITIALIZING = "INITIALIZING"
    WATCHING = "WATCHING"
    STOPPED = "STOPPED"
    FAILED = "FAILED"


class ConfigurationService:
    """
    Ties a ConfigStore to a Publisher.

    On start every tracked path is published once; afterwards each ChangeSet
    reported by the store is published path by path with the file's current
    fingerprint as the message.
    """

    def __init__(self, store: ConfigStore, publisher: Optional[Publisher] = None):
        if store is None:
            raise ValueError("store cannot be None.")
        self.store = store
        self.publisher = publisher
        self.state = ServiceState.CREATED
        self._publishing_enabled = False

    async def initialize(self, stop_event: asyncio.Event) -> None:
        self.state = ServiceState.INITIALIZING
        logger.info("Initializing Configuration Service")

        try:
            await self.store.initialize()

            if self.publisher is None:
                logger.info("A publisher has not been configured. Change notifications will not be sent.")
            else:
                await self.publisher.initialize()
                self._publishing_enabled = True

            paths = await self.store.list_paths()
            await self.publish_changes(paths)

            self.state = ServiceState.WATCHING
            await self.store.watch(self.on_change, stop_event)
        except asyncio.CancelledError:
            self.state = ServiceState.STOPPED
            raise
        except Exception:
            self.state = ServiceState.FAILED
            raise

        self.state = ServiceState.STOPPED
        logger.info("Configuration Service stopped watching for changes")

    async def on_change(self, paths: Iterable[str]) -> None:
        await self.publish_changes(paths)

    async def publish_changes(self, paths: Iterable[str]) -> None:
        if not self._publishing_enabled:
            return

        logger.info("Publishing changes...")
        for path in paths:
            file_hash = await self.store.hash(path)
            if file_hash is None:
                logger.info(f"{path} has been deleted. Skipping publish.")
                continue
            try:
                await self.publisher.publish(path, file_hash)
            except PublishError as e:
                logger.error(f"Failed to publish change for {path}: {e}")
