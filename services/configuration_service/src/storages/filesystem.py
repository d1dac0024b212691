import asyncio
from typing import Iterable, List, Optional, Set, Tuple

from watchfiles import Change, awatch

from shared.common_utils.logger import logger
from .base import LocalTreeStore, OnChange

WATCHED_CHANGES = (Change.added, Change.modified)


class FileSystemStore(LocalTreeStore):
    """
    A local directory watched through OS file-change notifications.

    Every created or modified file is reported as its own one-path ChangeSet as
    soon as it is seen. Notifications are at-least-once; consumers dedup by
    fingerprint.
    """

    name = "File System"

    def __init__(
        self,
        path: str,
        search_pattern: Optional[str] = "*",
        include_subdirectories: bool = True,
        debounce_ms: int = 200,
    ):
        if not path or not path.strip():
            raise ValueError("path cannot be None or empty.")
        super().__init__(path, search_pattern, include_subdirectories)
        self.debounce_ms = debounce_ms

    async def initialize(self) -> None:
        logger.info(
            f"Initializing {self.name} storage with options "
            f"{{path: {self.root}, search_pattern: {self.search_pattern}, "
            f"include_subdirectories: {self.include_subdirectories}}}."
        )
        if not self.root.is_dir():
            raise FileNotFoundError(f"Configuration directory {self.root} does not exist")

    async def list_paths(self) -> List[str]:
        logger.info(f"Listing files at {self.root}.")
        files = await asyncio.to_thread(self._enumerate_files)
        logger.info(f"{len(files)} files found.")
        return files

    def changed_paths(self, changes: Iterable[Tuple[Change, str]]) -> List[str]:
        """Relative paths of created/modified files that pass the filter, in stable order."""
        paths: Set[str] = set()
        for change, full_path in changes:
            if change not in WATCHED_CHANGES:
                continue
            try:
                relative = self.relative_path(full_path)
            except ValueError:
                continue
            if self.matches(relative):
                paths.add(relative)
        return sorted(paths)

    async def watch(self, on_change: OnChange, stop_event: asyncio.Event) -> None:
        logger.info(f"Watching {self.root} for file changes.")
        async for changes in awatch(
            self.root,
            stop_event=stop_event,
            recursive=self.include_subdirectories,
            debounce=self.debounce_ms,
        ):
            for path in self.changed_paths(changes):
                logger.info(f"Detected file change at {path}.")
                try:
                    await on_change([path])
                except Exception as e:
                    logger.error(f"Handling file change at {path} failed: {e}", exc_info=True)
        logger.info(f"Stopped watching {self.root}.")
