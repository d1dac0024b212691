import asyncio
import fnmatch
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional

import aiofiles

from shared.common_utils.fingerprint import fingerprint
from shared.common_utils.logger import logger

OnChange = Callable[[List[str]], Awaitable[None]]


class ConfigStore(ABC):
    """
    A versioned collection of configuration files.

    Paths are relative to the store root and always use forward slashes.
    """

    name: str = "Store"

    @abstractmethod
    async def initialize(self) -> None:
        ...

    @abstractmethod
    async def list_paths(self) -> List[str]:
        ...

    @abstractmethod
    async def read(self, path: str) -> Optional[bytes]:
        """Raw content, or None when the path is not in the store."""

    async def hash(self, path: str) -> Optional[str]:
        data = await self.read(path)
        if data is None:
            return None
        return fingerprint(data)

    @abstractmethod
    async def watch(self, on_change: OnChange, stop_event: asyncio.Event) -> None:
        """Run until ``stop_event`` is set, calling ``on_change`` for each non-empty ChangeSet."""


class LocalTreeStore(ConfigStore):
    """Shared file access for stores that keep their files in a local directory."""

    def __init__(self, root: str, search_pattern: Optional[str] = "*", include_subdirectories: bool = True):
        self.root = Path(root)
        self.search_pattern = search_pattern or "*"
        self.include_subdirectories = include_subdirectories

    def _resolve(self, path: str) -> Optional[Path]:
        root = self.root.resolve()
        candidate = (root / path).resolve()
        if not candidate.is_relative_to(root) or candidate == root:
            return None
        return candidate

    def relative_path(self, full_path) -> str:
        return Path(full_path).resolve().relative_to(self.root.resolve()).as_posix()

    def matches(self, relative_path: str) -> bool:
        if not self.include_subdirectories and "/" in relative_path:
            return False
        return fnmatch.fnmatch(relative_path.rsplit("/", 1)[-1], self.search_pattern)

    def _enumerate_files(self) -> List[str]:
        candidates: Iterable[Path] = (
            self.root.rglob(self.search_pattern)
            if self.include_subdirectories
            else self.root.glob(self.search_pattern)
        )
        return sorted(
            self.relative_path(candidate)
            for candidate in candidates
            if candidate.is_file() and ".git" not in candidate.relative_to(self.root).parts
        )

    async def read(self, path: str) -> Optional[bytes]:
        full_path = self._resolve(path)
        if full_path is None or not full_path.is_file():
            logger.info(f"File does not exist at {self.root / path}.")
            return None
        async with aiofiles.open(full_path, "rb") as f:
            return await f.read()
