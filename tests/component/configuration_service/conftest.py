import asyncio
from typing import Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from services.configuration_service.src.publishers import Publisher
from services.configuration_service.src.storages import ConfigStore, OnChange


class InMemoryStore(ConfigStore):
    """Store double: fixed documents plus a scripted list of ChangeSets for watch()."""

    name = "Memory"

    def __init__(self, documents: Optional[Dict[str, bytes]] = None, change_sets: Optional[List[List[str]]] = None):
        self.documents = documents or {}
        self.change_sets = change_sets or []
        self.initialized = False
        self.watching = asyncio.Event()

    async def initialize(self) -> None:
        self.initialized = True

    async def list_paths(self) -> List[str]:
        return sorted(self.documents)

    async def read(self, path: str) -> Optional[bytes]:
        return self.documents.get(path)

    async def watch(self, on_change: OnChange, stop_event: asyncio.Event) -> None:
        self.watching.set()
        for change_set in self.change_sets:
            if change_set:
                await on_change(change_set)
        await stop_event.wait()


@pytest.fixture
def store():
    return InMemoryStore({
        "app.json": b'{"Config":{"Text":"hello"}}',
        "db.ini": b"[Db]\nHost=localhost\n",
    })


@pytest.fixture
def mock_publisher():
    publisher = AsyncMock(spec=Publisher)
    publisher.name = "Mock"
    return publisher


@pytest.fixture
def config_dir(tmp_path):
    """A filesystem store root with a couple of documents."""
    (tmp_path / "test.json").write_bytes(b'{"Config":{"Text":"hello"}}')
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "db.ini").write_bytes(b"[Db]\nHost=localhost\n")
    (tmp_path / "notes.txt").write_text("not configuration")
    return tmp_path
