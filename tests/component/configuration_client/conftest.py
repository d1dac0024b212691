from typing import Dict, List, Tuple

import httpx
import pytest

from services.configuration_client.src.subscribers.base import MessageHandler, Subscriber

SERVICE_URI = "http://configuration-service/remote-configuration"


class FakeConfigurationService:
    """In-memory stand-in for the configuration service HTTP endpoint."""

    def __init__(self):
        self.documents: Dict[str, bytes] = {}
        self.status_override: Dict[str, int] = {}
        self.requests: List[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        name = request.url.path.split("/remote-configuration/", 1)[-1]
        self.requests.append(name)
        if name in self.status_override:
            return httpx.Response(self.status_override[name])
        if name not in self.documents:
            return httpx.Response(404)
        return httpx.Response(200, content=self.documents[name])

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakeSubscriber(Subscriber):
    name = "Fake"

    def __init__(self):
        super().__init__()
        self.initialized = 0
        self.closed = False
        self.subscriptions: List[Tuple[str, MessageHandler]] = []

    async def initialize(self) -> None:
        self.initialized += 1

    async def subscribe(self, topic: str, handler: MessageHandler) -> None:
        self._register(topic, handler)
        self.subscriptions.append((topic, handler))

    async def publish(self, topic: str, message: str) -> None:
        await self._dispatch(topic, message)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def config_service():
    return FakeConfigurationService()


@pytest.fixture
def fake_subscriber():
    return FakeSubscriber()
