import asyncio

import httpx
import pytest

from services.configuration_client.src.options import RemoteConfigurationSource
from services.configuration_client.src.parsers import YamlConfigurationFileParser
from services.configuration_client.src.provider import ProviderState, RemoteConfigurationProvider
from shared.common_utils.exceptions import ConfigurationWarning, TransportError
from shared.common_utils.fingerprint import fingerprint

SERVICE_URI = "http://configuration-service/remote-configuration"


def make_provider(transport, name="app.json", subscriber=None, **kwargs) -> RemoteConfigurationProvider:
    source = RemoteConfigurationSource(
        configuration_name=name,
        service_uri=SERVICE_URI,
        transport=transport,
        create_subscriber=(lambda: subscriber) if subscriber is not None else None,
        **kwargs,
    )
    return RemoteConfigurationProvider(source)


def test_provider_requires_name_and_uri():
    with pytest.raises(ValueError):
        RemoteConfigurationProvider(RemoteConfigurationSource(configuration_name="", service_uri=SERVICE_URI))
    with pytest.raises(ValueError):
        RemoteConfigurationProvider(RemoteConfigurationSource(configuration_name="app.json", service_uri=""))


@pytest.mark.asyncio
async def test_load_flattens_remote_document(config_service):
    body = b'{"Config":{"Text":"hello"}}'
    config_service.documents["app.json"] = body
    provider = make_provider(config_service.transport)

    await provider.initialize()

    assert provider.state == ProviderState.LOADED
    assert provider.data == {"Config:Text": "hello"}
    assert provider.get("config:text") == "hello"
    assert provider.fingerprint == fingerprint(body)
    assert config_service.requests == ["app.json"]
    await provider.dispose()


@pytest.mark.asyncio
async def test_parser_resolved_from_name(config_service):
    config_service.documents["app.yaml"] = b"a:\n  b: ~\n"
    provider = make_provider(config_service.transport, name="app.yaml")

    await provider.load()

    assert provider.data == {"a:b": None}
    await provider.dispose()


@pytest.mark.asyncio
async def test_explicit_parser_overrides_extension(config_service):
    config_service.documents["settings"] = b"Name: yaml\n"
    provider = make_provider(config_service.transport, name="settings", parser=YamlConfigurationFileParser())

    await provider.load()

    assert provider.data == {"Name": "yaml"}
    await provider.dispose()


@pytest.mark.asyncio
async def test_configuration_name_is_url_encoded():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.raw_path)
        return httpx.Response(200, content=b'{"A": "1"}')

    provider = make_provider(httpx.MockTransport(handler), name="team a/app.json")
    await provider.load()

    assert seen == [b"/remote-configuration/team%20a%2Fapp.json"]
    await provider.dispose()


@pytest.mark.asyncio
async def test_required_source_server_error_is_fatal(config_service):
    config_service.status_override["app.json"] = 500
    provider = make_provider(config_service.transport)

    with pytest.raises(TransportError) as exc_info:
        await provider.initialize()

    assert exc_info.value.status_code == 500
    assert provider.state == ProviderState.UNLOADED
    await provider.dispose()


@pytest.mark.asyncio
async def test_optional_source_server_error_yields_empty_map(config_service):
    config_service.status_override["app.json"] = 500
    provider = make_provider(config_service.transport, optional=True)

    await provider.initialize()

    assert provider.data == {}
    assert provider.fingerprint is None
    assert provider.state == ProviderState.LOADED
    await provider.dispose()


@pytest.mark.asyncio
async def test_transport_failure_on_required_source():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    provider = make_provider(httpx.MockTransport(handler))
    with pytest.raises(TransportError):
        await provider.load()
    await provider.dispose()


@pytest.mark.asyncio
async def test_optional_malformed_document_is_ignored(config_service):
    config_service.documents["app.json"] = b'{"A": '
    provider = make_provider(config_service.transport, optional=True)

    await provider.load()

    assert provider.data == {}
    await provider.dispose()


@pytest.mark.asyncio
async def test_reload_on_change_subscribes_to_configuration_name(config_service, fake_subscriber):
    config_service.documents["app.json"] = b'{"A": "1"}'
    provider = make_provider(config_service.transport, subscriber=fake_subscriber, reload_on_change=True)

    await provider.initialize()

    assert fake_subscriber.initialized == 1
    assert [topic for topic, _ in fake_subscriber.subscriptions] == ["app.json"]
    assert provider.subscriber is fake_subscriber
    await provider.dispose()


@pytest.mark.asyncio
async def test_reload_on_change_without_subscriber_warns(config_service):
    config_service.documents["app.json"] = b'{"A": "1"}'
    provider = make_provider(config_service.transport, reload_on_change=True)

    with pytest.warns(ConfigurationWarning):
        await provider.initialize()

    assert provider.data == {"A": "1"}
    assert provider.subscriber is None
    await provider.dispose()


@pytest.mark.asyncio
async def test_notification_with_current_fingerprint_skips_fetch(config_service, fake_subscriber):
    config_service.documents["app.json"] = b'{"A": "1"}'
    provider = make_provider(config_service.transport, subscriber=fake_subscriber, reload_on_change=True)
    await provider.initialize()

    await fake_subscriber.publish("app.json", provider.fingerprint.lower())

    assert config_service.requests == ["app.json"]
    await provider.dispose()


@pytest.mark.asyncio
async def test_notification_with_new_fingerprint_reloads(config_service, fake_subscriber):
    config_service.documents["app.json"] = b'{"A": "1"}'
    provider = make_provider(config_service.transport, subscriber=fake_subscriber, reload_on_change=True)
    await provider.initialize()
    updates = await provider.subscribe_to_updates()

    new_body = b'{"A": "2"}'
    config_service.documents["app.json"] = new_body
    await fake_subscriber.publish("app.json", fingerprint(new_body))

    assert provider.data == {"A": "2"}
    assert provider.fingerprint == fingerprint(new_body)
    update = updates.get_nowait()
    assert update["configuration_name"] == "app.json"
    assert update["checksum"] == fingerprint(new_body)
    await provider.dispose()


@pytest.mark.asyncio
async def test_failed_reload_keeps_previous_data(config_service, fake_subscriber):
    config_service.documents["app.json"] = b'{"A": "1"}'
    provider = make_provider(config_service.transport, subscriber=fake_subscriber, reload_on_change=True)
    await provider.initialize()

    config_service.status_override["app.json"] = 503
    await fake_subscriber.publish("app.json", fingerprint(b"something else"))

    assert provider.data == {"A": "1"}
    assert provider.state == ProviderState.LOADED
    assert config_service.requests == ["app.json", "app.json"]
    await provider.dispose()


@pytest.mark.asyncio
async def test_notifications_during_reload_are_coalesced():
    documents = {"body": b'{"A": "1"}'}
    requests = []
    gate = asyncio.Event()
    entered = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request.url.path)
        if len(requests) == 2:
            entered.set()
            await gate.wait()
        return httpx.Response(200, content=documents["body"])

    provider = make_provider(httpx.MockTransport(handler))
    await provider.load()

    documents["body"] = b'{"A": "2"}'
    first = asyncio.create_task(provider.reload("FIRST"))
    await entered.wait()

    await provider.reload("SECOND")
    await provider.reload("THIRD")
    assert len(requests) == 2

    gate.set()
    await first

    assert len(requests) == 3
    assert provider.data == {"A": "2"}
    await provider.dispose()


class HeldConfigurationService:
    """Serves the current body, holding the first request until released."""

    def __init__(self, body: bytes):
        self.body = body
        self.requests = 0
        self.active = 0
        self.max_active = 0
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        body = self.body
        try:
            if self.requests == 1:
                self.entered.set()
                await self.release.wait()
            return httpx.Response(200, content=body)
        finally:
            self.active -= 1


@pytest.mark.asyncio
async def test_notification_during_first_load_is_applied_after_it():
    old, new = b'{"A": "old"}', b'{"A": "new"}'
    service = HeldConfigurationService(old)
    provider = make_provider(httpx.MockTransport(service.handler))

    loading = asyncio.create_task(provider.load())
    await service.entered.wait()

    service.body = new
    await provider._on_change_notification(fingerprint(new))
    assert service.requests == 1

    service.release.set()
    await loading

    assert service.max_active == 1
    assert service.requests == 2
    assert provider.data == {"A": "new"}
    assert provider.fingerprint == fingerprint(new)
    await provider.dispose()


@pytest.mark.asyncio
async def test_pending_notification_already_satisfied_is_not_fetched():
    new = b'{"A": "new"}'
    service = HeldConfigurationService(new)
    provider = make_provider(httpx.MockTransport(service.handler))

    loading = asyncio.create_task(provider.load())
    await service.entered.wait()

    await provider.reload(fingerprint(new).lower())
    service.release.set()
    await loading

    assert service.requests == 1
    assert provider.fingerprint == fingerprint(new)
    await provider.dispose()


@pytest.mark.asyncio
async def test_notification_during_reload_for_fetched_version_is_skipped():
    old, new = b'{"A": "old"}', b'{"A": "new"}'
    documents = {"body": old}
    requests = []
    gate = asyncio.Event()
    entered = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request.url.path)
        body = documents["body"]
        if len(requests) == 2:
            entered.set()
            await gate.wait()
        return httpx.Response(200, content=body)

    provider = make_provider(httpx.MockTransport(handler))
    await provider.load()

    documents["body"] = new
    reloading = asyncio.create_task(provider.reload(fingerprint(new)))
    await entered.wait()

    await provider._on_change_notification(fingerprint(new))
    gate.set()
    await reloading

    assert len(requests) == 2
    assert provider.data == {"A": "new"}
    await provider.dispose()


@pytest.mark.asyncio
async def test_disposed_provider_cannot_load(config_service):
    config_service.documents["app.json"] = b'{"A": "1"}'
    provider = make_provider(config_service.transport)
    await provider.load()
    await provider.dispose()

    assert provider.state == ProviderState.DISPOSED
    with pytest.raises(RuntimeError):
        await provider.load()
