from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from shared.common_utils.logger import logger
from shared.common_utils.rabbitmq_client import RabbitMQClient
from shared.common_utils.redis_client import RedisConnection
from ..config.env_settings import ConfigurationServiceSettings
from .configuration_service import ConfigurationService
from .hosted_service import HostedConfigurationService
from .publishers import Publisher, RabbitMqPublisher, RedisPublisher
from .routes import create_router
from .storages import ConfigStore, FileSystemStore, GitStore


def build_store(settings: ConfigurationServiceSettings) -> ConfigStore:
    storage_type = settings.STORAGE_TYPE.lower()
    if storage_type == "git":
        return GitStore(
            repository_url=settings.GIT_REPOSITORY_URL,
            local_path=settings.GIT_LOCAL_PATH,
            branch=settings.GIT_BRANCH,
            username=settings.GIT_USERNAME,
            password=settings.GIT_PASSWORD,
            polling_interval=settings.GIT_POLLING_INTERVAL,
            fetch_timeout=settings.GIT_FETCH_TIMEOUT,
            search_pattern=settings.SEARCH_PATTERN,
            include_subdirectories=settings.INCLUDE_SUBDIRECTORIES,
        )
    if storage_type == "filesystem":
        return FileSystemStore(
            path=settings.FS_PATH,
            search_pattern=settings.SEARCH_PATTERN,
            include_subdirectories=settings.INCLUDE_SUBDIRECTORIES,
        )
    raise ValueError(f"Unknown storage type: {settings.STORAGE_TYPE}")


def build_publisher(settings: ConfigurationServiceSettings) -> Optional[Publisher]:
    publisher_type = settings.PUBLISHER_TYPE.lower()
    if publisher_type == "redis":
        return RedisPublisher(RedisConnection(settings.REDIS_URL))
    if publisher_type == "rabbitmq":
        client = RabbitMQClient(
            service_name=settings.SERVICE_NAME,
            rabbitmq_url=settings.RABBITMQ_URL,
            exchange_name=settings.RABBITMQ_EXCHANGE,
        )
        return RabbitMqPublisher(client)
    if publisher_type == "none":
        return None
    raise ValueError(f"Unknown publisher type: {settings.PUBLISHER_TYPE}")


async def _close_publisher(publisher: Optional[Publisher]) -> None:
    if isinstance(publisher, RedisPublisher):
        await publisher.connection.close()
    elif isinstance(publisher, RabbitMqPublisher):
        await publisher.client.close()


def create_app(settings: Optional[ConfigurationServiceSettings] = None) -> FastAPI:
    settings = settings or ConfigurationServiceSettings()
    logger.set_level_name(settings.LOG_LEVEL)

    store = build_store(settings)
    publisher = build_publisher(settings)
    hosted = HostedConfigurationService(
        ConfigurationService(store, publisher),
        shutdown_timeout=settings.SHUTDOWN_TIMEOUT,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for FastAPI app."""
        # Startup
        await hosted.start()
        yield
        # Shutdown
        await hosted.stop()
        await _close_publisher(publisher)

    app = FastAPI(
        title=settings.SERVICE_DESCRIPTION,
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.hosted_service = hosted

    @app.get("/health")
    async def health():
        return hosted.health()

    app.include_router(create_router(store, settings.ROUTE_PREFIX))

    return app


def main() -> None:
    import uvicorn

    from ..config.env_settings import settings

    uvicorn.run(create_app(settings), host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    main()
