from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service settings
    SERVICE_NAME: str = "configuration_service"
    SERVICE_VERSION: str = "0.1.0"
    SERVICE_DESCRIPTION: str = "Remote Configuration Service"

    # API settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    ROUTE_PREFIX: str = "/remote-configuration"

    # Logging settings
    LOG_LEVEL: str = "INFO"

    # Storage settings
    STORAGE_TYPE: str = "filesystem"  # "filesystem" or "git"
    SEARCH_PATTERN: str = "*"
    INCLUDE_SUBDIRECTORIES: bool = True

    FS_PATH: str = "config"

    GIT_REPOSITORY_URL: Optional[str] = None
    GIT_LOCAL_PATH: str = "/tmp/remote-configuration"
    GIT_BRANCH: str = "main"
    GIT_USERNAME: Optional[str] = None
    GIT_PASSWORD: Optional[str] = None
    GIT_POLLING_INTERVAL: float = 60.0  # seconds
    GIT_FETCH_TIMEOUT: float = 60.0  # seconds

    # Publisher settings
    PUBLISHER_TYPE: str = "redis"  # "redis", "rabbitmq" or "none"

    REDIS_URL: str = "redis://localhost:6379/0"

    RABBITMQ_HOST: str = "localhost"
    RABBITMQ_PORT: int = 5672
    RABBITMQ_USER: str = "guest"
    RABBITMQ_PASSWORD: str = "guest"
    RABBITMQ_VHOST: str = "/"
    RABBITMQ_EXCHANGE: str = "remote-configuration"

    # Lifecycle
    SHUTDOWN_TIMEOUT: float = 10.0  # seconds

    @property
    def RABBITMQ_URL(self) -> str:
        return f"amqp://{self.RABBITMQ_USER}:{self.RABBITMQ_PASSWORD}@{self.RABBITMQ_HOST}:{self.RABBITMQ_PORT}/{self.RABBITMQ_VHOST}"

# Global settings instance
settings = ConfigurationServiceSettings()
