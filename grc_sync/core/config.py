from typing import Dict, List, Optional
from pydantic import Field
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration settings."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_", extra="ignore")

    url: str = Field(default="sqlite+aiosqlite:///./grc_sync.db")
    echo: bool = Field(default=False)
    pool_pre_ping: bool = Field(default=True)
    create_tables_on_connect: bool = Field(default=True)


class RedisSettings(BaseSettings):
    """Redis configuration settings."""

    model_config = SettingsConfigDict(env_prefix="REDIS_", extra="ignore")

    host: str = Field(default="localhost")
    port: int = Field(default=6379)
    password: Optional[str] = Field(default=None)
    db: int = Field(default=0)
    url: Optional[str] = Field(default=None)
    max_connections: int = Field(default=10)

    def build_url(self) -> str:
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class ChangeFeedSettings(BaseSettings):
    """Change feed configuration settings."""

    model_config = SettingsConfigDict(env_prefix="CHANGE_FEED_", extra="ignore")

    backend: str = Field(default="memory")  # memory, redis
    channel_prefix: str = Field(default="grc_changes")
    poll_timeout: float = Field(default=1.0)


class SyncSettings(BaseSettings):
    """Cross-module sync configuration settings."""

    model_config = SettingsConfigDict(env_prefix="SYNC_", extra="ignore")

    default_max_retries: int = Field(default=3)
    consumer_batch_size: int = Field(default=50)
    auto_initialize_orgs: List[str] = Field(default_factory=list)
    beat_interval_seconds: int = Field(default=60)
    # Target module -> "package.module:handler" of its sync handler
    module_handlers: Dict[str, str] = Field(default_factory=dict)


class CelerySettings(BaseSettings):
    """Celery configuration settings."""

    model_config = SettingsConfigDict(env_prefix="CELERY_", extra="ignore")

    broker_url: Optional[str] = Field(default=None)
    result_backend: Optional[str] = Field(default=None)
    task_serializer: str = Field(default="json")
    accept_content: List[str] = Field(default=["json"])
    result_serializer: str = Field(default="json")
    timezone: str = Field(default="UTC")
    enable_utc: bool = Field(default=True)


class CORSSettings(BaseSettings):
    """CORS configuration settings."""

    model_config = SettingsConfigDict(env_prefix="CORS_", extra="ignore")

    allowed_origins: List[str] = Field(default=["*"])
    allowed_methods: List[str] = Field(default=["*"])
    allowed_headers: List[str] = Field(default=["*"])
    allow_credentials: bool = Field(default=True)


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")

    level: str = Field(default="INFO")
    json_format: bool = Field(default=False)
    format: str = Field(default="%(asctime)s - %(levelname)s - %(name)s - [%(org_id)s] %(message)s")
    file_path: Optional[str] = Field(default=None)
    max_bytes: int = Field(default=10 * 1024 * 1024)
    backup_count: int = Field(default=5)


class Settings(BaseSettings):
    project_name: str = Field(default="GRC Sync")
    version: str = Field(default="0.1.0")
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis_settings: RedisSettings = Field(default_factory=RedisSettings)
    change_feed: ChangeFeedSettings = Field(default_factory=ChangeFeedSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    celery_settings: CelerySettings = Field(default_factory=CelerySettings)
    cors_settings: CORSSettings = Field(default_factory=CORSSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(env_file=".env", extra="allow", env_file_encoding="utf-8")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
