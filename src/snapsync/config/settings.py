"""Application configuration settings."""

from typing import Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings


CONCURRENCY_POLICIES = ("serialize", "reject")


class StoreSettings(BaseSettings):
    """Local entry store configuration."""

    database_url: str = Field(default="sqlite:///./data/snapsync.db")
    echo_sql: bool = Field(default=False)

    class Config:
        env_prefix = "SNAPSYNC_STORE_"


class SyncSettings(BaseSettings):
    """Sync engine behaviour."""

    concurrency_policy: str = Field(default="serialize")
    config_path: str = Field(default="./config/listeners.yaml")

    @validator('concurrency_policy')
    def validate_concurrency_policy(cls, v):
        v = v.lower()
        if v not in CONCURRENCY_POLICIES:
            raise ValueError(f"concurrency_policy must be one of {CONCURRENCY_POLICIES}")
        return v

    class Config:
        env_prefix = "SNAPSYNC_SYNC_"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    format: str = Field(default="console")
    file_path: Optional[str] = Field(default=None)

    class Config:
        env_prefix = "SNAPSYNC_LOG_"


class AppSettings(BaseSettings):
    """Main application settings."""

    name: str = Field(default="snapsync")
    version: str = Field(default="0.3.0")
    environment: str = Field(default="development")

    store: StoreSettings = StoreSettings()
    sync: SyncSettings = SyncSettings()
    logging: LoggingSettings = LoggingSettings()

    class Config:
        env_prefix = "SNAPSYNC_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = AppSettings()


def get_settings() -> AppSettings:
    """Get application settings."""
    return settings
