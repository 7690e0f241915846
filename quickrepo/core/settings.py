from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library level configuration sourced from env or .env file."""

    database_url: str = "sqlite:///quickrepo.db"
    database_echo: bool = Field(
        default=False,
        description="Log emitted SQL through the sqlalchemy.engine logger.",
    )

    auto_detect_changes: bool = Field(
        default=False,
        description="Default autoflush behaviour for repository sessions.",
    )
    lazy_loading: bool = Field(
        default=False,
        description="Default lazy relationship loading for repository sessions.",
    )

    log_level: str = "INFO"
    log_directory: str = "logs"
    log_max_bytes: int = 2 * 1024 * 1024
    log_backup_count: int = 5

    model_config = SettingsConfigDict(
        env_prefix="QUICKREPO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return str(value).strip().upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
