"""
Configuration settings for the wager analytics service.

Uses Pydantic Settings to load environment variables for database connections,
the shared API secret, pagination limits, and logging.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    database_url: Optional[str] = Field(None, alias="DATABASE_URL")
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("wager_analytics", alias="DB_NAME")
    db_sslmode: str = Field("prefer", alias="DB_SSLMODE")
    db_statement_timeout_ms: int = Field(30_000, alias="DB_STATEMENT_TIMEOUT_MS")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE")
    db_retry_attempts: int = Field(3, alias="DB_RETRY_ATTEMPTS")

    # Query engine
    fact_table: str = Field("bet_transactions", alias="FACT_TABLE")
    default_page_size: int = Field(250, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(1000, alias="MAX_PAGE_SIZE")

    # Auth
    api_secret: Optional[SecretStr] = Field(None, alias="API_SECRET")
    auth_header: str = Field("X-API-Secret", alias="AUTH_HEADER")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
