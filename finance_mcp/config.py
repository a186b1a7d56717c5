"""Application configuration loaded from .env via Pydantic settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the MCP server, upstream transport and decoder."""

    app_name: str = Field(default="finance-mcp", alias="APP_NAME")
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    api_url: str = Field(default="https://www.alphavantage.co", alias="API_URL")
    api_query_path: str = Field(default="/query", alias="API_QUERY_PATH")
    api_key: str = Field(default="demo", alias="API_KEY")

    mcp_server_title: str = Field(default="finance-mcp", alias="MCP_SERVER_TITLE")
    mcp_server_name: str = Field(default="Market-mcp", alias="MCP_SERVER_NAME")
    mcp_server_version: str = Field(default="v1.0.0", alias="MCP_SERVER_VERSION")
    mcp_host: str = Field(default="127.0.0.1", alias="MCP_HOST")
    mcp_port: int = Field(default=8080, ge=1, le=65535, alias="MCP_PORT")

    upstream_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        alias="UPSTREAM_TIMEOUT_SECONDS",
    )
    upstream_max_retries: int = Field(default=2, ge=0, alias="UPSTREAM_MAX_RETRIES")
    upstream_retry_backoff_seconds: float = Field(
        default=0.5,
        ge=0,
        alias="UPSTREAM_RETRY_BACKOFF_SECONDS",
    )
    upstream_max_response_bytes: int = Field(
        default=20 * 1024 * 1024,
        gt=0,
        alias="UPSTREAM_MAX_RESPONSE_BYTES",
    )
    upstream_user_agent: str = Field(
        default="Finance-MCP-Server/1.0",
        alias="UPSTREAM_USER_AGENT",
    )

    decode_parallel_threshold: int = Field(
        default=2000,
        ge=1,
        alias="DECODE_PARALLEL_THRESHOLD",
    )
    decode_max_workers: int = Field(default=4, ge=1, alias="DECODE_MAX_WORKERS")

    sentry_dsn: str = Field(default="", alias="SENTRY_DSN")
    sentry_traces_sample_rate: float = Field(
        default=0.0,
        ge=0,
        le=1,
        alias="SENTRY_TRACES_SAMPLE_RATE",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("api_url", "api_key", "api_query_path", mode="before")
    @classmethod
    def _strip_text(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def upstream_query_url(self) -> str:
        base = self.api_url.rstrip("/")
        path = self.api_query_path
        if not path:
            return base
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{base}{path}"

    @property
    def has_upstream_credentials(self) -> bool:
        return bool(self.api_url) and bool(self.api_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
