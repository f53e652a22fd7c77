"""Application settings (env/.env)."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the MCP process; tool definitions live in the config file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    config_path: str = Field(default="config.json", alias="ANKI_MCP_CONFIG", min_length=1)
    # Overrides the transport declared in the config file when set.
    transport: Literal["stdio", "http"] | None = Field(default=None, alias="MCP_TRANSPORT")

    mcp_api_key: str | None = Field(default=None, alias="MCP_API_KEY", min_length=1)
    mcp_host: str = Field(default="127.0.0.1", alias="MCP_HOST")
    mcp_port: int = Field(default=5005, alias="MCP_PORT", ge=1, le=65535)

    http_timeout_seconds: float = Field(
        default=15.0,
        alias="HTTP_TIMEOUT_SECONDS",
        gt=0,
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
