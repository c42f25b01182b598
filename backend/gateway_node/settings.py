"""
运行时配置。

取值来自以 GATEWAY_NODE_ 为前缀的环境变量（或本地 .env 文件）。
宿主提供的凭据始终优先于 api_key / default_base_url，这两项只供本地 CLI 使用。
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_NODE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_base_url: str = Field(default="https://api.deerapi.com")
    api_key: str = Field(default="", repr=False)

    request_timeout_ms: int = Field(default=60_000, ge=1)
    thinking_timeout_ms: int = Field(default=120_000, ge=1)
    models_timeout_ms: int = Field(default=10_000, ge=1)

    max_retries: int = Field(default=3, ge=0)
    retry_delay_base_ms: int = Field(default=1_000, ge=0)
    circuit_breaker_threshold: int = Field(default=5, ge=1)
    circuit_breaker_reset_ms: int = Field(default=30_000, ge=0)

    video_submit_timeout_ms: int = Field(default=30_000, ge=1)
    video_poll_timeout_ms: int = Field(default=15_000, ge=1)
    video_poll_interval_ms: int = Field(default=15_000, ge=0)
    video_max_poll_attempts: int = Field(default=40, ge=1)

    log_level: str = Field(default="INFO")


settings = Settings()


__all__ = ["Settings", "settings"]
