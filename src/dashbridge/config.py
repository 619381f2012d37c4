"""
Dashbridge Configuration Management

Centralized configuration using pydantic-settings with environment variable support.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ══════════════════════════════════════════════════════════════
    # Application
    # ══════════════════════════════════════════════════════════════
    app_name: str = "Dashbridge"
    app_env: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    cors_origins: Annotated[list[str], NoDecode] = ["*"]
    host: str = "0.0.0.0"
    port: int = 3000

    # ══════════════════════════════════════════════════════════════
    # DashScope Credential
    # ══════════════════════════════════════════════════════════════
    dashscope_api_key: str | None = None

    # ══════════════════════════════════════════════════════════════
    # Upstream Endpoints
    # ══════════════════════════════════════════════════════════════
    upstream_realtime_url: str = "wss://dashscope.aliyuncs.com/api-ws/v1/realtime"
    upstream_ws_base_url: str = "wss://dashscope.aliyuncs.com/api-ws/v1"
    upstream_http_base_url: str = "https://dashscope.aliyuncs.com/compatible-mode/v1"

    # ══════════════════════════════════════════════════════════════
    # Realtime Models
    # ══════════════════════════════════════════════════════════════
    asr_model: str = "qwen3-asr-flash-realtime"
    tts_model: str = "qwen3-tts-flash-realtime"
    asr_sample_rate: int = 16000
    tts_sample_rate: int = 24000

    # ══════════════════════════════════════════════════════════════
    # Session Bootstrap & Pacing
    # ══════════════════════════════════════════════════════════════
    session_settle_mode: Literal["ack", "delay"] = "ack"
    session_settle_delay_ms: int = Field(default=100, ge=0)
    session_ack_timeout_ms: int = Field(default=2000, ge=0)
    tts_chunk_delay_ms: int = Field(default=200, ge=0)
    tts_chunk_threshold: int = Field(default=100, ge=1)
    tts_text_policy: Literal["whitelist", "markdown"] = "whitelist"

    # ══════════════════════════════════════════════════════════════
    # Transport
    # ══════════════════════════════════════════════════════════════
    upstream_open_timeout_s: float = 10.0
    upstream_max_message_bytes: int = 16 * 1024 * 1024
    proxy_timeout_s: float = 300.0
    proxy_connect_timeout_s: float = 10.0

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def session_settle_delay(self) -> float:
        """Settle delay in seconds."""
        return self.session_settle_delay_ms / 1000

    @property
    def session_ack_timeout(self) -> float:
        return self.session_ack_timeout_ms / 1000

    @property
    def tts_chunk_delay(self) -> float:
        return self.tts_chunk_delay_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export
settings = get_settings()
