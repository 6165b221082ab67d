"""Settings and configuration management."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_DEFAULT_SERVER_URL = "https://aiagent-ohdp.onrender.com/"
_LOG_FORMATS = ("text", "json")


class Settings(BaseSettings):
    """Application settings.

    Every field can be set through a ``DOVETAIL_``-prefixed environment
    variable or a ``.env`` file, e.g. ``DOVETAIL_SERVER_URL``.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOVETAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Agent channel
    server_url: str = Field(_DEFAULT_SERVER_URL, description="Socket.IO server URL")
    user_event: str = Field("userMessage", description="Outbound user message event")
    agent_event: str = Field("botMessage", description="Inbound agent message event")
    namespace: str = Field("/", description="Socket.IO namespace")
    connect_timeout: float = Field(
        10.0, gt=0, description="Seconds to wait for the initial connection"
    )
    reconnection: bool = Field(True, description="Let the client reconnect on loss")
    reconnection_attempts: int = Field(
        0, ge=0, description="Reconnection attempts before giving up (0 = unlimited)"
    )
    reconnection_delay: float = Field(
        1.0, gt=0, description="Initial delay between reconnection attempts"
    )

    # Dictation
    dictation_enabled: bool = Field(True, description="Offer voice input")
    dictation_language: str = Field("en-US", description="Recognition language tag")
    dictation_timeout: Optional[float] = Field(
        8.0, description="Seconds to wait for speech to begin"
    )
    dictation_phrase_limit: Optional[float] = Field(
        15.0, description="Maximum seconds of a single utterance"
    )
    ambient_noise_duration: float = Field(
        0.5, ge=0, description="Seconds spent calibrating for ambient noise"
    )

    # Presentation
    assistant_name: str = Field("Dovetail Ai", description="Assistant display name")

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    log_format: str = Field("text", description="Log format: 'text' or 'json'")
    log_file: Optional[Path] = Field(
        None, description="Write logs here instead of stdout"
    )

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in _LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(_LOG_FORMATS)}")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"Unknown log level: {value}")
        return value


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
