"""
Configuration Management

Centralized configuration using Pydantic Settings with environment variables.
The settings object is frozen: it is built once at startup and handed to the
server, sessions and workers explicitly.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Mail sink settings loaded from environment variables.

    All settings can be overridden via environment variables or, for the
    listener options, via command line flags.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    # ===================================
    # Listener Settings
    # ===================================
    SINK_HOST: str = Field(default="localhost", description="Interface to listen on")
    SINK_PORT: int = Field(default=25, ge=0, le=65535, description="Port to listen on (0 picks a free port)")
    SINK_HOSTNAME: str = Field(default="localhost", description="Hostname to greet clients with")
    LINE_LIMIT: int = Field(default=1024 * 1024, ge=1024, description="Maximum length of a single line in bytes")
    QUEUE_ID: str = Field(default="31337", description="Id reported in the queued reply")

    # ===================================
    # Body / Attachment Settings
    # ===================================
    LOG_BODY: bool = Field(default=False, description="Log the mail body")
    SAVE_ATTACHMENTS: bool = Field(default=False, description="Save attached files to ATTACHMENT_DIR")
    ATTACHMENT_DIR: Path = Field(default=Path("."), description="Directory attachments are written to")
    ATTACHMENT_WORKERS: int = Field(default=2, ge=1, le=32, description="Attachment worker tasks")
    ATTACHMENT_QUEUE_SIZE: int = Field(default=100, ge=1, description="Pending bodies waiting for a worker")

    # ===================================
    # Stats Reporter
    # ===================================
    STATS_INTERVAL_SECONDS: float = Field(default=5.0, gt=0, description="Stats log interval in seconds")

    # ===================================
    # Logging Configuration
    # ===================================
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="text", description="Log format: json or text")
    LOG_FILE: Optional[str] = Field(default=None, description="Log file path")

    # ===================================
    # Monitoring
    # ===================================
    ENABLE_METRICS: bool = Field(default=False, description="Expose Prometheus metrics over HTTP")
    METRICS_PORT: int = Field(default=9090, description="Metrics port")

    # ===================================
    # Validators
    # ===================================

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format."""
        valid_formats = ["json", "text"]
        v = v.lower()
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of: {valid_formats}")
        return v

    # ===================================
    # Computed Properties
    # ===================================

    @property
    def greeting(self) -> str:
        """Text sent with the 220 greeting."""
        return f"{self.SINK_HOSTNAME} SMTP mail-sink"

    @property
    def listen_address(self) -> str:
        """Listener address as host:port."""
        return f"{self.SINK_HOST}:{self.SINK_PORT}"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.

    Returns:
        Settings: Application settings
    """
    return Settings()
