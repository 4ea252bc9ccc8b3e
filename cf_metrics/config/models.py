"""
Configuration models for cf_metrics.

This module defines all configuration data models with validation and defaults.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_API_BASE = "https://api.cloudflare.com/client/v4"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default=LogLevel.INFO, description="Default logging level")
    format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s",
        description="Log message format",
    )
    file_path: Optional[Path] = Field(default=None, description="Log file path")
    max_file_size: int = Field(
        default=10 * 1024 * 1024, description="Max log file size in bytes"
    )
    backup_count: int = Field(default=5, description="Number of backup log files")
    enable_console: bool = Field(default=True, description="Enable console logging")
    enable_file: bool = Field(default=False, description="Enable file logging")
    enable_structured: bool = Field(
        default=False, description="Enable structured JSON logging"
    )

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: object) -> object:
        """Accept lower-case level names from the environment."""
        return v.upper() if isinstance(v, str) else v


class APIConfig(BaseModel):
    """Remote analytics API settings."""

    # Not validated upfront: an empty token surfaces as a 401/403 on first use
    token: str = Field(default="", repr=False, description="API bearer token")
    base_url: str = Field(default=DEFAULT_API_BASE, description="REST API base URL")
    graphql_endpoint: Optional[str] = Field(
        default=None, description="GraphQL endpoint (defaults to {base_url}/graphql)"
    )
    timeout: float = Field(
        default=30.0, gt=0, description="Total timeout per outbound call in seconds"
    )
    zones_per_page: int = Field(
        default=500, ge=1, le=1000, description="Zones requested in the single listing page"
    )
    user_agent: str = Field(
        default="cf-metrics-collector/0.1.0", description="User-Agent header"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalise base URL so paths can be appended."""
        return v.rstrip("/")

    @model_validator(mode="after")
    def default_graphql_endpoint(self) -> "APIConfig":
        """Derive the GraphQL endpoint from the base URL when unset."""
        if not self.graphql_endpoint:
            self.graphql_endpoint = f"{self.base_url}/graphql"
        return self


class PollerConfig(BaseModel):
    """Poll loop settings."""

    interval: float = Field(
        default=300.0, ge=0, description="Sleep between passes in seconds"
    )
    lookback_days: int = Field(
        default=7, ge=0, description="Days subtracted from today for the window start"
    )
    days_limit: int = Field(
        default=10, ge=1, description="Maximum daily groups requested per zone"
    )
    max_concurrency: int = Field(
        default=1, ge=1, description="Zones fetched in parallel (1 = sequential)"
    )


class ServerConfig(BaseModel):
    """Scrape endpoint settings."""

    host: str = Field(default="0.0.0.0", description="Listen address")
    port: int = Field(default=28191, ge=0, le=65535, description="Listen port")
    path: str = Field(default="/metrics", description="Scrape path")

    @field_validator("path")
    @classmethod
    def ensure_leading_slash(cls, v: str) -> str:
        """Ensure the scrape path is absolute."""
        if not v.startswith("/"):
            raise ValueError("metrics path must start with '/'")
        return v


class ExporterConfig(BaseModel):
    """Global configuration container."""

    api: APIConfig = Field(default_factory=APIConfig)
    poller: PollerConfig = Field(default_factory=PollerConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(validate_assignment=True, extra="forbid")
