"""
Configuration management for cf_metrics.
"""

from .loader import TOKEN_ENV_VAR, ConfigLoader, load_config
from .models import (
    DEFAULT_API_BASE,
    APIConfig,
    ExporterConfig,
    LoggingConfig,
    LogLevel,
    PollerConfig,
    ServerConfig,
)

__all__ = [
    "ConfigLoader",
    "load_config",
    "TOKEN_ENV_VAR",
    "DEFAULT_API_BASE",
    "APIConfig",
    "ExporterConfig",
    "LoggingConfig",
    "LogLevel",
    "PollerConfig",
    "ServerConfig",
]
