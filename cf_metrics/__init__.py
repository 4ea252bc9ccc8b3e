"""
Cloudflare zone analytics exporter.

Discovers the active zones of a Cloudflare account, polls each zone's daily
HTTP request statistics from the GraphQL analytics API on a fixed interval,
and serves the latest values as Prometheus gauges.

Features:
- Async aiohttp client for the REST zone listing and the GraphQL stats query
- Reader/writer guarded zone registry shared by discovery and the poll loop
- prometheus_client gauge families overwritten in place on every pass
- aiohttp.web scrape endpoint
- Configuration from YAML/JSON files, .env files, environment and CLI flags
"""

from .app import AppContext, run_exporter
from .client import CloudflareClient
from .config import ExporterConfig, load_config
from .discovery import discover_zones
from .exceptions import (
    APIError,
    AuthenticationError,
    CFMetricsError,
    ConfigurationError,
    DiscoveryError,
    FetchError,
    RateLimitError,
    ResponseParseError,
    ServeError,
    ServerError,
    TimeoutError,
    TransportError,
)
from .models import DailyStatGroup, Zone
from .monitoring import MetricFamily, MetricsServer, MetricsSink
from .poller import PassResult, Poller
from .registry import ReadWriteLock, ZoneRegistry

__version__ = "0.1.0"

__all__ = [
    # Lifecycle
    "AppContext",
    "run_exporter",
    "Poller",
    "PassResult",
    "discover_zones",
    # Components
    "CloudflareClient",
    "ZoneRegistry",
    "ReadWriteLock",
    "MetricsSink",
    "MetricsServer",
    "MetricFamily",
    # Models and config
    "Zone",
    "DailyStatGroup",
    "ExporterConfig",
    "load_config",
    # Exceptions
    "CFMetricsError",
    "ConfigurationError",
    "APIError",
    "AuthenticationError",
    "RateLimitError",
    "ServerError",
    "TransportError",
    "TimeoutError",
    "ResponseParseError",
    "DiscoveryError",
    "FetchError",
    "ServeError",
]
