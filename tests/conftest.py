"""
Shared test fixtures and configuration for the cf_metrics test suite.
"""

import tempfile
from datetime import date
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Generator, List, Optional
from unittest.mock import AsyncMock, MagicMock

import aioresponses
import pytest
import pytest_asyncio

from cf_metrics.app import AppContext
from cf_metrics.client import CloudflareClient
from cf_metrics.config import APIConfig, ExporterConfig
from cf_metrics.models import DailyStatGroup, Zone
from cf_metrics.monitoring import MetricsSink
from cf_metrics.registry import ZoneRegistry

API_BASE = "https://api.test/client/v4"
ZONES_URL = f"{API_BASE}/zones?per_page=500"
GRAPHQL_URL = f"{API_BASE}/graphql"
TEST_TOKEN = "cf-test-token-0123456789"
FIXED_TODAY = date(2024, 1, 10)


def zone_record(zone_id: str, name: str, status: str = "active") -> Dict[str, Any]:
    """One entry of a zone listing ``result`` array."""
    return {"id": zone_id, "name": name, "status": status, "paused": False}


def zone_listing(records: Optional[List[Dict[str, Any]]], success: bool = True) -> Dict[str, Any]:
    """Zone listing envelope as returned by ``GET /zones``."""
    count = len(records or [])
    return {
        "success": success,
        "errors": [],
        "messages": [],
        "result": records,
        "result_info": {
            "page": 1,
            "per_page": 500,
            "count": count,
            "total_count": count,
            "total_pages": 1 if count else 0,
        },
    }


def daily_group(
    day: str,
    requests: float,
    cached: float,
    statuses: Optional[Dict[Any, float]] = None,
) -> Dict[str, Any]:
    """One ``httpRequests1dGroups`` entry."""
    return {
        "sum": {
            "requests": requests,
            "cachedRequests": cached,
            "responseStatusMap": [
                {"edgeResponseStatus": code, "requests": count}
                for code, count in (statuses or {}).items()
            ],
        },
        "dimensions": {"date": day},
    }


def stats_payload(groups: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Full GraphQL response body for the zone stats query."""
    return {
        "data": {"viewer": {"zones": [{"httpRequests1dGroups": groups}]}},
        "errors": None,
    }


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def api_config() -> APIConfig:
    """API configuration pointing at a fake host."""
    return APIConfig(token=TEST_TOKEN, base_url=API_BASE, timeout=5.0)


@pytest.fixture
def exporter_config(api_config: APIConfig) -> ExporterConfig:
    """Full configuration with a short interval and an ephemeral port."""
    return ExporterConfig(
        api=api_config,
        poller={"interval": 0.01},
        server={"host": "127.0.0.1", "port": 0},
    )


@pytest.fixture
def sink() -> MetricsSink:
    """Metrics sink with its own registry."""
    return MetricsSink()


@pytest.fixture
def example_zone() -> Zone:
    return Zone(tag="example.com", id="abc")


@pytest_asyncio.fixture
async def cf_client(api_config: APIConfig) -> AsyncGenerator[CloudflareClient, None]:
    """CloudflareClient with a pinned calendar date."""
    async with CloudflareClient(api_config, today=lambda: FIXED_TODAY) as client:
        yield client


@pytest.fixture
def mock_aiohttp():
    """Mock aiohttp responses for testing."""
    with aioresponses.aioresponses() as m:
        yield m


@pytest.fixture
def fake_client() -> MagicMock:
    """Stand-in CloudflareClient with async methods."""
    client = MagicMock(spec=CloudflareClient)
    client.list_zones = AsyncMock()
    client.fetch_zone_stats = AsyncMock(return_value=[])
    client.zones_url = ZONES_URL
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    return client


@pytest.fixture
def app_context(exporter_config: ExporterConfig, fake_client: MagicMock, sink: MetricsSink) -> AppContext:
    """Application context wired to the fake client."""
    return AppContext(
        config=exporter_config,
        client=fake_client,
        registry=ZoneRegistry(),
        sink=sink,
    )


@pytest.fixture
def sample_groups() -> List[DailyStatGroup]:
    return [
        DailyStatGroup("2024-01-02", 120.0, 60.0, {"200": 110.0, "500": 10.0}),
        DailyStatGroup("2024-01-01", 100.0, 40.0, {"200": 90.0, "404": 10.0}),
    ]


# Markers for different test categories
pytest.mark.unit = pytest.mark.unit
pytest.mark.integration = pytest.mark.integration
pytest.mark.http = pytest.mark.http
pytest.mark.cli = pytest.mark.cli


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (binds local sockets)"
    )
    config.addinivalue_line(
        "markers", "http: mark test as HTTP-related"
    )
    config.addinivalue_line(
        "markers", "cli: mark test as CLI-related"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test names and paths."""
    for item in items:
        if "test_cli" in item.nodeid:
            item.add_marker(pytest.mark.cli)
        elif "test_client" in item.nodeid or "test_graphql" in item.nodeid or "test_server" in item.nodeid:
            item.add_marker(pytest.mark.http)

        if not any(marker.name == "integration" for marker in item.iter_markers()):
            item.add_marker(pytest.mark.unit)
