"""
Tests for zone discovery.
"""

import pytest

from cf_metrics.app import AppContext
from cf_metrics.discovery import discover_zones
from cf_metrics.exceptions import (
    AuthenticationError,
    DiscoveryError,
    ResponseParseError,
    TransportError,
)
from cf_metrics.models import Zone, ZoneListResponse

from .conftest import ZONES_URL, zone_listing, zone_record


def _listing(records):
    return ZoneListResponse.model_validate(zone_listing(records))


class TestDiscoverZones:
    """Test populating the registry from the zone listing."""

    @pytest.mark.asyncio
    async def test_installs_active_zones(self, app_context, fake_client):
        fake_client.list_zones.return_value = _listing(
            [
                zone_record("1", "a.com"),
                zone_record("2", "b.com", "initializing"),
                zone_record("3", "c.com"),
            ]
        )

        zones = await discover_zones(app_context)

        assert zones == [Zone("a.com", "1"), Zone("c.com", "3")]
        assert app_context.registry.snapshot() == zones
        assert app_context.sink.registry.get_sample_value("cf_metrics_zones_discovered") == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("active,other", [(1, 0), (2, 5), (10, 1)])
    async def test_exactly_active_zones(self, app_context, fake_client, active, other):
        """N active and M other zones leave exactly N zones in the registry."""
        records = [zone_record(f"o{i}", f"other{i}.com", "deactivated") for i in range(other)]
        records += [zone_record(f"a{i}", f"active{i}.com") for i in range(active)]
        fake_client.list_zones.return_value = _listing(records)

        await discover_zones(app_context)

        assert len(app_context.registry) == active

    @pytest.mark.asyncio
    async def test_empty_listing(self, app_context, fake_client):
        """An empty result is a discovery failure and the registry stays empty."""
        fake_client.list_zones.return_value = _listing([])

        with pytest.raises(DiscoveryError, match="No active zones"):
            await discover_zones(app_context)

        assert not app_context.registry.populated
        assert len(app_context.registry) == 0

    @pytest.mark.asyncio
    async def test_no_active_zones(self, app_context, fake_client):
        fake_client.list_zones.return_value = _listing(
            [zone_record("1", "a.com", "pending"), zone_record("2", "b.com", "moved")]
        )

        with pytest.raises(DiscoveryError) as exc_info:
            await discover_zones(app_context)

        assert "2 listed" in exc_info.value.message
        assert len(app_context.registry) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            AuthenticationError("Authentication rejected (403)", 403, ZONES_URL),
            TransportError("Connection error: refused", ZONES_URL),
        ],
    )
    async def test_listing_failure(self, app_context, fake_client, error):
        """Errors from the listing call become DiscoveryError with the cause attached."""
        fake_client.list_zones.side_effect = error

        with pytest.raises(DiscoveryError) as exc_info:
            await discover_zones(app_context)

        assert exc_info.value.cause is error
        assert len(app_context.registry) == 0

    @pytest.mark.asyncio
    async def test_with_http_client(self, exporter_config, cf_client, mock_aiohttp, sink):
        """Discovery through the real client against a mocked listing."""
        mock_aiohttp.get(
            ZONES_URL,
            payload=zone_listing([zone_record("abc", "example.com")]),
        )
        context = AppContext(config=exporter_config, client=cf_client, sink=sink)

        zones = await discover_zones(context)

        assert zones == [Zone("example.com", "abc")]

    @pytest.mark.asyncio
    async def test_undecodable_listing(self, exporter_config, cf_client, mock_aiohttp, sink):
        """A listing body that is not valid text fails discovery cleanly."""
        mock_aiohttp.get(ZONES_URL, body=b'{"success": true, "result": "\xff\xfe"}')
        context = AppContext(config=exporter_config, client=cf_client, sink=sink)

        with pytest.raises(DiscoveryError) as exc_info:
            await discover_zones(context)

        assert isinstance(exc_info.value.cause, ResponseParseError)
        assert len(context.registry) == 0
