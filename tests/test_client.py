"""
Tests for CloudflareClient: zone listing and per-zone statistics.
"""

import asyncio
import logging
from datetime import date

import aiohttp
import pytest

from cf_metrics.client import CloudflareClient
from cf_metrics.config import APIConfig
from cf_metrics.exceptions import (
    APIError,
    AuthenticationError,
    FetchError,
    RateLimitError,
    ResponseParseError,
    TimeoutError,
    TransportError,
)
from cf_metrics.models import DailyStatGroup, Zone

from .conftest import (
    API_BASE,
    GRAPHQL_URL,
    TEST_TOKEN,
    ZONES_URL,
    daily_group,
    stats_payload,
    zone_listing,
    zone_record,
)


def _calls(m):
    return [call for calls in m.requests.values() for call in calls]


class TestClientSetup:
    """Test client construction and session handling."""

    def test_endpoints(self, api_config):
        client = CloudflareClient(api_config)
        assert client.zones_url == f"{API_BASE}/zones"
        assert client.config.graphql_endpoint == GRAPHQL_URL

    def test_default_endpoints(self):
        config = APIConfig(token="t")
        assert CloudflareClient(config).zones_url == "https://api.cloudflare.com/client/v4/zones"
        assert config.graphql_endpoint == "https://api.cloudflare.com/client/v4/graphql"

    def test_repr_hides_token(self, api_config):
        client = CloudflareClient(api_config)
        assert TEST_TOKEN not in repr(client.auth)
        assert TEST_TOKEN not in repr(api_config)

    @pytest.mark.asyncio
    async def test_session_uses_configured_timeout(self, api_config):
        """Outbound calls are bounded by the configured total timeout."""
        async with CloudflareClient(api_config) as client:
            assert client._session is not None
            assert client._session.timeout.total == api_config.timeout

        assert client._session is None


class TestListZones:
    """Test the REST zone listing call."""

    @pytest.mark.asyncio
    async def test_list_zones(self, cf_client, mock_aiohttp):
        """The listing requests one page of 500 with the bearer header."""
        mock_aiohttp.get(
            ZONES_URL,
            payload=zone_listing(
                [zone_record("1", "a.com"), zone_record("2", "b.com", "pending")]
            ),
        )

        listing = await cf_client.list_zones()

        assert listing.active_zones() == [Zone("a.com", "1")]
        call = _calls(mock_aiohttp)[0]
        assert call.kwargs["params"] == {"per_page": "500"}
        assert call.kwargs["headers"]["Authorization"] == f"Bearer {TEST_TOKEN}"

    @pytest.mark.asyncio
    async def test_auth_failure(self, cf_client, mock_aiohttp):
        mock_aiohttp.get(
            ZONES_URL,
            status=403,
            payload={"success": False, "errors": [{"code": 9109, "message": "Invalid access token"}]},
        )

        with pytest.raises(AuthenticationError) as exc_info:
            await cf_client.list_zones()

        assert "Invalid access token" in exc_info.value.message
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_rate_limited(self, cf_client, mock_aiohttp):
        mock_aiohttp.get(ZONES_URL, status=429, body="slow down", headers={"Retry-After": "30"})

        with pytest.raises(RateLimitError) as exc_info:
            await cf_client.list_zones()

        assert exc_info.value.retry_after == 30.0

    @pytest.mark.asyncio
    async def test_unsuccessful_envelope(self, cf_client, mock_aiohttp):
        payload = zone_listing([], success=False)
        payload["errors"] = [{"code": 1000, "message": "broken"}]
        mock_aiohttp.get(ZONES_URL, payload=payload)

        with pytest.raises(APIError, match="broken"):
            await cf_client.list_zones()

    @pytest.mark.asyncio
    async def test_unparseable_body(self, cf_client, mock_aiohttp):
        mock_aiohttp.get(ZONES_URL, body="not json", content_type="text/plain")

        with pytest.raises(ResponseParseError):
            await cf_client.list_zones()

    @pytest.mark.asyncio
    async def test_undecodable_body(self, cf_client, mock_aiohttp):
        mock_aiohttp.get(ZONES_URL, body=b'{"success": true, "result": "\xff\xfe"}')

        with pytest.raises(ResponseParseError, match="not valid text"):
            await cf_client.list_zones()

    @pytest.mark.asyncio
    async def test_wrong_shape(self, cf_client, mock_aiohttp):
        mock_aiohttp.get(ZONES_URL, payload={"result": {"id": "1"}})

        with pytest.raises(ResponseParseError):
            await cf_client.list_zones()

    @pytest.mark.asyncio
    async def test_timeout(self, cf_client, mock_aiohttp):
        mock_aiohttp.get(ZONES_URL, exception=asyncio.TimeoutError())

        with pytest.raises(TimeoutError) as exc_info:
            await cf_client.list_zones()

        assert exc_info.value.timeout_value == 5.0

    @pytest.mark.asyncio
    async def test_connection_refused(self, cf_client, mock_aiohttp):
        mock_aiohttp.get(ZONES_URL, exception=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(TransportError):
            await cf_client.list_zones()


class TestFetchZoneStats:
    """Test the per-zone GraphQL statistics call."""

    @pytest.mark.asyncio
    async def test_fetch_zone_stats(self, cf_client, mock_aiohttp, example_zone):
        """The zone id and the trailing window are sent as query variables."""
        mock_aiohttp.post(
            GRAPHQL_URL,
            payload=stats_payload(
                [daily_group("2024-01-01", 100, 40, {200: 90, 404: 10})]
            ),
        )

        groups = await cf_client.fetch_zone_stats(example_zone)

        assert groups == [
            DailyStatGroup("2024-01-01", 100.0, 40.0, {"200": 90.0, "404": 10.0})
        ]
        call = _calls(mock_aiohttp)[0]
        assert call.kwargs["json"]["variables"] == {"zoneTag": "abc", "since": "2024-01-03"}
        assert "limit: 10" in call.kwargs["json"]["query"]
        assert call.kwargs["headers"]["Authorization"] == f"Bearer {TEST_TOKEN}"

    @pytest.mark.asyncio
    async def test_custom_window(self, api_config, mock_aiohttp, example_zone):
        mock_aiohttp.post(GRAPHQL_URL, payload=stats_payload([]))

        async with CloudflareClient(
            api_config, lookback_days=3, days_limit=4, today=lambda: date(2024, 1, 2)
        ) as client:
            assert await client.fetch_zone_stats(example_zone) == []

        call = _calls(mock_aiohttp)[0]
        assert call.kwargs["json"]["variables"]["since"] == "2023-12-30"
        assert "limit: 4" in call.kwargs["json"]["query"]

    @pytest.mark.asyncio
    async def test_transport_failure_is_fetch_error(self, cf_client, mock_aiohttp, example_zone):
        mock_aiohttp.post(GRAPHQL_URL, exception=aiohttp.ClientConnectionError("reset"))

        with pytest.raises(FetchError) as exc_info:
            await cf_client.fetch_zone_stats(example_zone)

        assert exc_info.value.zone_tag == "example.com"
        assert isinstance(exc_info.value.cause, TransportError)

    @pytest.mark.asyncio
    async def test_status_failure_is_fetch_error(self, cf_client, mock_aiohttp, example_zone):
        mock_aiohttp.post(GRAPHQL_URL, status=401, body="unauthorized")

        with pytest.raises(FetchError) as exc_info:
            await cf_client.fetch_zone_stats(example_zone)

        assert isinstance(exc_info.value.cause, AuthenticationError)

    @pytest.mark.asyncio
    async def test_graphql_errors_are_fetch_error(self, cf_client, mock_aiohttp, example_zone):
        mock_aiohttp.post(
            GRAPHQL_URL, payload={"data": None, "errors": [{"message": "quota exceeded"}]}
        )

        with pytest.raises(FetchError, match="quota exceeded"):
            await cf_client.fetch_zone_stats(example_zone)

    @pytest.mark.asyncio
    async def test_errors_with_data_still_published(self, cf_client, mock_aiohttp, example_zone, caplog):
        """Errors next to usable data are logged; the data is still returned."""
        payload = stats_payload([daily_group("2024-01-01", 100, 40, {200: 100})])
        payload["errors"] = [{"message": "some non-fatal warning"}]
        mock_aiohttp.post(GRAPHQL_URL, payload=payload)

        with caplog.at_level(logging.WARNING, logger="cf_metrics.client"):
            groups = await cf_client.fetch_zone_stats(example_zone)

        assert groups == [DailyStatGroup("2024-01-01", 100.0, 40.0, {"200": 100.0})]
        assert "some non-fatal warning" in caplog.text

    @pytest.mark.asyncio
    async def test_undecodable_body_is_fetch_error(self, cf_client, mock_aiohttp, example_zone):
        mock_aiohttp.post(GRAPHQL_URL, body=b'{"data": "\xff\xfe"}')

        with pytest.raises(FetchError) as exc_info:
            await cf_client.fetch_zone_stats(example_zone)

        assert exc_info.value.zone_tag == "example.com"
        assert isinstance(exc_info.value.cause, ResponseParseError)

    @pytest.mark.asyncio
    async def test_empty_zones_is_fetch_error(self, cf_client, mock_aiohttp, example_zone):
        mock_aiohttp.post(GRAPHQL_URL, payload={"data": {"viewer": {"zones": []}}, "errors": None})

        with pytest.raises(FetchError):
            await cf_client.fetch_zone_stats(example_zone)

    @pytest.mark.asyncio
    async def test_malformed_group_is_fetch_error(self, cf_client, mock_aiohttp, example_zone):
        payload = stats_payload([{"sum": {"requests": "lots"}, "dimensions": {"date": "2024-01-01"}}])
        mock_aiohttp.post(GRAPHQL_URL, payload=payload)

        with pytest.raises(FetchError):
            await cf_client.fetch_zone_stats(example_zone)
