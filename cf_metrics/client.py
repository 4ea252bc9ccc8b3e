"""
Client for the Cloudflare REST and GraphQL analytics APIs.

Two call shapes are supported: the zone listing (REST) and the per-zone
daily statistics query (GraphQL). Both share one aiohttp session, one bearer
credential and one explicit timeout.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from typing import Any, Callable, List, Optional

import aiohttp
from pydantic import ValidationError

from .auth import BearerTokenAuth
from .config.models import APIConfig
from .exceptions import (
    APIError,
    CFMetricsError,
    ErrorHandler,
    FetchError,
    ResponseParseError,
)
from .graphql import GraphQLClient, build_zone_stats_query, window_start
from .models import DailyStatGroup, Zone, ZoneListResponse, StatsResponse

logger = logging.getLogger(__name__)


class CloudflareClient:
    """
    Async client for the analytics API.

    Examples:
        ```python
        async with CloudflareClient(APIConfig(token="...")) as client:
            listing = await client.list_zones()
            for zone in listing.active_zones():
                groups = await client.fetch_zone_stats(zone)
        ```
    """

    def __init__(
        self,
        config: APIConfig,
        lookback_days: int = 7,
        days_limit: int = 10,
        today: Optional[Callable[[], date]] = None,
    ):
        """
        Initialize the client.

        Args:
            config: API configuration (token, endpoints, timeout)
            lookback_days: Days subtracted from today to get the window start
            days_limit: Maximum daily groups requested per zone
            today: Source of the current local date, injectable for tests
        """
        self.config = config
        self.lookback_days = lookback_days
        self.days_limit = days_limit
        self._today = today or date.today
        self.auth = BearerTokenAuth(config.token)
        self._session: Optional[aiohttp.ClientSession] = None
        self._graphql: Optional[GraphQLClient] = None

    async def __aenter__(self) -> "CloudflareClient":
        await self._create_session()
        return self

    async def __aexit__(
        self,
        _exc_type: Optional[type[BaseException]],
        _exc_val: Optional[BaseException],
        _exc_tb: Optional[Any],
    ) -> None:
        await self.close()

    async def _create_session(self) -> None:
        """Create HTTP session with the configured timeout."""
        if self._session is not None:
            return

        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        self._session = aiohttp.ClientSession(
            timeout=timeout,
            headers={"User-Agent": self.config.user_agent},
            raise_for_status=False,
        )
        self._graphql = GraphQLClient(
            self._session,
            str(self.config.graphql_endpoint),
            auth=self.auth,
            timeout=self.config.timeout,
        )

    async def close(self) -> None:
        """Close HTTP session and cleanup connections."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._graphql = None

    @property
    def zones_url(self) -> str:
        return f"{self.config.base_url}/zones"

    async def list_zones(self) -> ZoneListResponse:
        """
        Fetch one page of the account's zones.

        Returns:
            Parsed listing envelope (all statuses; filtering is the caller's job)

        Raises:
            TransportError: On connection failure or timeout
            APIError: On an error status or an unsuccessful envelope
            ResponseParseError: If the body does not match the listing shape
        """
        if self._session is None:
            await self._create_session()
        assert self._session is not None

        headers = {"Content-Type": "application/json"}
        headers.update(self.auth.headers())
        params = {"per_page": str(self.config.zones_per_page)}

        try:
            async with self._session.get(
                self.zones_url, params=params, headers=headers
            ) as response:
                response_text = await response.text()
                status = response.status
                response_headers = dict(response.headers)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ErrorHandler.from_aiohttp_error(
                e, self.zones_url, self.config.timeout
            ) from e
        except UnicodeDecodeError as e:
            raise ResponseParseError(
                f"Zone listing body is not valid text: {e}", self.zones_url
            ) from e

        if status >= 400:
            raise ErrorHandler.from_status(
                status,
                _envelope_errors(response_text) or "zone listing failed",
                self.zones_url,
                response_headers,
                response_text,
            )

        try:
            listing = ZoneListResponse.model_validate_json(response_text)
        except ValidationError as e:
            raise ResponseParseError(
                f"Unexpected zone listing payload: {e}", self.zones_url, response_text
            ) from e

        if not listing.success:
            messages = "; ".join(err.message for err in listing.errors) or "unknown error"
            raise APIError(
                f"Zone listing unsuccessful: {messages}",
                status,
                self.zones_url,
                response_text,
            )

        if listing.result_info and listing.result_info.total_pages > 1:
            logger.warning(
                "Account has %d zones but only the first %d are monitored",
                listing.result_info.total_count,
                self.config.zones_per_page,
            )

        return listing

    async def fetch_zone_stats(self, zone: Zone) -> List[DailyStatGroup]:
        """
        Fetch the trailing window of daily statistics for one zone.

        Args:
            zone: Zone to query (its id is the GraphQL zoneTag filter)

        Returns:
            Daily groups, most recent date first

        Raises:
            FetchError: On any transport, status or parse failure
        """
        if self._graphql is None:
            await self._create_session()
        assert self._graphql is not None

        since = window_start(self._today(), self.lookback_days)
        query = build_zone_stats_query(zone.id, since, self.days_limit)
        endpoint = self._graphql.endpoint

        try:
            result = await self._graphql.execute(query)
        except CFMetricsError as e:
            raise FetchError(
                f"Stats request for {zone.tag} failed: {e.message}",
                zone_tag=zone.tag,
                url=endpoint,
                cause=e,
            ) from e

        if result.has_errors:
            messages = "; ".join(result.error_messages)
            if result.data is None:
                raise FetchError(
                    f"Stats query for {zone.tag} returned errors: {messages}",
                    zone_tag=zone.tag,
                    url=endpoint,
                )
            # Partial results: publish whatever data parses
            logger.warning("Stats query for %s returned errors: %s", zone.tag, messages)

        try:
            return StatsResponse.from_data(result.data).daily_groups()
        except ValueError as e:
            # pydantic's ValidationError is a ValueError
            raise FetchError(
                f"Unexpected stats payload for {zone.tag}: {e}",
                zone_tag=zone.tag,
                url=endpoint,
                cause=e,
            ) from e


def _envelope_errors(response_text: str) -> str:
    """Best-effort extraction of ``errors[].message`` from an error body."""
    try:
        payload = json.loads(response_text)
    except ValueError:
        return ""
    if not isinstance(payload, dict):
        return ""
    errors = payload.get("errors") or []
    if not isinstance(errors, list):
        return ""
    return "; ".join(
        str(err.get("message", "")) for err in errors if isinstance(err, dict)
    )
