"""
Zone discovery.

Lists the account's zones once, keeps the active ones and installs them in
the registry. Any failure is a DiscoveryError; there is no retry.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List

from .exceptions import CFMetricsError, DiscoveryError
from .models import Zone

if TYPE_CHECKING:
    from .app import AppContext

logger = logging.getLogger(__name__)


async def discover_zones(context: "AppContext") -> List[Zone]:
    """
    Populate the registry with the account's active zones.

    Args:
        context: Application context providing the client, registry and sink

    Returns:
        The zones installed in the registry, in listing order

    Raises:
        DiscoveryError: If the listing call fails, cannot be parsed, or
            contains no active zone; the registry is left untouched
    """
    client = context.client
    try:
        listing = await client.list_zones()
    except CFMetricsError as e:
        raise DiscoveryError(
            f"Failed to list zones: {e.message}", url=e.url, cause=e
        ) from e

    zones = listing.active_zones()
    total = len(listing.result or [])
    if not zones:
        raise DiscoveryError(
            f"No active zones found ({total} listed)", url=client.zones_url
        )

    await context.registry.replace(zones)
    context.sink.set_zones_discovered(len(zones))

    logger.info("Found %d active zones (%d listed)", len(zones), total)
    for zone in zones:
        logger.debug("Monitoring zone %s (%s)", zone.tag, zone.id)

    return zones
