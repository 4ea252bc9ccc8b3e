"""
Queries issued against the analytics GraphQL endpoint.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional, Union

from .models import GraphQLQuery

ZONE_STATS_OPERATION = "ZoneDailyStats"

ZONE_STATS_QUERY = """
query ZoneDailyStats($zoneTag: string, $since: Date) {
  viewer {
    zones(filter: { zoneTag: $zoneTag }) {
      httpRequests1dGroups(
        filter: { date_geq: $since }
        limit: %(limit)d
        orderBy: [date_DESC]
      ) {
        sum {
          requests
          cachedRequests
          responseStatusMap {
            edgeResponseStatus
            requests
          }
        }
        dimensions {
          date
        }
      }
    }
  }
}
"""


def window_start(today: date, lookback_days: int) -> str:
    """First date of the stats window, formatted YYYY-MM-DD."""
    return (today - timedelta(days=lookback_days)).strftime("%Y-%m-%d")


def build_zone_stats_query(
    zone_id: str,
    since: Union[str, date],
    limit: int = 10,
    operation_name: Optional[str] = ZONE_STATS_OPERATION,
) -> GraphQLQuery:
    """
    Build the daily aggregated stats query for a single zone.

    Args:
        zone_id: Remote zone identifier used as the ``zoneTag`` filter
        since: First date included in the window
        limit: Maximum number of daily groups, most recent first

    Returns:
        GraphQLQuery ready to execute
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")
    if isinstance(since, date):
        since = since.strftime("%Y-%m-%d")

    return GraphQLQuery(
        query=ZONE_STATS_QUERY % {"limit": limit},
        variables={"zoneTag": zone_id, "since": since},
        operation_name=operation_name,
    )
