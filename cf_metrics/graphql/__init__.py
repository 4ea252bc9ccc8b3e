"""
GraphQL support for cf_metrics.
"""

from .client import GraphQLClient
from .models import GraphQLQuery, GraphQLResult
from .queries import build_zone_stats_query, window_start

__all__ = [
    "GraphQLClient",
    "GraphQLQuery",
    "GraphQLResult",
    "build_zone_stats_query",
    "window_start",
]
