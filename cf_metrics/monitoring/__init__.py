"""
Metrics sink and scrape endpoint for cf_metrics.
"""

from .metrics import (
    FAMILY_LABELS,
    MetricFamily,
    MetricsSink,
    TimingContext,
)
from .server import MetricsServer

__all__ = [
    "FAMILY_LABELS",
    "MetricFamily",
    "MetricsSink",
    "MetricsServer",
    "TimingContext",
]
