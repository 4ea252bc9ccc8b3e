"""
Metrics sink backed by prometheus_client.

Holds the three zone gauge families written by the poll loop and read by the
scrape endpoint, plus a few gauges and counters describing the collector
itself. Each sink owns its CollectorRegistry so several can coexist (tests).
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from ..models import DailyStatGroup, Zone


class MetricFamily(str, Enum):
    """Zone gauge families."""

    REQUESTS = "requests_total"
    CACHED_REQUESTS = "cached_requests_total"
    STATUS_CODE_REQUESTS = "status_code_requests_total"


FAMILY_LABELS: Dict[MetricFamily, Tuple[str, ...]] = {
    MetricFamily.REQUESTS: ("zone_tag", "date"),
    MetricFamily.CACHED_REQUESTS: ("zone_tag", "date"),
    MetricFamily.STATUS_CODE_REQUESTS: ("zone_tag", "date", "status_code"),
}

FAMILY_HELP: Dict[MetricFamily, str] = {
    MetricFamily.REQUESTS: "Total requests per zone (GraphQL 1dGroups API)",
    MetricFamily.CACHED_REQUESTS: "Cached requests per zone (GraphQL 1dGroups API)",
    MetricFamily.STATUS_CODE_REQUESTS: "Requests per zone by HTTP status code",
}

PASS_DURATION_BUCKETS = (0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0)


@dataclass
class TimingContext:
    """Context manager that observes an operation's duration on a histogram."""

    histogram: Histogram
    start_time: Optional[float] = None
    duration: Optional[float] = None

    def __enter__(self) -> "TimingContext":
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type: Optional[type], exc_val: Optional[BaseException], exc_tb: Optional[object]) -> None:
        if self.start_time is not None:
            self.duration = time.monotonic() - self.start_time
            self.histogram.observe(self.duration)


class MetricsSink:
    """
    Table of labeled gauges exposed for scraping.

    Writes overwrite: the last value set for a label tuple is the value
    reported. Label tuples are never removed, so series for old dates stay
    until the process restarts.
    """

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        namespace: str = "cloudflare_zone",
        self_namespace: str = "cf_metrics",
    ) -> None:
        """
        Initialize metrics sink.

        Args:
            registry: Prometheus registry to register into (a new one if None)
            namespace: Prefix of the zone gauge families
            self_namespace: Prefix of the collector's own metrics
        """
        self.registry = registry or CollectorRegistry()
        self.namespace = namespace

        self.gauges: Dict[MetricFamily, Gauge] = {
            family: Gauge(
                f"{namespace}_{family.value}",
                FAMILY_HELP[family],
                labelnames=FAMILY_LABELS[family],
                registry=self.registry,
            )
            for family in MetricFamily
        }

        self.zones_discovered = Gauge(
            f"{self_namespace}_zones_discovered",
            "Active zones found by the last discovery",
            registry=self.registry,
        )
        self.fetch_failures = Counter(
            f"{self_namespace}_fetch_failures",
            "Zone stats fetches that failed and were skipped",
            labelnames=("zone_tag",),
            registry=self.registry,
        )
        self.pass_duration = Histogram(
            f"{self_namespace}_poll_pass_duration_seconds",
            "Wall-clock duration of one pass over all zones",
            buckets=PASS_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.last_pass_timestamp = Gauge(
            f"{self_namespace}_last_pass_completed_timestamp_seconds",
            "Unix time at which the last pass completed",
            registry=self.registry,
        )

    def set_gauge(self, family: MetricFamily, labels: Sequence[str], value: float) -> None:
        """
        Set one gauge series, replacing any previous value.

        Args:
            family: Gauge family to write
            labels: Label values in the family's label order
            value: New value

        Raises:
            ValueError: If the label tuple does not match the family schema
        """
        family = MetricFamily(family)
        expected = FAMILY_LABELS[family]
        if len(labels) != len(expected):
            raise ValueError(
                f"{family.value} expects labels {expected}, got {tuple(labels)}"
            )
        self.gauges[family].labels(*labels).set(value)

    def get_gauge(self, family: MetricFamily, labels: Sequence[str]) -> Optional[float]:
        """Current value of a series, or None if it was never written."""
        family = MetricFamily(family)
        name = f"{self.namespace}_{family.value}"
        return self.registry.get_sample_value(
            name, dict(zip(FAMILY_LABELS[family], labels))
        )

    def record_stats(self, zone: Zone, groups: Sequence[DailyStatGroup]) -> int:
        """
        Write every daily group of one zone into the zone families.

        Returns:
            Number of series written
        """
        written = 0
        for group in groups:
            self.set_gauge(MetricFamily.REQUESTS, (zone.tag, group.date), group.total_requests)
            self.set_gauge(MetricFamily.CACHED_REQUESTS, (zone.tag, group.date), group.cached_requests)
            written += 2
            for status_code, requests in group.status_items():
                if not status_code:
                    continue
                self.set_gauge(
                    MetricFamily.STATUS_CODE_REQUESTS,
                    (zone.tag, group.date, status_code),
                    requests,
                )
                written += 1
        return written

    def record_fetch_failure(self, zone: Zone) -> None:
        self.fetch_failures.labels(zone.tag).inc()

    def set_zones_discovered(self, count: int) -> None:
        self.zones_discovered.set(count)

    def time_pass(self) -> TimingContext:
        """Time a poll pass into the pass duration histogram."""
        return TimingContext(self.pass_duration)

    def mark_pass_completed(self, timestamp: Optional[float] = None) -> None:
        self.last_pass_timestamp.set(timestamp if timestamp is not None else time.time())

    def render(self) -> bytes:
        """Current contents in the Prometheus text exposition format."""
        return generate_latest(self.registry)
