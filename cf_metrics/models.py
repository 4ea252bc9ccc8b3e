"""
Data models for zones, daily statistics and the remote API payloads.

Domain objects are frozen dataclasses; the payloads returned by the REST and
GraphQL endpoints are parsed with pydantic models that mirror only the fields
the collector reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

ACTIVE_STATUS = "active"


@dataclass(frozen=True)
class Zone:
    """A monitored zone: display tag plus remote-assigned identifier."""

    tag: str
    id: str


@dataclass(frozen=True)
class DailyStatGroup:
    """Aggregated statistics for one zone on one calendar date."""

    date: str
    total_requests: float
    cached_requests: float
    status_breakdown: Dict[str, float] = field(default_factory=dict)

    def status_items(self) -> List[Tuple[str, float]]:
        """Status code/count pairs in ascending status order."""
        return sorted(self.status_breakdown.items())


class _WireModel(BaseModel):
    """Base for API payload models; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# REST zone listing


class ZoneRecord(_WireModel):
    """One entry of the zone listing ``result`` array."""

    id: str
    name: str
    status: str = ""

    @property
    def is_active(self) -> bool:
        """Only zones whose status is literally "active" are monitored."""
        return self.status == ACTIVE_STATUS

    def to_zone(self) -> Zone:
        return Zone(tag=self.name, id=self.id)


class ResultInfo(_WireModel):
    page: int = 1
    per_page: int = 0
    count: int = 0
    total_count: int = 0
    total_pages: int = 0


class APIMessage(_WireModel):
    code: Optional[int] = None
    message: str = ""


class ZoneListResponse(_WireModel):
    """Envelope of ``GET /zones``."""

    success: bool = True
    errors: List[APIMessage] = Field(default_factory=list)
    result: Optional[List[ZoneRecord]] = None
    result_info: Optional[ResultInfo] = None

    def active_zones(self) -> List[Zone]:
        """Zones with active status, in listing order."""
        return [record.to_zone() for record in self.result or [] if record.is_active]


# GraphQL zone statistics


class StatusCount(_WireModel):
    """One ``responseStatusMap`` entry."""

    edge_response_status: Optional[str] = Field(default=None, alias="edgeResponseStatus")
    requests: float = 0

    @field_validator("edge_response_status", mode="before")
    @classmethod
    def status_to_string(cls, v: Any) -> Optional[str]:
        """Status codes arrive as JSON numbers; keep their decimal text form."""
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, bool):
            raise ValueError("edgeResponseStatus must be a number or string")
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        if isinstance(v, (int, float)):
            return str(v)
        raise ValueError("edgeResponseStatus must be a number or string")


class StatsSum(_WireModel):
    requests: float = 0
    cached_requests: float = Field(default=0, alias="cachedRequests")
    response_status_map: List[StatusCount] = Field(
        default_factory=list, alias="responseStatusMap"
    )


class StatsDimensions(_WireModel):
    date: str


class DailyGroup(_WireModel):
    """One ``httpRequests1dGroups`` entry."""

    sum: StatsSum
    dimensions: StatsDimensions

    def to_stat_group(self) -> DailyStatGroup:
        breakdown: Dict[str, float] = {}
        for entry in self.sum.response_status_map:
            # An empty status code carries no usable label value
            if not entry.edge_response_status:
                continue
            breakdown[entry.edge_response_status] = entry.requests

        return DailyStatGroup(
            date=self.dimensions.date,
            total_requests=self.sum.requests,
            cached_requests=self.sum.cached_requests,
            status_breakdown=breakdown,
        )


class ZoneStats(_WireModel):
    groups: List[DailyGroup] = Field(default_factory=list, alias="httpRequests1dGroups")


class Viewer(_WireModel):
    zones: List[ZoneStats] = Field(default_factory=list)


class StatsData(_WireModel):
    viewer: Viewer


class StatsResponse(_WireModel):
    """The ``data`` member of the zone statistics query result."""

    data: StatsData

    @classmethod
    def from_data(cls, data: Optional[Dict[str, Any]]) -> "StatsResponse":
        return cls.model_validate({"data": data})

    def daily_groups(self) -> List[DailyStatGroup]:
        """
        Parsed daily groups for the single queried zone.

        Raises:
            ValueError: If the response contains no zone entry
        """
        zones = self.data.viewer.zones
        if not zones:
            raise ValueError("response contains no zone entry")
        return [group.to_stat_group() for group in zones[0].groups]
