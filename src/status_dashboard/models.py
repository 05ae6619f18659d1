"""Data models for the status dashboard.

Python attributes are snake_case; the persisted document and the JSON API use
the camelCase keys of the status-data format (``statusText``, ``responseTime``,
``operationalPercentage``...). Every wire model accepts both spellings on input
and serialises by alias.
"""

import logging
import math
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (66.5 -> 67, 0.5 -> 1)."""
    return int(math.floor(value + 0.5))


class SiteStatus(str, Enum):
    """Enumeration of possible target statuses."""

    OPERATIONAL = "operational"
    DEGRADED = "degraded"
    OUTAGE = "outage"
    UNKNOWN = "unknown"

    @property
    def severity(self) -> int:
        """Rank used to pick the worst status across targets."""
        return _SEVERITY[self]


_SEVERITY = {
    SiteStatus.OPERATIONAL: 0,
    SiteStatus.UNKNOWN: 1,
    SiteStatus.DEGRADED: 2,
    SiteStatus.OUTAGE: 3,
}


class WireModel(BaseModel):
    """Base for models serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Target(WireModel):
    """A monitored endpoint. The id is the key for results and history and must never change."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1, description="Unique, stable identifier")
    name: str = Field(..., description="Display name")
    description: str = Field(default="", description="Short description")
    url: str = Field(..., description="HTTP/HTTPS URL to probe")
    icon: str = Field(default="", description="Icon or label shown next to the name")


class CheckResult(WireModel):
    """Outcome of probing one target once."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., description="Target id")
    name: str = Field(..., description="Target display name")
    description: str = Field(default="", description="Target description")
    url: str = Field(..., description="Probed URL")
    icon: str = Field(default="", description="Target icon")
    status: SiteStatus = Field(..., description="Classified status")
    status_text: str = Field(..., description="Human readable classification reason")
    status_code: Optional[int] = Field(None, description="HTTP status code, absent on connection failure")
    response_time: int = Field(default=0, ge=0, description="Elapsed time in milliseconds")
    error: Optional[str] = Field(None, description="Error message for failed probes")
    last_checked: datetime = Field(..., description="When the probe finished")

    @classmethod
    def for_target(cls, target: Target, **fields) -> "CheckResult":
        """Build a result carrying the target's metadata."""
        return cls(
            id=target.id,
            name=target.name,
            description=target.description,
            url=target.url,
            icon=target.icon,
            **fields,
        )


class SiteIssue(WireModel):
    """A target that is not operational, as listed in the metrics."""

    id: str
    name: str
    status: SiteStatus
    status_text: str


class HealthMetrics(WireModel):
    """System-wide reduction of one set of check results."""

    status: SiteStatus = Field(default=SiteStatus.OPERATIONAL, description="Worst status across targets")
    operational_percentage: int = Field(default=0, ge=0, le=100, description="Share of operational targets")
    average_response_time: int = Field(default=0, ge=0, description="Mean response time of operational targets")
    sites_with_issues: list[SiteIssue] = Field(default_factory=list, description="Targets that are not operational")
    total_sites: int = Field(default=0, ge=0, description="Number of targets in the result set")


class HourlyBucket(WireModel):
    """Last observation within one hour for one target."""

    status: SiteStatus
    response_time: int = 0


class DailyBucket(WireModel):
    """Accumulated observations within one calendar day for one target."""

    checks: int = 0
    operational: int = 0
    degraded: int = 0
    outage: int = 0
    total_response_time: int = 0
    uptime: int = 0
    avg_response_time: int = 0

    def record(self, status: SiteStatus, response_time: int) -> None:
        """Fold one observation into the counters and recompute derived values."""
        if status == SiteStatus.OPERATIONAL:
            self.operational += 1
        elif status == SiteStatus.DEGRADED:
            self.degraded += 1
        elif status == SiteStatus.OUTAGE:
            self.outage += 1
        else:
            raise ValueError(f"Cannot record status '{status.value}' in a daily bucket")

        self.checks += 1
        self.total_response_time += response_time
        self.uptime = round_half_up(self.operational / self.checks * 100)
        self.avg_response_time = round_half_up(self.total_response_time / self.checks)


class HistoricalData(WireModel):
    """Per-target hourly and daily buckets."""

    hourly: dict[str, dict[str, HourlyBucket]] = Field(default_factory=dict)
    daily: dict[str, dict[str, DailyBucket]] = Field(default_factory=dict)


class StatusDocument(WireModel):
    """The persisted status document. Always written as a whole."""

    timestamp: Optional[datetime] = Field(None, description="When this document was produced")
    overall: SiteStatus = Field(default=SiteStatus.OPERATIONAL, description="Worst status across targets")
    metrics: HealthMetrics = Field(default_factory=HealthMetrics)
    sites: list[CheckResult] = Field(default_factory=list)
    last_checked: Optional[datetime] = Field(None, description="When the targets were last probed")
    historical: HistoricalData = Field(default_factory=HistoricalData)

    @classmethod
    def empty(cls) -> "StatusDocument":
        """Document for a system that has never been checked."""
        return cls()

    @property
    def has_data(self) -> bool:
        return self.last_checked is not None


class StatusSnapshot(WireModel):
    """Current status of all targets as served to the presentation layer."""

    timestamp: datetime
    overall: SiteStatus
    metrics: HealthMetrics
    sites: list[CheckResult]
    last_checked: Optional[datetime] = None


class HourlyPoint(HourlyBucket):
    """Hourly bucket with its key, for history queries."""

    timestamp: str


class DailyPoint(DailyBucket):
    """Daily bucket with its key, for history queries."""

    date: str


class SiteHistory(WireModel):
    """History of one target as sorted series."""

    id: str
    hourly_data: list[HourlyPoint] = Field(default_factory=list)
    daily_data: list[DailyPoint] = Field(default_factory=list)
    availability: int = Field(default=100, description="Operational share of the hourly buckets")


class HealthResponse(BaseModel):
    """Model for health check responses."""

    status: str = Field(..., description="Health status")
    timestamp: datetime = Field(..., description="Response timestamp")
    uptime_seconds: float = Field(..., description="Service uptime in seconds")
    monitored_sites: int = Field(..., description="Number of configured targets")
    last_checked: Optional[datetime] = Field(None, description="When the targets were last probed")
