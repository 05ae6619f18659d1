"""Inspection of a persisted status document."""

import json
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from .history import DEFAULT_DAILY_RETENTION_DAYS, DEFAULT_HOURLY_RETENTION_HOURS, retention_cutoffs
from .models import SiteIssue, SiteStatus, StatusDocument

logger = logging.getLogger(__name__)


def format_file_size(size: int) -> str:
    """Human readable size: bytes below 1 KB, then KB and MB with two decimals."""
    if size < 1024:
        return f"{size} bytes"
    if size < 1024 * 1024:
        return f"{size / 1024:.2f} KB"
    return f"{size / (1024 * 1024):.2f} MB"


class DocumentReport(BaseModel):
    """Summary of a status document."""

    file_size: Optional[int] = None
    overall: SiteStatus
    operational_percentage: int
    average_response_time: int
    total_sites: int
    sites_with_issues: list[SiteIssue] = Field(default_factory=list)
    daily_entries: int = 0
    hourly_entries: int = 0
    daily_by_date: dict[str, int] = Field(default_factory=dict, description="Site entries per date key")
    hourly_by_hour: dict[str, int] = Field(default_factory=dict, description="Site entries per hour key")
    historical_size: int = 0
    sites_size: int = 0
    metrics_size: int = 0
    recommendations: list[str] = Field(default_factory=list)


def _json_size(data) -> int:
    return len(json.dumps(data, separators=(",", ":")))


def analyze_document(
    document: StatusDocument,
    file_size: Optional[int] = None,
    hourly_retention_hours: int = DEFAULT_HOURLY_RETENTION_HOURS,
    daily_retention_days: int = DEFAULT_DAILY_RETENTION_DAYS,
    now: Optional[datetime] = None,
) -> DocumentReport:
    """Count history entries, estimate section sizes and flag over-retention.

    A bucket is over-retained when its key is older than the cutoff used for
    eviction, measured from ``now`` or else from the document's last check.
    """
    by_date = Counter(key for buckets in document.historical.daily.values() for key in buckets)
    by_hour = Counter(key for buckets in document.historical.hourly.values() for key in buckets)

    reference = now or document.last_checked or datetime.now(timezone.utc)
    hourly_cutoff, daily_cutoff = retention_cutoffs(reference, hourly_retention_hours, daily_retention_days)
    stale_dates = [key for key in by_date if key < daily_cutoff]
    stale_hours = [key for key in by_hour if key < hourly_cutoff]

    recommendations = []
    if stale_dates:
        recommendations.append(
            f"Consider reducing daily history retention ({len(stale_dates)} dates older than "
            f"{daily_retention_days} days)"
        )
    if stale_hours:
        recommendations.append(
            f"Consider reducing hourly history retention ({len(stale_hours)} hours older than "
            f"{hourly_retention_hours} hours)"
        )

    dumped = document.model_dump(mode="json", by_alias=True)
    return DocumentReport(
        file_size=file_size,
        overall=document.overall,
        operational_percentage=document.metrics.operational_percentage,
        average_response_time=document.metrics.average_response_time,
        total_sites=document.metrics.total_sites,
        sites_with_issues=document.metrics.sites_with_issues,
        daily_entries=sum(by_date.values()),
        hourly_entries=sum(by_hour.values()),
        daily_by_date=dict(sorted(by_date.items())),
        hourly_by_hour=dict(sorted(by_hour.items())),
        historical_size=_json_size(dumped["historical"]),
        sites_size=_json_size(dumped["sites"]),
        metrics_size=_json_size(dumped["metrics"]),
        recommendations=recommendations,
    )


def render_report(report: DocumentReport, last_check: Optional[str] = None) -> str:
    """Plain text rendering of a report."""
    lines = ["Status Data Analysis", ""]
    if report.file_size is not None:
        lines.append(f"Size: {format_file_size(report.file_size)}")
    if last_check:
        lines.append(f"Last Status Check: {last_check}")
    lines += [
        "",
        "Status Summary:",
        f"Overall Status: {report.overall.value}",
        f"Operational Sites: {report.operational_percentage}%",
        f"Total Sites: {report.total_sites}",
        f"Average Response Time: {report.average_response_time}ms",
    ]
    if report.sites_with_issues:
        lines += ["", "Sites with Issues:"]
        lines += [f"- {site.name}: {site.status.value} ({site.status_text})" for site in report.sites_with_issues]

    lines += ["", "Daily Data:", f"Total Daily Entries: {report.daily_entries}", "Days Covered:"]
    lines += [f"  - {key}: {count} site entries" for key, count in report.daily_by_date.items()]
    lines += ["", "Hourly Data:", f"Total Hourly Entries: {report.hourly_entries}", "Hours Covered:"]
    lines += [f"  - {key}: {count} site entries" for key, count in report.hourly_by_hour.items()]
    lines += [
        "",
        "Storage Analysis:",
        f"Historical Data Size Estimate: ~{format_file_size(report.historical_size)}",
        f"Sites Data Size Estimate: ~{format_file_size(report.sites_size)}",
        f"Metrics Data Size Estimate: ~{format_file_size(report.metrics_size)}",
    ]
    if report.recommendations:
        lines.append("")
        lines += [f"Recommendation: {text}" for text in report.recommendations]
    return "\n".join(lines)
