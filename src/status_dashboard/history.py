"""Time-bucketed check history.

Each target has hourly buckets, keyed ``YYYY-MM-DDTHH`` (UTC), holding the
last observation of that hour, and daily buckets, keyed ``YYYY-MM-DD`` (UTC),
accumulating every observation of that day. Keys sort lexicographically in
time order, which is what eviction relies on.

A bucket is created by the first check that falls into it, updated by later
checks, and deleted as soon as its key is older than the retention cutoff.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Mapping, Sequence

from .models import (
    CheckResult,
    DailyBucket,
    DailyPoint,
    HistoricalData,
    HourlyBucket,
    HourlyPoint,
    SiteHistory,
    SiteStatus,
    round_half_up,
)

logger = logging.getLogger(__name__)

DEFAULT_HOURLY_RETENTION_HOURS = 24
DEFAULT_DAILY_RETENTION_DAYS = 7


def to_utc(moment: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def hour_key(moment: datetime) -> str:
    """Key of the hourly bucket containing ``moment``."""
    return to_utc(moment).strftime("%Y-%m-%dT%H")


def date_key(moment: datetime) -> str:
    """Key of the daily bucket containing ``moment``."""
    return to_utc(moment).strftime("%Y-%m-%d")


def retention_cutoffs(
    now: datetime,
    hourly_retention_hours: int = DEFAULT_HOURLY_RETENTION_HOURS,
    daily_retention_days: int = DEFAULT_DAILY_RETENTION_DAYS,
) -> tuple[str, str]:
    """Oldest hour key and date key still retained at ``now``."""
    return (
        hour_key(now - timedelta(hours=hourly_retention_hours)),
        date_key(now - timedelta(days=daily_retention_days)),
    )


def prune_history(
    history: HistoricalData,
    now: datetime,
    hourly_retention_hours: int = DEFAULT_HOURLY_RETENTION_HOURS,
    daily_retention_days: int = DEFAULT_DAILY_RETENTION_DAYS,
) -> tuple[int, int]:
    """Delete buckets older than the retention windows, in place.

    Targets left without buckets are dropped as well.

    Returns:
        Tuple of (removed hourly buckets, removed daily buckets)
    """
    hourly_cutoff, daily_cutoff = retention_cutoffs(now, hourly_retention_hours, daily_retention_days)

    removed_hourly = _evict(history.hourly, hourly_cutoff)
    removed_daily = _evict(history.daily, daily_cutoff)

    if removed_hourly or removed_daily:
        logger.info(
            f"Evicted expired history - hourly: {removed_hourly} (before {hourly_cutoff}), "
            f"daily: {removed_daily} (before {daily_cutoff})"
        )
    return removed_hourly, removed_daily


def _evict(buckets_by_target: dict, cutoff: str) -> int:
    removed = 0
    for target_id in list(buckets_by_target):
        buckets = buckets_by_target[target_id]
        for key in [key for key in buckets if key < cutoff]:
            del buckets[key]
            removed += 1
        if not buckets:
            del buckets_by_target[target_id]
    return removed


def merge_check(
    history: HistoricalData,
    results: Sequence[CheckResult],
    now: datetime,
    hourly_retention_hours: int = DEFAULT_HOURLY_RETENTION_HOURS,
    daily_retention_days: int = DEFAULT_DAILY_RETENTION_DAYS,
) -> HistoricalData:
    """Fold one cycle of results into the history and evict expired buckets.

    The hourly bucket of the current hour is overwritten by each result, so
    merging the same results twice leaves it unchanged. The daily bucket
    accumulates, so merging twice counts every check twice. Results with an
    ``unknown`` status carry no observation and are skipped.

    Args:
        history: Current history, left untouched
        results: Results of one check cycle
        now: Time of the cycle, determines the bucket keys and the cutoffs
        hourly_retention_hours: Age after which hourly buckets are removed
        daily_retention_days: Age after which daily buckets are removed

    Returns:
        The updated history
    """
    updated = history.model_copy(deep=True)
    current_hour = hour_key(now)
    current_date = date_key(now)

    recorded = 0
    for result in results:
        if result.status == SiteStatus.UNKNOWN:
            logger.debug(f"Skipping history for unchecked target - id: {result.id}")
            continue

        updated.hourly.setdefault(result.id, {})[current_hour] = HourlyBucket(
            status=result.status, response_time=result.response_time
        )

        daily = updated.daily.setdefault(result.id, {})
        bucket = daily.get(current_date)
        if bucket is None:
            bucket = daily[current_date] = DailyBucket()
        bucket.record(result.status, result.response_time)
        recorded += 1

    prune_history(updated, now, hourly_retention_hours, daily_retention_days)
    logger.debug(f"History merged - recorded: {recorded}, hour: {current_hour}, date: {current_date}")
    return updated


def merge_histories(existing: HistoricalData, incoming: HistoricalData) -> HistoricalData:
    """Combine two histories bucket by bucket.

    For a target and key present in both, the incoming bucket replaces the
    existing one. Buckets only present on one side are kept.
    """
    merged = existing.model_copy(deep=True)
    for target_id, buckets in incoming.hourly.items():
        target_buckets = merged.hourly.setdefault(target_id, {})
        for key, bucket in buckets.items():
            target_buckets[key] = bucket.model_copy()
    for target_id, buckets in incoming.daily.items():
        target_buckets = merged.daily.setdefault(target_id, {})
        for key, bucket in buckets.items():
            target_buckets[key] = bucket.model_copy()
    return merged


def calculate_availability(hourly: Mapping[str, HourlyBucket]) -> int:
    """Percentage of hourly buckets that are operational, 100 without data."""
    if not hourly:
        return 100
    operational = sum(1 for bucket in hourly.values() if bucket.status == SiteStatus.OPERATIONAL)
    return round_half_up(operational / len(hourly) * 100)


def site_history(history: HistoricalData, target_id: str) -> SiteHistory:
    """Sorted hourly and daily series for one target."""
    hourly = history.hourly.get(target_id, {})
    daily = history.daily.get(target_id, {})
    return SiteHistory(
        id=target_id,
        hourly_data=[HourlyPoint(timestamp=key, **hourly[key].model_dump()) for key in sorted(hourly)],
        daily_data=[DailyPoint(date=key, **daily[key].model_dump()) for key in sorted(daily)],
        availability=calculate_availability(hourly),
    )
