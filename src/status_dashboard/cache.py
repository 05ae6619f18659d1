"""In-process cache of the latest check cycle."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from .history import to_utc
from .models import CheckResult, HealthMetrics

logger = logging.getLogger(__name__)


class StatusCache:
    """Latest results and metrics with a time-to-live.

    Owned by the serving layer so that requests arriving within the TTL are
    answered without probing the targets again.
    """

    def __init__(self, ttl_seconds: float = 30.0) -> None:
        self.ttl = timedelta(seconds=ttl_seconds)
        self.results: list[CheckResult] = []
        self.metrics: Optional[HealthMetrics] = None
        self.last_checked: Optional[datetime] = None

    def is_fresh(self, now: Optional[datetime] = None) -> bool:
        """Whether the cached cycle is younger than the TTL."""
        if self.last_checked is None or self.metrics is None:
            return False
        now = to_utc(now) if now else datetime.now(timezone.utc)
        return now - self.last_checked <= self.ttl

    def update(self, results: list[CheckResult], metrics: HealthMetrics, checked_at: datetime) -> None:
        self.results = list(results)
        self.metrics = metrics
        self.last_checked = to_utc(checked_at)
        logger.debug(f"Status cache updated - results: {len(results)}, checked_at: {checked_at}")

    def invalidate(self) -> None:
        """Force the next lookup to trigger a new cycle. Cached data stays readable."""
        self.last_checked = None
        logger.debug("Status cache invalidated")

    def get_site(self, target_id: str) -> Optional[CheckResult]:
        for result in self.results:
            if result.id == target_id:
                return result
        return None
