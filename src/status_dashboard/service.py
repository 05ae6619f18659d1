"""Check cycle orchestration and the query surface used by the API."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from .aggregator import aggregate
from .cache import StatusCache
from .checker import FleetChecker, unknown_result
from .config import StatusDashboardConfig, config
from .history import (
    DEFAULT_DAILY_RETENTION_DAYS,
    DEFAULT_HOURLY_RETENTION_HOURS,
    merge_check,
    merge_histories,
    site_history,
)
from .models import CheckResult, HistoricalData, SiteHistory, StatusDocument, StatusSnapshot, Target
from .prober import Prober
from .sites import load_targets, validate_unique_ids
from .storage import JsonDocumentStore, PersistenceError

logger = logging.getLogger(__name__)


class SiteNotFoundError(Exception):
    """Raised when a target id is not configured."""

    def __init__(self, target_id: str) -> None:
        super().__init__(f"Site '{target_id}' not found")
        self.target_id = target_id


class NoStatusDataError(Exception):
    """Raised when no status document has been produced yet."""


class StatusService:
    """Runs check cycles and answers status queries.

    A cycle probes every target, computes the metrics and the history update
    from the same result set, refreshes the cache and saves the whole
    document. Cycles never overlap.
    """

    def __init__(
        self,
        targets: Sequence[Target],
        checker: FleetChecker,
        store: JsonDocumentStore,
        cache: Optional[StatusCache] = None,
        hourly_retention_hours: int = DEFAULT_HOURLY_RETENTION_HOURS,
        daily_retention_days: int = DEFAULT_DAILY_RETENTION_DAYS,
    ) -> None:
        validate_unique_ids(targets)
        self._targets = {target.id: target for target in targets}
        self.checker = checker
        self.store = store
        self.cache = cache or StatusCache()
        self.hourly_retention_hours = hourly_retention_hours
        self.daily_retention_days = daily_retention_days
        self._lock = asyncio.Lock()
        # Last document that could not be written; the next cycle builds on it.
        self._unsaved: Optional[StatusDocument] = None
        logger.info(
            f"StatusService initialized - targets: {len(self._targets)}, store: {store.path}, "
            f"cache_ttl: {self.cache.ttl.total_seconds()}s"
        )

    @property
    def targets(self) -> list[Target]:
        return list(self._targets.values())

    def get_target(self, target_id: str) -> Target:
        target = self._targets.get(target_id)
        if target is None:
            logger.warning(f"Site not found - id: {target_id}")
            raise SiteNotFoundError(target_id)
        return target

    @property
    def has_unsaved_changes(self) -> bool:
        return self._unsaved is not None

    async def close(self) -> None:
        await self.checker.prober.close()

    async def run_cycle(self, now: Optional[datetime] = None) -> StatusDocument:
        """Run one complete check cycle.

        Args:
            now: Time of the cycle; defaults to when the probes finished

        Returns:
            The document that was saved

        Raises:
            PersistenceError: If the document could not be written. The
                results are still cached and the document is kept for the
                next cycle.
        """
        async with self._lock:
            return await self._run_cycle(now)

    async def _run_cycle(self, now: Optional[datetime]) -> StatusDocument:
        results = self._complete(await self.checker.check_all(self.targets))
        now = now or datetime.now(timezone.utc)

        metrics = aggregate(results)
        self.cache.update(results, metrics, now)

        base = self._base_history()
        historical = merge_check(
            base,
            results,
            now,
            hourly_retention_hours=self.hourly_retention_hours,
            daily_retention_days=self.daily_retention_days,
        )
        document = StatusDocument(
            timestamp=now,
            overall=metrics.status,
            metrics=metrics,
            sites=results,
            last_checked=now,
            historical=historical,
        )

        try:
            self.store.save(document)
        except PersistenceError:
            self._unsaved = document
            logger.error("Check cycle finished but the status document was not saved - will retry next cycle")
            raise

        self._unsaved = None
        logger.info(
            f"Check cycle completed - overall: {metrics.status.value}, "
            f"operational: {metrics.operational_percentage}%, issues: {len(metrics.sites_with_issues)}"
        )
        return document

    def _base_history(self) -> HistoricalData:
        """History the next cycle builds on.

        After a failed write the unsaved document is newer than the file, so
        its buckets take precedence over the stored ones.
        """
        stored = self.store.load().historical
        if self._unsaved is None:
            return stored
        return merge_histories(stored, self._unsaved.historical)

    def _complete(self, results: list[CheckResult]) -> list[CheckResult]:
        """One result per configured target, in configuration order."""
        by_id = {result.id: result for result in results}
        completed = []
        for target in self._targets.values():
            result = by_id.get(target.id)
            if result is None:
                logger.warning(f"No check result for target - id: {target.id}")
                result = unknown_result(target, "No result returned")
            completed.append(result)
        return completed

    def _snapshot(self) -> StatusSnapshot:
        return StatusSnapshot(
            timestamp=datetime.now(timezone.utc),
            overall=self.cache.metrics.status,
            metrics=self.cache.metrics,
            sites=self.cache.results,
            last_checked=self.cache.last_checked,
        )

    async def get_status(self, force_refresh: bool = False) -> StatusSnapshot:
        """Current status of all targets, from cache while it is fresh."""
        if not force_refresh and self.cache.is_fresh():
            logger.debug("Serving status from cache")
            return self._snapshot()

        async with self._lock:
            # Another request may have completed a cycle while we waited.
            if force_refresh or not self.cache.is_fresh():
                await self._run_cycle(None)
        return self._snapshot()

    async def refresh(self) -> StatusSnapshot:
        """Invalidate the cache and run a new cycle now."""
        self.cache.invalidate()
        return await self.get_status(force_refresh=True)

    async def get_site(self, target_id: str, force_refresh: bool = False) -> CheckResult:
        """Current status of one target.

        Served from the cache while it is fresh; otherwise the target is
        probed on its own without touching the stored document.

        Raises:
            SiteNotFoundError: If the id is not configured
        """
        target = self.get_target(target_id)
        if not force_refresh and self.cache.is_fresh():
            cached = self.cache.get_site(target_id)
            if cached is not None:
                return cached
        return await self.checker.check_one(target)

    def get_site_history(self, target_id: str) -> SiteHistory:
        """History of one target. A known target without data has empty series.

        Raises:
            SiteNotFoundError: If the id is not configured
        """
        self.get_target(target_id)
        return site_history(self._base_history(), target_id)

    def get_document(self) -> StatusDocument:
        """The last saved document.

        Raises:
            NoStatusDataError: If no check cycle has been saved yet
        """
        document = self.store.load()
        if not document.has_data:
            raise NoStatusDataError("Status data has not been generated yet")
        return document


def create_service(settings: StatusDashboardConfig = config, prober: Optional[Prober] = None) -> StatusService:
    """Build a status service from configuration."""
    prober = prober or Prober(
        timeout_seconds=settings.probe.timeout_seconds,
        slow_threshold_ms=settings.probe.slow_threshold_ms,
        verify_tls=settings.probe.verify_tls,
        follow_redirects=settings.probe.follow_redirects,
    )
    return StatusService(
        targets=load_targets(settings.targets_file),
        checker=FleetChecker(prober),
        store=JsonDocumentStore(settings.data_file),
        cache=StatusCache(ttl_seconds=settings.cache_ttl_seconds),
        hourly_retention_hours=settings.retention.hourly_hours,
        daily_retention_days=settings.retention.daily_days,
    )
