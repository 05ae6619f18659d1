"""Tests for the check cycle and the status query surface."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from status_dashboard.cache import StatusCache
from status_dashboard.checker import FleetChecker
from status_dashboard.models import SiteStatus, Target
from status_dashboard.service import NoStatusDataError, SiteNotFoundError, StatusService
from status_dashboard.sites import ConfigurationError
from status_dashboard.storage import JsonDocumentStore, PersistenceError


class CountingProber:
    """Prober double that records which targets were probed."""

    def __init__(self, inner, failing_id=None) -> None:
        self.inner = inner
        self.failing_id = failing_id
        self.calls: list[str] = []

    async def probe(self, target):
        self.calls.append(target.id)
        if target.id == self.failing_id:
            raise RuntimeError("probe crashed")
        return await self.inner.probe(target)

    async def close(self) -> None:
        await self.inner.close()


@pytest.fixture
def counting_prober(prober):
    return CountingProber(prober)


@pytest.fixture
def store(tmp_path):
    return JsonDocumentStore(tmp_path / "status-data.json")


@pytest.fixture
def service(targets, counting_prober, store):
    return StatusService(targets, FleetChecker(counting_prober), store, cache=StatusCache(ttl_seconds=30))


@pytest.mark.asyncio
async def test_run_cycle_persists_document(service, store, host_responses, now):
    """Test that a cycle saves results, metrics and history together."""
    host_responses["beta.example.com"] = 503

    document = await service.run_cycle(now)
    await service.close()

    assert [site.id for site in document.sites] == ["alpha", "beta", "gamma"]
    assert document.overall == SiteStatus.OUTAGE
    assert document.metrics.operational_percentage == 67
    assert document.last_checked == now
    assert document.historical.hourly["beta"]["2024-05-10T12"].status == SiteStatus.OUTAGE
    assert document.historical.daily["alpha"]["2024-05-10"].checks == 1
    assert store.load() == document
    assert not service.has_unsaved_changes


@pytest.mark.asyncio
async def test_run_cycle_accumulates_history(service, store, now):
    """Test that each cycle builds on the stored history."""
    await service.run_cycle(now)
    await service.run_cycle(now + timedelta(minutes=1))
    document = await service.run_cycle(now + timedelta(hours=1))

    assert document.historical.daily["alpha"]["2024-05-10"].checks == 3
    assert sorted(document.historical.hourly["alpha"]) == ["2024-05-10T12", "2024-05-10T13"]
    assert store.load().historical == document.historical


@pytest.mark.asyncio
async def test_run_cycle_reports_crashed_probe(targets, prober, store, now):
    """Test that a target whose probe raised is reported but not recorded."""
    service = StatusService(targets, FleetChecker(CountingProber(prober, failing_id="gamma")), store)

    document = await service.run_cycle(now)

    gamma = document.sites[2]
    assert gamma.id == "gamma"
    assert gamma.status == SiteStatus.UNKNOWN
    assert document.metrics.sites_with_issues[0].id == "gamma"
    assert "gamma" not in document.historical.hourly


@pytest.mark.asyncio
async def test_get_status_served_from_cache(service, counting_prober):
    """Test that a second request within the TTL does not probe again."""
    first = await service.get_status()
    second = await service.get_status()

    assert len(counting_prober.calls) == 3
    assert second.last_checked == first.last_checked
    assert [site.id for site in second.sites] == ["alpha", "beta", "gamma"]
    assert second.overall == SiteStatus.OPERATIONAL


@pytest.mark.asyncio
async def test_get_status_force_refresh(service, counting_prober):
    """Test that a forced refresh bypasses the cache."""
    await service.get_status()
    await service.get_status(force_refresh=True)

    assert len(counting_prober.calls) == 6


@pytest.mark.asyncio
async def test_refresh_invalidates_cache(service, counting_prober, host_responses):
    """Test that refresh runs a new cycle and returns its results."""
    await service.get_status()
    host_responses["alpha.example.com"] = 404

    snapshot = await service.refresh()

    assert len(counting_prober.calls) == 6
    assert snapshot.sites[0].status_text == "Client Error"
    assert snapshot.metrics.status == SiteStatus.DEGRADED


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_cycle(service, counting_prober):
    """Test that requests arriving together do not start overlapping cycles."""
    first, second = await asyncio.gather(service.get_status(), service.get_status())

    assert len(counting_prober.calls) == 3
    assert first.last_checked == second.last_checked


@pytest.mark.asyncio
async def test_get_site_from_cache(service, counting_prober):
    """Test that a single target is answered from a fresh cache."""
    await service.get_status()

    result = await service.get_site("beta")

    assert result.id == "beta"
    assert len(counting_prober.calls) == 3


@pytest.mark.asyncio
async def test_get_site_probes_when_cache_is_empty(service, counting_prober, store):
    """Test that a single target is probed on its own without saving a document."""
    result = await service.get_site("gamma")

    assert result.id == "gamma"
    assert counting_prober.calls == ["gamma"]
    assert not store.exists()


@pytest.mark.asyncio
async def test_get_site_not_found(service):
    with pytest.raises(SiteNotFoundError) as exc_info:
        await service.get_site("nope")

    assert exc_info.value.target_id == "nope"


@pytest.mark.asyncio
async def test_write_failure_keeps_unsaved_history(service, store, now):
    """Test that a failed write is reported and its observations survive to the next cycle."""
    with patch.object(store, "save", side_effect=PersistenceError("disk full")):
        with pytest.raises(PersistenceError):
            await service.run_cycle(now)

    assert service.has_unsaved_changes
    assert not store.exists()
    # The results of the failed cycle are still served
    assert service.cache.get_site("alpha") is not None

    document = await service.run_cycle(now + timedelta(minutes=1))

    assert not service.has_unsaved_changes
    assert document.historical.daily["alpha"]["2024-05-10"].checks == 2
    assert store.load() == document


@pytest.mark.asyncio
async def test_get_document_before_first_cycle(service):
    """Test that no document is served before a cycle was saved."""
    with pytest.raises(NoStatusDataError):
        service.get_document()


@pytest.mark.asyncio
async def test_get_document_after_cycle(service, now):
    await service.run_cycle(now)

    document = service.get_document()

    assert document.has_data
    assert document.last_checked == now


@pytest.mark.asyncio
async def test_get_site_history(service, now):
    """Test the history query for checked, unchecked and unknown targets."""
    await service.run_cycle(now)

    history = service.get_site_history("alpha")
    assert [point.timestamp for point in history.hourly_data] == ["2024-05-10T12"]
    assert history.availability == 100

    with pytest.raises(SiteNotFoundError):
        service.get_site_history("nope")


def test_get_site_history_without_data(service):
    history = service.get_site_history("beta")

    assert history.hourly_data == []
    assert history.daily_data == []
    assert history.availability == 100


def test_duplicate_target_ids_rejected(prober, store):
    targets = [
        Target(id="same", name="One", url="https://one.example.com"),
        Target(id="same", name="Two", url="https://two.example.com"),
    ]

    with pytest.raises(ConfigurationError):
        StatusService(targets, FleetChecker(prober), store)


@pytest.mark.asyncio
async def test_empty_target_list(prober, store, now):
    """Test that a fleet without targets produces an operational document."""
    service = StatusService([], FleetChecker(prober), store)

    document = await service.run_cycle(now)

    assert document.sites == []
    assert document.metrics.operational_percentage == 100
    assert document.overall == SiteStatus.OPERATIONAL


@pytest.mark.asyncio
async def test_run_cycle_with_naive_time(service, counting_prober):
    """Test that a cycle run with a naive timestamp can still be served from the cache."""
    await service.run_cycle(datetime.now(timezone.utc).replace(tzinfo=None))

    snapshot = await service.get_status()

    assert snapshot.last_checked.tzinfo is not None
    assert len(counting_prober.calls) == 3
