"""Tests for the fleet checker."""

import asyncio

import httpx
import pytest

from status_dashboard.checker import FleetChecker, unknown_result
from status_dashboard.models import SiteStatus


class ExplodingProber:
    """Prober double that raises for one target id."""

    def __init__(self, inner, failing_id: str) -> None:
        self.inner = inner
        self.failing_id = failing_id

    async def probe(self, target):
        if target.id == self.failing_id:
            raise RuntimeError("probe crashed")
        return await self.inner.probe(target)

    async def close(self) -> None:
        await self.inner.close()


@pytest.mark.asyncio
async def test_check_all_returns_one_result_per_target(prober, targets, host_responses):
    """Test that every target gets a result, whatever its outcome."""
    host_responses["beta.example.com"] = 500
    host_responses["gamma.example.com"] = httpx.ConnectError

    checker = FleetChecker(prober)
    results = await checker.check_all(targets)
    await prober.close()

    by_id = {result.id: result for result in results}
    assert set(by_id) == {"alpha", "beta", "gamma"}
    assert by_id["alpha"].status == SiteStatus.OPERATIONAL
    assert by_id["beta"].status_text == "Server Error"
    assert by_id["gamma"].status_text == "Connection Failed"


@pytest.mark.asyncio
async def test_check_all_empty_targets(prober):
    """Test that an empty configuration is not an error."""
    checker = FleetChecker(prober)
    assert await checker.check_all([]) == []


@pytest.mark.asyncio
async def test_check_all_reports_crashed_probe_as_unknown(prober, targets):
    """Test that a probe raising an exception is not silently omitted."""
    checker = FleetChecker(ExplodingProber(prober, failing_id="beta"))
    results = await checker.check_all(targets)
    await prober.close()

    assert len(results) == 3
    crashed = next(result for result in results if result.id == "beta")
    assert crashed.status == SiteStatus.UNKNOWN
    assert crashed.status_text == "Check Failed"
    assert crashed.error == "probe crashed"
    assert crashed.status_code is None


@pytest.mark.asyncio
async def test_check_all_runs_probes_concurrently(targets):
    """Test that a slow target does not delay the start of the others."""
    started: list[str] = []
    release = asyncio.Event()

    class BlockingProber:
        async def probe(self, target):
            started.append(target.id)
            if len(started) == len(targets):
                release.set()
            await asyncio.wait_for(release.wait(), timeout=1)
            return unknown_result(target, "blocked")

    results = await FleetChecker(BlockingProber()).check_all(targets)

    assert sorted(started) == ["alpha", "beta", "gamma"]
    assert len(results) == 3


@pytest.mark.asyncio
async def test_check_one(prober, targets, host_responses):
    """Test probing a single target."""
    host_responses["alpha.example.com"] = 404

    result = await FleetChecker(prober).check_one(targets[0])
    await prober.close()

    assert result.status == SiteStatus.DEGRADED
    assert result.status_text == "Client Error"
