"""Concurrent checking of the whole target fleet."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Sequence

from .models import CheckResult, SiteStatus, Target
from .prober import Prober

logger = logging.getLogger(__name__)


def unknown_result(target: Target, error: str) -> CheckResult:
    """Placeholder for a target whose probe produced no result."""
    return CheckResult.for_target(
        target,
        status=SiteStatus.UNKNOWN,
        status_text="Check Failed",
        status_code=None,
        response_time=0,
        error=error,
        last_checked=datetime.now(timezone.utc),
    )


class FleetChecker:
    """Runs the prober over all targets concurrently."""

    def __init__(self, prober: Prober) -> None:
        self.prober = prober

    async def check_one(self, target: Target) -> CheckResult:
        """Probe a single target."""
        return await self.prober.probe(target)

    async def check_all(self, targets: Sequence[Target]) -> list[CheckResult]:
        """Probe every target concurrently and wait for all of them.

        Every target gets exactly one result. A probe that raised instead of
        resolving is reported as an ``unknown`` result. Callers match results
        to targets by id.

        Args:
            targets: Targets to probe

        Returns:
            List of check results, empty if the checks could not be started
        """
        if not targets:
            logger.info("No targets configured - skipping fleet check")
            return []

        logger.info(f"Starting fleet check - targets: {len(targets)}")
        try:
            outcomes = await asyncio.gather(
                *(self.prober.probe(target) for target in targets), return_exceptions=True
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Fleet check failed to run: {str(e)}", exc_info=True)
            return []

        results: list[CheckResult] = []
        for target, outcome in zip(targets, outcomes):
            if isinstance(outcome, CheckResult):
                results.append(outcome)
            elif isinstance(outcome, asyncio.CancelledError):
                raise outcome
            else:
                logger.error(f"Probe raised for {target.id}: {outcome!r}")
                results.append(unknown_result(target, str(outcome) or type(outcome).__name__))

        issues = sum(1 for result in results if result.status != SiteStatus.OPERATIONAL)
        logger.info(f"Fleet check finished - targets: {len(results)}, with_issues: {issues}")
        return results
