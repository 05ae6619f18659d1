"""System-wide health metrics over one set of check results."""

import logging
from typing import Sequence

from .models import CheckResult, HealthMetrics, SiteIssue, SiteStatus, round_half_up

logger = logging.getLogger(__name__)


def overall_status(results: Sequence[CheckResult]) -> SiteStatus:
    """Worst status across results.

    An empty result set is operational: with nothing configured, nothing is
    failing.
    """
    worst = SiteStatus.OPERATIONAL
    for result in results:
        if result.status.severity > worst.severity:
            worst = result.status
    return worst


def aggregate(results: Sequence[CheckResult]) -> HealthMetrics:
    """Reduce the results of one check cycle to health metrics.

    Args:
        results: One result per target

    Returns:
        HealthMetrics computed from scratch; ``aggregate([])`` is 100 %
        operational with no issues
    """
    total = len(results)
    operational = [result for result in results if result.status == SiteStatus.OPERATIONAL]

    if total == 0:
        percentage = 100
    else:
        percentage = round_half_up(len(operational) / total * 100)

    if operational:
        average = round_half_up(sum(result.response_time for result in operational) / len(operational))
    else:
        average = 0

    issues = [
        SiteIssue(id=result.id, name=result.name, status=result.status, status_text=result.status_text)
        for result in results
        if result.status != SiteStatus.OPERATIONAL
    ]

    metrics = HealthMetrics(
        status=overall_status(results),
        operational_percentage=percentage,
        average_response_time=average,
        sites_with_issues=issues,
        total_sites=total,
    )
    logger.debug(
        f"Health metrics computed - overall: {metrics.status.value}, operational: {percentage}%, "
        f"issues: {len(issues)}"
    )
    return metrics
