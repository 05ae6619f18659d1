"""HTTP probing and status classification."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx

from .config import config
from .models import CheckResult, SiteStatus, Target

logger = logging.getLogger(__name__)


def classify_response(
    status_code: Optional[int], response_time_ms: int, slow_threshold_ms: int = 3000
) -> tuple[SiteStatus, str]:
    """Map a probe outcome to a status and its reason.

    Evaluated in order: no status code (connection failure), 5xx, 4xx, slow
    response, 2xx, anything else. A 4xx or 5xx response is classified by its
    code even when it was also slow.

    Args:
        status_code: HTTP status code, or None when no response was received
        response_time_ms: Elapsed time in milliseconds
        slow_threshold_ms: Responses slower than this are degraded

    Returns:
        Tuple of (status, status text)
    """
    if status_code is None:
        return SiteStatus.OUTAGE, "Connection Failed"
    if status_code >= 500:
        return SiteStatus.OUTAGE, "Server Error"
    if status_code >= 400:
        return SiteStatus.DEGRADED, "Client Error"
    if response_time_ms > slow_threshold_ms:
        return SiteStatus.DEGRADED, "Slow Response"
    if 200 <= status_code < 300:
        return SiteStatus.OPERATIONAL, "Operational"
    return SiteStatus.DEGRADED, "Unusual Response"


class Prober:
    """Issues single HTTP GET health probes against targets."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        slow_threshold_ms: Optional[int] = None,
        verify_tls: Optional[bool] = None,
        follow_redirects: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        """Initialize the prober.

        Args:
            timeout_seconds: Per-request timeout, defaults to the configured value
            slow_threshold_ms: Slow-response threshold, defaults to the configured value
            verify_tls: Whether to verify certificates, defaults to the configured value
            follow_redirects: Whether to follow redirects, defaults to the configured value
            transport: Optional httpx transport, used by tests
            clock: Monotonic clock in seconds used to measure response time
        """
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else config.probe.timeout_seconds
        self.slow_threshold_ms = (
            slow_threshold_ms if slow_threshold_ms is not None else config.probe.slow_threshold_ms
        )
        self.verify_tls = verify_tls if verify_tls is not None else config.probe.verify_tls
        self.follow_redirects = follow_redirects if follow_redirects is not None else config.probe.follow_redirects
        self._transport = transport
        self._clock = clock
        self._client: Optional[httpx.AsyncClient] = None
        logger.info(
            f"Prober initialized - timeout: {self.timeout_seconds}s, slow_threshold: {self.slow_threshold_ms}ms, "
            f"verify_tls: {self.verify_tls}"
        )

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self.verify_tls,
                follow_redirects=self.follow_redirects,
                headers={"User-Agent": config.probe.user_agent},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
        logger.info("Prober closed")

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int((self._clock() - started) * 1000))

    async def probe(self, target: Target) -> CheckResult:
        """Probe a target once. Never raises for network failures.

        Args:
            target: The target to probe

        Returns:
            CheckResult for this probe
        """
        client = await self.get_client()
        logger.debug(f"Probing target - id: {target.id}, url: {target.url}")
        started = self._clock()

        try:
            # httpx timeouts apply per read; bound the whole request as well
            response = await asyncio.wait_for(
                client.get(target.url, timeout=self.timeout_seconds), timeout=self.timeout_seconds
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            response_time = self._elapsed_ms(started)
            logger.warning(f"Probe timed out - id: {target.id}, timeout: {self.timeout_seconds}s")
            return self._failure(target, response_time, str(e) or f"Timed out after {self.timeout_seconds}s")
        except httpx.HTTPError as e:
            response_time = self._elapsed_ms(started)
            logger.warning(f"Probe connection error - id: {target.id}, error: {e}")
            return self._failure(target, response_time, str(e) or type(e).__name__)
        except Exception as e:
            response_time = self._elapsed_ms(started)
            logger.error(f"Unexpected error probing {target.id}: {e}", exc_info=True)
            return self._failure(target, response_time, str(e) or type(e).__name__)

        response_time = self._elapsed_ms(started)
        status, status_text = classify_response(response.status_code, response_time, self.slow_threshold_ms)
        logger.debug(
            f"Probe finished - id: {target.id}, status_code: {response.status_code}, "
            f"response_time: {response_time}ms, status: {status.value}"
        )
        return CheckResult.for_target(
            target,
            status=status,
            status_text=status_text,
            status_code=response.status_code,
            response_time=response_time,
            last_checked=datetime.now(timezone.utc),
        )

    def _failure(self, target: Target, response_time: int, error: str) -> CheckResult:
        status, status_text = classify_response(None, response_time, self.slow_threshold_ms)
        return CheckResult.for_target(
            target,
            status=status,
            status_text=status_text,
            status_code=None,
            response_time=response_time,
            error=error,
            last_checked=datetime.now(timezone.utc),
        )
