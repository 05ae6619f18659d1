"""Shared fixtures for the status dashboard tests."""

from datetime import datetime, timezone
from typing import Callable, Optional

import httpx
import pytest

from status_dashboard.models import CheckResult, Target
from status_dashboard.prober import Prober, classify_response


@pytest.fixture
def targets() -> list[Target]:
    """Three targets on distinct hosts."""
    return [
        Target(id="alpha", name="Alpha", description="First", url="https://alpha.example.com", icon="A"),
        Target(id="beta", name="Beta", description="Second", url="https://beta.example.com", icon="B"),
        Target(id="gamma", name="Gamma", description="Third", url="https://gamma.example.com", icon="C"),
    ]


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 5, 10, 12, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_result() -> Callable[..., CheckResult]:
    """Factory for check results classified the way the prober would."""

    def _make(
        target_id: str = "alpha",
        status_code: Optional[int] = 200,
        response_time: int = 120,
        checked_at: Optional[datetime] = None,
        error: Optional[str] = None,
    ) -> CheckResult:
        status, status_text = classify_response(status_code, response_time)
        return CheckResult(
            id=target_id,
            name=target_id.title(),
            url=f"https://{target_id}.example.com",
            status=status,
            status_text=status_text,
            status_code=status_code,
            response_time=response_time,
            error=error,
            last_checked=checked_at or datetime(2024, 5, 10, 12, 30, tzinfo=timezone.utc),
        )

    return _make


@pytest.fixture
def host_responses() -> dict[str, object]:
    """Per-host behaviour of the mock transport: a status code or an exception to raise."""
    return {}


@pytest.fixture
def mock_transport(host_responses) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        outcome = host_responses.get(request.url.host, 200)
        if isinstance(outcome, type) and issubclass(outcome, httpx.TransportError):
            raise outcome("simulated failure", request=request)
        return httpx.Response(outcome, text="ok")

    return httpx.MockTransport(handler)


@pytest.fixture
def prober(mock_transport) -> Prober:
    return Prober(timeout_seconds=5, slow_threshold_ms=3000, verify_tls=False, transport=mock_transport)
