"""Status Dashboard - periodic HTTP health probes with rolling history.

This package probes a fixed list of HTTP endpoints, classifies their health
into operational, degraded and outage, keeps 24 hours of hourly and 7 days of
daily history per endpoint in a single JSON document, and serves current
status, metrics and history through a FastAPI application.

Key Features:
- Concurrent HTTP probes with timeout and TLS leniency
- System-wide health metrics per check cycle
- Bounded hourly/daily history with automatic eviction
- Atomic persistence of the status document
- Cached JSON API and an offline updater

Example:
    Running one check cycle from code:

    ```python
    import asyncio
    from status_dashboard.service import create_service

    document = asyncio.run(create_service().run_cycle())
    ```
"""

__version__ = "0.1.0"

# Make key classes available at package level
from .aggregator import aggregate
from .history import merge_check
from .models import CheckResult, HealthMetrics, SiteStatus, StatusDocument, Target
from .prober import classify_response
from .storage import JsonDocumentStore

__all__ = [
    "aggregate",
    "merge_check",
    "classify_response",
    "CheckResult",
    "HealthMetrics",
    "SiteStatus",
    "StatusDocument",
    "Target",
    "JsonDocumentStore",
]
