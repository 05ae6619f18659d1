"""Main FastAPI application for the status dashboard."""

import asyncio
import contextlib
import logging
import time
from datetime import datetime, timezone
from typing import Optional, Union

from fastapi import FastAPI, HTTPException, Query, status
from fastapi.responses import JSONResponse

from .config import config
from .models import CheckResult, HealthResponse, SiteHistory, StatusSnapshot, Target
from .service import NoStatusDataError, SiteNotFoundError, StatusService, create_service
from .storage import PersistenceError

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Status Dashboard",
    description="Probes a fixed list of HTTP endpoints and reports their health and history",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Initialize the status service
service = create_service()


def reset_service(new_service: Optional[StatusService] = None) -> None:
    """Replace the status service, for testing purposes."""
    global service
    service = new_service or create_service()


# Track application start time for uptime calculation
app_start_time = time.time()

# Background task running check cycles
check_task: Optional[asyncio.Task] = None

logger.info("Status Dashboard application starting - version: 0.1.0")


async def check_cycle_loop() -> None:
    """Background task to periodically run check cycles."""
    interval = config.check_interval_seconds
    logger.info(f"Starting check cycle loop - interval: {interval}s")

    while True:
        try:
            await service.run_cycle()
        except asyncio.CancelledError:
            logger.info("Check cycle loop cancelled")
            raise
        except PersistenceError as e:
            logger.error(f"Check cycle could not be persisted: {str(e)}")
        except Exception as e:
            logger.error(f"Error in check cycle loop: {str(e)}", exc_info=True)

        await asyncio.sleep(interval)


@app.on_event("startup")
async def startup_event() -> None:
    """Handle application startup."""
    global check_task

    if config.background_checks_enabled:
        check_task = asyncio.create_task(check_cycle_loop())
        logger.info("Started background check cycle loop")
    else:
        logger.info("Background checks disabled - cycles run on demand only")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Handle application shutdown."""
    logger.info("Status Dashboard shutting down")

    if check_task:
        check_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await check_task

    await service.close()


def _not_found(e: SiteNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _persistence_failed(e: PersistenceError) -> HTTPException:
    logger.error(f"Status request failed to persist - error: {str(e)}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Status check completed but the status data could not be saved",
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint for the status dashboard itself.

    Returns:
        HealthResponse: Current health status and metrics
    """
    current_time = datetime.now(timezone.utc)
    uptime = time.time() - app_start_time

    logger.debug(f"Health check requested - uptime: {uptime:.2f}s, targets: {len(service.targets)}")

    return HealthResponse(
        status="degraded" if service.has_unsaved_changes else "healthy",
        timestamp=current_time,
        uptime_seconds=uptime,
        monitored_sites=len(service.targets),
        last_checked=service.cache.last_checked,
    )


@app.get("/api/status", response_model=None)
async def get_status(
    refresh: bool = False, site_id: Optional[str] = Query(None, alias="siteId")
) -> Union[StatusSnapshot, dict[str, CheckResult]]:
    """Current status of all targets with health metrics, or of one target with ``siteId``.

    Raises:
        HTTPException: 404 for an unknown site, 500 if a new cycle could not be saved
    """
    logger.debug(f"Status requested - refresh: {refresh}, site_id: {site_id}")
    try:
        if site_id is not None:
            return {"site": await service.get_site(site_id, force_refresh=refresh)}
        return await service.get_status(force_refresh=refresh)
    except SiteNotFoundError as e:
        raise _not_found(e) from e
    except PersistenceError as e:
        raise _persistence_failed(e) from e


@app.get("/api/status/{site_id}", response_model=CheckResult)
async def get_site_status(site_id: str, refresh: bool = False) -> CheckResult:
    """Current status of one target.

    Raises:
        HTTPException: If the site is not configured
    """
    try:
        return await service.get_site(site_id, force_refresh=refresh)
    except SiteNotFoundError as e:
        raise _not_found(e) from e


@app.post("/api/status/refresh", response_model=StatusSnapshot)
async def refresh_status() -> StatusSnapshot:
    """Run a fresh check cycle now."""
    logger.info("Forced status refresh requested")
    try:
        return await service.refresh()
    except PersistenceError as e:
        raise _persistence_failed(e) from e


@app.get("/api/history/{site_id}", response_model=SiteHistory)
async def get_site_history(site_id: str) -> SiteHistory:
    """Hourly and daily history of one target.

    Raises:
        HTTPException: If the site is not configured
    """
    try:
        return service.get_site_history(site_id)
    except SiteNotFoundError as e:
        raise _not_found(e) from e


@app.get("/api/static-status")
async def get_static_status() -> JSONResponse:
    """The last persisted status document.

    Raises:
        HTTPException: 503 if no document has been generated yet
    """
    try:
        document = service.get_document()
    except NoStatusDataError as e:
        logger.warning("Static status requested before any document was saved")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Status data has not been generated yet. Please wait for the next check cycle.",
        ) from e

    content = document.model_dump(mode="json", by_alias=True)
    content["source"] = "static"
    content["servedAt"] = datetime.now(timezone.utc).isoformat()
    return JSONResponse(content=content, headers={"Cache-Control": "public, max-age=60, s-maxage=120"})


@app.get("/api/targets", response_model=list[Target])
async def get_targets() -> list[Target]:
    """Configured targets."""
    return service.targets


@app.exception_handler(Exception)
async def global_exception_handler(request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors.

    Args:
        request: FastAPI request object
        exc: Exception that was raised

    Returns:
        JSONResponse: Error response
    """
    logger.error(
        f"Unhandled exception - path: {request.url.path}, method: {request.method}, error: {str(exc)}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Status Dashboard server - host: 0.0.0.0, port: 8000")
    uvicorn.run(app, host="0.0.0.0", port=8000)
