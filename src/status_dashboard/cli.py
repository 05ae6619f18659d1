"""Command line entry point: offline check cycles, document analysis and the API server."""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from .analysis import analyze_document, render_report
from .config import StatusDashboardConfig, config
from .service import create_service
from .storage import JsonDocumentStore, PersistenceError

logger = logging.getLogger(__name__)


async def _check_once(settings: StatusDashboardConfig) -> int:
    service = create_service(settings)
    try:
        document = await service.run_cycle()
    except PersistenceError as e:
        logger.error(f"Status check failed - error: {str(e)}")
        return 1
    finally:
        await service.close()

    for site in document.sites:
        print(f"Checked {site.name}: {site.status.value} ({site.response_time}ms)")
    print(
        f"Overall: {document.overall.value}, operational: {document.metrics.operational_percentage}%, "
        f"saved to {settings.data_file}"
    )
    return 0


def run_check(settings: StatusDashboardConfig) -> int:
    """Run one check cycle and persist it. Returns the process exit code."""
    return asyncio.run(_check_once(settings))


def run_analyze(settings: StatusDashboardConfig) -> int:
    """Print an analysis of the persisted document. Returns the process exit code."""
    store = JsonDocumentStore(settings.data_file)
    file_stat = store.stat()
    if file_stat is None:
        print(f"Error: Status data file not found at {settings.data_file}")
        return 1

    document = store.load()
    report = analyze_document(
        document,
        file_size=file_stat.size,
        hourly_retention_hours=settings.retention.hourly_hours,
        daily_retention_days=settings.retention.daily_days,
    )
    last_check = document.timestamp.isoformat() if document.timestamp else None
    print(f"Path: {settings.data_file}")
    print(f"Last Modified: {file_stat.modified.isoformat()}")
    print(render_report(report, last_check=last_check))
    return 0


def run_server(host: str, port: int, log_level: str, reload: bool) -> int:
    """Start the API server with uvicorn."""
    import uvicorn

    logger.info(f"Starting Status Dashboard server - host: {host}, port: {port}, reload: {reload}")
    try:
        uvicorn.run("status_dashboard.main:app", host=host, port=port, log_level=log_level, reload=reload)
    except Exception as e:
        logger.error(f"Failed to start server - error: {str(e)}", exc_info=True)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="status-dashboard", description="Status Dashboard")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        default=config.log_level.lower(),
        help="Logging level (default: from LOG_LEVEL)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Probe all targets once and update the status data file")
    check.add_argument("--data-file", help="Status data file (default: from STATUS_DATA_FILE)")

    analyze = subparsers.add_parser("analyze", help="Summarize the status data file")
    analyze.add_argument("--data-file", help="Status data file (default: from STATUS_DATA_FILE)")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0", help="Host to bind the server to (default: 0.0.0.0)")
    serve.add_argument("--port", type=int, default=8000, help="Port to bind the server to (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the status dashboard command line."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
    )

    settings = config
    if getattr(args, "data_file", None):
        settings = config.model_copy(update={"data_file": args.data_file})

    if args.command == "check":
        code = run_check(settings)
    elif args.command == "analyze":
        code = run_analyze(settings)
    else:
        code = run_server(args.host, args.port, args.log_level, args.reload)
    sys.exit(code)


if __name__ == "__main__":
    main()
