"""Configuration management for the status dashboard."""

import logging
import os
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class ProbeConfig(BaseModel):
    """Configuration for HTTP probes."""

    timeout_seconds: float = Field(default=10.0, gt=0, description="Per-request timeout in seconds")
    slow_threshold_ms: int = Field(default=3000, ge=0, description="Responses slower than this are degraded")
    verify_tls: bool = Field(default=False, description="Whether to verify TLS certificates of probed targets")
    follow_redirects: bool = Field(default=True, description="Whether redirects are followed before classifying")
    user_agent: str = Field(default="status-dashboard/0.1.0", description="User-Agent header sent with probes")


class RetentionConfig(BaseModel):
    """Retention windows for historical buckets."""

    hourly_hours: int = Field(default=24, ge=1, description="How long hourly buckets are kept")
    daily_days: int = Field(default=7, ge=1, description="How long daily buckets are kept")


class StatusDashboardConfig(BaseModel):
    """Main configuration for the status dashboard."""

    probe: ProbeConfig = Field(default_factory=ProbeConfig, description="Probe configuration")
    retention: RetentionConfig = Field(default_factory=RetentionConfig, description="History retention")
    data_file: str = Field(default="status-data.json", description="Path of the persisted status document")
    targets_file: Optional[str] = Field(default=None, description="Optional JSON file with the target list")
    cache_ttl_seconds: float = Field(default=30.0, ge=0, description="How long a check cycle is served from cache")
    check_interval_seconds: float = Field(default=60.0, gt=0, description="Interval of the background check loop")
    background_checks_enabled: bool = Field(default=True, description="Whether the server runs the check loop")
    log_level: str = Field(default="INFO", description="Logging level")

    @classmethod
    def from_env(cls) -> "StatusDashboardConfig":
        """Create configuration from environment variables."""
        probe = ProbeConfig(
            timeout_seconds=float(os.getenv("PROBE_TIMEOUT_SECONDS", "10")),
            slow_threshold_ms=int(os.getenv("SLOW_RESPONSE_THRESHOLD_MS", "3000")),
            verify_tls=_env_flag("PROBE_VERIFY_TLS", "false"),
            follow_redirects=_env_flag("PROBE_FOLLOW_REDIRECTS", "true"),
        )
        retention = RetentionConfig(
            hourly_hours=int(os.getenv("HOURLY_RETENTION_HOURS", "24")),
            daily_days=int(os.getenv("DAILY_RETENTION_DAYS", "7")),
        )

        config = cls(
            probe=probe,
            retention=retention,
            data_file=os.getenv("STATUS_DATA_FILE", "status-data.json"),
            targets_file=os.getenv("STATUS_TARGETS_FILE") or None,
            cache_ttl_seconds=float(os.getenv("STATUS_CACHE_TTL_SECONDS", "30")),
            check_interval_seconds=float(os.getenv("CHECK_INTERVAL_SECONDS", "60")),
            background_checks_enabled=_env_flag("BACKGROUND_CHECKS_ENABLED", "true"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

        logger.info(
            f"Configuration loaded - data_file: {config.data_file}, "
            f"probe_timeout: {config.probe.timeout_seconds}s, "
            f"retention: {config.retention.hourly_hours}h/{config.retention.daily_days}d"
        )

        return config


# Global configuration instance
config = StatusDashboardConfig.from_env()
