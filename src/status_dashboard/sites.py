"""Static configuration of the monitored targets."""

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Optional, Sequence, Union

from pydantic import TypeAdapter, ValidationError

from .models import Target

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when the target configuration is invalid."""


DEFAULT_TARGETS: tuple[Target, ...] = (
    Target(
        id="projects",
        name="Real-Time Projects Hub",
        description="Hands-on DevOps projects from beginner to advanced",
        url="https://projects.prodevopsguytech.com",
        icon="💻",
    ),
    Target(
        id="docs",
        name="Ultimate Docs Portal",
        description="900+ curated DevOps learning materials",
        url="https://docs.prodevopsguytech.com",
        icon="📚",
    ),
    Target(
        id="repos",
        name="Repositories Central",
        description="Collection of scripts, infrastructure code & prep content",
        url="https://repos.prodevopsguytech.com",
        icon="📦",
    ),
    Target(
        id="jobs",
        name="Jobs Portal",
        description="Find your next DevOps career opportunity",
        url="https://jobs.prodevopsguytech.com",
        icon="🧭",
    ),
    Target(
        id="blog",
        name="DevOps Blog",
        description="Deep dives into DevOps practices & tutorials",
        url="https://blog.prodevopsguytech.com",
        icon="📰",
    ),
    Target(
        id="cloud",
        name="Cloud Blog",
        description="Cloud architecture & implementation guides",
        url="https://cloud.prodevopsguytech.com",
        icon="☁️",
    ),
    Target(
        id="docker2k8s",
        name="Docker to Kubernetes",
        description="Master containerization journey",
        url="https://dockertokubernetes.live",
        icon="🐳",
    ),
    Target(
        id="devopslab",
        name="DevOps Engineering Lab",
        description="Hands-on CI/CD & automation",
        url="https://www.devops-engineering.site",
        icon="🔬",
    ),
    Target(
        id="toolguides",
        name="DevOps Tool Guides",
        description="Setup & installation guides",
        url="https://www.devopsguides.site",
        icon="🛠️",
    ),
    Target(
        id="cheatsheet",
        name="DevOps Cheatsheet",
        description="Comprehensive tools & practices",
        url="https://cheatsheet.prodevopsguytech.com",
        icon="📑",
    ),
)

_targets_adapter = TypeAdapter(list[Target])


def validate_unique_ids(targets: Sequence[Target]) -> None:
    """Reject target lists that reuse an id.

    Raises:
        ConfigurationError: If any id appears more than once
    """
    duplicates = sorted(target_id for target_id, count in Counter(t.id for t in targets).items() if count > 1)
    if duplicates:
        raise ConfigurationError(f"Duplicate target ids: {', '.join(duplicates)}")


def load_targets(path: Optional[Union[str, Path]] = None) -> list[Target]:
    """Load the target list.

    Args:
        path: JSON file holding a list of targets; the built-in list is used when None

    Returns:
        Validated list of targets

    Raises:
        ConfigurationError: If the file cannot be read or holds invalid targets
    """
    if path is None:
        targets = list(DEFAULT_TARGETS)
        logger.info(f"Using built-in targets - count: {len(targets)}")
    else:
        config_file = Path(path)
        try:
            with config_file.open(encoding="utf-8") as f:
                data = json.load(f)
            targets = _targets_adapter.validate_python(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Failed to load targets from {config_file}: {e}")
            raise ConfigurationError(f"Invalid target configuration in {config_file}: {e}") from e
        logger.info(f"Loaded {len(targets)} targets from {config_file}")

    validate_unique_ids(targets)
    return targets
