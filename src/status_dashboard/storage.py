"""Persistence of the status document as a single JSON file."""

import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple, Optional, Union

from pydantic import ValidationError

from .models import StatusDocument

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when the status document cannot be written."""


class FileStat(NamedTuple):
    size: int
    modified: datetime


class JsonDocumentStore:
    """Loads and atomically replaces the status document on disk."""

    def __init__(self, path: Union[str, Path]) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON document
        """
        self.path = Path(path)
        logger.info(f"JsonDocumentStore initialized - path: {self.path}")

    def exists(self) -> bool:
        return self.path.exists()

    def stat(self) -> Optional[FileStat]:
        """Size and modification time of the document, None if it does not exist."""
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return None
        return FileStat(size=st.st_size, modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc))

    def load(self) -> StatusDocument:
        """Load the last saved document.

        A missing, unreadable or corrupt file yields an empty document; only
        the latter two are logged as warnings.

        Returns:
            The stored StatusDocument, or StatusDocument.empty()
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info(f"No status document at {self.path}, starting empty")
            return StatusDocument.empty()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read status document {self.path}, starting empty: {e}")
            return StatusDocument.empty()

        try:
            document = StatusDocument.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(
                f"Status document {self.path} is corrupt, starting empty - errors: {e.error_count()}"
            )
            return StatusDocument.empty()

        logger.debug(f"Status document loaded - path: {self.path}, sites: {len(document.sites)}")
        return document

    def save(self, document: StatusDocument) -> None:
        """Write the whole document, replacing the previous one atomically.

        Raises:
            PersistenceError: If the document could not be written
        """
        payload = document.model_dump_json(by_alias=True, indent=2)
        tmp: Optional[Path] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Unique per writer so concurrent processes never share a temporary file
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path.parent, prefix=f"{self.path.name}.", suffix=".tmp", delete=False
            ) as f:
                tmp = Path(f.name)
                f.write(payload)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error(f"Failed to save status document - path: {self.path}, error: {e}", exc_info=True)
            if tmp is not None:
                try:
                    tmp.unlink(missing_ok=True)
                except OSError:
                    logger.warning(f"Could not remove temporary file {tmp}")
            raise PersistenceError(f"Could not write status document to {self.path}: {e}") from e

        logger.info(f"Status document saved - path: {self.path}, size: {len(payload)} bytes")
