"""
Uploaded image storage
Images are written under the uploads directory and served from a fixed prefix.
"""

import logging
import time
import uuid
from pathlib import Path
from typing import Optional

from civiclens.core.config import settings

logger = logging.getLogger(__name__)


class ImageStore:
    """Filesystem store for report photos."""

    def __init__(
        self,
        directory: Optional[str] = None,
        url_prefix: Optional[str] = None
    ):
        self.directory = Path(directory or settings.uploads_dir)
        self.url_prefix = (url_prefix or settings.uploads_url_prefix).rstrip("/")
        self.directory.mkdir(parents=True, exist_ok=True)

    def save(self, data: bytes, original_filename: Optional[str] = None) -> str:
        """
        Write an image and return its public URL.

        File names are a millisecond timestamp plus a short random suffix,
        keeping the original extension.
        """
        suffix = Path(original_filename or "").suffix.lower()
        filename = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{suffix}"
        path = self.directory / filename
        path.write_bytes(data)

        logger.info(f"Stored image {filename} ({len(data)} bytes)")
        return f"{self.url_prefix}/{filename}"

    def delete(self, url: str) -> None:
        """Remove an image previously returned by save()."""
        path = self.directory / Path(url).name
        path.unlink(missing_ok=True)
        logger.info(f"Removed image {path.name}")
