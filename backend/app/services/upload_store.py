"""Disk-backed store for uploaded user images."""
from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path, PurePosixPath

from fastapi import UploadFile

from app.core.exceptions import StorageError, UnsupportedMediaError
from app.core.file_utils import sanitize_filename

LOGGER = logging.getLogger(__name__)


class UploadStore:
    """Writes image uploads into a single flat directory.

    Stored files are referenced by a relative path such as
    ``/uploads/1700000000000-avatar.png``; the same prefix is used to mount the
    directory for static retrieval.
    """

    def __init__(self, directory: Path, url_prefix: str = "/uploads") -> None:
        self.directory = Path(directory)
        self.url_prefix = "/" + url_prefix.strip("/")

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def generate_name(self, original_filename: str) -> str:
        timestamp_ms = int(time.time() * 1000)
        return f"{timestamp_ms}-{sanitize_filename(original_filename)}"

    def save(self, upload: UploadFile) -> str:
        """Validate and write ``upload``; return its relative path."""
        content_type = upload.content_type or ""
        if not content_type.startswith("image/"):
            LOGGER.info("Rejected upload %r with content type %r", upload.filename, content_type)
            raise UnsupportedMediaError()

        name = self.generate_name(upload.filename or "")
        dest_path = self.directory / name
        try:
            upload.file.seek(0)
            with dest_path.open("wb") as fh:
                shutil.copyfileobj(upload.file, fh)
        except OSError as exc:
            LOGGER.error("Failed to write upload to %s: %s", dest_path, exc, exc_info=True)
            raise StorageError(f"Failed to store uploaded file: {exc}") from exc

        LOGGER.info("Stored upload %s (%s)", name, content_type)
        return f"{self.url_prefix}/{name}"

    def resolve(self, image_ref: str) -> Path:
        # Only the final component is trusted, whatever the stored value contains.
        name = PurePosixPath(image_ref.replace("\\", "/")).name
        return self.directory / name

    def discard(self, image_ref: str) -> None:
        path = self.resolve(image_ref)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            LOGGER.warning("Could not remove orphaned upload %s: %s", path, exc)
            return
        LOGGER.info("Removed upload %s", path.name)
