"""Local file storage for uploaded avatars and readme files."""

import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path, PurePath
from typing import NamedTuple

from shareai.core.config import Settings
from shareai.core.errors import ValidationError

logger = logging.getLogger(__name__)

AVATARS = "avatars"
READMES = "readme"

# Per-purpose allow-lists: accepted content types and extensions.
ALLOWED_CONTENT_TYPES = {
    AVATARS: frozenset({"image/jpeg", "image/png", "image/gif"}),
    READMES: frozenset({"text/markdown", "text/x-markdown", "text/plain"}),
}
ALLOWED_EXTENSIONS = {
    AVATARS: frozenset({".jpg", ".jpeg", ".png", ".gif"}),
    READMES: frozenset({".md", ".markdown", ".txt"}),
}


class UploadedFile(NamedTuple):
    """File content received from a multipart request."""

    filename: str
    content_type: str
    data: bytes


def _is_absolute_url(path: str) -> bool:
    return path.startswith("http://") or path.startswith("https://")


class FileStorage:
    """
    Stores files under ``<root>/<purpose>/`` as ``<YYYYMMDD>_<uuid4><ext>``.

    Paths handed back to callers are relative to root (``avatars/2025..._x.png``)
    and are what the database stores; ``url`` turns them into public URLs.
    """

    def __init__(self, root: str | Path, base_url: str, max_bytes: int) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileStorage":
        return cls(settings.UPLOAD_DIR, settings.PUBLIC_BASE_URL, settings.MAX_UPLOAD_BYTES)

    def _validate(self, upload: UploadedFile, purpose: str) -> str:
        if purpose not in ALLOWED_EXTENSIONS:
            raise ValueError(f"unknown upload purpose: {purpose}")
        if not upload.data:
            raise ValidationError("uploaded file is empty")
        if len(upload.data) > self.max_bytes:
            raise ValidationError(
                f"file size exceeds maximum limit of {self.max_bytes} bytes"
            )
        ext = PurePath(upload.filename or "").suffix.lower()
        content_type = (upload.content_type or "").split(";")[0].strip().lower()
        if content_type not in ALLOWED_CONTENT_TYPES[purpose] and (
            ext not in ALLOWED_EXTENSIONS[purpose]
        ):
            raise ValidationError("file type not allowed")
        if ext not in ALLOWED_EXTENSIONS[purpose]:
            ext = ""
        return ext

    def save(self, upload: UploadedFile, purpose: str) -> str:
        """Validate and write the file; return its path relative to the storage root."""
        ext = self._validate(upload, purpose)
        directory = self.root / purpose
        directory.mkdir(parents=True, exist_ok=True)
        filename = f"{datetime.now(UTC):%Y%m%d}_{uuid.uuid4()}{ext}"
        (directory / filename).write_bytes(upload.data)
        logger.info("Stored upload purpose=%s file=%s bytes=%s", purpose, filename, len(upload.data))
        return f"{purpose}/{filename}"

    def delete(self, path: str) -> None:
        """Remove a stored file. Empty references, absolute URLs and missing files are ignored."""
        if not path or _is_absolute_url(path):
            return
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            logger.warning("Refusing to delete file outside upload root: %s", path)
            return
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not delete stored file %s: %s", path, e)

    def url(self, path: str) -> str:
        """Public URL for a stored path; absolute URLs are returned unchanged."""
        if not path:
            return ""
        if _is_absolute_url(path):
            return path
        return f"{self.base_url}/uploads/{path}"
