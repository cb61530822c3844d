"""
storage/local.py -- Local filesystem storage for uploaded attachments.

Files are written under UPLOAD_DIR (default public/uploads) and referenced in
the database by their public relative path, e.g.

    /uploads/findings/inspection_report_1760870400123_a1b2c3d4.pdf

asgi.py serves UPLOAD_DIR as static files at /uploads, so the stored path is
also the download URL.

Upload rules: only the extensions in ALLOWED_EXTENSIONS, at most
max_bytes per file. Violations raise ValidationError before anything is
written.

Deletion is best effort. A missing file or an OS error is logged at WARNING
and swallowed; delete() reports whether a file was actually removed. Callers
remove the database row first, so an orphaned file is the only possible
inconsistency.
"""

import logging
import re
import secrets
import time
from pathlib import Path
from typing import Optional

from core.errors import ValidationError

logger = logging.getLogger("auditmonitor.storage")

ALLOWED_EXTENSIONS = frozenset({".pdf", ".doc", ".docx", ".xls", ".xlsx", ".jpg", ".jpeg", ".png"})

PUBLIC_PREFIX = "/uploads"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(name: str) -> str:
    """Reduce a client-supplied filename to a safe stem of [A-Za-z0-9._-]."""
    stem = Path(name.replace("\\", "/")).stem
    stem = _UNSAFE_CHARS.sub("_", stem).strip("._")
    return stem[:100] or "file"


class LocalFileStorage:
    def __init__(self, base_dir: str, max_bytes: int) -> None:
        self.base_dir = Path(base_dir)
        self.max_bytes = max_bytes
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def validate(self, file_name: Optional[str], size: int) -> str:
        """Check extension and size. Returns the lowercased extension."""
        if not file_name:
            raise ValidationError("Uploaded file has no name.")
        ext = Path(file_name).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                f"File type '{ext or file_name}' is not allowed.",
                details={"allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        if size > self.max_bytes:
            raise ValidationError(f"File '{file_name}' exceeds the {self.max_bytes // (1024 * 1024)} MB limit.")
        if size == 0:
            raise ValidationError(f"File '{file_name}' is empty.")
        return ext

    def save(self, subdir: str, file_name: str, data: bytes) -> str:
        """Validate and write `data`; return the public relative path."""
        ext = self.validate(file_name, len(data))
        unique = f"{sanitize_filename(file_name)}_{int(time.time() * 1000)}_{secrets.token_hex(4)}{ext}"
        target_dir = self.base_dir / sanitize_filename(subdir)
        target_dir.mkdir(parents=True, exist_ok=True)
        (target_dir / unique).write_bytes(data)
        return f"{PUBLIC_PREFIX}/{target_dir.name}/{unique}"

    def _resolve(self, public_path: str) -> Optional[Path]:
        """Map a public path back to a file under base_dir, or None if it escapes it."""
        key = public_path
        if key.startswith(PUBLIC_PREFIX + "/"):
            key = key[len(PUBLIC_PREFIX) + 1 :]
        key = key.lstrip("/").replace("\\", "/")
        path = (self.base_dir / key).resolve()
        if not path.is_relative_to(self.base_dir.resolve()):
            return None
        return path

    def delete(self, public_path: str) -> bool:
        """Best-effort removal. Never raises; failures are logged."""
        path = self._resolve(public_path)
        if path is None:
            logger.warning("Refusing to delete %s: outside the upload directory", public_path)
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("Attachment file already missing: %s", public_path)
            return False
        except OSError as exc:
            logger.warning("Could not delete attachment file %s: %s", public_path, exc)
            return False
        return True
