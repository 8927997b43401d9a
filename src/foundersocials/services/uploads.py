"""Avatar upload handling.

Files are stored in ``UPLOAD_DIR`` under a random name prefixed with the
owner's id and served by the static mount at ``/uploads``.
"""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path

from foundersocials.core.settings import settings

UPLOAD_URL_PREFIX = "/uploads"
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
ALLOWED_MIME_TYPES = {
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
}


def upload_dir() -> Path:
    return Path(settings.upload_dir)


def ensure_upload_dir() -> None:
    """Create the upload directory if it doesn't exist."""
    upload_dir().mkdir(parents=True, exist_ok=True)


async def save_upload(
    owner_id: int, filename: str, content: bytes, content_type: str | None = None
) -> str:
    """Validate and persist an uploaded image.

    Returns:
        URL path to the saved file (e.g. ``/uploads/7-abc123.png``).

    Raises:
        ValueError: If the file is empty, too large or not an allowed image type.
    """
    if not content:
        raise ValueError("No file uploaded")
    if len(content) > settings.max_upload_bytes:
        raise ValueError(
            f"File too large: {len(content)} bytes "
            f"(max {settings.max_upload_bytes // 1024 // 1024}MB)"
        )

    ext = Path(filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise ValueError(
            f"File type not allowed: {ext!r}. "
            f"Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )

    if content_type and content_type not in ALLOWED_MIME_TYPES:
        raise ValueError(f"MIME type not allowed: {content_type!r}")

    ensure_upload_dir()
    unique_name = f"{owner_id}-{uuid.uuid4().hex}{ext}"
    dest = upload_dir() / unique_name

    # Offload blocking file I/O to a thread to avoid stalling the event loop
    await asyncio.to_thread(dest.write_bytes, content)

    return f"{UPLOAD_URL_PREFIX}/{unique_name}"


def delete_upload(url_path: str | None, owner_id: int) -> bool:
    """Remove a file previously uploaded by ``owner_id``; returns True if it existed.

    Paths naming another user's file are left alone.
    """
    if not url_path or not url_path.startswith(f"{UPLOAD_URL_PREFIX}/"):
        return False
    name = url_path.rsplit("/", 1)[-1]
    if not name.startswith(f"{owner_id}-"):
        return False
    filepath = upload_dir() / name
    if filepath.exists() and filepath.is_file():
        filepath.unlink()
        return True
    return False
