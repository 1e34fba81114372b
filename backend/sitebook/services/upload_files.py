"""Uploaded files (bill photos, worker ID documents, branding images). Stored under
uploads/{kind}/{owner_id}/..., the DB keeps only the path relative to the upload root."""
import logging
import secrets
from pathlib import Path
from typing import Optional

from sitebook import config as app_config

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".heic"}
DOCUMENT_SUFFIXES = IMAGE_SUFFIXES | {".pdf"}


class UploadError(ValueError):
    pass


def get_upload_base() -> Path:
    """Absolute upload root."""
    base = app_config.settings.upload_dir
    if not base.is_absolute():
        base = app_config.BASE_DIR / base
    return base


def _safe_suffix(filename: Optional[str], allowed: set) -> str:
    suffix = Path(filename or "").suffix.lower()
    if suffix not in allowed:
        raise UploadError(f"Unsupported file type '{suffix or '(none)'}'; allowed: {', '.join(sorted(allowed))}")
    return suffix


def save_upload(
    kind: str,
    owner_id: Optional[int],
    content: bytes,
    filename: Optional[str],
    allowed: set = DOCUMENT_SUFFIXES,
) -> str:
    """
    Write bytes to uploads/{kind}/{owner_id}/{random}{suffix} and return the relative path.
    Raises UploadError for empty, oversized or unsupported files and for disk failures.
    """
    if not content:
        raise UploadError("Uploaded file is empty")
    limit = app_config.settings.max_upload_size_mb * 1024 * 1024
    if len(content) > limit:
        raise UploadError(f"File exceeds {app_config.settings.max_upload_size_mb} MB")
    suffix = _safe_suffix(filename, allowed)
    rel_dir = Path(kind) / (str(owner_id) if owner_id is not None else "shared")
    dest_dir = get_upload_base() / rel_dir
    name = secrets.token_hex(8) + suffix
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        (dest_dir / name).write_bytes(content)
    except OSError as e:
        logger.exception("could not store upload %s/%s", rel_dir, name)
        raise UploadError(f"Could not store file: {e}")
    return (rel_dir / name).as_posix()


def resolve_upload_path(relative_path: str) -> Path:
    """DB relative path -> absolute path; refuses anything that escapes the upload root."""
    if not relative_path:
        raise ValueError("relative_path is empty")
    base = get_upload_base().resolve()
    path = (base / relative_path).resolve()
    if base not in path.parents:
        raise ValueError("path outside upload directory")
    return path
