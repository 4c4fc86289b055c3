from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import urlparse

from prostore.errors import ValidationError

DEFAULT_MEDIA_ROOT = "uploads"
DEFAULT_MEDIA_URL = "/media"
DEFAULT_PUBLIC_BASE_URL = "http://127.0.0.1:8000"

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}
MAX_IMAGE_BYTES = 5 * 1024 * 1024

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xFF\xD8\xFF"
GIF_SIGNATURES = (b"GIF87a", b"GIF89a")
RIFF_SIGNATURE = b"RIFF"
WEBP_SIGNATURE = b"WEBP"


def media_root() -> Path:
    return Path(os.getenv("MEDIA_ROOT", DEFAULT_MEDIA_ROOT)).resolve()


def media_url() -> str:
    return os.getenv("MEDIA_URL", DEFAULT_MEDIA_URL).rstrip("/")


def public_base_url() -> str:
    return os.getenv("PUBLIC_BASE_URL", DEFAULT_PUBLIC_BASE_URL).rstrip("/")


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def build_public_url(relative_path: str) -> str:
    return f"{public_base_url()}{media_url()}/{relative_path.lstrip('/')}"


def resolve_media_path_from_url(url: str) -> Path | None:
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    prefix = media_url()
    if not parsed.path.startswith(prefix):
        return None
    rel = parsed.path[len(prefix):].lstrip("/")
    if not rel:
        return None
    try:
        resolved = (media_root() / rel).resolve()
        root = media_root()
    except OSError:
        return None
    # never resolve outside the media root
    if root == resolved or root in resolved.parents:
        return resolved
    return None


def detect_image_extension(contents: bytes) -> str | None:
    if contents.startswith(PNG_SIGNATURE):
        return "png"
    if contents.startswith(JPEG_SIGNATURE):
        return "jpg"
    if contents.startswith(GIF_SIGNATURES):
        return "gif"
    if contents.startswith(RIFF_SIGNATURE) and contents[8:12] == WEBP_SIGNATURE:
        return "webp"
    return None


def expected_image_extension(content_type: str | None, filename: str | None) -> str | None:
    ext = ALLOWED_IMAGE_TYPES.get((content_type or "").lower())
    if ext:
        return ext
    name = (filename or "").lower()
    for suffix, candidate in ((".jpg", "jpg"), (".jpeg", "jpg"), (".png", "png"), (".webp", "webp"), (".gif", "gif")):
        if name.endswith(suffix):
            return candidate
    return None


def validate_image(contents: bytes, content_type: str | None, filename: str | None) -> str:
    """Returns the file extension for an accepted image upload."""
    expected_ext = expected_image_extension(content_type, filename)
    if not expected_ext:
        raise ValidationError("Unsupported image type. Only images are allowed.")
    if not contents:
        raise ValidationError("Empty image file")
    if len(contents) > MAX_IMAGE_BYTES:
        raise ValidationError("Image too large (max 5MB)")
    detected_ext = detect_image_extension(contents)
    if detected_ext != expected_ext:
        raise ValidationError("Invalid image file")
    return detected_ext
