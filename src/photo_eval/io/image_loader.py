"""Validation and encoding of uploaded photos."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from pathlib import Path

ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"})
MAX_IMAGE_BYTES = 12 * 1024 * 1024

SUFFIX_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".heif": "image/heif",
}


class ImageValidationError(ValueError):
    pass


@dataclass(frozen=True)
class ImagePayload:
    data: bytes
    mime_type: str
    filename: str = "photo"

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("utf-8")
        return f"data:{self.mime_type or 'image/jpeg'};base64,{encoded}"


def validate_upload(
    data: bytes | None,
    mime_type: str | None,
    filename: str | None = None,
    max_bytes: int = MAX_IMAGE_BYTES,
) -> ImagePayload:
    if data is None:
        raise ImageValidationError("no file")
    mime = (mime_type or "").split(";")[0].strip().lower()
    if mime not in ALLOWED_MIME_TYPES:
        raise ImageValidationError("unsupported image type")
    if len(data) > max_bytes:
        raise ImageValidationError("image too large")
    if not data:
        raise ImageValidationError("empty image")
    return ImagePayload(data=data, mime_type=mime, filename=filename or "photo")


def load_image_file(path: Path, max_bytes: int = MAX_IMAGE_BYTES) -> ImagePayload:
    if not path.exists() or not path.is_file():
        raise FileNotFoundError(f"Image not found: {path}")
    mime = SUFFIX_MIME_TYPES.get(path.suffix.lower())
    return validate_upload(path.read_bytes(), mime, filename=path.name, max_bytes=max_bytes)
