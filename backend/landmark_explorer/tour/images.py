"""Transient in-memory image resources.

The web client works with short-lived object URLs for uploaded photos; this
store plays the same role. ``create`` hands out an opaque ref, ``revoke``
releases the bytes, and a revoked ref can never be fetched again.
"""

from __future__ import annotations

import io
import uuid
from dataclasses import dataclass, field

import structlog
from PIL import Image, UnidentifiedImageError

from landmark_explorer.errors import ValidationError

logger = structlog.get_logger()


@dataclass
class ImageResource:
    ref: str
    data: bytes = field(repr=False)
    mime_type: str


def detect_image_mime(data: bytes) -> str:
    """Return the MIME type of a raster image, or raise ValidationError."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            fmt = img.format
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValidationError("Uploaded file is not a readable image") from exc
    mime_type = Image.MIME.get(fmt or "")
    if not mime_type:
        raise ValidationError(f"Unsupported image format: {fmt}")
    return mime_type


class ImageStore:
    def __init__(self) -> None:
        self._resources: dict[str, ImageResource] = {}

    def create(self, data: bytes, mime_type: str) -> str:
        ref = uuid.uuid4().hex
        self._resources[ref] = ImageResource(ref=ref, data=data, mime_type=mime_type)
        logger.debug("image_resource_created", ref=ref, size_bytes=len(data))
        return ref

    def get(self, ref: str) -> ImageResource | None:
        return self._resources.get(ref)

    def revoke(self, ref: str) -> None:
        if self._resources.pop(ref, None) is not None:
            logger.debug("image_resource_revoked", ref=ref)

    def is_live(self, ref: str) -> bool:
        return ref in self._resources

    def __len__(self) -> int:
        return len(self._resources)
