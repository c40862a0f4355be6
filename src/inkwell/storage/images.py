"""Image attachment validation and storage keys.

Learn: Everything here runs BEFORE any upload is attempted. An image
is rejected outright if its declared content type is not on the
allow-list or if it is larger than the configured ceiling. Keys are
random (uuid4) with an extension derived from the content type, so a
client filename can neither overwrite another object nor traverse
out of the bucket.
"""

import uuid
from dataclasses import dataclass

from starlette.datastructures import UploadFile

from inkwell.errors import ValidationFailed

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


@dataclass(frozen=True)
class ImageUpload:
    """A validated image, ready to hand to a storage backend."""

    data: bytes
    content_type: str

    @property
    def extension(self) -> str:
        return ALLOWED_IMAGE_TYPES[self.content_type]


def new_image_key(content_type: str, prefix: str = "posts") -> str:
    """A collision-resistant storage key, e.g. posts/3f2a...e1.png."""
    return f"{prefix}/{uuid.uuid4().hex}{ALLOWED_IMAGE_TYPES[content_type]}"


def validate_image(data: bytes, content_type: str | None, max_bytes: int) -> ImageUpload:
    """Check content type and size. Raises ValidationFailed."""
    media_type = (content_type or "").split(";")[0].strip().lower()
    if media_type not in ALLOWED_IMAGE_TYPES:
        allowed = ", ".join(sorted(ALLOWED_IMAGE_TYPES))
        raise ValidationFailed(f"Unsupported image type. Allowed: {allowed}")
    if len(data) > max_bytes:
        raise ValidationFailed(f"Image exceeds the {max_bytes} byte limit")
    return ImageUpload(data=data, content_type=media_type)


async def read_image_upload(file: UploadFile, max_bytes: int) -> ImageUpload | None:
    """Read and validate a multipart file part.

    Returns None for an empty part (a form that sent no file). The form
    parser has already spooled the whole part; reading max_bytes + 1
    bytes only keeps an oversized one out of memory here.
    """
    data = await file.read(max_bytes + 1)
    if not data:
        return None
    return validate_image(data, file.content_type, max_bytes)
