"""Image processing and Firebase Storage helpers."""

from __future__ import annotations

import io
import uuid
from typing import Optional
from urllib.parse import unquote, urlparse

from firebase_admin import storage
from flask import current_app
from google.api_core.exceptions import NotFound
from PIL import Image, ImageOps, UnidentifiedImageError

from .core.sanitization import sanitize_filename
from .errors import ValidationError

JPEG_QUALITY_STEPS = (85, 75, 65, 55, 45)


def compress_image(data: bytes, max_dimension: int, max_bytes: int) -> bytes:
    """Downscale an image to fit max_dimension and re-encode it as JPEG.

    Quality is lowered step by step until the result fits max_bytes; the
    smallest encoding is returned when no step fits.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image = ImageOps.exif_transpose(image)
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("The uploaded file is not a valid image.") from e

    if image.mode != "RGB":
        image = image.convert("RGB")
    image.thumbnail((max_dimension, max_dimension))

    encoded = b""
    for quality in JPEG_QUALITY_STEPS:
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=quality, optimize=True)
        encoded = buffer.getvalue()
        if len(encoded) <= max_bytes:
            break
    return encoded


def build_object_path(prefix: str, owner_id: str, filename: str) -> str:
    """Return a unique object path under prefix/owner_id/."""
    stem = sanitize_filename(filename).rsplit(".", 1)[0] or "image"
    return f"{prefix}/{owner_id}/{uuid.uuid4().hex}-{stem}.jpg"


def upload_bytes(path: str, data: bytes, content_type: str = "image/jpeg") -> str:
    """Upload data to the default bucket and return its public URL."""
    bucket = storage.bucket()
    blob = bucket.blob(path)
    blob.upload_from_string(data, content_type=content_type)
    blob.make_public()
    return blob.public_url


def object_path_from_url(url: str) -> Optional[str]:
    """Extract the object path from a public storage URL of the default bucket."""
    bucket_name = storage.bucket().name
    parsed = urlparse(url)
    path = unquote(parsed.path).lstrip("/")
    if path.startswith(f"{bucket_name}/"):
        return path[len(bucket_name) + 1 :]
    # Firebase download URLs keep the object path after /o/
    marker = "/o/"
    if marker in parsed.path:
        return unquote(parsed.path.split(marker, 1)[1])
    return None


def delete_by_url(url: str) -> bool:
    """Delete the object behind a public URL. Returns False if nothing was deleted."""
    path = object_path_from_url(url)
    if not path:
        current_app.logger.warning(f"Could not resolve storage path for {url}")
        return False
    try:
        storage.bucket().blob(path).delete()
    except NotFound:
        current_app.logger.info(f"Storage object {path} already removed")
        return False
    return True
