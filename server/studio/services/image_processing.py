"""
Image Processing Service

This module provides utilities for image transport and upload handling:
- Base64 encoding/decoding (with or without data URL prefix)
- Data URL construction and MIME extraction
- Upload validation (type, size, readability) into UploadedImage

All functions work with PIL Image objects; decoded images are converted to RGB.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from ..core.errors import UploadError

logger = logging.getLogger(__name__)

ALLOWED_UPLOAD_MIME_TYPES = ("image/png", "image/jpeg", "image/webp")
MAX_UPLOAD_BYTES = 8 * 1024 * 1024  # 8MB

# PIL format name -> MIME type, for files picked from disk
_FORMAT_TO_MIME = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}

_DATA_URL_RE = re.compile(r"^data:(image/[\w.+-]+);base64,")


def strip_data_url(data: str) -> str:
    """Return the base64 payload of a data URL, or the input unchanged."""
    if data.startswith("data:"):
        return data.split(",", 1)[1] if "," in data else ""
    return data


def to_data_url(image_base64: str, mime_type: str = "image/jpeg") -> str:
    return f"data:{mime_type};base64,{image_base64}"


def mime_type_from_data_url(data_url: str, default: str = "image/jpeg") -> str:
    """Extract the MIME type from a data URL header, falling back to `default`."""
    match = _DATA_URL_RE.match(data_url)
    return match.group(1) if match else default


def decode_base64(data: str) -> bytes:
    """
    Strictly decode base64 image data.

    Raises:
        ValueError: If data is empty or not valid base64
    """
    if not data or not data.strip():
        raise ValueError("Base64 image data cannot be empty or None")

    payload = strip_data_url(data.strip())
    if not payload:
        raise ValueError("Base64 image data is empty after removing data URL prefix")

    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64 image data: {exc}") from exc


def base64_to_image(data: str) -> Image.Image:
    """
    Convert base64 encoded image data to PIL Image.

    Args:
        data: Base64 encoded image string (with or without data URL prefix)

    Returns:
        PIL Image in RGB mode

    Raises:
        ValueError: If data is invalid or not a decodable image
    """
    image_bytes = decode_base64(data)

    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"Invalid base64 image data or unsupported format: {exc}") from exc

    # Transparent pixels are flattened onto white
    if image.mode in ("RGBA", "LA", "P"):
        white_bg = Image.new("RGBA", image.size, (255, 255, 255, 255))
        image = Image.alpha_composite(white_bg, image.convert("RGBA")).convert("RGB")
    elif image.mode != "RGB":
        image = image.convert("RGB")

    return image


def image_to_base64(image: Image.Image, format: str = "PNG") -> str:
    """
    Convert PIL Image to base64 encoded string.

    Args:
        image: PIL Image to encode
        format: Image format for encoding (default: "PNG")

    Returns:
        Base64 encoded image string (without data URL prefix)
    """
    buffer = io.BytesIO()
    image.save(buffer, format=format)
    buffer.seek(0)
    return base64.b64encode(buffer.getvalue()).decode()


@dataclass(frozen=True)
class UploadedImage:
    """An image accepted for editing, kept as a data URL."""

    data_url: str
    mime_type: str

    @property
    def base64_data(self) -> str:
        return strip_data_url(self.data_url)

    def to_image(self) -> Image.Image:
        return base64_to_image(self.data_url)

    @classmethod
    def from_data_url(cls, data_url: str) -> "UploadedImage":
        """Wrap an existing data URL (e.g. a generated result being re-edited)."""
        return cls(data_url=data_url, mime_type=mime_type_from_data_url(data_url))


def load_upload(data: bytes, mime_type: str) -> UploadedImage:
    """
    Validate raw upload bytes and wrap them as an UploadedImage.

    Raises:
        UploadError: unsupported type, file over 8MB, or undecodable bytes
    """
    if mime_type not in ALLOWED_UPLOAD_MIME_TYPES:
        raise UploadError("Invalid file type. Please upload a PNG, JPG, or WEBP image.")
    if len(data) > MAX_UPLOAD_BYTES:
        raise UploadError("File is too large. Maximum size is 8MB.")

    try:
        with Image.open(io.BytesIO(data)) as probe:
            probe.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        logger.warning(f"⚠️ Upload could not be decoded: {exc}")
        raise UploadError("Failed to read the file.") from exc

    encoded = base64.b64encode(data).decode()
    return UploadedImage(data_url=to_data_url(encoded, mime_type), mime_type=mime_type)


def sniff_mime_type(data: bytes) -> Optional[str]:
    """Guess the MIME type of image bytes from their content."""
    try:
        with Image.open(io.BytesIO(data)) as probe:
            return _FORMAT_TO_MIME.get(probe.format or "")
    except (UnidentifiedImageError, OSError):
        return None


def load_upload_file(path: Union[str, Path]) -> UploadedImage:
    """Read an image file from disk and validate it like a browser upload."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        logger.error(f"❌ Failed to read upload {path}: {exc}")
        raise UploadError("Failed to read the file.") from exc

    mime_type = sniff_mime_type(data)
    if mime_type is None:
        raise UploadError("Invalid file type. Please upload a PNG, JPG, or WEBP image.")
    return load_upload(data, mime_type)
