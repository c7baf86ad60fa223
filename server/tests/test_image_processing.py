"""
Pytest suite for studio.services.image_processing: base64 transport helpers
and upload validation.
"""

from __future__ import annotations

import base64
import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from studio.core.errors import UploadError
from studio.services import image_processing
from studio.services.image_processing import MAX_UPLOAD_BYTES, UploadedImage


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def sample_rgba_image() -> Image.Image:
    """Create a 50x50 semi-transparent red RGBA image."""
    img_array = np.zeros((50, 50, 4), dtype=np.uint8)
    img_array[:, :, 0] = 255
    img_array[:, :, 3] = 128
    return Image.fromarray(img_array)


@pytest.fixture
def sample_base64_data_url(sample_base64_image: str) -> str:
    return f"data:image/png;base64,{sample_base64_image}"


# ============================================================================
# TESTS: data URL helpers
# ============================================================================

class TestDataUrls:

    def test_strip_data_url(self, sample_base64_image: str, sample_base64_data_url: str):
        assert image_processing.strip_data_url(sample_base64_data_url) == sample_base64_image

    def test_strip_leaves_plain_base64(self, sample_base64_image: str):
        assert image_processing.strip_data_url(sample_base64_image) == sample_base64_image

    def test_to_data_url_defaults_to_jpeg(self):
        assert image_processing.to_data_url("abc") == "data:image/jpeg;base64,abc"

    @pytest.mark.parametrize(
        "data_url,expected",
        [
            ("data:image/png;base64,AAAA", "image/png"),
            ("data:image/webp;base64,AAAA", "image/webp"),
            ("not-a-data-url", "image/jpeg"),
        ],
    )
    def test_mime_type_from_data_url(self, data_url: str, expected: str):
        assert image_processing.mime_type_from_data_url(data_url) == expected


# ============================================================================
# TESTS: base64_to_image()
# ============================================================================

class TestBase64ToImage:
    """Test cases for base64_to_image() function."""

    def test_valid_base64_png(self, sample_base64_image: str, sample_rgb_image: Image.Image):
        result = image_processing.base64_to_image(sample_base64_image)
        assert isinstance(result, Image.Image)
        assert result.mode == "RGB"
        assert result.size == sample_rgb_image.size

    def test_valid_base64_with_data_url_prefix(self, sample_base64_data_url: str):
        result = image_processing.base64_to_image(sample_base64_data_url)
        assert result.mode == "RGB"

    def test_empty_string(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            image_processing.base64_to_image("")

    def test_whitespace_only(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            image_processing.base64_to_image("   ")

    def test_data_url_with_empty_base64(self):
        with pytest.raises(ValueError, match="empty after removing"):
            image_processing.base64_to_image("data:image/png;base64,")

    def test_invalid_base64_data(self):
        with pytest.raises(ValueError, match="Invalid base64"):
            image_processing.base64_to_image("not-valid-base64!!!")

    def test_not_an_image(self):
        with pytest.raises(ValueError, match="unsupported format"):
            image_processing.base64_to_image(base64.b64encode(b"plain text").decode())

    def test_rgba_flattened_onto_white(self, sample_rgba_image: Image.Image):
        buffer = io.BytesIO()
        sample_rgba_image.save(buffer, format="PNG")
        result = image_processing.base64_to_image(base64.b64encode(buffer.getvalue()).decode())
        assert result.mode == "RGB"
        red, green, blue = result.getpixel((0, 0))
        assert red == 255
        assert 120 <= green <= 135
        assert green == blue


# ============================================================================
# TESTS: image_to_base64()
# ============================================================================

class TestImageToBase64:

    def test_rgb_image_to_base64_png(self, sample_rgb_image: Image.Image):
        result = image_processing.image_to_base64(sample_rgb_image, format="PNG")
        decoded = Image.open(io.BytesIO(base64.b64decode(result)))
        assert decoded.format == "PNG"
        assert decoded.size == sample_rgb_image.size

    def test_jpeg(self, sample_rgb_image: Image.Image):
        result = image_processing.image_to_base64(sample_rgb_image, format="JPEG")
        assert Image.open(io.BytesIO(base64.b64decode(result))).format == "JPEG"


# ============================================================================
# TESTS: uploads
# ============================================================================

class TestLoadUpload:

    def test_accepts_png(self, sample_png_bytes: bytes, sample_base64_image: str):
        uploaded = image_processing.load_upload(sample_png_bytes, "image/png")
        assert uploaded.mime_type == "image/png"
        assert uploaded.data_url == f"data:image/png;base64,{sample_base64_image}"
        assert uploaded.base64_data == sample_base64_image

    @pytest.mark.parametrize("mime_type", ["image/gif", "image/bmp", "application/pdf", ""])
    def test_rejects_unsupported_type(self, sample_png_bytes: bytes, mime_type: str):
        with pytest.raises(UploadError, match="Invalid file type"):
            image_processing.load_upload(sample_png_bytes, mime_type)

    def test_rejects_oversized_file(self):
        with pytest.raises(UploadError, match="Maximum size is 8MB"):
            image_processing.load_upload(b"\0" * (MAX_UPLOAD_BYTES + 1), "image/png")

    def test_rejects_unreadable_bytes(self):
        with pytest.raises(UploadError, match="Failed to read the file"):
            image_processing.load_upload(b"definitely not a png", "image/png")

    def test_load_upload_file_sniffs_type(self, tmp_path: Path, sample_rgb_image: Image.Image):
        path = tmp_path / "photo.bin"
        sample_rgb_image.save(path, format="JPEG")
        uploaded = image_processing.load_upload_file(path)
        assert uploaded.mime_type == "image/jpeg"
        assert uploaded.to_image().size == sample_rgb_image.size

    def test_load_upload_file_rejects_gif(self, tmp_path: Path, sample_rgb_image: Image.Image):
        path = tmp_path / "anim.gif"
        sample_rgb_image.save(path, format="GIF")
        with pytest.raises(UploadError, match="Invalid file type"):
            image_processing.load_upload_file(path)

    def test_load_upload_file_missing(self, tmp_path: Path):
        with pytest.raises(UploadError, match="Failed to read the file"):
            image_processing.load_upload_file(tmp_path / "missing.png")

    def test_uploaded_image_from_data_url(self):
        uploaded = UploadedImage.from_data_url("data:image/webp;base64,AAAA")
        assert uploaded.mime_type == "image/webp"
        assert uploaded.base64_data == "AAAA"
