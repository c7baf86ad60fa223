"""Shared fixtures: small test images and canned Gemini responses."""

from __future__ import annotations

import base64
import io
from unittest.mock import MagicMock

import numpy as np
import pytest
from google.genai import types
from PIL import Image

from studio.core.config import Settings


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def sample_rgb_image() -> Image.Image:
    """Create a 64x48 RGB PIL Image with a horizontal gradient."""
    img_array = np.zeros((48, 64, 3), dtype=np.uint8)
    img_array[:, :, 0] = np.linspace(0, 255, 64, dtype=np.uint8)
    img_array[:, :, 1] = 128
    return Image.fromarray(img_array)


@pytest.fixture
def sample_png_bytes(sample_rgb_image: Image.Image) -> bytes:
    return encode_png(sample_rgb_image)


@pytest.fixture
def sample_base64_image(sample_png_bytes: bytes) -> str:
    return base64.b64encode(sample_png_bytes).decode()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings with a fake key and a static dir that holds no UI build."""
    return Settings(api_key="test-key", static_dir=str(tmp_path / "no-ui"))


def image_response(data: bytes = b"edited-bytes") -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                content=types.Content(
                    role="model",
                    parts=[types.Part(inline_data=types.Blob(data=data, mime_type="image/png"))],
                )
            )
        ]
    )


def text_response(text: str) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=[types.Part(text=text)]))]
    )


def empty_response() -> types.GenerateContentResponse:
    return types.GenerateContentResponse(candidates=[])


def generated_images_response(data: bytes = b"generated-bytes") -> types.GenerateImagesResponse:
    return types.GenerateImagesResponse(
        generated_images=[types.GeneratedImage(image=types.Image(image_bytes=data))]
    )


@pytest.fixture
def fake_genai_client() -> MagicMock:
    """Stand-in for google.genai.Client; responses are set per test."""
    client = MagicMock()
    client.models.generate_images.return_value = generated_images_response()
    client.models.generate_content.return_value = image_response()
    return client
