"""
Generation service for prompt-driven image generation and editing.

This service handles:
- Request validation (missing fields are rejected before any model call)
- Translation of generate/edit jobs into the Gemini API request shape
- Dispatch to the external model (the only blocking step)
- Interpretation of the model response (image bytes, refusal text, or nothing)

Payload construction is split into pure builder functions over tagged job
types so each branch (generate, edit, edit with mask) can be inspected
without a network call.
"""

from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional

from google import genai
from google.genai import types

from ..core.config import Settings, settings as default_settings
from ..core.errors import BadRequest, GenerationFailed, UpstreamError
from ..models.schemas import ASPECT_RATIOS, EditRequest, GenerateRequest
from .image_processing import decode_base64
from .prompt_composer import SYSTEM_INSTRUCTION, compose_edit_instruction

logger = logging.getLogger(__name__)

MASK_MIME_TYPE = "image/png"


# ============================================================================
# Jobs (validated requests)
# ============================================================================

@dataclass(frozen=True)
class GenerateJob:
    prompt: str
    aspect_ratio: str


@dataclass(frozen=True)
class EditJob:
    prompt: str
    image: bytes
    mime_type: str
    mask: Optional[bytes] = None

    @property
    def has_mask(self) -> bool:
        return self.mask is not None


@dataclass(frozen=True)
class GenerateImagesCall:
    """Arguments for `client.models.generate_images`."""
    model: str
    prompt: str
    config: types.GenerateImagesConfig


@dataclass(frozen=True)
class GenerateContentCall:
    """Arguments for `client.models.generate_content`."""
    model: str
    contents: types.Content
    config: types.GenerateContentConfig

    @property
    def parts(self) -> List[types.Part]:
        return list(self.contents.parts or [])


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _decode_field(data: str, field_name: str) -> bytes:
    try:
        return decode_base64(data)
    except ValueError as exc:
        raise BadRequest(f"Invalid base64 data for {field_name}.") from exc


def parse_generate_request(request: GenerateRequest) -> GenerateJob:
    """
    Validate a generate request.

    Raises:
        BadRequest: If prompt or aspect ratio is missing, or the ratio is unknown
    """
    if _is_blank(request.prompt) or _is_blank(request.aspect_ratio):
        raise BadRequest("Prompt and aspect ratio are required.")
    if request.aspect_ratio not in ASPECT_RATIOS:
        raise BadRequest(
            f"Unsupported aspect ratio '{request.aspect_ratio}'. "
            f"Valid options: {', '.join(ASPECT_RATIOS)}"
        )
    return GenerateJob(prompt=request.prompt, aspect_ratio=request.aspect_ratio)


def parse_edit_request(request: EditRequest) -> EditJob:
    """
    Validate an edit request and decode its images.

    An empty or absent mask means an unconstrained edit.

    Raises:
        BadRequest: If prompt, image data or MIME type is missing, or base64 is invalid
    """
    if _is_blank(request.prompt) or _is_blank(request.image_base64_data) or _is_blank(request.mime_type):
        raise BadRequest("Prompt, image data, and mimeType are required.")

    image = _decode_field(request.image_base64_data, "imageBase64Data")
    mask = None
    if not _is_blank(request.mask_base64_data):
        mask = _decode_field(request.mask_base64_data, "maskBase64Data")

    return EditJob(
        prompt=request.prompt,
        image=image,
        mime_type=request.mime_type.strip(),
        mask=mask,
    )


# ============================================================================
# Payload builders
# ============================================================================

def build_generate_call(
    job: GenerateJob,
    model: str,
    output_mime_type: str = "image/jpeg",
) -> GenerateImagesCall:
    """Text-to-image request: one image, fixed encoding, aspect-ratio hint."""
    return GenerateImagesCall(
        model=model,
        prompt=job.prompt,
        config=types.GenerateImagesConfig(
            number_of_images=1,
            output_mime_type=output_mime_type,
            aspect_ratio=job.aspect_ratio,
        ),
    )


def build_edit_call(job: EditJob, model: str) -> GenerateContentCall:
    """
    Multi-part edit request.

    Without a mask: [image, prompt].
    With a mask: [image, mask (always tagged PNG), mask-constrained instruction].
    """
    parts = [types.Part.from_bytes(data=job.image, mime_type=job.mime_type)]
    if job.mask is not None:
        parts.append(types.Part.from_bytes(data=job.mask, mime_type=MASK_MIME_TYPE))
    parts.append(types.Part.from_text(text=compose_edit_instruction(job.prompt, has_mask=job.has_mask)))

    return GenerateContentCall(
        model=model,
        contents=types.Content(role="user", parts=parts),
        config=types.GenerateContentConfig(
            system_instruction=SYSTEM_INSTRUCTION,
            response_modalities=["IMAGE", "TEXT"],
        ),
    )


# ============================================================================
# Response interpretation
# ============================================================================

def _encode(data: bytes) -> str:
    return base64.b64encode(data).decode()


def extract_generated_image(response: Any) -> str:
    """
    Take the first generated image from a generate_images response.

    Raises:
        UpstreamError: If no image bytes are present
    """
    generated = getattr(response, "generated_images", None) or []
    if generated:
        image = generated[0].image
        if image is not None and image.image_bytes:
            return _encode(image.image_bytes)
    raise UpstreamError("No image data received from the API.")


def _response_parts(response: Any) -> list:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    content = candidates[0].content
    if content is None or not content.parts:
        return []
    return list(content.parts)


def extract_edited_image(response: Any) -> str:
    """
    Find the inline image in a generate_content response.

    Raises:
        GenerationFailed: If the model replied with text only (refusal/explanation)
        UpstreamError: If the response holds neither image nor text
    """
    parts = _response_parts(response)
    for part in parts:
        inline = part.inline_data
        if inline is not None and inline.data:
            return _encode(inline.data)

    text = "".join(part.text for part in parts if part.text).strip()
    if text:
        logger.error(f"❌ Model did not return an image. Text response: {text}")
        raise GenerationFailed(f"Image generation failed: {text}")

    logger.error(f"❌ Model did not return an image. Full response: {response!r}")
    raise UpstreamError("No image data was received from the API.")


# ============================================================================
# Service
# ============================================================================

class GenerationService:
    """Stateless per request; the SDK client is created once and reused."""

    def __init__(self, client: Optional[Any] = None, config: Optional[Settings] = None) -> None:
        self._config = config or default_settings
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self._config.api_key_configured:
                raise RuntimeError("GEMINI_API_KEY environment variable is not set.")
            http_options = None
            if self._config.upstream_timeout_ms is not None:
                http_options = types.HttpOptions(timeout=self._config.upstream_timeout_ms)
            self._client = genai.Client(api_key=self._config.api_key, http_options=http_options)
        return self._client

    def generate(self, request: GenerateRequest) -> str:
        """Generate an image from a prompt; returns base64 image data."""
        job = parse_generate_request(request)
        call = build_generate_call(job, self._config.generate_model, self._config.output_mime_type)

        logger.info(f"🎨 Generating image with {call.model} (aspect ratio {job.aspect_ratio})")
        start = time.time()
        response = self.client.models.generate_images(
            model=call.model,
            prompt=call.prompt,
            config=call.config,
        )
        image_base64 = extract_generated_image(response)
        logger.info(f"✅ Generation finished in {time.time() - start:.2f}s")
        return image_base64

    def edit(self, request: EditRequest) -> str:
        """Edit an uploaded image, optionally confined to a mask; returns base64 image data."""
        job = parse_edit_request(request)
        call = build_edit_call(job, self._config.edit_model)

        logger.info(
            f"🖌️ Editing {job.mime_type} image with {call.model} "
            f"({'masked' if job.has_mask else 'unconstrained'})"
        )
        start = time.time()
        response = self.client.models.generate_content(
            model=call.model,
            contents=call.contents,
            config=call.config,
        )
        image_base64 = extract_edited_image(response)
        logger.info(f"✅ Edit finished in {time.time() - start:.2f}s")
        return image_base64
