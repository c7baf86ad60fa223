"""
HTTP client for the Image Studio backend.

This module provides a StudioClient class that bridges UI actions to the
/api/generate and /api/edit endpoints and normalizes every failure into the
studio error taxonomy. No retries and no caching: a failed call surfaces
immediately to the caller.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import httpx

from studio.core.errors import ApiError, ProtocolError, ValidationError
from studio.models.schemas import ASPECT_RATIOS, AspectRatio

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."


class StudioClient:
    """
    Async client for the studio backend.

    Handles:
    - Client-side validation before dispatch (empty prompt, missing image)
    - Mapping non-2xx responses to ApiError with the backend's message
    - Rejecting 2xx responses without image data as ProtocolError
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize studio client.

        Args:
            base_url: Base URL of the backend
            timeout: Request timeout in seconds; None disables the timeout
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "StudioClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a JSON body and return the decoded JSON response.

        Raises:
            ApiError: If response status is not 2xx
            ProtocolError: If a 2xx body is not a JSON object
            httpx.RequestError: If the request fails (network error, timeout, etc.)
        """
        logger.info(f"🌐 [StudioClient] POST {self.base_url}{path}")
        try:
            response = await self._client.post(path, json=body)
        except httpx.RequestError as e:
            logger.error(f"❌ [StudioClient] POST {path} failed: {type(e).__name__}: {e}")
            raise

        if not response.is_success:
            try:
                data = response.json()
            except ValueError:
                data = {"error": UNKNOWN_ERROR_MESSAGE}
            message = data.get("error") if isinstance(data, dict) else None
            message = message or f"Request failed with status {response.status_code}"
            logger.error(f"❌ [StudioClient] POST {path} returned HTTP {response.status_code}: {message}")
            raise ApiError(response.status_code, message)

        try:
            data = response.json()
        except ValueError as e:
            raise ProtocolError("Invalid response from server: body is not JSON.") from e
        if not isinstance(data, dict):
            raise ProtocolError("Invalid response from server: expected a JSON object.")
        return data

    @staticmethod
    def _image_from(data: Dict[str, Any]) -> str:
        image_base64 = data.get("imageBase64")
        if not image_base64 or not isinstance(image_base64, str):
            raise ProtocolError("Invalid response from server: missing imageBase64 data.")
        return image_base64

    async def generate(self, prompt: str, aspect_ratio: AspectRatio) -> str:
        """
        Generate an image from a prompt.

        Returns:
            Base64 encoded image data

        Raises:
            ValidationError: Empty prompt or unknown aspect ratio (no request is sent)
            ApiError, ProtocolError: See _post
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Please enter a prompt.")
        if aspect_ratio not in ASPECT_RATIOS:
            raise ValidationError(
                f"Unsupported aspect ratio '{aspect_ratio}'. Valid options: {', '.join(ASPECT_RATIOS)}"
            )
        data = await self._post("/api/generate", {"prompt": prompt, "aspectRatio": aspect_ratio})
        return self._image_from(data)

    async def edit(
        self,
        prompt: str,
        image_base64: str,
        mime_type: str,
        mask_base64: Optional[str] = None,
    ) -> str:
        """
        Edit an image, confined to the mask's black regions when a mask is given.

        Args:
            prompt: The edit instruction
            image_base64: Base64 image data (no data URL header)
            mime_type: MIME type of the image (e.g. 'image/png')
            mask_base64: Optional base64 PNG mask; omitted from the body when None

        Returns:
            Base64 encoded edited image data
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Please enter an edit instruction.")
        if not image_base64 or not mime_type:
            raise ValidationError("Please upload an image to edit.")

        body: Dict[str, Any] = {
            "prompt": prompt,
            "imageBase64Data": image_base64,
            "mimeType": mime_type,
        }
        if mask_base64:
            body["maskBase64Data"] = mask_base64

        data = await self._post("/api/edit", body)
        return self._image_from(data)

    async def close(self) -> None:
        """Close HTTP client and release resources."""
        await self._client.aclose()


def get_studio_url(default: str = "http://localhost:3000") -> str:
    """Backend URL from STUDIO_URL, or `default`."""
    return os.getenv("STUDIO_URL", default)
