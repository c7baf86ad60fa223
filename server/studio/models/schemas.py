from __future__ import annotations

from typing import Literal, Optional, Tuple, get_args

from pydantic import BaseModel, ConfigDict, Field


# Width:height labels accepted by the generation endpoint
AspectRatio = Literal["1:1", "3:4", "4:3", "9:16", "16:9"]
ASPECT_RATIOS: Tuple[str, ...] = get_args(AspectRatio)
DEFAULT_ASPECT_RATIO: AspectRatio = "1:1"
EditMode = Literal["generate", "edit"]


class GenerateRequest(BaseModel):
    """Body of POST /api/generate. Presence is checked by the service, not here."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = Field(default=None, description="Description of the image to generate")
    aspect_ratio: Optional[str] = Field(
        default=None,
        alias="aspectRatio",
        description=f"One of {', '.join(ASPECT_RATIOS)}",
    )


class EditRequest(BaseModel):
    """Body of POST /api/edit."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = Field(default=None, description="Edit instruction")
    image_base64_data: Optional[str] = Field(
        default=None, alias="imageBase64Data", description="Base64 encoded image (no data URL header)"
    )
    mime_type: Optional[str] = Field(
        default=None, alias="mimeType", description="MIME type of the image, e.g. image/png"
    )
    mask_base64_data: Optional[str] = Field(
        default=None,
        alias="maskBase64Data",
        description="Base64 encoded black/white PNG mask. Black = region to edit.",
    )


class ImageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_base64: str = Field(..., alias="imageBase64", description="Base64 encoded result image")


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    model_configured: bool
    generate_model: str
    edit_model: str
