"""
Models package for the Image Studio backend.

Pydantic models for request/response validation (camelCase on the wire).
"""

from .schemas import (
    ASPECT_RATIOS,
    DEFAULT_ASPECT_RATIO,
    AspectRatio,
    EditMode,
    EditRequest,
    ErrorResponse,
    GenerateRequest,
    HealthResponse,
    ImageResponse,
)

__all__ = [
    "ASPECT_RATIOS",
    "DEFAULT_ASPECT_RATIO",
    "AspectRatio",
    "EditMode",
    "EditRequest",
    "ErrorResponse",
    "GenerateRequest",
    "HealthResponse",
    "ImageResponse",
]
