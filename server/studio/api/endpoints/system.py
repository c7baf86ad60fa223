"""
System endpoints for health checks.

Reports whether an API key is configured and which models requests go to;
never calls the upstream API.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from ...core.config import Settings
from ...models import HealthResponse

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns:
        HealthResponse with status and upstream model configuration
    """
    settings: Settings = request.app.state.settings
    return HealthResponse(
        status="healthy" if settings.api_key_configured else "degraded",
        model_configured=settings.api_key_configured,
        generate_model=settings.generate_model,
        edit_model=settings.edit_model,
    )
