"""
Generation endpoints.

- POST /api/generate: text-to-image
- POST /api/edit: image edit, optionally confined to a black/white mask

Both are sync `def` routes: the outbound model call blocks, so FastAPI runs
them in its threadpool. Failures are classified once here.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ...models import EditRequest, ErrorResponse, GenerateRequest, ImageResponse
from ...services.generation_service import GenerationService
from ..errors import error_response

router = APIRouter(prefix="/api", tags=["generation"])

_ERROR_RESPONSES = {
    status: {"model": ErrorResponse} for status in (400, 401, 429, 500)
}


def get_generation_service(request: Request) -> GenerationService:
    return request.app.state.generation_service


@router.post("/generate", response_model=ImageResponse, responses=_ERROR_RESPONSES)
def generate_image(
    request: GenerateRequest,
    service: GenerationService = Depends(get_generation_service),
):
    """Generate an image from a prompt and aspect ratio."""
    try:
        image_base64 = service.generate(request)
    except Exception as exc:
        return error_response(exc)
    return JSONResponse(content={"imageBase64": image_base64})


@router.post("/edit", response_model=ImageResponse, responses=_ERROR_RESPONSES)
def edit_image(
    request: EditRequest,
    service: GenerationService = Depends(get_generation_service),
):
    """
    Edit an uploaded image.

    When `maskBase64Data` is present the edit is confined to the mask's black
    regions; without it the whole image may change.
    """
    try:
        image_base64 = service.edit(request)
    except Exception as exc:
        return error_response(exc)
    return JSONResponse(content={"imageBase64": image_base64})
