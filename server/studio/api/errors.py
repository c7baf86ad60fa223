"""
Route-boundary error mapping.

Every failure raised while serving /api/generate or /api/edit is classified
once here and turned into an HTTP status plus a user-facing `{"error": ...}`
body. Upstream internals are only surfaced for the controlled cases (bad
request, refusal text); everything else becomes a generic 500.
"""

from __future__ import annotations

import logging
from typing import Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from google.genai import errors as genai_errors

from ..core.errors import BadRequest, GenerationFailed

logger = logging.getLogger(__name__)

INVALID_API_KEY_MESSAGE = "The provided API key is not valid."
RATE_LIMIT_MESSAGE = "API rate limit exceeded. Please try again later."
GENERIC_ERROR_MESSAGE = "Failed to process request due to an API error."


def _is_auth_failure(exc: Exception) -> bool:
    if "API key not valid" in str(exc):
        return True
    return isinstance(exc, genai_errors.APIError) and exc.code in (401, 403)


def _is_rate_limited(exc: Exception) -> bool:
    if isinstance(exc, genai_errors.APIError) and exc.code == 429:
        return True
    return "429" in str(exc)


def resolve_error(exc: Exception) -> Tuple[int, str]:
    """
    Classify an exception into (status_code, message).

    - missing/invalid fields -> 400 with the validation message
    - model refusal text     -> 400 with that text
    - upstream auth failure  -> 401
    - upstream rate limit    -> 429
    - anything else          -> 500 generic
    """
    if isinstance(exc, BadRequest):
        return 400, exc.message
    if isinstance(exc, GenerationFailed):
        return 400, exc.message
    if _is_auth_failure(exc):
        return 401, INVALID_API_KEY_MESSAGE
    if _is_rate_limited(exc):
        return 429, RATE_LIMIT_MESSAGE
    return 500, GENERIC_ERROR_MESSAGE


def error_response(exc: Exception) -> JSONResponse:
    status_code, message = resolve_error(exc)
    if status_code >= 500:
        logger.error(f"❌ Error calling Gemini API: {exc}", exc_info=exc)
    else:
        logger.warning(f"⚠️ Request failed with {status_code}: {message}")
    return JSONResponse(status_code=status_code, content={"error": message})


def register_error_handlers(app: FastAPI) -> None:
    """Bodies that fail schema parsing leave as 400 `{"error": ...}` instead of 422."""

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(f"⚠️ Malformed request body for {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": "Malformed request body."})
