"""
Failure taxonomy shared by the backend, the transport client and the studio session.

- ValidationError: detectable before any network call
- BadRequest: backend-side missing/invalid request fields (HTTP 400)
- ApiError: non-2xx response from the backend, carries status + message
- ProtocolError: 2xx response without the expected payload
- GenerationFailed: the model answered with text instead of an image
- UpstreamError: the model returned neither an image nor usable text
- UploadError: unsupported, oversized or unreadable upload
"""

from __future__ import annotations


class StudioError(Exception):
    """Base class for every failure raised by the studio."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(StudioError):
    """Input rejected before dispatch."""


class BadRequest(StudioError):
    """Request reached the backend with missing or malformed fields."""


class ApiError(StudioError):
    """Backend answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)

    def __repr__(self) -> str:
        return f"ApiError(status_code={self.status_code}, message={self.message!r})"


class ProtocolError(StudioError):
    """Backend answered 2xx but the body is not what the contract says."""


class GenerationFailed(StudioError):
    """Model declined or explained instead of returning an image."""


class UpstreamError(StudioError):
    """Model returned nothing usable."""


class UploadError(StudioError):
    """Upload could not be accepted."""
