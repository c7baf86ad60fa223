"""
Studio Session State

The studio's interdependent UI flags (mode, loading, error, result, history)
are one immutable StudioState advanced by a pure reducer:

    state = reduce(state, SubmitStarted())

`phase` is a single field (Idle | Loading | Failed), so "loading with an
error" cannot be represented. StudioSession drives the reducer together with
the mask canvas and the transport client.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Tuple, Union

import httpx

from ..core.errors import StudioError, UploadError, ValidationError
from ..models.schemas import DEFAULT_ASPECT_RATIO, AspectRatio, EditMode
from .image_processing import UploadedImage, load_upload, load_upload_file, to_data_url
from .mask_canvas import MaskCanvas

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 6
RESULT_MIME_TYPE = "image/jpeg"
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."


# ============================================================================
# Phase
# ============================================================================

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Failed:
    message: str


Phase = Union[Idle, Loading, Failed]


@dataclass(frozen=True)
class StudioState:
    mode: EditMode = "generate"
    prompt: str = ""
    aspect_ratio: AspectRatio = DEFAULT_ASPECT_RATIO
    uploaded_image: Optional[UploadedImage] = None
    phase: Phase = Idle()
    generated_image: Optional[str] = None
    comparison_image: Optional[str] = None
    history: Tuple[str, ...] = ()

    @property
    def is_loading(self) -> bool:
        return isinstance(self.phase, Loading)

    @property
    def error(self) -> Optional[str]:
        return self.phase.message if isinstance(self.phase, Failed) else None


# ============================================================================
# Actions
# ============================================================================

@dataclass(frozen=True)
class SetMode:
    mode: EditMode


@dataclass(frozen=True)
class SetPrompt:
    prompt: str


@dataclass(frozen=True)
class SetAspectRatio:
    aspect_ratio: AspectRatio


@dataclass(frozen=True)
class ImageUploaded:
    image: UploadedImage


@dataclass(frozen=True)
class ImageRemoved:
    pass


@dataclass(frozen=True)
class UploadFailed:
    message: str


@dataclass(frozen=True)
class ValidationFailed:
    message: str


@dataclass(frozen=True)
class SubmitStarted:
    pass


@dataclass(frozen=True)
class SubmitSucceeded:
    image_base64: str


@dataclass(frozen=True)
class SubmitFailed:
    message: str


@dataclass(frozen=True)
class ReEdit:
    pass


@dataclass(frozen=True)
class SelectHistory:
    index: int


Action = Union[
    SetMode, SetPrompt, SetAspectRatio, ImageUploaded, ImageRemoved, UploadFailed,
    ValidationFailed, SubmitStarted, SubmitSucceeded, SubmitFailed, ReEdit, SelectHistory,
]


def reduce(state: StudioState, action: Action) -> StudioState:
    """Return the state that follows `action`. Never mutates `state`."""
    if isinstance(action, SetMode):
        return replace(state, mode=action.mode)

    if isinstance(action, SetPrompt):
        return replace(state, prompt=action.prompt)

    if isinstance(action, SetAspectRatio):
        return replace(state, aspect_ratio=action.aspect_ratio)

    if isinstance(action, ImageUploaded):
        phase = Idle() if isinstance(state.phase, Failed) else state.phase
        return replace(state, uploaded_image=action.image, phase=phase)

    if isinstance(action, ImageRemoved):
        return replace(state, uploaded_image=None)

    if isinstance(action, UploadFailed):
        if state.is_loading:
            return state
        return replace(state, phase=Failed(action.message))

    if isinstance(action, ValidationFailed):
        return replace(state, phase=Failed(action.message))

    if isinstance(action, SubmitStarted):
        return replace(
            state,
            phase=Loading(),
            generated_image=None,
            comparison_image=None,
        )

    if isinstance(action, SubmitSucceeded):
        image_url = to_data_url(action.image_base64, RESULT_MIME_TYPE)
        comparison = None
        if state.mode == "edit" and state.uploaded_image is not None:
            comparison = state.uploaded_image.data_url
        return replace(
            state,
            phase=Idle(),
            generated_image=image_url,
            comparison_image=comparison,
            history=((image_url,) + state.history)[:HISTORY_LIMIT],
        )

    if isinstance(action, SubmitFailed):
        return replace(state, phase=Failed(f"Failed to generate image: {action.message}"))

    if isinstance(action, ReEdit):
        if state.generated_image is None:
            return state
        return replace(
            state,
            mode="edit",
            uploaded_image=UploadedImage.from_data_url(state.generated_image),
            prompt="",
            generated_image=None,
            comparison_image=None,
            phase=Idle(),
        )

    if isinstance(action, SelectHistory):
        if not 0 <= action.index < len(state.history):
            return state
        return replace(
            state,
            generated_image=state.history[action.index],
            comparison_image=None,
        )

    raise TypeError(f"Unknown action: {action!r}")


def can_submit(state: StudioState) -> bool:
    """Whether the submit control is enabled."""
    if state.is_loading or not state.prompt.strip():
        return False
    if state.mode == "edit" and state.uploaded_image is None:
        return False
    return True


def validate_submission(state: StudioState) -> None:
    """
    Raise ValidationError with the message shown to the user when a submit
    would be rejected before reaching the network.
    """
    if state.is_loading:
        raise ValidationError("A request is already in progress.")
    if not state.prompt.strip():
        if state.mode == "edit":
            raise ValidationError("Please enter an edit instruction.")
        raise ValidationError("Please enter a prompt.")
    if state.mode == "edit" and state.uploaded_image is None:
        raise ValidationError("Please upload an image to edit.")


def download_filename(prompt: str) -> str:
    """File name offered when saving a result, derived from the prompt."""
    sanitized = re.sub(r"[^a-z0-9]", "_", prompt[:30], flags=re.IGNORECASE).lower()
    return f"ai-image-{sanitized or 'edited'}.jpg"


# ============================================================================
# Session driver
# ============================================================================

class StudioSession:
    """
    One user's studio: state, mask canvas and backend client.

    At most one submission is in flight; the canvas always mirrors the
    currently uploaded image.
    """

    def __init__(self, client, canvas: Optional[MaskCanvas] = None) -> None:
        self.client = client
        self.canvas = canvas or MaskCanvas()
        self.state = StudioState()

    def dispatch(self, action: Action) -> StudioState:
        self.state = reduce(self.state, action)
        return self.state

    def _set_image(self, image: UploadedImage) -> None:
        self.canvas.load(image)
        self.dispatch(ImageUploaded(image))

    def upload(self, source: Union[str, Path, bytes], mime_type: Optional[str] = None) -> StudioState:
        """
        Accept an image from a path, or from raw bytes with their MIME type.

        Upload failures are recorded in the state and never reach the backend.
        """
        try:
            if isinstance(source, bytes):
                image = load_upload(source, mime_type or "")
            else:
                image = load_upload_file(source)
        except UploadError as exc:
            logger.warning(f"⚠️ Upload rejected: {exc.message}")
            return self.dispatch(UploadFailed(exc.message))

        self._set_image(image)
        return self.state

    def remove_image(self) -> StudioState:
        self.canvas.unload()
        return self.dispatch(ImageRemoved())

    def re_edit(self) -> StudioState:
        """Make the current result the image being edited."""
        state = self.dispatch(ReEdit())
        if state.uploaded_image is not None:
            self.canvas.load(state.uploaded_image)
        return state

    async def submit(self) -> StudioState:
        """
        Run the generate or edit call for the current state.

        Validation failures are shown without a network call; any backend or
        transport failure ends the operation with a single message.
        """
        try:
            validate_submission(self.state)
        except ValidationError as exc:
            if self.state.is_loading:
                raise
            return self.dispatch(ValidationFailed(exc.message))

        state = self.dispatch(SubmitStarted())
        try:
            if state.mode == "generate":
                image_base64 = await self.client.generate(state.prompt, state.aspect_ratio)
            else:
                image = state.uploaded_image
                image_base64 = await self.client.edit(
                    state.prompt,
                    image.base64_data,
                    image.mime_type,
                    self.canvas.export_mask(),
                )
        except (StudioError, httpx.HTTPError) as exc:
            message = exc.message if isinstance(exc, StudioError) else str(exc) or UNKNOWN_ERROR_MESSAGE
            logger.error(f"❌ Submission failed: {message}")
            return self.dispatch(SubmitFailed(message))
        except Exception as exc:
            logger.exception(f"❌ Unexpected submission failure: {exc}")
            return self.dispatch(SubmitFailed(str(exc) or UNKNOWN_ERROR_MESSAGE))

        return self.dispatch(SubmitSucceeded(image_base64))
