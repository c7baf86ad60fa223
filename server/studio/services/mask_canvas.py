"""
Mask Canvas Engine

Keeps two equally sized rasters for an uploaded image:
- backdrop: the source image at its natural pixel size (never modified)
- mask layer: RGBA buffer, fully transparent until the user paints on it

Freehand strokes are rasterized into the mask layer without anti-aliasing, so
every mask pixel is either untouched (alpha 0) or opaque stroke colour. The
exported mask is the layer composited over opaque white and encoded as PNG:
black (painted) marks the region to edit, white marks the region to keep.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional, Tuple, Union

import numpy as np
from PIL import Image

from .image_processing import UploadedImage, image_to_base64

logger = logging.getLogger(__name__)

MIN_BRUSH_SIZE = 5
MAX_BRUSH_SIZE = 50
DEFAULT_BRUSH_SIZE = 20

STROKE_COLOR: Tuple[int, int, int] = (0, 0, 0)
EXPORT_BACKGROUND: Tuple[int, int, int] = (255, 255, 255)

Point = Tuple[float, float]


def map_display_point(
    x: float,
    y: float,
    display_size: Tuple[float, float],
    raster_size: Tuple[int, int],
) -> Point:
    """
    Convert a pointer position in display coordinates to raster coordinates.

    Each axis is scaled independently by (backing pixel size / displayed size),
    so the painted raster pixel does not depend on how large the canvas is
    drawn on screen.

    Args:
        x, y: Position relative to the top-left corner of the displayed canvas
        display_size: (width, height) of the canvas as displayed
        raster_size: (width, height) of the backing raster

    Raises:
        ValueError: If the display size is not positive
    """
    display_width, display_height = display_size
    if display_width <= 0 or display_height <= 0:
        raise ValueError(f"Display size must be positive, got {display_size}")

    raster_width, raster_height = raster_size
    scale_x = raster_width / display_width
    scale_y = raster_height / display_height
    return (x * scale_x, y * scale_y)


class MaskCanvas:
    """
    Paintable mask over an uploaded image.

    Stroke lifecycle: begin_stroke -> extend_stroke* -> end_stroke.
    Positions passed to the stroke methods are raster coordinates; use
    to_raster() for pointer positions in display coordinates.
    """

    def __init__(
        self,
        brush_size: int = DEFAULT_BRUSH_SIZE,
        stroke_color: Tuple[int, int, int] = STROKE_COLOR,
    ) -> None:
        self._backdrop: Optional[Image.Image] = None
        self._mask: Optional[np.ndarray] = None
        self._last_point: Optional[Point] = None
        self._stroke_rgba = np.array([*stroke_color, 255], dtype=np.uint8)
        self._brush_size = DEFAULT_BRUSH_SIZE
        self.brush_size = brush_size

    # ------------------------------------------------------------------
    # Image lifecycle
    # ------------------------------------------------------------------

    def load(self, image: Union[UploadedImage, Image.Image]) -> None:
        """
        Load a new backdrop and allocate a transparent mask of the same size.

        Any mask painted over a previous image is discarded.
        """
        if isinstance(image, UploadedImage):
            backdrop = image.to_image()
        else:
            backdrop = image.convert("RGB")

        width, height = backdrop.size
        self._backdrop = backdrop.copy()
        self._mask = np.zeros((height, width, 4), dtype=np.uint8)
        self._last_point = None
        logger.debug(f"Mask canvas allocated at {width}x{height}")

    def unload(self) -> None:
        """Discard backdrop and mask (image removed)."""
        self._backdrop = None
        self._mask = None
        self._last_point = None

    @property
    def is_loaded(self) -> bool:
        return self._mask is not None

    @property
    def size(self) -> Optional[Tuple[int, int]]:
        """(width, height) of the rasters, or None when no image is loaded."""
        if self._mask is None:
            return None
        height, width = self._mask.shape[:2]
        return (width, height)

    @property
    def backdrop(self) -> Optional[Image.Image]:
        return self._backdrop.copy() if self._backdrop is not None else None

    @property
    def mask_layer(self) -> Optional[np.ndarray]:
        """Read-only view of the RGBA mask layer."""
        if self._mask is None:
            return None
        view = self._mask.view()
        view.flags.writeable = False
        return view

    # ------------------------------------------------------------------
    # Brush
    # ------------------------------------------------------------------

    @property
    def brush_size(self) -> int:
        """Brush radius in raster pixels."""
        return self._brush_size

    @brush_size.setter
    def brush_size(self, value: int) -> None:
        value = int(value)
        if not MIN_BRUSH_SIZE <= value <= MAX_BRUSH_SIZE:
            raise ValueError(
                f"Brush size must be between {MIN_BRUSH_SIZE} and {MAX_BRUSH_SIZE}, got {value}"
            )
        self._brush_size = value

    # ------------------------------------------------------------------
    # Strokes
    # ------------------------------------------------------------------

    def to_raster(self, x: float, y: float, display_size: Tuple[float, float]) -> Optional[Point]:
        """Map a display-space position onto this canvas, or None if nothing is loaded."""
        size = self.size
        if size is None:
            return None
        return map_display_point(x, y, display_size, size)

    def begin_stroke(self, point: Point) -> None:
        if self._mask is None:
            return
        self._last_point = point
        self._fill_segment(point, point)

    def extend_stroke(self, point: Point) -> None:
        """Paint from the previous position to `point` (no-op outside a stroke)."""
        if self._mask is None or self._last_point is None:
            return
        # Round caps of width 2r cover the disc of radius r at both ends,
        # which also fills the dot at the new position.
        self._fill_segment(self._last_point, point)
        self._last_point = point

    def end_stroke(self) -> None:
        self._last_point = None

    @property
    def is_drawing(self) -> bool:
        return self._last_point is not None

    def paint_stroke(
        self,
        points: Iterable[Point],
        display_size: Optional[Tuple[float, float]] = None,
    ) -> None:
        """
        Paint a complete stroke through `points`.

        When `display_size` is given the points are display coordinates and
        are mapped to raster coordinates first.
        """
        started = False
        for x, y in points:
            point = (x, y)
            if display_size is not None:
                point = self.to_raster(x, y, display_size)
                if point is None:
                    return
            if not started:
                self.begin_stroke(point)
                started = True
            else:
                self.extend_stroke(point)
        self.end_stroke()

    def clear(self) -> None:
        """Wipe the mask back to fully transparent. The backdrop is untouched."""
        if self._mask is not None:
            self._mask.fill(0)
        self._last_point = None

    def _fill_segment(self, start: Point, end: Point) -> None:
        """
        Mark every pixel whose centre lies within brush_size of the segment.

        This is a line of width 2 * brush_size with round caps and joins. The
        work is limited to the segment's bounding box clipped to the raster.
        """
        mask = self._mask
        assert mask is not None
        height, width = mask.shape[:2]
        radius = float(self._brush_size)
        x0, y0 = start
        x1, y1 = end

        col_min = max(int(math.floor(min(x0, x1) - radius)), 0)
        col_max = min(int(math.ceil(max(x0, x1) + radius)), width - 1)
        row_min = max(int(math.floor(min(y0, y1) - radius)), 0)
        row_max = min(int(math.ceil(max(y0, y1) + radius)), height - 1)
        if col_min > col_max or row_min > row_max:
            return

        px = np.arange(col_min, col_max + 1, dtype=np.float64)[np.newaxis, :] + 0.5
        py = np.arange(row_min, row_max + 1, dtype=np.float64)[:, np.newaxis] + 0.5

        dx = x1 - x0
        dy = y1 - y0
        length_sq = dx * dx + dy * dy
        if length_sq == 0:
            dist_sq = (px - x0) ** 2 + (py - y0) ** 2
        else:
            t = np.clip(((px - x0) * dx + (py - y0) * dy) / length_sq, 0.0, 1.0)
            dist_sq = (px - (x0 + t * dx)) ** 2 + (py - (y0 + t * dy)) ** 2

        covered = dist_sq <= radius * radius
        region = mask[row_min:row_max + 1, col_min:col_max + 1]
        region[covered] = self._stroke_rgba

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def is_empty(self) -> bool:
        """True when nothing is loaded or no pixel of the mask layer is set."""
        return self._mask is None or not self._mask.any()

    def export_mask_image(self) -> Optional[Image.Image]:
        """Composite the mask layer over opaque white; None when the mask is empty."""
        if self.is_empty():
            return None

        height, width = self._mask.shape[:2]
        background = Image.new("RGBA", (width, height), (*EXPORT_BACKGROUND, 255))
        layer = Image.fromarray(self._mask)
        return Image.alpha_composite(background, layer).convert("RGB")

    def export_mask(self) -> Optional[str]:
        """
        Export the mask as base64 PNG (no data URL header).

        Returns:
            None when no image is loaded or nothing has been painted since the
            last clear, meaning "no mask": the edit is unconstrained.
        """
        composite = self.export_mask_image()
        if composite is None:
            return None
        return image_to_base64(composite, format="PNG")

    def preview(self, opacity: float = 0.7) -> Optional[Image.Image]:
        """
        Backdrop with the mask drawn over it at `opacity`, for on-screen display.

        The opacity only affects this preview; exported masks are always opaque.
        """
        if self._backdrop is None or self._mask is None:
            return None
        if not 0.0 <= opacity <= 1.0:
            raise ValueError(f"Opacity must be within [0, 1], got {opacity}")

        overlay = self._mask.copy()
        overlay[..., 3] = (overlay[..., 3].astype(np.float32) * opacity).round().astype(np.uint8)
        base = self._backdrop.convert("RGBA")
        return Image.alpha_composite(base, Image.fromarray(overlay)).convert("RGB")
