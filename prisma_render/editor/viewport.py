"""Zoom/pan state and device-space to scene-space mapping

Device coordinates are pixels relative to the editor container's top-left
corner. The image is aspect-fit into the container (the content box) and then
transformed by ``translate(pan) scale(zoom)`` around the box centre.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

from ..core.config import MAX_ZOOM, MIN_ZOOM, WHEEL_ZOOM_SENSITIVITY
from ..scene.geometry import to_percent
from ..scene.models import Coord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentBox:
    width: float = 0.0
    height: float = 0.0
    top: float = 0.0
    left: float = 0.0


def fit_content_box(container_width: float, container_height: float,
                    natural_width: float, natural_height: float) -> ContentBox:
    """Aspect-fit the image into the container and centre the remainder."""
    if not natural_width or not natural_height or not container_width or not container_height:
        return ContentBox()

    natural_ratio = natural_width / natural_height
    container_ratio = container_width / container_height

    if container_ratio > natural_ratio:
        # Container is wider than the image: height constrains
        render_height = container_height
        render_width = render_height * natural_ratio
    else:
        render_width = container_width
        render_height = render_width / natural_ratio

    return ContentBox(
        width=render_width,
        height=render_height,
        top=(container_height - render_height) / 2,
        left=(container_width - render_width) / 2,
    )


class Viewport:
    """Zoom in [MIN_ZOOM, MAX_ZOOM], pan in device pixels, and the content box."""

    def __init__(self):
        self.zoom = MIN_ZOOM
        self.pan = (0.0, 0.0)
        self.box = ContentBox()
        self._container = (0.0, 0.0)
        self._natural = (0.0, 0.0)

    # --- Layout ---

    def set_container(self, width: float, height: float):
        self._container = (width, height)
        self._relayout()

    def set_natural_size(self, width: float, height: float):
        self._natural = (width, height)
        self._relayout()

    def _relayout(self):
        self.box = fit_content_box(*self._container, *self._natural)

    # --- Zoom & pan ---

    def set_zoom(self, zoom: float):
        self.zoom = min(max(MIN_ZOOM, zoom), MAX_ZOOM)
        if self.zoom == MIN_ZOOM:
            self.pan = (0.0, 0.0)

    def wheel(self, delta_y: float):
        """Mouse wheel: scrolling up zooms in."""
        self.set_zoom(self.zoom - delta_y * WHEEL_ZOOM_SENSITIVITY)

    def pinch(self, scale_factor: float):
        self.set_zoom(self.zoom * scale_factor)

    def pan_by(self, dx: float, dy: float):
        self.pan = (self.pan[0] + dx, self.pan[1] + dy)

    def reset(self):
        self.zoom = MIN_ZOOM
        self.pan = (0.0, 0.0)

    # --- Mapping ---

    def visual_rect(self) -> Tuple[float, float, float, float]:
        """(left, top, width, height) of the content box after zoom and pan."""
        box = self.box
        width = box.width * self.zoom
        height = box.height * self.zoom
        left = box.left + self.pan[0] + (box.width - width) / 2
        top = box.top + self.pan[1] + (box.height - height) / 2
        return left, top, width, height

    def to_scene(self, device_x: float, device_y: float) -> Coord:
        """Map a device-space pointer position to clamped percentage coordinates."""
        left, top, width, height = self.visual_rect()
        x = min(max(0.0, device_x - left), width)
        y = min(max(0.0, device_y - top), height)
        return to_percent(x, y, width, height)

    def to_device(self, coord: Coord) -> Tuple[float, float]:
        left, top, width, height = self.visual_rect()
        return left + (coord.x / 100) * width, top + (coord.y / 100) * height
