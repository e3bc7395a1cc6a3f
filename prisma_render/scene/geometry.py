"""Percentage-space helpers"""

from typing import Tuple

from .models import Coord

# Symmetric 3x3 bucketing keeps generated prompts short and tolerant of
# small placement error. Both thresholds are exclusive of the edge bucket.
EDGE_LOW = 35
EDGE_HIGH = 65

POSITION_LABELS = (
    "top left area", "top area", "top right area",
    "left area", "exact center", "right area",
    "bottom left area", "bottom area", "bottom right area",
)


def position_descriptor(x: float, y: float) -> str:
    """Describe a percentage coordinate as one of nine image regions."""
    v = "middle"
    h = "center"

    if y < EDGE_LOW:
        v = "top"
    elif y > EDGE_HIGH:
        v = "bottom"

    if x < EDGE_LOW:
        h = "left"
    elif x > EDGE_HIGH:
        h = "right"

    if v == "middle" and h == "center":
        return "exact center"
    if v == "middle":
        return f"{h} area"
    if h == "center":
        return f"{v} area"
    return f"{v} {h} area"


def to_pixels(coord: Coord, width: float, height: float) -> Tuple[float, float]:
    return (coord.x / 100) * width, (coord.y / 100) * height


def to_percent(px: float, py: float, width: float, height: float) -> Coord:
    """Pixel position inside a box of the given size to a clamped Coord."""
    if width <= 0 or height <= 0:
        return Coord(x=0, y=0)
    return Coord(x=(px / width) * 100, y=(py / height) * 100)
