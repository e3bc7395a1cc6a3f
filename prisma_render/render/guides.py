"""
Guide image compositing for linear light fixtures

Burns a glow + core stroke along every linear lighting element into a copy of
the source image. The remote model reads these white strokes as the exact place
to render LED strips and profiles. Images without linear lighting are passed
through untouched, byte for byte.
"""

import logging
from io import BytesIO
from typing import List, Sequence, Tuple

from PIL import Image as PILImage, ImageDraw, ImageFilter

from ..core.errors import ImageDecodeError
from ..core.images import PIL_FORMAT_MIME, ImagePayload
from ..scene.geometry import to_pixels
from ..scene.models import PathShape, SceneElement, SegmentShape

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

# Stroke styles, (front, back). Back = concealed cove lighting: wider, softer.
GLOW_BLUR = (15, 30)
GLOW_ALPHA = (0.6, 0.4)
GLOW_WIDTH_RATIO = (0.008, 0.012)
GLOW_MIN_WIDTH = 4
CORE_ALPHA = (1.0, 0.6)
CORE_WIDTH_RATIO = (0.003, 0.004)
CORE_MIN_WIDTH = 2

CURVE_STEPS = 8

MIME_PIL_FORMAT = {mime: fmt for fmt, mime in PIL_FORMAT_MIME.items()}


def _quadratic(p0: Point, cp: Point, p1: Point, steps: int = CURVE_STEPS) -> List[Point]:
    """Sample a quadratic Bezier, excluding its start point."""
    samples = []
    for i in range(1, steps + 1):
        t = i / steps
        u = 1 - t
        samples.append((
            u * u * p0[0] + 2 * u * t * cp[0] + t * t * p1[0],
            u * u * p0[1] + 2 * u * t * cp[1] + t * t * p1[1],
        ))
    return samples


def smooth_path(points: Sequence[Point]) -> List[Point]:
    """
    Smooth a decimated freehand path with consecutive-midpoint quadratics.

    Each interior point is used as a control point and the curve ends at the
    midpoint to the next point; the final stretch is a straight segment to the
    last recorded point.
    """
    if len(points) < 3:
        return list(points)

    result = [points[0]]
    current = points[0]
    for i in range(1, len(points) - 2):
        control = points[i]
        following = points[i + 1]
        midpoint = ((control[0] + following[0]) / 2, (control[1] + following[1]) / 2)
        result.extend(_quadratic(current, control, midpoint))
        current = midpoint
    result.append(points[-1])
    return result


def stroke_points(element: SceneElement, width: int, height: int) -> List[Point]:
    """Pixel polyline for a linear element."""
    geometry = element.geometry
    if isinstance(geometry, PathShape):
        return smooth_path([to_pixels(p, width, height) for p in geometry.points])
    if isinstance(geometry, SegmentShape):
        return [to_pixels(element.anchor, width, height), to_pixels(geometry.end, width, height)]
    return []


def _stroke_layer(size: Tuple[int, int], points: List[Point], width: float, alpha: float):
    layer = PILImage.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    fill = (255, 255, 255, int(round(255 * alpha)))
    line_width = max(1, int(round(width)))
    draw.line(points, fill=fill, width=line_width, joint="curve")
    # Round caps
    radius = line_width / 2
    for x, y in (points[0], points[-1]):
        draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=fill)
    return layer


def draw_light_guide(canvas: PILImage.Image, element: SceneElement) -> PILImage.Image:
    """Composite the glow and core strokes for one element onto an RGBA canvas."""
    points = stroke_points(element, *canvas.size)
    if len(points) < 2:
        return canvas

    side = 1 if element.install_side == "back" else 0
    image_width = canvas.size[0]

    glow = _stroke_layer(
        canvas.size, points,
        max(GLOW_MIN_WIDTH, image_width * GLOW_WIDTH_RATIO[side]), GLOW_ALPHA[side],
    )
    halo = glow.filter(ImageFilter.GaussianBlur(radius=GLOW_BLUR[side] / 2))
    canvas = PILImage.alpha_composite(canvas, halo)
    canvas = PILImage.alpha_composite(canvas, glow)

    core = _stroke_layer(
        canvas.size, points,
        max(CORE_MIN_WIDTH, image_width * CORE_WIDTH_RATIO[side]), CORE_ALPHA[side],
    )
    return PILImage.alpha_composite(canvas, core)


def compose_guides(image: ImagePayload, elements: Sequence[SceneElement]) -> ImagePayload:
    """
    Return the image the remote model should see.

    Args:
        image: Source image
        elements: Full scene element list

    Returns:
        The source payload itself when there is no linear lighting, otherwise a
        new payload in the source format with the guides burned in

    Raises:
        ImageDecodeError: If the source bytes cannot be decoded
    """
    guides = [el for el in elements if el.is_linear_lighting]
    if not guides:
        return image

    try:
        source = PILImage.open(BytesIO(image.data))
        source.load()
    except OSError as e:
        raise ImageDecodeError(f"Cannot draw guides on undecodable image: {e}") from e

    fmt = source.format or MIME_PIL_FORMAT.get(image.mime_type, "PNG")
    canvas = source.convert("RGBA")
    for element in guides:
        canvas = draw_light_guide(canvas, element)

    if fmt == "JPEG":
        canvas = canvas.convert("RGB")

    output = BytesIO()
    canvas.save(output, format=fmt)
    logger.info(f"[Guides] Drew {len(guides)} light guide(s) on {canvas.size[0]}x{canvas.size[1]} {fmt}")

    return ImagePayload(
        data=output.getvalue(),
        mime_type=PIL_FORMAT_MIME.get(fmt, image.mime_type),
        width=canvas.size[0],
        height=canvas.size[1],
    )
