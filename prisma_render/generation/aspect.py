"""Aspect ratio resolution for image and video generation"""

from typing import Optional

from ..core.config import GOOGLE_VEO_CONFIG, SUPPORTED_ASPECT_RATIOS

ORIGINAL = "Original"
FALLBACK_RATIO = "16:9"


def resolve_aspect_ratio(requested: str, width: Optional[int] = None, height: Optional[int] = None) -> str:
    """
    Resolve "Original" to the closest supported fixed ratio.

    Args:
        requested: One of the supported ratios or "Original"
        width: Source image width in pixels
        height: Source image height in pixels

    Returns:
        A fixed aspect ratio string
    """
    if requested != ORIGINAL:
        if requested not in SUPPORTED_ASPECT_RATIOS:
            raise ValueError(f"Unsupported aspect ratio: {requested}")
        return requested

    if not width or not height:
        return FALLBACK_RATIO

    ratio = width / height
    # Ties keep the earlier entry
    return min(SUPPORTED_ASPECT_RATIOS, key=lambda key: abs(SUPPORTED_ASPECT_RATIOS[key] - ratio))


def resolve_video_aspect_ratio(requested: str, width: Optional[int] = None, height: Optional[int] = None) -> str:
    """Video generation only accepts 16:9 and 9:16; fall back by orientation."""
    resolved = resolve_aspect_ratio(requested, width, height)
    if resolved in GOOGLE_VEO_CONFIG["aspect_ratios"]:
        return resolved
    if width and height and height > width:
        return "9:16"
    return "16:9"
