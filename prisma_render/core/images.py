"""
Image utility functions for the render studio

Handles decoding, MIME detection and data-URL conversion for source,
reference and result images
"""

import base64
import binascii
import logging
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image as PILImage, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict

from .errors import ImageDecodeError

logger = logging.getLogger(__name__)

MIME_TYPES = {
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.webp': 'image/webp',
    '.gif': 'image/gif',
    '.mp4': 'video/mp4',
}

PIL_FORMAT_MIME = {
    'PNG': 'image/png',
    'JPEG': 'image/jpeg',
    'WEBP': 'image/webp',
    'GIF': 'image/gif',
}


class ImagePayload(BaseModel):
    """Raw image bytes plus what the remote model needs to know about them"""
    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str = "image/png"
    width: Optional[int] = None
    height: Optional[int] = None


def detect_mime_type(uri: str) -> str:
    """
    Detect MIME type from file extension

    Args:
        uri: File URI or path

    Returns:
        MIME type string (defaults to image/png)
    """
    ext = Path(uri).suffix.lower()
    return MIME_TYPES.get(ext, 'image/png')


def load_image(data: bytes, mime_type: Optional[str] = None) -> ImagePayload:
    """
    Decode image bytes to learn their real format and size.

    Raises:
        ImageDecodeError: If the bytes are not a readable image
    """
    try:
        with PILImage.open(BytesIO(data)) as img:
            img.load()
            width, height = img.size
            detected = PIL_FORMAT_MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.error(f"[Images] Failed to decode image ({len(data)} bytes): {e}")
        raise ImageDecodeError(f"Invalid image data: {e}") from e

    return ImagePayload(
        data=data,
        mime_type=detected or mime_type or "image/png",
        width=width,
        height=height,
    )


def to_data_url(payload: ImagePayload) -> str:
    encoded = base64.b64encode(payload.data).decode('utf-8')
    return f"data:{payload.mime_type};base64,{encoded}"


def from_data_url(data_url: str) -> ImagePayload:
    """
    Parse a ``data:<mime>;base64,<data>`` URL back into a payload.

    A bare base64 string (no header) is accepted and assumed to be PNG.
    """
    if "," in data_url:
        header, encoded = data_url.split(",", 1)
        mime_type = "application/octet-stream"
        if header.startswith("data:"):
            mime_type = header[5:].split(";", 1)[0] or mime_type
    else:
        encoded, mime_type = data_url, "image/png"

    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError("Invalid file format") from e
    return ImagePayload(data=data, mime_type=mime_type)
