"""
Gemini image and Veo video generation using the google-genai SDK

The remote capability is exposed as four coroutines: generate_image,
start_video, poll_video and download_asset. The orchestrator only depends on
the ``GenerationBackend`` protocol, so tests and alternative providers can
stand in for this client.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence
from urllib.parse import urlencode, urlparse, parse_qsl, urlunparse

import aiohttp
from google import genai
from google.genai import types

from ..core.config import (
    GEMINI_API_KEY,
    GOOGLE_VEO_CONFIG,
    IMAGE_MODEL,
    IMAGE_SIZE,
    LOCATION,
    PROJECT_ID,
    USE_VERTEXAI,
    load_credentials,
)
from ..core.errors import AssetDownloadError, AuthorizationError, EmptyResultError
from ..core.images import ImagePayload

logger = logging.getLogger(__name__)

EMPTY_IMAGE_MESSAGE = "Image generation failed. No image data received."
EMPTY_VIDEO_MESSAGE = (
    "Video generation failed. The model completed the operation but returned no video. "
    "This may be due to safety filters blocking the content."
)
DOWNLOAD_TIMEOUT = 120  # seconds


@dataclass
class VideoStatus:
    """One observation of a long-running video operation"""
    done: bool
    handle: Any = None  # refreshed operation, pass to the next poll
    error: Optional[str] = None
    result_ref: Optional[str] = None  # downloadable URI
    inline_data: Optional[bytes] = None  # some backends return bytes directly


class GenerationBackend(Protocol):

    async def generate_image(self, prompt: str, image: ImagePayload, aspect_ratio: str,
                             reference_images: Sequence[ImagePayload] = ()) -> ImagePayload:
        ...

    async def start_video(self, prompt: str, image: ImagePayload, aspect_ratio: str) -> Any:
        ...

    async def poll_video(self, handle: Any) -> VideoStatus:
        ...

    async def download_asset(self, result_ref: str) -> bytes:
        ...


def _with_key(uri: str, api_key: str) -> str:
    parsed = urlparse(uri)
    query = dict(parse_qsl(parsed.query))
    query["key"] = api_key
    return urlunparse(parsed._replace(query=urlencode(query)))


def _operation_error(error: Any) -> str:
    if isinstance(error, dict):
        return error.get("message") or json.dumps(error)
    return str(error)


class GeminiStudioClient:
    """Gemini / Veo generation via the official google-genai SDK"""

    def __init__(self, api_key: Optional[str] = None, vertexai: Optional[bool] = None,
                 project_id: Optional[str] = None, location: Optional[str] = None,
                 image_model: str = IMAGE_MODEL, video_model: str = GOOGLE_VEO_CONFIG["default_model"]):
        self.api_key = GEMINI_API_KEY if api_key is None else api_key
        self.vertexai = USE_VERTEXAI if vertexai is None else vertexai
        self.project_id = project_id or PROJECT_ID
        self.location = location or LOCATION
        self.image_model = image_model
        self.video_model = video_model
        self._client = None

    @property
    def client(self):
        """Lazy client initialization"""
        if self._client is None:
            if self.vertexai:
                self._client = genai.Client(
                    vertexai=True,
                    project=self.project_id,
                    location=self.location,
                    credentials=load_credentials(),
                )
            elif not self.api_key:
                raise AuthorizationError("API_KEY environment variable is not set")
            else:
                self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate_image(self, prompt: str, image: ImagePayload, aspect_ratio: str,
                             reference_images: Sequence[ImagePayload] = ()) -> ImagePayload:
        """
        Render the annotated source image with Gemini image generation.

        Part order is fixed: source image, reference images (in binding order),
        then the text prompt last.

        Raises:
            EmptyResultError: If the response carries no image
        """
        contents = [types.Part.from_bytes(data=image.data, mime_type=image.mime_type)]
        for ref in reference_images:
            contents.append(types.Part.from_bytes(data=ref.data, mime_type=ref.mime_type))
        contents.append(prompt)

        logger.info(f"[GeminiClient] Image request: model={self.image_model}, aspect={aspect_ratio}, "
                    f"references={len(reference_images)}")
        logger.info(f"[GeminiClient] Prompt: {prompt[:200]}...")

        response = await self.client.aio.models.generate_content(
            model=self.image_model,
            contents=contents,
            config=types.GenerateContentConfig(
                response_modalities=["IMAGE"],
                image_config=types.ImageConfig(
                    aspect_ratio=aspect_ratio,
                    image_size=IMAGE_SIZE,
                ),
                candidate_count=1,
            ),
        )

        if response.candidates and response.candidates[0].content and response.candidates[0].content.parts:
            for part in response.candidates[0].content.parts:
                # Skip reasoning/thought output
                if getattr(part, "thought", None):
                    continue
                if getattr(part, "inline_data", None) and part.inline_data.data:
                    return ImagePayload(
                        data=part.inline_data.data,
                        mime_type=part.inline_data.mime_type or "image/png",
                    )

        logger.warning("[GeminiClient] Image response contained no image data")
        raise EmptyResultError(EMPTY_IMAGE_MESSAGE)

    async def start_video(self, prompt: str, image: ImagePayload, aspect_ratio: str) -> Any:
        """Submit an image-to-video job; returns the long-running operation."""
        logger.info(f"[GeminiClient] Video request: model={self.video_model}, aspect={aspect_ratio}")
        logger.info(f"[GeminiClient] Prompt: {prompt[:200]}...")

        operation = await self.client.aio.models.generate_videos(
            model=self.video_model,
            prompt=prompt,
            image=types.Image(image_bytes=image.data, mime_type=image.mime_type),
            config=types.GenerateVideosConfig(
                number_of_videos=GOOGLE_VEO_CONFIG["number_of_videos"],
                resolution=GOOGLE_VEO_CONFIG["resolution"],
                aspect_ratio=aspect_ratio,
            ),
        )
        logger.info(f"[GeminiClient] Video operation started: {operation.name}")
        return operation

    async def poll_video(self, handle: Any) -> VideoStatus:
        operation = await self.client.aio.operations.get(handle)
        if not operation.done:
            return VideoStatus(done=False, handle=operation)

        if operation.error:
            return VideoStatus(done=True, handle=operation, error=_operation_error(operation.error))

        videos = operation.response.generated_videos if operation.response else None
        if not videos or not videos[0].video:
            return VideoStatus(done=True, handle=operation)

        video = videos[0].video
        return VideoStatus(
            done=True,
            handle=operation,
            result_ref=video.uri,
            inline_data=video.video_bytes,
        )

    async def download_asset(self, result_ref: str) -> bytes:
        """
        Download a finished asset, passing the API key both as a ``key`` query
        parameter and an ``x-goog-api-key`` header.

        Raises:
            AssetDownloadError: On any non-200 response
        """
        url = result_ref
        headers = {}
        if self.api_key:
            url = _with_key(result_ref, self.api_key)
            headers["x-goog-api-key"] = self.api_key

        async with aiohttp.ClientSession() as session:
            async with session.get(url, headers=headers,
                                   timeout=aiohttp.ClientTimeout(total=DOWNLOAD_TIMEOUT)) as response:
                if response.status != 200:
                    body = await response.text()
                    message = body
                    try:
                        message = json.loads(body)["error"]["message"]
                    except (ValueError, KeyError, TypeError):
                        pass
                    raise AssetDownloadError(
                        f"Failed to download asset: {response.status} {response.reason} - {message}",
                        code=response.status,
                    )
                data = await response.read()

        logger.info(f"[GeminiClient] Downloaded asset ({len(data)} bytes)")
        return data
