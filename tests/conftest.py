from __future__ import annotations

import asyncio
from io import BytesIO
from typing import Any, List, Optional

import pytest
from PIL import Image

from prisma_render.core.images import ImagePayload, load_image
from prisma_render.generation.client_gemini import VideoStatus
from prisma_render.storage.asset_store import LocalAssetStore


def make_image_bytes(width: int = 64, height: int = 48, fmt: str = "PNG", color=(40, 60, 80)) -> bytes:
    image = Image.new("RGB", (width, height), color)
    buffer = BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_payload(width: int = 64, height: int = 48, fmt: str = "PNG") -> ImagePayload:
    return load_image(make_image_bytes(width, height, fmt))


class FakeRemoteError(Exception):
    """Exception shaped like an SDK error: an HTTP code plus a message"""

    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(f"{code} {message}".strip())
        self.code = code


class FakeBackend:
    """In-memory stand-in for the Gemini/Veo client"""

    def __init__(
        self,
        image_errors: Optional[List[Exception]] = None,
        video_start_errors: Optional[List[Exception]] = None,
        video_statuses: Optional[List[Any]] = None,
        download_errors: Optional[List[Exception]] = None,
        asset: bytes = b"fake-video-bytes",
    ) -> None:
        self.image_errors = list(image_errors or [])
        self.video_start_errors = list(video_start_errors or [])
        self.video_statuses = list(video_statuses or [VideoStatus(done=True, result_ref="https://example.test/video.mp4")])
        self.download_errors = list(download_errors or [])
        self.asset = asset
        self.result = ImagePayload(data=make_image_bytes(32, 32, color=(250, 250, 250)), mime_type="image/png")
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[tuple] = []

    async def generate_image(self, prompt, image, aspect_ratio, reference_images=()):
        self.calls.append(("generate_image", prompt, image, aspect_ratio, list(reference_images)))
        if self.gate is not None:
            await self.gate.wait()
        if self.image_errors:
            raise self.image_errors.pop(0)
        return self.result

    async def start_video(self, prompt, image, aspect_ratio):
        self.calls.append(("start_video", prompt, image, aspect_ratio))
        if self.video_start_errors:
            raise self.video_start_errors.pop(0)
        return "operations/fake-1"

    async def poll_video(self, handle):
        self.calls.append(("poll_video", handle))
        status = self.video_statuses.pop(0) if len(self.video_statuses) > 1 else self.video_statuses[0]
        if isinstance(status, Exception):
            raise status
        return status

    async def download_asset(self, result_ref):
        self.calls.append(("download_asset", result_ref))
        if self.download_errors:
            raise self.download_errors.pop(0)
        return self.asset

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


class RecordingSleep:
    """Awaitable sleep that returns immediately and records the requested delays"""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def store(tmp_path):
    return LocalAssetStore(str(tmp_path / "outputs"))


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def no_sleep():
    return RecordingSleep()
