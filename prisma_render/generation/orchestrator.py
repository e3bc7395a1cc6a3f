"""
Generation orchestrator

Runs each generation job as a detached asyncio task behind an optimistic
``pending`` history record. Every remote call (submission, each poll, asset
download) goes through the bounded retry combinator. Job records only ever
move ``pending -> completed`` or ``pending -> failed``.

The orchestrator does not refuse a submit while busy; callers check
``SessionContext.is_busy`` first.
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..core.config import GOOGLE_VEO_CONFIG
from ..core.errors import (
    EmptyResultError,
    PollTimeoutError,
    RemoteJobError,
    authorization_message,
    is_authorization_error,
)
from ..core.images import ImagePayload
from ..core.retry import DEFAULT_RETRY_POLICY, RetryPolicy, with_retry
from ..core.state import SessionContext
from ..storage.asset_store import AssetStore, LocalAssetStore
from .client_gemini import EMPTY_VIDEO_MESSAGE, GenerationBackend

logger = logging.getLogger(__name__)

JobKind = Literal["image", "video"]
JobStatus = Literal["pending", "completed", "failed"]


class GenerationJob(BaseModel):
    """One remote generation request"""
    model_config = ConfigDict(frozen=True)

    id: str
    kind: JobKind
    status: JobStatus = "pending"
    result_url: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    thumbnail: Optional[str] = None  # data URL of the input preview
    error: Optional[str] = None


class GenerationOrchestrator:

    def __init__(
        self,
        backend: GenerationBackend,
        context: SessionContext,
        store: Optional[AssetStore] = None,
        session_id: str = "default",
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        poll_interval: float = GOOGLE_VEO_CONFIG["check_interval"],
        max_wait_time: float = GOOGLE_VEO_CONFIG["max_wait_time"],
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.backend = backend
        self.context = context
        self.store = store or LocalAssetStore()
        self.session_id = session_id
        self.retry_policy = retry_policy
        self.poll_interval = poll_interval
        self.max_wait_time = max_wait_time
        self._sleep = sleep
        self._clock = clock

        # Newest first
        self.history: List[GenerationJob] = []
        self._tasks: Dict[str, asyncio.Task] = {}

    # --- Queries ---

    def get(self, job_id: str) -> GenerationJob:
        for job in self.history:
            if job.id == job_id:
                return job
        raise KeyError(job_id)

    @property
    def active_job(self) -> Optional[GenerationJob]:
        if self.context.active_job_id is None:
            return None
        try:
            return self.get(self.context.active_job_id)
        except KeyError:
            return None

    def in_flight(self) -> List[str]:
        return list(self._tasks)

    # --- Commands ---

    def submit(
        self,
        prompt: str,
        image: ImagePayload,
        kind: JobKind,
        aspect_ratio: str,
        reference_images: Sequence[ImagePayload] = (),
        thumbnail: Optional[str] = None,
    ) -> str:
        """
        Start a generation job and return its id immediately.

        Must be called from a running event loop. The pending record is inserted
        at the head of history and becomes the active view.
        """
        job = GenerationJob(id=uuid.uuid4().hex, kind=kind, thumbnail=thumbnail)
        self.history.insert(0, job)
        self.context.active_job_id = job.id
        self.context.error_message = None
        self.context.is_busy = True

        logger.info(f"[Orchestrator] Submitted {kind} job {job.id} (aspect {aspect_ratio})")
        task = asyncio.get_running_loop().create_task(
            self._run(job.id, kind, prompt, image, aspect_ratio, list(reference_images))
        )
        self._tasks[job.id] = task
        return job.id

    def select(self, job_id: str) -> GenerationJob:
        """Show a history entry; a failed entry shows its failure without re-running."""
        job = self.get(job_id)
        self.context.active_job_id = job_id
        self.context.error_message = job.error if job.status == "failed" else None
        return job

    def delete(self, job_id: str):
        """Remove a history entry; a pending entry also has its task cancelled."""
        self.get(job_id)
        self.history = [job for job in self.history if job.id != job_id]
        if self.context.active_job_id == job_id:
            self.context.active_job_id = None
            self.context.error_message = None

        task = self._tasks.pop(job_id, None)
        if task is not None and not task.done():
            logger.info(f"[Orchestrator] Cancelling deleted job {job_id}")
            task.cancel()
        self.context.is_busy = bool(self._tasks)

    def clear(self):
        """Forget all history (new source image); in-flight jobs keep running."""
        self.history = []
        self.context.active_job_id = None
        self.context.error_message = None

    async def wait(self, job_id: str) -> GenerationJob:
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self.get(job_id)

    async def shutdown(self):
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self.context.is_busy = False

    # --- Job execution ---

    async def _call(self, label: str, op):
        return await with_retry(op, self.retry_policy, label=label, sleep=self._sleep)

    async def _run(self, job_id: str, kind: JobKind, prompt: str, image: ImagePayload,
                   aspect_ratio: str, reference_images: List[ImagePayload]):
        try:
            if kind == "video":
                data = await self._render_video(prompt, image, aspect_ratio)
                mime_type = "video/mp4"
            else:
                result = await self._call(
                    "image generation",
                    lambda: self.backend.generate_image(prompt, image, aspect_ratio, reference_images),
                )
                data, mime_type = result.data, result.mime_type

            url = await asyncio.to_thread(self.store.save, self.session_id, job_id, data, mime_type)
            self._complete(job_id, url)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._fail(job_id, e)
        finally:
            self._tasks.pop(job_id, None)
            self.context.is_busy = bool(self._tasks)

    async def _render_video(self, prompt: str, image: ImagePayload, aspect_ratio: str) -> bytes:
        handle = await self._call(
            "video submission",
            lambda: self.backend.start_video(prompt, image, aspect_ratio),
        )

        started = self._clock()
        while True:
            await self._sleep(self.poll_interval)
            status = await self._call("video status poll", lambda: self.backend.poll_video(handle))
            handle = status.handle or handle
            if status.done:
                break
            elapsed = self._clock() - started
            if elapsed >= self.max_wait_time:
                raise PollTimeoutError(f"Timeout after {self.max_wait_time}s waiting for video generation")
            logger.info(f"[Orchestrator] Waiting for video... ({int(elapsed)}s elapsed)")

        if status.error:
            raise RemoteJobError(f"Video generation failed: {status.error}")
        if status.inline_data:
            return status.inline_data
        if not status.result_ref:
            raise EmptyResultError(EMPTY_VIDEO_MESSAGE)

        ref = status.result_ref
        return await self._call("video download", lambda: self.backend.download_asset(ref))

    def _replace(self, job_id: str, **updates) -> Optional[GenerationJob]:
        for index, job in enumerate(self.history):
            if job.id == job_id:
                updated = job.model_copy(update=updates)
                self.history[index] = updated
                return updated
        # Deleted while in flight
        return None

    def _complete(self, job_id: str, url: str):
        if self._replace(job_id, status="completed", result_url=url) is not None:
            logger.info(f"[Orchestrator] Job {job_id} completed: {url}")

    def _fail(self, job_id: str, error: Exception):
        message = str(error) or error.__class__.__name__
        if is_authorization_error(error):
            self.context.has_valid_credential = False
            message = authorization_message(error)

        logger.error(f"[Orchestrator] Job {job_id} failed: {error}")
        if self._replace(job_id, status="failed", error=message) is None:
            return

        if self.context.active_job_id == job_id:
            self.context.error_message = message
        else:
            logger.info(f"[Orchestrator] Not surfacing failure of job {job_id}; user is viewing another result")
