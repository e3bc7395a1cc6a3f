"""
Render studio: one user's editing and generation session

Wires the editor, prompt synthesizer, guide compositor and generation
orchestrator together around a shared SessionContext. ``generate()`` is the
single entry point that turns the current scene into a remote job.
"""

import asyncio
import logging
import uuid
from typing import Optional

from .core.config import SUPPORTED_ASPECT_RATIOS
from .core.errors import BusyError, CredentialRequiredError, InputError
from .core.images import ImagePayload, load_image, to_data_url
from .core.state import SessionContext
from .editor.interaction import InteractionController
from .editor.session import EditorSession
from .editor.viewport import Viewport
from .generation.aspect import ORIGINAL, resolve_aspect_ratio, resolve_video_aspect_ratio
from .generation.client_gemini import GeminiStudioClient, GenerationBackend
from .generation.orchestrator import GenerationOrchestrator
from .prompts.scene import PromptBundle, PromptSettings, synthesize
from .render.guides import compose_guides
from .storage.asset_store import AssetStore, default_asset_store

logger = logging.getLogger(__name__)


class RenderStudio:

    def __init__(
        self,
        backend: Optional[GenerationBackend] = None,
        store: Optional[AssetStore] = None,
        session_id: Optional[str] = None,
        context: Optional[SessionContext] = None,
        **orchestrator_options,
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.context = context or SessionContext()

        self.editor = EditorSession()
        self.viewport = Viewport()
        self.interaction = InteractionController(self.editor, self.viewport)

        self.settings = PromptSettings()
        self.aspect_ratio = ORIGINAL
        self.source_image: Optional[ImagePayload] = None

        self.orchestrator = GenerationOrchestrator(
            backend or GeminiStudioClient(),
            self.context,
            store=store or default_asset_store(),
            session_id=self.session_id,
            **orchestrator_options,
        )

    # --- Source image ---

    def set_image(self, data: bytes, mime_type: Optional[str] = None, keep_elements: bool = False) -> ImagePayload:
        """
        Replace the source image.

        The scene, selection, drawing tool and undo history are dropped unless
        ``keep_elements`` is set. Render history and the active view are
        always cleared.

        Raises:
            ImageDecodeError: If the bytes are not a readable image
        """
        payload = load_image(data, mime_type)
        self._replace_source(payload, keep_elements=keep_elements)
        self.orchestrator.clear()
        return payload

    def clear_image(self):
        self.source_image = None
        self.editor.reset()
        self.viewport.reset()
        self.viewport.set_natural_size(0, 0)
        self.orchestrator.clear()

    def _replace_source(self, payload: ImagePayload, keep_elements: bool):
        self.source_image = payload
        self.viewport.reset()
        self.viewport.set_natural_size(payload.width or 0, payload.height or 0)
        if not keep_elements:
            self.editor.reset()
        logger.info(f"[Studio] Source image set ({payload.mime_type}, {payload.width}x{payload.height}), "
                    f"keep_elements={keep_elements}")

    async def use_result_as_input(self, job_id: str, mode: Optional[str] = None) -> ImagePayload:
        """Load a completed image result as the new source image; render history is kept."""
        job = self.orchestrator.get(job_id)
        if job.kind != "image" or job.status != "completed" or not job.result_url:
            raise InputError("Only a completed image result can be used as input")

        data = await asyncio.to_thread(self.orchestrator.store.load, job.result_url)
        payload = load_image(data)
        self._replace_source(payload, keep_elements=False)
        if mode:
            self.update_settings(mode=mode)
        return payload

    # --- Settings ---

    def update_settings(self, **changes) -> PromptSettings:
        # Rebuild so the literals are validated
        self.settings = PromptSettings(**{**self.settings.model_dump(), **changes})
        return self.settings

    def set_aspect_ratio(self, ratio: str):
        if ratio != ORIGINAL and ratio not in SUPPORTED_ASPECT_RATIOS:
            raise ValueError(f"Unsupported aspect ratio: {ratio}")
        self.aspect_ratio = ratio

    # --- Generation ---

    def prepare(self) -> PromptBundle:
        return synthesize(self.settings, self.editor.elements)

    def resolved_aspect_ratio(self) -> str:
        image = self.source_image
        width = image.width if image else None
        height = image.height if image else None
        if self.settings.mode == "video":
            return resolve_video_aspect_ratio(self.aspect_ratio, width, height)
        return resolve_aspect_ratio(self.aspect_ratio, width, height)

    def generate(self) -> str:
        """
        Submit the current scene for generation.

        Must be called from a running event loop.

        Returns:
            Id of the new pending job

        Raises:
            InputError: If no source image is loaded
            BusyError: If another job is in flight
            CredentialRequiredError: If the session must re-authorize first
        """
        if self.source_image is None:
            raise InputError("Please upload an image first")
        if self.context.is_busy:
            raise BusyError("A generation is already in progress")
        if not self.context.has_valid_credential:
            raise CredentialRequiredError(self.context.error_message or "Please select a valid API Key")

        elements = self.editor.elements
        bundle = self.prepare()
        guide_image = compose_guides(self.source_image, elements)
        kind = self.settings.mode

        reference_images = bundle.reference_images if kind == "image" else []
        return self.orchestrator.submit(
            bundle.prompt,
            guide_image,
            kind,
            self.resolved_aspect_ratio(),
            reference_images=reference_images,
            thumbnail=to_data_url(self.source_image),
        )

    def authorize(self):
        self.context.authorize()

    async def close(self):
        await self.orchestrator.shutdown()
