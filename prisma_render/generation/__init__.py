"""Remote generation: Gemini/Veo client, aspect ratios and job orchestration"""

from .aspect import resolve_aspect_ratio, resolve_video_aspect_ratio
from .client_gemini import GeminiStudioClient, GenerationBackend, VideoStatus
from .orchestrator import GenerationJob, GenerationOrchestrator

__all__ = [
    'resolve_aspect_ratio',
    'resolve_video_aspect_ratio',
    'GeminiStudioClient',
    'GenerationBackend',
    'VideoStatus',
    'GenerationJob',
    'GenerationOrchestrator',
]
