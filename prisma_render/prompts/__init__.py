"""Prompt synthesis for scene-guided generation

Re-exports the synthesizer entry points and the option catalogs.
"""

from .scene import (
    PromptSettings,
    PromptBundle,
    build_scene_prompt,
    collect_reference_images,
    describe_element,
    describe_elements,
    synthesize,
)
from .catalog import ELEMENT_OPTIONS, LINEAR_LABELS, MOODS, VIDEO_DURATIONS, is_linear_label

__all__ = [
    'PromptSettings',
    'PromptBundle',
    'build_scene_prompt',
    'collect_reference_images',
    'describe_element',
    'describe_elements',
    'synthesize',
    'ELEMENT_OPTIONS',
    'LINEAR_LABELS',
    'MOODS',
    'VIDEO_DURATIONS',
    'is_linear_label',
]
