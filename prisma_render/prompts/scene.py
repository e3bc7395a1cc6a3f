"""Scene prompt synthesis

Pure functions from (settings, scene elements) to the text prompt and the
ordered reference-image list sent alongside it. Reference image ``#N`` in the
text is always the N-th element (in scene order) that carries a reference
image, and ``collect_reference_images`` returns the payloads in that same order.
"""

from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from ..core.config import DEFAULT_BASE_PROMPT, DEFAULT_VIDEO_DURATION
from ..core.images import ImagePayload
from ..scene.geometry import position_descriptor
from ..scene.models import PathShape, SceneElement, SegmentShape
from .clauses import (
    CUSTOM_PRESERVATION_TEMPLATE,
    ENHANCEMENT_CLAUSES,
    INCLUDE_ELEMENTS_TEMPLATE,
    INSTALL_BACK,
    INSTALL_BACK_CURVED,
    INSTALL_FRONT,
    LINEAR_GUIDE_SAFETY_CLAUSE,
    MOOD_CLAUSE_TEMPLATE,
    MOOD_ORIGINAL_CLAUSE,
    PATH_ELEMENT_TEMPLATE,
    POINT_ELEMENT_TEMPLATE,
    POSE_PREFIXES,
    PRESERVATION_CLAUSES,
    QUALITY_SUFFIX,
    REFERENCE_CLAUSE_TEMPLATE,
    SEGMENT_ELEMENT_TEMPLATE,
    TEMPERATURE_CLAUSE_TEMPLATE,
    VIDEO_DURATION_TEMPLATE,
)

GenerationMode = Literal["image", "video"]
Mood = Literal['Original', 'Day', 'Sunny', 'Summer', 'Spring', 'Dusk', 'Night', 'Starry Night', 'Rainy']


class PromptSettings(BaseModel):
    """Global prompt controls set by the user"""
    model_config = ConfigDict(frozen=True)

    base_text: str = ""
    mood: Mood = "Original"

    # Enhancements
    professional_lighting: bool = False
    professional_landscaping: bool = False
    enhance_realism: bool = False

    # Preservation
    preserve_lighting: bool = False
    preserve_view: bool = False
    preserve_branding: bool = False
    custom_preservation: str = ""

    # Mode
    mode: GenerationMode = "image"
    video_duration: str = DEFAULT_VIDEO_DURATION  # '3' | '5' | '10' | 'custom'
    custom_duration: str = ""

    def resolved_duration(self) -> str:
        if self.video_duration == "custom":
            return self.custom_duration.strip()
        return self.video_duration.strip()


class PromptBundle(BaseModel):
    """Prompt text plus the reference images it refers to, in binding order"""
    model_config = ConfigDict(frozen=True)

    prompt: str
    reference_images: List[ImagePayload] = []


def _install_phrase(element: SceneElement, curved: bool) -> str:
    if element.install_side == "back":
        return INSTALL_BACK_CURVED if curved else INSTALL_BACK
    return INSTALL_FRONT


def describe_element(element: SceneElement, reference_index: Optional[int] = None) -> str:
    """
    Describe one element for the "Include exactly" clause.

    Args:
        element: Scene element
        reference_index: 1-based reference image number when the element
            carries a reference image

    Returns:
        Element description
    """
    start = position_descriptor(element.anchor.x, element.anchor.y)
    label = element.label.lower()
    geometry = element.geometry

    if isinstance(geometry, PathShape):
        desc = PATH_ELEMENT_TEMPLATE.format(
            label=label, install=_install_phrase(element, curved=True), start=start
        )
    elif isinstance(geometry, SegmentShape):
        end = position_descriptor(geometry.end.x, geometry.end.y)
        desc = SEGMENT_ELEMENT_TEMPLATE.format(
            label=label, install=_install_phrase(element, curved=False), start=start, end=end
        )
    else:
        pose = ""
        if element.kind == "person" and element.pose:
            pose = POSE_PREFIXES.get(element.pose, "")
        desc = POINT_ELEMENT_TEMPLATE.format(pose=pose, label=label, position=start)

    if element.kind == "lighting" and element.color_temperature:
        desc += TEMPERATURE_CLAUSE_TEMPLATE.format(kelvin=element.color_temperature)

    if element.reference_image is not None and reference_index is not None:
        desc += REFERENCE_CLAUSE_TEMPLATE.format(index=reference_index, label=element.label)

    return desc


def describe_elements(elements: Sequence[SceneElement]) -> List[str]:
    """Describe every element, numbering reference images by first occurrence."""
    descriptions = []
    reference_index = 0
    for element in elements:
        index = None
        if element.reference_image is not None:
            reference_index += 1
            index = reference_index
        descriptions.append(describe_element(element, index))
    return descriptions


def collect_reference_images(elements: Sequence[SceneElement]) -> List[ImagePayload]:
    return [el.reference_image for el in elements if el.reference_image is not None]


def build_scene_prompt(settings: PromptSettings, elements: Sequence[SceneElement]) -> str:
    """
    Build the full generation prompt.

    Clause order: base description, mood, enhancements, preservation,
    "Include exactly", linear-light guard, mode closing clause, quality suffix.
    """
    base = settings.base_text.strip() or DEFAULT_BASE_PROMPT

    clauses = []
    if settings.mood == "Original":
        clauses.append(MOOD_ORIGINAL_CLAUSE)
    else:
        clauses.append(MOOD_CLAUSE_TEMPLATE.format(mood=settings.mood))

    for flag, clause in ENHANCEMENT_CLAUSES.items():
        if getattr(settings, flag):
            clauses.append(clause)

    for flag, clause in PRESERVATION_CLAUSES.items():
        if getattr(settings, flag):
            clauses.append(clause)

    custom = settings.custom_preservation.strip()
    if custom:
        clauses.append(CUSTOM_PRESERVATION_TEMPLATE.format(text=custom))

    if elements:
        clauses.append(INCLUDE_ELEMENTS_TEMPLATE.format(
            descriptions=", ".join(describe_elements(elements))
        ))
        if any(el.is_linear_lighting for el in elements):
            clauses.append(LINEAR_GUIDE_SAFETY_CLAUSE)

    if settings.mode == "video":
        duration = settings.resolved_duration()
        if duration:
            clauses.append(VIDEO_DURATION_TEMPLATE.format(seconds=duration))

    return f"{base}. {'. '.join(clauses)}. {QUALITY_SUFFIX}"


def synthesize(settings: PromptSettings, elements: Sequence[SceneElement]) -> PromptBundle:
    return PromptBundle(
        prompt=build_scene_prompt(settings, elements),
        reference_images=collect_reference_images(elements),
    )
