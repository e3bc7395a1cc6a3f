"""Type definitions for API request/response validation"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from ..generation.orchestrator import GenerationJob
from ..prompts.scene import GenerationMode, Mood
from ..scene.models import ElementKind, Handle, InstallSide, Pose


class SessionRequest(BaseModel):
    """Request type for creating a session"""
    session_id: Optional[str] = None


class SessionResponse(BaseModel):
    """Response type for session creation"""
    session_id: str
    status: str


class CoordModel(BaseModel):
    x: float
    y: float


class ElementView(BaseModel):
    """Scene element as seen by clients; reference image bytes are omitted"""
    id: str
    kind: str
    label: str
    shape: str
    anchor: CoordModel
    end: Optional[CoordModel] = None
    points: Optional[List[CoordModel]] = None
    has_reference_image: bool = False
    color_temperature: Optional[int] = None
    pose: Optional[str] = None
    install_side: Optional[str] = None


class DrawingToolView(BaseModel):
    kind: str
    label: str
    mode: str


class ViewportView(BaseModel):
    zoom: float
    pan: List[float]
    content_box: Dict[str, float]


class SceneResponse(BaseModel):
    """Response type for the current scene"""
    session_id: str
    has_image: bool
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    elements: List[ElementView]
    selected_id: Optional[str] = None
    drawing_tool: Optional[DrawingToolView] = None
    can_undo: bool
    can_redo: bool
    interaction_state: str
    viewport: ViewportView


class AddElementRequest(BaseModel):
    """Request to add a catalog element; linear lighting labels arm the drawing tool"""
    kind: ElementKind
    label: str
    x: Optional[float] = None
    y: Optional[float] = None


class UpdateElementRequest(BaseModel):
    """Attribute edits; omitted fields are left unchanged"""
    label: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    handle: Handle = "start"
    color_temperature: Optional[int] = None
    pose: Optional[Pose] = None
    install_side: Optional[InstallSide] = None
    reference_image: Optional[str] = None  # data URL
    remove_reference_image: bool = False
    selected: Optional[bool] = None


class DrawingModeRequest(BaseModel):
    mode: Literal["line", "freehand"]


class ViewportRequest(BaseModel):
    container_width: Optional[float] = None
    container_height: Optional[float] = None
    zoom: Optional[float] = None
    wheel_delta: Optional[float] = None
    reset: bool = False


class PointerEvent(BaseModel):
    """Pointer event in container device pixels"""
    type: Literal["down", "move", "up", "cancel"]
    x: float = 0.0
    y: float = 0.0
    pointer_id: int = 0
    pointer_type: Literal["mouse", "pen", "touch"] = "mouse"
    button: int = 0


class KeyEvent(BaseModel):
    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False


class SettingsRequest(BaseModel):
    """Prompt settings update; omitted fields are left unchanged"""
    base_text: Optional[str] = None
    mood: Optional[Mood] = None
    professional_lighting: Optional[bool] = None
    professional_landscaping: Optional[bool] = None
    enhance_realism: Optional[bool] = None
    preserve_lighting: Optional[bool] = None
    preserve_view: Optional[bool] = None
    preserve_branding: Optional[bool] = None
    custom_preservation: Optional[str] = None
    mode: Optional[GenerationMode] = None
    video_duration: Optional[Literal["3", "5", "10", "custom"]] = None
    custom_duration: Optional[str] = None
    aspect_ratio: Optional[str] = None


class SettingsResponse(BaseModel):
    settings: Dict[str, Any]
    aspect_ratio: str
    prompt: str


class UseAsInputRequest(BaseModel):
    mode: Optional[GenerationMode] = None


class HistoryResponse(BaseModel):
    """Render history, newest first"""
    session_id: str
    jobs: List[GenerationJob]
    active_job_id: Optional[str] = None
    is_busy: bool
    has_valid_credential: bool
    error_message: Optional[str] = None


class ErrorResponse(BaseModel):
    """Type for error responses"""
    error: str
    details: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)
