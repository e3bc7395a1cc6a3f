"""Main FastAPI application for the render studio"""

import asyncio
import logging
import mimetypes
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api_types import (
    AddElementRequest,
    CoordModel,
    DrawingModeRequest,
    DrawingToolView,
    ElementView,
    ErrorResponse,
    HistoryResponse,
    KeyEvent,
    PointerEvent,
    SceneResponse,
    SessionRequest,
    SessionResponse,
    SettingsRequest,
    SettingsResponse,
    UpdateElementRequest,
    UseAsInputRequest,
    ViewportRequest,
    ViewportView,
)
from ..core.config import SUPPORTED_ASPECT_RATIOS
from ..core.errors import (
    AuthorizationError,
    BusyError,
    CredentialRequiredError,
    ImageDecodeError,
    InputError,
    StudioError,
)
from ..core.images import detect_mime_type, from_data_url, load_image
from ..prompts.catalog import ELEMENT_OPTIONS, MOODS, VIDEO_DURATIONS
from ..scene.models import Coord, PathShape, SceneElement, SegmentShape
from ..studio import RenderStudio

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# In-memory session registry; sessions live as long as the process
sessions: Dict[str, RenderStudio] = {}


def create_studio(session_id: str) -> RenderStudio:
    return RenderStudio(session_id=session_id)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan"""
    yield

    # Shutdown: stop every in-flight generation
    for studio in list(sessions.values()):
        await studio.close()
    logger.info(f"[API] Closed {len(sessions)} session(s)")


# Initialize FastAPI app
app = FastAPI(
    title="Prisma Render Studio",
    description="Scene-guided architectural image and video generation",
    version="0.1.0",
    lifespan=lifespan
)

# CORS configuration for client applications
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _status_for(exc: StudioError) -> int:
    if isinstance(exc, BusyError):
        return 409
    if isinstance(exc, (CredentialRequiredError, AuthorizationError)):
        return 401
    if isinstance(exc, InputError):
        return 400
    if isinstance(exc, ImageDecodeError):
        return 422
    return 502


@app.exception_handler(StudioError)
async def studio_error_handler(request: Request, exc: StudioError):
    status_code = _status_for(exc)
    logger.warning(f"[API] {request.method} {request.url.path} -> {status_code}: {exc}")
    body = ErrorResponse(error=str(exc), details=exc.__class__.__name__)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    body = ErrorResponse(error=str(exc), details="ValueError")
    return JSONResponse(status_code=400, content=body.model_dump(mode="json"))


# --- Helpers ---

def get_studio(session_id: str) -> RenderStudio:
    studio = sessions.get(session_id)
    if studio is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return studio


def require_element(studio: RenderStudio, element_id: str):
    if element_id not in studio.editor:
        raise HTTPException(status_code=404, detail=f"Element not found: {element_id}")


def require_job(studio: RenderStudio, job_id: str):
    try:
        return studio.orchestrator.get(job_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")


def _coord(coord: Coord) -> CoordModel:
    return CoordModel(x=coord.x, y=coord.y)


def element_view(element: SceneElement) -> ElementView:
    geometry = element.geometry
    return ElementView(
        id=element.id,
        kind=element.kind,
        label=element.label,
        shape=geometry.shape,
        anchor=_coord(element.anchor),
        end=_coord(geometry.end) if isinstance(geometry, SegmentShape) else None,
        points=[_coord(p) for p in geometry.points] if isinstance(geometry, PathShape) else None,
        has_reference_image=element.reference_image is not None,
        color_temperature=element.color_temperature,
        pose=element.pose,
        install_side=element.install_side,
    )


def scene_view(studio: RenderStudio) -> SceneResponse:
    editor = studio.editor
    viewport = studio.viewport
    tool = editor.drawing_tool
    image = studio.source_image
    return SceneResponse(
        session_id=studio.session_id,
        has_image=image is not None,
        image_width=image.width if image else None,
        image_height=image.height if image else None,
        elements=[element_view(el) for el in editor.elements],
        selected_id=editor.selected_id,
        drawing_tool=DrawingToolView(kind=tool.kind, label=tool.label, mode=tool.mode) if tool else None,
        can_undo=editor.history.can_undo,
        can_redo=editor.history.can_redo,
        interaction_state=studio.interaction.state.value,
        viewport=ViewportView(
            zoom=viewport.zoom,
            pan=list(viewport.pan),
            content_box={
                "width": viewport.box.width,
                "height": viewport.box.height,
                "top": viewport.box.top,
                "left": viewport.box.left,
            },
        ),
    )


def history_view(studio: RenderStudio) -> HistoryResponse:
    context = studio.context
    return HistoryResponse(
        session_id=studio.session_id,
        jobs=list(studio.orchestrator.history),
        active_job_id=context.active_job_id,
        is_busy=context.is_busy,
        has_valid_credential=context.has_valid_credential,
        error_message=context.error_message,
    )


# --- Service ---

@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "Prisma Render Studio",
        "version": "0.1.0",
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "sessions": len(sessions),
        "timestamp": datetime.now().isoformat()
    }


@app.get("/catalog")
async def catalog():
    """Element options and setting choices offered by the editor"""
    return {
        "elements": ELEMENT_OPTIONS,
        "moods": MOODS,
        "video_durations": VIDEO_DURATIONS,
        "aspect_ratios": ["Original", *SUPPORTED_ASPECT_RATIOS],
    }


# --- Sessions ---

@app.post("/sessions", response_model=SessionResponse)
async def create_session(request: Optional[SessionRequest] = None):
    """Create a new studio session"""
    if request and request.session_id:
        session_id = request.session_id
    else:
        session_id = str(uuid.uuid4())

    if session_id not in sessions:
        sessions[session_id] = create_studio(session_id)
        logger.info(f"[API] Created new session: {session_id}")
        return SessionResponse(session_id=session_id, status="created")
    return SessionResponse(session_id=session_id, status="exists")


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    """Delete a session and stop its in-flight generation"""
    studio = get_studio(session_id)
    await studio.close()
    del sessions[session_id]
    logger.info(f"[API] Deleted session {session_id}")
    return {"status": "deleted", "session_id": session_id}


@app.put("/sessions/{session_id}/image", response_model=SceneResponse)
async def upload_image(session_id: str, file: UploadFile = File(...), keep_elements: bool = Form(False)):
    """Replace the source image"""
    studio = get_studio(session_id)
    data = await file.read()
    mime_type = file.content_type or detect_mime_type(file.filename or "")
    studio.set_image(data, mime_type, keep_elements=keep_elements)
    return scene_view(studio)


@app.delete("/sessions/{session_id}/image", response_model=SceneResponse)
async def clear_image(session_id: str):
    studio = get_studio(session_id)
    studio.clear_image()
    return scene_view(studio)


# --- Scene editing ---

@app.get("/sessions/{session_id}/scene", response_model=SceneResponse)
async def get_scene(session_id: str):
    return scene_view(get_studio(session_id))


@app.post("/sessions/{session_id}/elements", response_model=SceneResponse)
async def add_element(session_id: str, request: AddElementRequest):
    """Add a catalog element, or arm the drawing tool for linear lighting"""
    studio = get_studio(session_id)
    if request.x is not None and request.y is not None:
        studio.editor.add_point_element(request.kind, request.label, Coord(x=request.x, y=request.y))
    else:
        studio.editor.request_element(request.kind, request.label)
    return scene_view(studio)


@app.put("/sessions/{session_id}/drawing-tool", response_model=SceneResponse)
async def set_drawing_mode(session_id: str, request: DrawingModeRequest):
    studio = get_studio(session_id)
    studio.editor.set_drawing_mode(request.mode)
    return scene_view(studio)


@app.delete("/sessions/{session_id}/drawing-tool", response_model=SceneResponse)
async def disarm_drawing_tool(session_id: str):
    studio = get_studio(session_id)
    studio.editor.disarm_drawing_tool()
    return scene_view(studio)


@app.patch("/sessions/{session_id}/elements/{element_id}", response_model=SceneResponse)
async def update_element(session_id: str, element_id: str, request: UpdateElementRequest):
    """Edit element attributes; an invalid edit leaves the element untouched"""
    studio = get_studio(session_id)
    require_element(studio, element_id)
    editor = studio.editor

    reference_image = None
    if request.reference_image is not None:
        payload = from_data_url(request.reference_image)
        reference_image = load_image(payload.data, payload.mime_type)
    attributes = {
        "label": request.label,
        "color_temperature": request.color_temperature,
        "pose": request.pose,
        "install_side": request.install_side,
    }
    editor.check_attributes(element_id, **attributes)

    if reference_image is not None:
        editor.set_reference_image(element_id, reference_image)
    elif request.remove_reference_image:
        editor.remove_reference_image(element_id)

    if request.x is not None and request.y is not None:
        editor.move_element(element_id, Coord(x=request.x, y=request.y), request.handle, snapshot=True)
    editor.edit_attributes(element_id, **attributes)
    if request.selected is not None:
        editor.select(element_id if request.selected else None)

    return scene_view(studio)


@app.delete("/sessions/{session_id}/elements/{element_id}", response_model=SceneResponse)
async def remove_element(session_id: str, element_id: str):
    studio = get_studio(session_id)
    require_element(studio, element_id)
    studio.editor.remove_element(element_id)
    return scene_view(studio)


@app.post("/sessions/{session_id}/elements/{element_id}/duplicate", response_model=SceneResponse)
async def duplicate_element(session_id: str, element_id: str):
    studio = get_studio(session_id)
    require_element(studio, element_id)
    studio.editor.duplicate_element(element_id)
    return scene_view(studio)


@app.post("/sessions/{session_id}/undo", response_model=SceneResponse)
async def undo(session_id: str):
    studio = get_studio(session_id)
    studio.editor.undo()
    return scene_view(studio)


@app.post("/sessions/{session_id}/redo", response_model=SceneResponse)
async def redo(session_id: str):
    studio = get_studio(session_id)
    studio.editor.redo()
    return scene_view(studio)


# --- Viewport and input events ---

@app.put("/sessions/{session_id}/viewport", response_model=SceneResponse)
async def update_viewport(session_id: str, request: ViewportRequest):
    studio = get_studio(session_id)
    viewport = studio.viewport
    if request.container_width is not None and request.container_height is not None:
        viewport.set_container(request.container_width, request.container_height)
    if request.reset:
        viewport.reset()
    if request.zoom is not None:
        viewport.set_zoom(request.zoom)
    if request.wheel_delta is not None:
        studio.interaction.wheel(request.wheel_delta)
    return scene_view(studio)


@app.post("/sessions/{session_id}/pointer", response_model=SceneResponse)
async def pointer_event(session_id: str, event: PointerEvent):
    """Feed one pointer event to the interaction state machine"""
    studio = get_studio(session_id)
    interaction = studio.interaction
    if event.type == "down":
        interaction.pointer_down(event.x, event.y, event.pointer_id, event.pointer_type, event.button)
    elif event.type == "move":
        interaction.pointer_move(event.x, event.y, event.pointer_id)
    elif event.type == "up":
        interaction.pointer_up(event.x, event.y, event.pointer_id)
    else:
        interaction.pointer_cancel(event.pointer_id)
    return scene_view(studio)


@app.post("/sessions/{session_id}/keys")
async def key_event(session_id: str, event: KeyEvent):
    studio = get_studio(session_id)
    action = studio.interaction.key_down(event.key, event.ctrl, event.meta, event.shift)
    return {"action": action, "scene": scene_view(studio)}


# --- Prompt settings ---

@app.put("/sessions/{session_id}/settings", response_model=SettingsResponse)
async def update_settings(session_id: str, request: SettingsRequest):
    studio = get_studio(session_id)
    changes = request.model_dump(exclude_none=True)
    aspect_ratio = changes.pop("aspect_ratio", None)
    if aspect_ratio is not None:
        studio.set_aspect_ratio(aspect_ratio)
    if changes:
        studio.update_settings(**changes)
    return SettingsResponse(
        settings=studio.settings.model_dump(),
        aspect_ratio=studio.aspect_ratio,
        prompt=studio.prepare().prompt,
    )


# --- Generation ---

@app.post("/sessions/{session_id}/generate", status_code=202)
async def generate(session_id: str):
    """Start a generation job; the job record is returned while still pending"""
    studio = get_studio(session_id)
    job_id = studio.generate()
    return studio.orchestrator.get(job_id).model_dump(mode="json")


@app.get("/sessions/{session_id}/history", response_model=HistoryResponse)
async def get_history(session_id: str):
    return history_view(get_studio(session_id))


@app.post("/sessions/{session_id}/history/{job_id}/select", response_model=HistoryResponse)
async def select_job(session_id: str, job_id: str):
    studio = get_studio(session_id)
    require_job(studio, job_id)
    studio.orchestrator.select(job_id)
    return history_view(studio)


@app.delete("/sessions/{session_id}/history/{job_id}", response_model=HistoryResponse)
async def delete_job(session_id: str, job_id: str):
    studio = get_studio(session_id)
    require_job(studio, job_id)
    studio.orchestrator.delete(job_id)
    return history_view(studio)


@app.get("/sessions/{session_id}/history/{job_id}/asset")
async def get_job_asset(session_id: str, job_id: str):
    """Download the stored result of a completed job"""
    studio = get_studio(session_id)
    job = require_job(studio, job_id)
    if job.status != "completed" or not job.result_url:
        raise HTTPException(status_code=409, detail=f"Job {job_id} has no result")
    data = await asyncio.to_thread(studio.orchestrator.store.load, job.result_url)
    media_type = mimetypes.guess_type(job.result_url)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)


@app.post("/sessions/{session_id}/history/{job_id}/use-as-input", response_model=SceneResponse)
async def use_as_input(session_id: str, job_id: str, request: Optional[UseAsInputRequest] = None):
    studio = get_studio(session_id)
    require_job(studio, job_id)
    await studio.use_result_as_input(job_id, request.mode if request else None)
    return scene_view(studio)


@app.post("/sessions/{session_id}/authorize", response_model=HistoryResponse)
async def authorize(session_id: str):
    """Re-enable generation after the user selected a new credential"""
    studio = get_studio(session_id)
    studio.authorize()
    return history_view(studio)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
