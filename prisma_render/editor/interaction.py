"""Pointer/touch interaction state machine for the scene editor

One gesture is exactly one of: panning, pinch-zooming, dragging an element
handle, or drawing a linear element. Presses that arrive while a gesture is in
progress are ignored, so navigation and structural edits never interleave.

Press precedence on a plain press (no drawing tool armed):
  1. a pin/handle under the pointer starts a drag;
  2. anything else starts a pan, and a release that moved less than
     CLICK_TOLERANCE counts as a background click and clears the selection.
"""

import enum
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..core.config import CLICK_TOLERANCE, FREEHAND_MIN_DISTANCE_SQ, PIN_HIT_RADIUS
from ..scene.models import Coord, SegmentShape
from .session import EditorSession
from .viewport import Viewport

logger = logging.getLogger(__name__)


class InteractionState(str, enum.Enum):
    IDLE = "idle"
    PANNING = "panning"
    PINCH_ZOOMING = "pinch_zooming"
    DRAGGING = "dragging"
    DRAWING = "drawing"


@dataclass(frozen=True)
class DragTarget:
    element_id: str
    handle: str  # "start" | "end"


class InteractionController:

    def __init__(self, session: EditorSession, viewport: Optional[Viewport] = None):
        self.session = session
        self.viewport = viewport or Viewport()
        self.state = InteractionState.IDLE

        self.drag: Optional[DragTarget] = None
        self._drag_snapshotted = False

        # Pointer that owns the current gesture (pointer capture)
        self._captured: Optional[int] = None
        self._last_pos: Optional[Tuple[float, float]] = None
        self._press_origin: Optional[Tuple[float, float]] = None
        self._moved = False

        self._touches: Dict[int, Tuple[float, float]] = {}
        self._pinch_distance: Optional[float] = None

        # Transient drawing state
        self.temp_line: Optional[Tuple[Coord, Coord]] = None
        self.temp_path: List[Coord] = []

    # --- Hit testing ---

    def hit_test(self, x: float, y: float) -> Optional[DragTarget]:
        """Topmost element handle within PIN_HIT_RADIUS device pixels."""
        for element in reversed(self.session.elements):
            handles = []
            if isinstance(element.geometry, SegmentShape):
                handles.append(("end", element.geometry.end))
            handles.append(("start", element.anchor))
            for handle, coord in handles:
                hx, hy = self.viewport.to_device(coord)
                if math.hypot(hx - x, hy - y) <= PIN_HIT_RADIUS:
                    return DragTarget(element.id, handle)
        return None

    # --- Pointer events ---

    def pointer_down(self, x: float, y: float, pointer_id: int = 0,
                     pointer_type: str = "mouse", button: int = 0) -> InteractionState:
        if pointer_type == "touch":
            self._touches[pointer_id] = (x, y)
            if len(self._touches) == 2 and self.state in (InteractionState.IDLE, InteractionState.PANNING):
                self._start_pinch()
                return self.state

        if self.state != InteractionState.IDLE or button != 0:
            return self.state

        if self.session.drawing_tool is not None:
            self._start_drawing(x, y, pointer_id)
            return self.state

        target = self.hit_test(x, y)
        if target is not None:
            self.state = InteractionState.DRAGGING
            self.drag = target
            self._drag_snapshotted = False
            self._captured = pointer_id
            self.session.select(target.element_id)
            return self.state

        self.state = InteractionState.PANNING
        self._captured = pointer_id
        self._last_pos = (x, y)
        self._press_origin = (x, y)
        self._moved = False
        return self.state

    def pointer_move(self, x: float, y: float, pointer_id: int = 0) -> InteractionState:
        if pointer_id in self._touches:
            self._touches[pointer_id] = (x, y)

        if self.state == InteractionState.PINCH_ZOOMING:
            self._update_pinch()
            return self.state
        if pointer_id != self._captured:
            return self.state

        if self.state == InteractionState.PANNING:
            self._update_pan(x, y)
        elif self.state == InteractionState.DRAGGING:
            self._update_drag(x, y)
        elif self.state == InteractionState.DRAWING:
            self._update_drawing(x, y)
        return self.state

    def pointer_up(self, x: float, y: float, pointer_id: int = 0) -> InteractionState:
        self._touches.pop(pointer_id, None)

        if self.state == InteractionState.PINCH_ZOOMING:
            if len(self._touches) < 2:
                self._reset_gesture()
            return self.state

        if pointer_id == self._captured:
            if self.state == InteractionState.DRAWING:
                self._update_drawing(x, y)
                self._commit_drawing()
            elif self.state == InteractionState.PANNING and not self._moved:
                self.session.select(None)

        if pointer_id == self._captured or self._captured is None:
            self._reset_gesture()
        return self.state

    def pointer_cancel(self, pointer_id: int = 0) -> InteractionState:
        """Abort the gesture without committing anything."""
        self._touches.pop(pointer_id, None)
        if pointer_id == self._captured or self.state == InteractionState.PINCH_ZOOMING:
            self._reset_gesture()
        return self.state

    def wheel(self, delta_y: float):
        self.viewport.wheel(delta_y)

    def key_down(self, key: str, ctrl: bool = False, meta: bool = False, shift: bool = False) -> Optional[str]:
        """
        Keyboard shortcuts: ctrl/cmd+Z undo, ctrl/cmd+Y or ctrl/cmd+shift+Z redo.

        Returns:
            "undo", "redo" or None when the key is not a shortcut
        """
        if not (ctrl or meta):
            return None
        lowered = key.lower()
        if lowered == "y" or (lowered == "z" and shift):
            self.session.redo()
            return "redo"
        if lowered == "z":
            self.session.undo()
            return "undo"
        return None

    # --- Gesture internals ---

    def _reset_gesture(self):
        self.state = InteractionState.IDLE
        self.drag = None
        self._drag_snapshotted = False
        self._captured = None
        self._last_pos = None
        self._press_origin = None
        self._moved = False
        self._pinch_distance = None
        self.temp_line = None
        self.temp_path = []

    def _start_pinch(self):
        (x1, y1), (x2, y2) = list(self._touches.values())[:2]
        self.state = InteractionState.PINCH_ZOOMING
        self._captured = None
        self._pinch_distance = math.hypot(x1 - x2, y1 - y2)

    def _update_pinch(self):
        if len(self._touches) < 2:
            return
        (x1, y1), (x2, y2) = list(self._touches.values())[:2]
        distance = math.hypot(x1 - x2, y1 - y2)
        if self._pinch_distance:
            self.viewport.pinch(distance / self._pinch_distance)
        self._pinch_distance = distance

    def _update_pan(self, x: float, y: float):
        last_x, last_y = self._last_pos
        self.viewport.pan_by(x - last_x, y - last_y)
        self._last_pos = (x, y)
        origin_x, origin_y = self._press_origin
        if math.hypot(x - origin_x, y - origin_y) > CLICK_TOLERANCE:
            self._moved = True

    def _update_drag(self, x: float, y: float):
        element = self.session.get(self.drag.element_id)
        if element.is_freehand:
            return
        coord = self.viewport.to_scene(x, y)
        current = element.end_anchor if self.drag.handle == "end" else element.anchor
        if current == coord:
            return
        if not self._drag_snapshotted:
            self.session.begin_interaction()
            self._drag_snapshotted = True
        self.session.move_element(element.id, coord, self.drag.handle)

    def _start_drawing(self, x: float, y: float, pointer_id: int):
        start = self.viewport.to_scene(x, y)
        self.state = InteractionState.DRAWING
        self._captured = pointer_id
        if self.session.drawing_tool.mode == "line":
            self.temp_line = (start, start)
        else:
            self.temp_path = [start]

    def _update_drawing(self, x: float, y: float):
        coord = self.viewport.to_scene(x, y)
        if self.session.drawing_tool.mode == "line":
            self.temp_line = (self.temp_line[0], coord)
            return
        last = self.temp_path[-1]
        dx = coord.x - last.x
        dy = coord.y - last.y
        if dx * dx + dy * dy > FREEHAND_MIN_DISTANCE_SQ:
            self.temp_path.append(coord)

    def _commit_drawing(self):
        if self.session.drawing_tool.mode == "line":
            start, end = self.temp_line
            self.session.commit_line(start, end)
        else:
            self.session.commit_path(self.temp_path)
