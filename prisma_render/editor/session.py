"""Editing session: owns the scene graph, selection, drawing tool and history

Structural mutations (add, remove, duplicate, draw commit, drag start,
reference image changes) snapshot history first. Attribute edits and drag
moves mutate in place without a snapshot, so one drag is one undo step.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from ..core.config import (
    DEFAULT_COLOR_TEMPERATURE,
    DEFAULT_INSTALL_SIDE,
    DEFAULT_PLACEMENT,
    DEFAULT_POSE,
    DUPLICATE_OFFSET,
)
from ..core.images import ImagePayload
from ..prompts.catalog import is_linear_label
from ..scene.history import HistoryManager
from ..scene.models import (
    Coord,
    Geometry,
    PathShape,
    PointShape,
    SceneElement,
    SegmentShape,
    Snapshot,
)

logger = logging.getLogger(__name__)

DrawingMode = Literal["line", "freehand"]


@dataclass(frozen=True)
class DrawingTool:
    """Armed tool: the element kind/label a finished drawing will create"""
    kind: str
    label: str
    mode: DrawingMode = "line"


class EditorSession:

    def __init__(self):
        self.elements: Snapshot = ()
        self.selected_id: Optional[str] = None
        self.drawing_tool: Optional[DrawingTool] = None
        self.history = HistoryManager()
        self._ids = itertools.count(1)

    # --- Lookup ---

    def get(self, element_id: str) -> SceneElement:
        for element in self.elements:
            if element.id == element_id:
                return element
        raise ValueError(f"Unknown element: {element_id}")

    def __contains__(self, element_id: str) -> bool:
        return any(el.id == element_id for el in self.elements)

    @property
    def selected(self) -> Optional[SceneElement]:
        if self.selected_id is None:
            return None
        return self.get(self.selected_id)

    def _next_id(self) -> str:
        # Monotonic counter: ids are creation-ordered and never reused
        return f"el_{next(self._ids):05d}"

    # --- History ---

    def snapshot(self):
        self.history.snapshot(self.elements)

    def undo(self) -> bool:
        restored = self.history.undo(self.elements)
        if restored is None:
            return False
        self._restore(restored)
        return True

    def redo(self) -> bool:
        restored = self.history.redo(self.elements)
        if restored is None:
            return False
        self._restore(restored)
        return True

    def _restore(self, elements: Snapshot):
        self.elements = elements
        if self.selected_id is not None and self.selected_id not in self:
            self.selected_id = None

    # --- Creation ---

    def _build(self, kind: str, label: str, anchor: Coord, geometry: Geometry) -> SceneElement:
        linear = not isinstance(geometry, PointShape)
        return SceneElement(
            id=self._next_id(),
            kind=kind,
            label=label,
            anchor=anchor,
            geometry=geometry,
            color_temperature=DEFAULT_COLOR_TEMPERATURE if kind == "lighting" else None,
            pose=DEFAULT_POSE if kind == "person" else None,
            install_side=DEFAULT_INSTALL_SIDE if kind == "lighting" and linear else None,
        )

    def _append(self, element: SceneElement) -> SceneElement:
        self.elements = self.elements + (element,)
        self.selected_id = element.id
        logger.info(f"[Editor] Added {element.kind} '{element.label}' ({element.geometry.shape}) as {element.id}")
        return element

    def request_element(self, kind: str, label: str) -> Optional[SceneElement]:
        """
        Add an element from the catalog.

        Linear labels (LED strips/profiles) arm the drawing tool instead of
        placing a pin; the element is created when the drawing is committed.

        Returns:
            The new point element, or None if the drawing tool was armed
        """
        if is_linear_label(label):
            self.arm_drawing_tool(kind, label)
            return None
        return self.add_point_element(kind, label)

    def add_point_element(self, kind: str, label: str, at: Optional[Coord] = None) -> SceneElement:
        anchor = at or Coord(x=DEFAULT_PLACEMENT[0], y=DEFAULT_PLACEMENT[1])
        element = self._build(kind, label, anchor, PointShape())
        self.snapshot()
        return self._append(element)

    def arm_drawing_tool(self, kind: str, label: str, mode: DrawingMode = "line"):
        self.drawing_tool = DrawingTool(kind=kind, label=label, mode=mode)

    def set_drawing_mode(self, mode: DrawingMode):
        if self.drawing_tool is None:
            raise ValueError("No drawing tool armed")
        self.drawing_tool = DrawingTool(kind=self.drawing_tool.kind, label=self.drawing_tool.label, mode=mode)

    def disarm_drawing_tool(self):
        self.drawing_tool = None

    def commit_line(self, start: Coord, end: Coord) -> SceneElement:
        tool = self._require_tool()
        element = self._build(tool.kind, tool.label, start, SegmentShape(end=end))
        self.snapshot()
        self.drawing_tool = None
        return self._append(element)

    def commit_path(self, points: Sequence[Coord]) -> Optional[SceneElement]:
        """Commit a freehand path; fewer than 2 points discards the drawing
        and leaves the tool armed."""
        tool = self._require_tool()
        if len(points) < 2:
            logger.info("[Editor] Discarded freehand drawing with fewer than 2 points")
            return None
        self.drawing_tool = None
        element = self._build(tool.kind, tool.label, points[0], PathShape(points=tuple(points)))
        self.snapshot()
        return self._append(element)

    def _require_tool(self) -> DrawingTool:
        if self.drawing_tool is None:
            raise ValueError("No drawing tool armed")
        return self.drawing_tool

    # --- Structural edits ---

    def remove_element(self, element_id: str):
        self.get(element_id)
        self.snapshot()
        self.elements = tuple(el for el in self.elements if el.id != element_id)
        if self.selected_id == element_id:
            self.selected_id = None

    def duplicate_element(self, element_id: str) -> SceneElement:
        source = self.get(element_id)
        d = DUPLICATE_OFFSET
        geometry = source.geometry
        if isinstance(geometry, SegmentShape):
            geometry = SegmentShape(end=geometry.end.offset(d, d))
        elif isinstance(geometry, PathShape):
            geometry = PathShape(points=tuple(p.offset(d, d) for p in geometry.points))

        copy = source.model_copy(update={
            "id": self._next_id(),
            "anchor": source.anchor.offset(d, d),
            "geometry": geometry,
        })
        self.snapshot()
        return self._append(copy)

    def set_reference_image(self, element_id: str, image: ImagePayload):
        self.get(element_id)
        self.snapshot()
        self._update(element_id, reference_image=image)

    def remove_reference_image(self, element_id: str):
        self.get(element_id)
        self.snapshot()
        self._update(element_id, reference_image=None)

    def begin_interaction(self):
        """Snapshot before a drag changes anything."""
        self.snapshot()

    def reset(self):
        """Drop every element, the selection, the tool and all history."""
        self.elements = ()
        self.selected_id = None
        self.drawing_tool = None
        self.history.clear()

    # --- In-place edits (no snapshot) ---

    def _update(self, element_id: str, **updates) -> SceneElement:
        element = self.get(element_id)
        # Rebuild through the constructor so literals and coordinates are validated
        updated = SceneElement(**{**dict(element), **updates})
        self.elements = tuple(updated if el.id == element_id else el for el in self.elements)
        return updated

    def move_element(self, element_id: str, coord: Coord, handle: str = "start", snapshot: bool = False) -> bool:
        """
        Move the anchor (``start``) or segment end (``end``) of an element.

        Freehand paths are immutable after creation and reject moves. With
        ``snapshot`` set, history is snapshotted only if the move changes
        something.

        Returns:
            True if the element changed
        """
        element = self.get(element_id)
        if element.is_freehand:
            return False
        if handle == "end":
            if not isinstance(element.geometry, SegmentShape) or element.geometry.end == coord:
                return False
            updates = {"geometry": SegmentShape(end=coord)}
        elif element.anchor == coord:
            return False
        else:
            updates = {"anchor": coord}

        if snapshot:
            self.snapshot()
        self._update(element_id, **updates)
        return True

    def check_attributes(self, element_id: str, **changes) -> SceneElement:
        """
        Validate attribute edits without applying them.

        ``None`` values are ignored.

        Returns:
            The element as it would look after the edits

        Raises:
            ValueError: If any edit does not apply to the element's kind
        """
        element = self.get(element_id)
        changes = {key: value for key, value in changes.items() if value is not None}

        if "color_temperature" in changes:
            if element.kind != "lighting":
                raise ValueError("Color temperature only applies to lighting elements")
            if changes["color_temperature"] <= 0:
                raise ValueError(f"Invalid color temperature: {changes['color_temperature']}")
            changes["color_temperature"] = int(changes["color_temperature"])
        if "pose" in changes and element.kind != "person":
            raise ValueError("Pose only applies to person elements")
        if "install_side" in changes and not element.is_linear_lighting:
            raise ValueError("Install side only applies to linear lighting elements")

        return SceneElement(**{**dict(element), **changes})

    def edit_attributes(self, element_id: str, **changes) -> SceneElement:
        """Apply several attribute edits at once; nothing changes if any is invalid."""
        updated = self.check_attributes(element_id, **changes)
        self.elements = tuple(updated if el.id == element_id else el for el in self.elements)
        return updated

    def set_label(self, element_id: str, label: str):
        self.edit_attributes(element_id, label=label)

    def set_color_temperature(self, element_id: str, kelvin: int):
        self.edit_attributes(element_id, color_temperature=kelvin)

    def set_pose(self, element_id: str, pose: str):
        self.edit_attributes(element_id, pose=pose)

    def set_install_side(self, element_id: str, side: str):
        self.edit_attributes(element_id, install_side=side)

    def select(self, element_id: Optional[str]):
        if element_id is not None:
            self.get(element_id)
        self.selected_id = element_id
