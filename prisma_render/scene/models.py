"""Scene graph data model

Coordinates are percentages of the source image width/height. A ``Coord``
clamps itself into [0, 100] on construction, so nothing stored in the scene can
point outside the image. Elements are frozen; edits go through ``model_copy``
and produce new elements, which is what lets history snapshots share them.
"""

from typing import Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.images import ImagePayload

ElementKind = Literal["person", "animal", "vehicle", "plant", "lighting", "furniture"]
Pose = Literal["auto", "standing", "sitting", "lying"]
InstallSide = Literal["front", "back"]
Handle = Literal["start", "end"]


def clamp_percent(value: float) -> float:
    return min(max(0.0, float(value)), 100.0)


class Coord(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    @field_validator("x", "y")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_percent(value)

    def offset(self, dx: float, dy: float) -> "Coord":
        return Coord(x=self.x + dx, y=self.y + dy)


class PointShape(BaseModel):
    """Pin at the element anchor"""
    model_config = ConfigDict(frozen=True)
    shape: Literal["point"] = "point"


class SegmentShape(BaseModel):
    """Straight line from the element anchor to ``end``"""
    model_config = ConfigDict(frozen=True)
    shape: Literal["segment"] = "segment"
    end: Coord


class PathShape(BaseModel):
    """Freehand path; ``points[0]`` is the element anchor"""
    model_config = ConfigDict(frozen=True)
    shape: Literal["path"] = "path"
    points: Tuple[Coord, ...]

    @field_validator("points")
    @classmethod
    def _at_least_two(cls, points):
        if len(points) < 2:
            raise ValueError("a freehand path needs at least 2 points")
        return points


Geometry = Union[PointShape, SegmentShape, PathShape]


class SceneElement(BaseModel):
    """One placed object or light path"""
    model_config = ConfigDict(frozen=True)

    id: str
    kind: ElementKind
    label: str
    anchor: Coord
    geometry: Geometry = Field(default_factory=PointShape, discriminator="shape")
    reference_image: Optional[ImagePayload] = None
    color_temperature: Optional[int] = None  # Kelvin, lighting only
    pose: Optional[Pose] = None  # person only
    install_side: Optional[InstallSide] = None  # linear lighting only

    @property
    def is_point(self) -> bool:
        return isinstance(self.geometry, PointShape)

    @property
    def is_linear(self) -> bool:
        return not self.is_point

    @property
    def is_freehand(self) -> bool:
        return isinstance(self.geometry, PathShape)

    @property
    def is_linear_lighting(self) -> bool:
        return self.kind == "lighting" and self.is_linear

    @property
    def end_anchor(self) -> Optional[Coord]:
        """Segment end, or the last point of a freehand path."""
        if isinstance(self.geometry, SegmentShape):
            return self.geometry.end
        if isinstance(self.geometry, PathShape):
            return self.geometry.points[-1]
        return None

    @property
    def path(self) -> Optional[Tuple[Coord, ...]]:
        if isinstance(self.geometry, PathShape):
            return self.geometry.points
        return None


# Immutable copy of the whole element list
Snapshot = Tuple[SceneElement, ...]
