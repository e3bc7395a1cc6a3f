"""Scene graph, coordinate model and history"""

from .models import (
    Coord, PointShape, SegmentShape, PathShape, SceneElement, Snapshot, clamp_percent
)
from .geometry import position_descriptor
from .history import HistoryManager

__all__ = [
    'Coord', 'PointShape', 'SegmentShape', 'PathShape', 'SceneElement', 'Snapshot',
    'clamp_percent', 'position_descriptor', 'HistoryManager',
]
