"""Interactive scene editor: session, viewport and pointer state machine"""

from .session import EditorSession, DrawingTool
from .viewport import Viewport, ContentBox, fit_content_box
from .interaction import InteractionController, InteractionState, DragTarget

__all__ = [
    'EditorSession',
    'DrawingTool',
    'Viewport',
    'ContentBox',
    'fit_content_box',
    'InteractionController',
    'InteractionState',
    'DragTarget',
]
