"""Core system components"""

from .state import SessionContext
from .errors import *
from .retry import RetryPolicy, with_retry
from .images import ImagePayload, load_image

__all__ = ['SessionContext', 'RetryPolicy', 'with_retry', 'ImagePayload', 'load_image']
