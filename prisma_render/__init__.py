"""Prisma Render: scene-guided architectural image and video generation"""

from .studio import RenderStudio

__version__ = "0.1.0"

__all__ = ['RenderStudio']
