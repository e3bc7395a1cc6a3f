"""Guide image rendering"""

from .guides import compose_guides, smooth_path, stroke_points

__all__ = ['compose_guides', 'smooth_path', 'stroke_points']
