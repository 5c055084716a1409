"""
canvas package

PyQt6 graphics items, scene, view and marker rendering for image annotation.
"""

from canvas.render import draw_markers, draw_brush_preview
from canvas.items import MarkerLayerItem, BrushPreviewItem
from canvas.scene import AnnotatorScene
from canvas.view import AnnotatorView

__all__ = [
    "draw_markers",
    "draw_brush_preview",
    "MarkerLayerItem",
    "BrushPreviewItem",
    "AnnotatorScene",
    "AnnotatorView",
]
