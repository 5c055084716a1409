"""
canvas/scene.py

QGraphicsScene holding the background image, the marker layer and the
brush preview.  Scene coordinates are image-native pixels.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence

from PyQt6.QtCore import QRectF
from PyQt6.QtGui import QPixmap
from PyQt6.QtWidgets import QGraphicsPixmapItem, QGraphicsScene

from canvas.items import BrushPreviewItem, MarkerLayerItem, Z_BACKGROUND
from models import Annotation, FeatureKind


class AnnotatorScene(QGraphicsScene):
    """
    Graphics scene for annotating one image.

    The scene never owns annotation data: the marker layer reads the
    collection through *source* (normally ``store.list``).
    """

    def __init__(self, source: Callable[[], Sequence[Annotation]], parent=None):
        super().__init__(parent)
        self.bg_item: Optional[QGraphicsPixmapItem] = None

        self.marker_layer = MarkerLayerItem(source)
        self.addItem(self.marker_layer)

        self.brush_preview = BrushPreviewItem()
        self.addItem(self.brush_preview)

    @property
    def image_rect(self) -> QRectF:
        if self.bg_item is None:
            return QRectF()
        return self.bg_item.boundingRect()

    def has_image(self) -> bool:
        return self.bg_item is not None

    def set_background(self, pixmap: QPixmap) -> None:
        """Replace the background image and size the scene to it."""
        if self.bg_item is not None:
            self.removeItem(self.bg_item)
            self.bg_item = None

        self.bg_item = QGraphicsPixmapItem(pixmap)
        self.bg_item.setZValue(Z_BACKGROUND)
        self.bg_item.setShapeMode(QGraphicsPixmapItem.ShapeMode.BoundingRectShape)
        self.addItem(self.bg_item)

        rect = QRectF(pixmap.rect())
        self.setSceneRect(rect)
        self.marker_layer.set_image_rect(rect)
        self.hide_brush_preview()

    def refresh_markers(self) -> None:
        """Redraw the marker layer.  Safe to call any number of times."""
        self.marker_layer.refresh()

    def set_markers_visible(self, visible: bool) -> None:
        self.marker_layer.setVisible(visible)

    def markers_visible(self) -> bool:
        return self.marker_layer.isVisible()

    # ------------------------------------------------------------------
    # Brush preview
    # ------------------------------------------------------------------

    def configure_brush(self, radius: float, kind: FeatureKind) -> None:
        self.brush_preview.set_radius(radius)
        self.brush_preview.set_kind(kind)

    def show_brush_preview(self, x: float, y: float) -> None:
        self.brush_preview.move_to(x, y)

    def hide_brush_preview(self) -> None:
        self.brush_preview.setVisible(False)
