"""
canvas/items.py

Graphics items for the live canvas: the marker layer and the brush preview.
"""

from __future__ import annotations

from typing import Callable, Sequence

from PyQt6.QtCore import QPointF, QRectF, Qt
from PyQt6.QtGui import QPainter
from PyQt6.QtWidgets import QGraphicsItem

from canvas.render import draw_brush_preview, draw_markers
from debug_trace import trace
from models import FEATURES, Annotation, FeatureKind

# Z-order of the canvas layers
Z_BACKGROUND = -1000
Z_MARKERS = 0
Z_PREVIEW = 1000


class MarkerLayerItem(QGraphicsItem):
    """
    Paints every annotation of the store in one pass.

    The item spans the whole image in scene (image-native) coordinates
    and pulls the current collection from *source* on each paint, so
    calling ``update()`` after a store change is all a redraw needs.
    Hiding the item suppresses the markers without touching the data.
    """

    def __init__(self, source: Callable[[], Sequence[Annotation]], parent=None):
        super().__init__(parent)
        self._source = source
        self._rect = QRectF()
        self.setZValue(Z_MARKERS)
        self.setAcceptedMouseButtons(Qt.MouseButton.NoButton)

    def set_image_rect(self, rect: QRectF) -> None:
        """Resize the layer to cover the image, plus room for edge markers."""
        self.prepareGeometryChange()
        self._rect = QRectF(rect)

    def refresh(self) -> None:
        """Repaint after the collection changed (bounds may have grown)."""
        self.prepareGeometryChange()
        self.update()

    def boundingRect(self) -> QRectF:
        # Markers may extend past the image edge by their radius
        margin = max(20.0, max((a.radius for a in self._source()), default=0.0)) + 1
        return self._rect.adjusted(-margin, -margin, margin, margin)

    def paint(self, painter: QPainter, option, widget=None):
        annotations = self._source()
        trace(f"MarkerLayerItem.paint: {len(annotations)} marker(s)", "PAINT")
        draw_markers(painter, annotations)


class BrushPreviewItem(QGraphicsItem):
    """Transient circle that follows the pointer; never stored."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._radius = 5.0
        self._kind: FeatureKind = FEATURES[0].kind
        self.setZValue(Z_PREVIEW)
        self.setAcceptedMouseButtons(Qt.MouseButton.NoButton)
        self.setVisible(False)

    @property
    def radius(self) -> float:
        return self._radius

    @property
    def kind(self) -> FeatureKind:
        return self._kind

    def set_radius(self, radius: float) -> None:
        self.prepareGeometryChange()
        self._radius = float(radius)

    def set_kind(self, kind: FeatureKind) -> None:
        self._kind = kind
        self.update()

    def move_to(self, x: float, y: float) -> None:
        """Center the preview on image-native (x, y)."""
        self.setPos(QPointF(x, y))
        if not self.isVisible():
            self.setVisible(True)

    def boundingRect(self) -> QRectF:
        r = self._radius + 1
        return QRectF(-r, -r, 2 * r, 2 * r)

    def paint(self, painter: QPainter, option, widget=None):
        draw_brush_preview(painter, 0.0, 0.0, self._radius, self._kind)
