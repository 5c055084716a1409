"""
canvas/view.py

QGraphicsView with zoom, click-to-place and image drag & drop.
"""

from __future__ import annotations

from typing import Callable, Optional, Tuple

from PyQt6.QtCore import QPointF, Qt
from PyQt6.QtGui import QPainter, QTransform
from PyQt6.QtWidgets import QGraphicsView

from canvas.scene import AnnotatorScene
from settings import get_settings
from utils import display_to_image, point_in_image

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff", ".webp")


class AnnotatorView(QGraphicsView):
    """
    Graphics view for the annotation canvas.

    Zoom is a pure view transform: the scene stays in image-native
    pixels, so annotations placed at one zoom level render at the same
    image point at any other.

    Mouse behavior:
    - Left click inside the image places an annotation (via *on_place_cb*)
    - Moving over the image shows the brush preview
    - Ctrl + wheel zooms; plain wheel scrolls
    """

    def __init__(
        self,
        scene: AnnotatorScene,
        on_place_cb: Callable[[float, float], None],
        on_drop_image_cb: Callable[[str], None],
        parent=None,
    ):
        super().__init__(scene, parent)
        self.setAcceptDrops(True)
        self.on_place_cb = on_place_cb
        self.on_drop_image_cb = on_drop_image_cb
        self.on_zoom_changed: Optional[Callable[[float], None]] = None
        self.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        self.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
        self.setDragMode(QGraphicsView.DragMode.NoDrag)
        self.setTransformationAnchor(QGraphicsView.ViewportAnchor.AnchorUnderMouse)
        self.setMouseTracking(True)
        self.viewport().setCursor(Qt.CursorShape.CrossCursor)
        self._zoom = 1.0

    # ------------------------------------------------------------------
    # Zoom
    # ------------------------------------------------------------------

    @property
    def zoom(self) -> float:
        return self._zoom

    def set_zoom(self, zoom: float) -> float:
        """Set the absolute zoom factor, clamped to the configured range.

        Returns:
            The zoom actually applied.
        """
        z = get_settings().settings.canvas.zoom
        zoom = max(z.min, min(z.max, float(zoom)))
        if zoom == self._zoom:
            return zoom
        self._zoom = zoom
        self.setTransform(QTransform.fromScale(zoom, zoom))
        if self.on_zoom_changed:
            self.on_zoom_changed(zoom)
        return zoom

    def zoom_in(self):
        """Zoom in by the configured factor."""
        self.set_zoom(self._zoom * get_settings().settings.canvas.zoom.wheel_factor)

    def zoom_out(self):
        """Zoom out by the configured factor."""
        self.set_zoom(self._zoom / get_settings().settings.canvas.zoom.wheel_factor)

    def zoom_reset(self):
        """Reset zoom to 100% (1:1 scale)."""
        self.set_zoom(1.0)

    def wheelEvent(self, event):
        """Zoom with Ctrl + mouse wheel, scroll otherwise."""
        if event.modifiers() & Qt.KeyboardModifier.ControlModifier:
            if event.angleDelta().y() > 0:
                self.zoom_in()
            else:
                self.zoom_out()
            event.accept()
            return
        super().wheelEvent(event)

    # ------------------------------------------------------------------
    # Pointer mapping
    # ------------------------------------------------------------------

    def image_origin(self) -> QPointF:
        """Viewport position of the image's top-left corner (display pixels)."""
        return self.viewportTransform().map(QPointF(0.0, 0.0))

    def map_to_image(self, display_pos: QPointF) -> Tuple[float, float]:
        """Map a viewport position to image-native coordinates."""
        origin = self.image_origin()
        return display_to_image(display_pos.x(), display_pos.y(), origin.x(), origin.y(), self._zoom)

    def _image_point_at(self, display_pos: QPointF) -> Optional[Tuple[float, float]]:
        scene = self.scene()
        if not isinstance(scene, AnnotatorScene) or not scene.has_image():
            return None
        x, y = self.map_to_image(display_pos)
        rect = scene.image_rect
        if not point_in_image(x, y, rect.width(), rect.height()):
            return None
        return x, y

    def mousePressEvent(self, event):
        """Place an annotation on left click inside the image."""
        if event.button() == Qt.MouseButton.LeftButton:
            pt = self._image_point_at(event.position())
            if pt is not None:
                self.on_place_cb(*pt)
                event.accept()
                return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        """Move the brush preview with the pointer."""
        scene = self.scene()
        if isinstance(scene, AnnotatorScene):
            pt = self._image_point_at(event.position())
            if pt is None:
                scene.hide_brush_preview()
            else:
                scene.show_brush_preview(*pt)
        super().mouseMoveEvent(event)

    def leaveEvent(self, event):
        scene = self.scene()
        if isinstance(scene, AnnotatorScene):
            scene.hide_brush_preview()
        super().leaveEvent(event)

    # ------------------------------------------------------------------
    # Drag & drop
    # ------------------------------------------------------------------

    @staticmethod
    def _first_image_path(mime) -> Optional[str]:
        if not mime.hasUrls():
            return None
        for u in mime.urls():
            path = u.toLocalFile()
            if path.lower().endswith(IMAGE_SUFFIXES):
                return path
        return None

    def dragEnterEvent(self, event):
        """Accept image file drops."""
        if self._first_image_path(event.mimeData()):
            event.acceptProposedAction()
            return
        event.ignore()

    def dragMoveEvent(self, event):
        event.acceptProposedAction()

    def dropEvent(self, event):
        """Handle image file drop."""
        path = self._first_image_path(event.mimeData())
        if path:
            self.on_drop_image_cb(path)
            event.acceptProposedAction()
            return
        event.ignore()
