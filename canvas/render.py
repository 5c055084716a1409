"""
canvas/render.py

Marker drawing shared by the live canvas and the exported report image.

Both paths paint at 1:1 image-native scale; the live view applies zoom
through the view transform, never by changing annotation coordinates.
"""

from __future__ import annotations

from typing import Iterable, Optional

from PyQt6.QtCore import QPointF, Qt
from PyQt6.QtGui import QBrush, QColor, QPainter, QPen

from models import Annotation, FeatureKind, feature_info
from settings import MarkerSettings, get_settings
from utils import hex_to_qcolor

_FALLBACK = QColor("#ffffff")


def _marker_settings(markers: Optional[MarkerSettings]) -> MarkerSettings:
    return markers if markers is not None else get_settings().settings.markers


def marker_pen(markers: Optional[MarkerSettings] = None) -> QPen:
    """Solid near-white outline used around every marker."""
    m = _marker_settings(markers)
    pen = QPen(hex_to_qcolor(m.stroke_color, _FALLBACK, alpha=m.stroke_opacity))
    pen.setWidthF(m.stroke_width)
    pen.setStyle(Qt.PenStyle.SolidLine)
    return pen


def marker_brush(kind: FeatureKind, markers: Optional[MarkerSettings] = None) -> QBrush:
    """Translucent fill in the feature's color."""
    m = _marker_settings(markers)
    return QBrush(hex_to_qcolor(feature_info(kind).color, _FALLBACK, alpha=m.fill_opacity))


def draw_markers(
    painter: QPainter,
    annotations: Iterable[Annotation],
    markers: Optional[MarkerSettings] = None,
) -> int:
    """Draw *annotations* in collection order onto *painter*.

    Later annotations are painted over earlier ones.  The painter state
    is saved and restored.

    Returns:
        Number of markers drawn.
    """
    m = _marker_settings(markers)
    pen = marker_pen(m)
    drawn = 0
    painter.save()
    try:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        painter.setPen(pen)
        for ann in annotations:
            painter.setBrush(marker_brush(ann.kind, m))
            painter.drawEllipse(QPointF(ann.x, ann.y), ann.radius, ann.radius)
            drawn += 1
    finally:
        painter.restore()
    return drawn


def draw_brush_preview(
    painter: QPainter,
    x: float,
    y: float,
    radius: float,
    kind: FeatureKind,
    markers: Optional[MarkerSettings] = None,
) -> None:
    """Draw the transient brush circle: active feature color, no outline."""
    m = _marker_settings(markers)
    painter.save()
    try:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(hex_to_qcolor(feature_info(kind).color, _FALLBACK, alpha=m.preview_opacity)))
        painter.drawEllipse(QPointF(x, y), radius, radius)
    finally:
        painter.restore()
