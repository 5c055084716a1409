"""Tests for display <-> image coordinate mapping and the view's zoom handling."""
from __future__ import annotations

import pytest
from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QPixmap

from canvas import AnnotatorScene, AnnotatorView
from models import FeatureKind
from store import AnnotationStore
from utils import display_to_image, image_to_display, point_in_image


class TestMapping:
    def test_zoom_and_origin(self):
        assert display_to_image(250, 130, 50, 30, 2.0) == (100.0, 50.0)

    def test_identity_at_zoom_one(self):
        assert display_to_image(12.5, 7, 0, 0, 1.0) == (12.5, 7.0)

    @pytest.mark.parametrize("zoom", [0.2, 0.5, 1.0, 1.15, 3.0, 5.0])
    def test_round_trip(self, zoom):
        dx, dy = image_to_display(123.4, 56.7, zoom, 10, 20)
        ix, iy = display_to_image(dx, dy, 10, 20, zoom)
        assert ix == pytest.approx(123.4)
        assert iy == pytest.approx(56.7)

    def test_rezoom_renders_at_same_image_point(self):
        # Placed at zoom 2, re-rendered at zoom 0.5
        ix, iy = display_to_image(400, 300, 0, 0, 2.0)
        assert image_to_display(ix, iy, 0.5) == (100.0, 75.0)

    @pytest.mark.parametrize("zoom", [0, -1.0])
    def test_rejects_non_positive_zoom(self, zoom):
        with pytest.raises(ValueError):
            display_to_image(1, 1, 0, 0, zoom)
        with pytest.raises(ValueError):
            image_to_display(1, 1, zoom)

    def test_point_in_image(self):
        assert point_in_image(0, 0, 10, 10)
        assert point_in_image(9.9, 9.9, 10, 10)
        assert not point_in_image(10, 5, 10, 10)
        assert not point_in_image(-0.1, 5, 10, 10)


@pytest.fixture
def view(qapp):
    store = AnnotationStore()
    scene = AnnotatorScene(store.list)
    pm = QPixmap(400, 300)
    pm.fill()
    scene.set_background(pm)
    placed = []
    v = AnnotatorView(scene, lambda x, y: placed.append((x, y)), lambda p: None)
    v.resize(300, 200)
    v.placed = placed
    v.store = store
    return v


class TestView:
    def test_zoom_clamped_to_settings(self, view):
        assert view.set_zoom(100) == 5.0
        assert view.set_zoom(0.01) == pytest.approx(0.2)

    def test_zoom_callback(self, view):
        seen = []
        view.on_zoom_changed = seen.append
        view.set_zoom(2.0)
        view.set_zoom(2.0)
        assert seen == [2.0]

    def test_map_to_image_inverts_view_transform(self, view):
        view.set_zoom(2.0)
        display = view.mapFromScene(QPointF(100, 50))
        x, y = view.map_to_image(QPointF(display))
        assert x == pytest.approx(100, abs=0.5)
        assert y == pytest.approx(50, abs=0.5)

    def test_marker_stays_on_image_point_after_rezoom(self, view):
        view.set_zoom(2.0)
        x, y = view.map_to_image(QPointF(view.mapFromScene(QPointF(120, 80))))
        ann = view.store.place(x, y, FeatureKind.VELLUS_HAIR, 5)
        view.set_zoom(0.5)
        # Stored in image pixels, so it maps to the same scene point at any zoom
        back = view.mapToScene(view.mapFromScene(QPointF(ann.x, ann.y)))
        assert back.x() == pytest.approx(120, abs=2)
        assert back.y() == pytest.approx(80, abs=2)
