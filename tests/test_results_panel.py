"""Tests for the live results panel and its wiring in MainWindow."""
from __future__ import annotations

import pytest

from main import MainWindow
from models import Annotation, FeatureKind
from report import compute_report
from results import ResultsPanel


class TestResultsPanel:
    def test_empty_report(self, qapp):
        panel = ResultsPanel()
        assert panel.value_text("total_hair_count") == "0"
        assert panel.value_text("vellus_to_terminal_ratio") == "N/A"
        assert panel.value_text("avg_hairs_per_fu") == "0.00"
        assert panel.value_text(FeatureKind.VELLUS_HAIR) == "0 (0.0%)"

    def test_shows_report(self, qapp):
        panel = ResultsPanel()
        anns = [Annotation(1, 1, k, 3) for k in (FeatureKind.VELLUS_HAIR, FeatureKind.VELLUS_HAIR,
                                                 FeatureKind.TERMINAL_HAIR)]
        panel.set_report(compute_report(anns))
        assert panel.value_text("total_hair_count") == "3"
        assert panel.value_text("vellus_to_terminal_ratio") == "2.00"
        assert panel.value_text(FeatureKind.VELLUS_HAIR) == "2 (66.7%)"
        assert panel.value_text(FeatureKind.TERMINAL_HAIR) == "1 (33.3%)"


@pytest.fixture
def window(qapp, isolated_settings):
    w = MainWindow(isolated_settings)
    yield w
    w.close()


class TestMainWindow:
    def test_actions_disabled_without_image(self, window):
        assert not window.undo_act.isEnabled()
        assert not window.download_act.isEnabled()
        assert not window.detect_act.isEnabled()

    def test_place_updates_panel_and_undo(self, window, make_image):
        window.load_image(make_image(size=(100, 80)))
        window.set_active_feature(FeatureKind.TERMINAL_HAIR)
        window._on_place(10, 10)
        window._on_place(20, 20)
        assert window.results.value_text(FeatureKind.TERMINAL_HAIR) == "2 (100.0%)"
        assert window.undo_act.isEnabled()

        window.undo_last()
        assert window.results.value_text(FeatureKind.TERMINAL_HAIR) == "1 (100.0%)"

    def test_bad_image_keeps_current(self, window, make_image, tmp_path, monkeypatch):
        from PyQt6.QtWidgets import QMessageBox

        warned = []
        monkeypatch.setattr(QMessageBox, "warning", lambda *a, **k: warned.append(a))
        good = make_image(size=(100, 80))
        window.load_image(good)
        window._on_place(5, 5)
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"nope")
        window.load_image(str(bad))
        assert warned
        assert window.session.image.path == good
        assert len(window.store) == 1

    def test_detect_empty_and_failed_leave_store(self, window, make_image, monkeypatch):
        from PyQt6.QtWidgets import QMessageBox

        monkeypatch.setattr(QMessageBox, "information", lambda *a, **k: None)
        monkeypatch.setattr(QMessageBox, "critical", lambda *a, **k: None)
        window.load_image(make_image(size=(100, 80)))
        window._on_place(5, 5)
        before = window.store.list()
        window.on_detect_empty("nothing")
        window.on_detect_failed("boom")
        assert window.store.list() == before

    def test_detect_finished_replaces_by_default(self, window, make_image):
        window.load_image(make_image(size=(100, 80)))
        window._on_place(5, 5)
        window._detect_generation = window.session.generation
        window.on_detect_finished([Annotation(50, 50, FeatureKind.VELLUS_HAIR, 4)])
        assert [a.x for a in window.store] == [50]

    def test_detect_finished_appends_when_configured(self, window, make_image, isolated_settings):
        isolated_settings.settings.gemini.replace_existing = False
        window.load_image(make_image(size=(100, 80)))
        window._on_place(5, 5)
        window._detect_generation = window.session.generation
        window.on_detect_finished([Annotation(50, 50, FeatureKind.VELLUS_HAIR, 4)])
        assert len(window.store) == 2

    def test_toggle_visibility_keeps_annotations(self, window, make_image):
        window.load_image(make_image(size=(100, 80)))
        window._on_place(5, 5)
        window.show_annotations_check.setChecked(False)
        assert not window.scene.markers_visible()
        assert len(window.store) == 1
        assert window.results.value_text("total_hair_count") == "1"

    def test_detections_for_previous_image_discarded(self, window, make_image):
        window.load_image(make_image("a.png", size=(100, 80)))
        window._detect_generation = window.session.generation
        window.load_image(make_image("b.png", size=(100, 80)))
        mine = window.session.place_at(5, 5)
        window.on_detect_finished([Annotation(50, 50, FeatureKind.TERMINAL_HAIR, 4)])
        assert window.store.list() == (mine,)

    def test_detections_all_outside_reported_as_empty(self, window, make_image, monkeypatch):
        from PyQt6.QtWidgets import QMessageBox

        shown = []
        monkeypatch.setattr(QMessageBox, "information", lambda *a, **k: shown.append(a))
        window.load_image(make_image(size=(100, 80)))
        window._on_place(5, 5)
        before = window.store.list()
        window._detect_generation = window.session.generation
        window.on_detect_finished([Annotation(500, 500, FeatureKind.VELLUS_HAIR, 4)])
        assert window.store.list() == before
        assert shown


class TestEntryPoint:
    def test_main_installs_crash_hook(self, monkeypatch):
        import sys

        import main as main_module

        def stop():
            raise RuntimeError("stop")

        monkeypatch.setattr(sys, "excepthook", sys.__excepthook__)
        monkeypatch.setattr(main_module, "setup_logging", stop)
        with pytest.raises(RuntimeError):
            main_module.main()
        assert sys.excepthook is main_module._excepthook
