"""Tests for the report export: file naming, composition and atomic writing."""
from __future__ import annotations

import os
import re
from datetime import datetime, timezone

import pytest
from PyQt6.QtGui import QColor, QImage

from errors import ExportFailure
from models import Annotation, FeatureKind, feature_info
from report_export import (
    ExportWorker,
    compose_report_image,
    decode_qimage,
    export_report,
    report_filename,
    report_panel_rect,
    report_timestamp,
)
from settings import ReportSettings

FILENAME_RE = re.compile(r"^report-\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}\.\d{3}Z\.png$")


class TestNaming:
    def test_timestamp_format(self):
        now = datetime(2026, 10, 19, 8, 15, 30, 123456, tzinfo=timezone.utc)
        assert report_timestamp(now) == "2026-10-19T08-15-30.123Z"

    def test_filename_matches_pattern(self):
        assert FILENAME_RE.match(report_filename())

    def test_filename_with_patient_id(self):
        now = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert report_filename("P-9", now) == "report-P-9-2026-01-02T03-04-05.000Z.png"

    def test_no_colons(self):
        assert ":" not in report_filename("x")


class TestPanelRect:
    def test_anchored_top_right(self):
        cfg = ReportSettings()
        rect = report_panel_rect(15, 1000, cfg)
        assert rect.right() == 1000 - cfg.padding
        assert rect.top() == cfg.padding
        assert rect.width() == cfg.box_width
        assert rect.height() == 15 * cfg.line_height + cfg.padding


@pytest.fixture
def red_source(qapp):
    img = QImage(800, 600, QImage.Format.Format_ARGB32)
    img.fill(QColor("#ff0000"))
    return img


class TestCompose:
    def test_native_size_and_source_untouched(self, red_source):
        out = compose_report_image(red_source, [])
        assert (out.width(), out.height()) == (800, 600)
        assert red_source.pixelColor(700, 40).name() == "#ff0000"

    def test_panel_covers_top_right(self, red_source):
        out = compose_report_image(red_source, [])
        # Panel background blends over red, so the pixel is no longer pure red
        assert out.pixelColor(770, 30).name() != "#ff0000"
        # Bottom-left is outside the panel
        assert out.pixelColor(10, 590).name() == "#ff0000"

    def test_markers_drawn_even_when_hidden_on_canvas(self, red_source, isolated_settings):
        isolated_settings.settings.markers.fill_opacity = 1.0
        ann = Annotation(50, 500, FeatureKind.FOLLICULAR_UNIT_2, 10)
        out = compose_report_image(red_source, [ann])
        assert out.pixelColor(50, 500).name() == feature_info(FeatureKind.FOLLICULAR_UNIT_2).color

    def test_null_source(self, qapp):
        with pytest.raises(ExportFailure):
            compose_report_image(QImage(), [])


class TestExportReport:
    def test_writes_png(self, qapp, make_image, tmp_path):
        src = make_image("src.png", size=(640, 480), color=(10, 20, 30))
        anns = [Annotation(100, 100, FeatureKind.VELLUS_HAIR, 5)]
        target = export_report(src, anns, str(tmp_path / "out.png"), "P1")
        written = QImage(str(target))
        assert not written.isNull()
        assert (written.width(), written.height()) == (640, 480)

    @pytest.mark.skipif(os.name == "nt", reason="POSIX file modes")
    def test_written_file_honours_umask(self, qapp, make_image, tmp_path):
        src = make_image("src.png", size=(20, 20))
        target = export_report(src, [], str(tmp_path / "out.png"))
        umask = os.umask(0)
        os.umask(umask)
        assert target.stat().st_mode & 0o777 == 0o666 & ~umask

    def test_directory_target_gets_generated_name(self, qapp, make_image, tmp_path):
        src = make_image("src.png")
        out_dir = tmp_path / "exports"
        out_dir.mkdir()
        target = export_report(src, [], str(out_dir))
        assert target.parent == out_dir
        assert FILENAME_RE.match(target.name)

    def test_undecodable_source_leaves_no_file(self, qapp, tmp_path):
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"\x89PNG broken")
        target = tmp_path / "out.png"
        with pytest.raises(ExportFailure):
            export_report(str(bad), [], str(target))
        assert not target.exists()
        assert [p for p in os.listdir(tmp_path) if p.startswith(".report-")] == []

    def test_decode_qimage(self, qapp, make_image):
        src = make_image("src.png", size=(12, 8))
        img = decode_qimage(src)
        assert (img.width(), img.height()) == (12, 8)


class TestExportWorker:
    def test_uses_snapshot(self, qapp, make_image, tmp_path):
        src = make_image("src.png")
        anns = [Annotation(10, 10, FeatureKind.VELLUS_HAIR, 5)]
        worker = ExportWorker(src, anns, str(tmp_path / "r.png"))
        anns.append(Annotation(20, 20, FeatureKind.VELLUS_HAIR, 5))
        assert len(worker.annotations) == 1

    def test_signals(self, qapp, make_image, tmp_path):
        src = make_image("src.png")
        done, failed = [], []
        worker = ExportWorker(src, [], str(tmp_path / "r.png"))
        worker.finished.connect(done.append)
        worker.failed.connect(failed.append)
        worker.run()
        assert done == [str(tmp_path / "r.png")]
        assert failed == []

    def test_failure_signal(self, qapp, tmp_path):
        failed = []
        worker = ExportWorker(str(tmp_path / "missing.png"), [], str(tmp_path / "r.png"))
        worker.failed.connect(failed.append)
        worker.run()
        assert failed
