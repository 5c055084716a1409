"""
main.py

TrichoMark - Dermoscopic Hair Annotator

PyQt6 application for annotating dermoscopic scalp images with:
- Click-to-place markers for hair and follicular-unit features
- Live analysis report (counts, ratios, percentages)
- Optional Gemini AI hair detection
- Report export as an annotated PNG

Usage:
    python main.py [image]

Dependencies:
    pip install PyQt6 pillow google-genai platformdirs tomli-w

Environment:
    GOOGLE_API_KEY=... (required for AI detection)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from PyQt6.QtCore import Qt, QThread
from PyQt6.QtGui import QAction, QActionGroup, QColor, QIcon, QKeySequence, QPainter, QPixmap
from PyQt6.QtWidgets import (
    QApplication,
    QCheckBox,
    QDockWidget,
    QFileDialog,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QSlider,
    QToolBar,
    QWidget,
)

from canvas import AnnotatorScene, AnnotatorView
from debug_trace import close_log, setup_logging, trace, trace_call, trace_exception
from errors import InputError
from gemini import DetectWorker
from models import FEATURES, Annotation, FeatureKind, feature_info
from report_export import ExportWorker, decode_qimage, report_filename
from results import ResultsPanel
from session import AnnotationSession
from settings import SettingsManager, get_settings
from styles import DEFAULT_STYLE, STYLES

log = logging.getLogger(__name__)

IMAGE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.tif *.tiff *.webp)"
ANNOTATION_FILTER = "Annotations (*.json)"

# Zoom slider works in tenths
_ZOOM_SLIDER_SCALE = 10


def feature_icon(kind: FeatureKind, size: int = 14) -> QIcon:
    """Round color swatch for a feature kind."""
    pm = QPixmap(size, size)
    pm.fill(Qt.GlobalColor.transparent)
    p = QPainter(pm)
    try:
        p.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        p.setPen(Qt.PenStyle.NoPen)
        p.setBrush(QColor(feature_info(kind).color))
        p.drawEllipse(1, 1, size - 2, size - 2)
    finally:
        p.end()
    return QIcon(pm)


class MainWindow(QMainWindow):
    """Main application window for the Dermoscopic Hair Annotator.

    Args:
        settings_manager: The SettingsManager instance for application settings.
    """

    def __init__(self, settings_manager: SettingsManager):
        super().__init__()
        self.settings_manager = settings_manager
        self.setWindowTitle("TrichoMark - Dermoscopic Hair Annotator")

        self.session = AnnotationSession()
        self.store = self.session.store
        self.store.add_listener(self._on_annotations_changed)

        # Scene and view
        self.scene = AnnotatorScene(self.store.list)
        self.view = AnnotatorView(self.scene, self._on_place, self.load_image)
        self.view.on_zoom_changed = self._on_view_zoom_changed
        self.setCentralWidget(self.view)

        # Results dock
        self.results = ResultsPanel()
        dock = QDockWidget("Analysis", self)
        dock.setObjectName("results_dock")
        dock.setWidget(self.results)
        dock.setFeatures(QDockWidget.DockWidgetFeature.DockWidgetMovable)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, dock)

        self._feature_actions: Dict[FeatureKind, QAction] = {}
        self._build_menus()
        self._build_toolbar()

        # Background workers
        self._detect_thread: Optional[QThread] = None
        self._detect_worker: Optional[DetectWorker] = None
        self._detect_generation: Optional[int] = None
        self._export_thread: Optional[QThread] = None
        self._export_worker: Optional[ExportWorker] = None

        self._sync_controls_from_viewport()
        self._update_action_state()
        self.statusBar().showMessage("Open or drop a dermoscopic image to start annotating.")

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------

    def _build_menus(self):
        m_file = self.menuBar().addMenu("&File")

        self.open_act = QAction("Open Image...", self)
        self.open_act.setShortcut(QKeySequence.StandardKey.Open)
        self.open_act.triggered.connect(self.open_image_dialog)
        m_file.addAction(self.open_act)

        self.open_ann_act = QAction("Open Annotations...", self)
        self.open_ann_act.triggered.connect(self.open_annotations_dialog)
        m_file.addAction(self.open_ann_act)

        self.save_ann_act = QAction("Save Annotations...", self)
        self.save_ann_act.setShortcut(QKeySequence.StandardKey.Save)
        self.save_ann_act.triggered.connect(self.save_annotations_dialog)
        m_file.addAction(self.save_ann_act)

        m_file.addSeparator()

        self.download_act = QAction("Download Report...", self)
        self.download_act.setShortcut(QKeySequence("Ctrl+E"))
        self.download_act.triggered.connect(self.download_report)
        m_file.addAction(self.download_act)

        m_file.addSeparator()
        quit_act = QAction("Quit", self)
        quit_act.setShortcut(QKeySequence.StandardKey.Quit)
        quit_act.triggered.connect(self.close)
        m_file.addAction(quit_act)

        m_edit = self.menuBar().addMenu("&Edit")
        self.undo_act = QAction("Undo", self)
        self.undo_act.setShortcut(QKeySequence.StandardKey.Undo)
        self.undo_act.triggered.connect(self.undo_last)
        m_edit.addAction(self.undo_act)

        self.clear_act = QAction("Clear All", self)
        self.clear_act.triggered.connect(self.clear_all)
        m_edit.addAction(self.clear_act)

        m_view = self.menuBar().addMenu("&View")
        zin = QAction("Zoom In", self)
        zin.setShortcut(QKeySequence.StandardKey.ZoomIn)
        zin.triggered.connect(self.view.zoom_in)
        m_view.addAction(zin)
        zout = QAction("Zoom Out", self)
        zout.setShortcut(QKeySequence.StandardKey.ZoomOut)
        zout.triggered.connect(self.view.zoom_out)
        m_view.addAction(zout)
        zreset = QAction("Actual Size", self)
        zreset.setShortcut(QKeySequence("Ctrl+0"))
        zreset.triggered.connect(self.view.zoom_reset)
        m_view.addAction(zreset)

        m_ai = self.menuBar().addMenu("&AI")
        self.detect_act = QAction("Auto-Detect Hairs", self)
        self.detect_act.triggered.connect(self.auto_detect)
        m_ai.addAction(self.detect_act)

    def _build_toolbar(self):
        tb_patient = QToolBar("Patient", self)
        tb_patient.setObjectName("patient_toolbar")
        self.addToolBar(tb_patient)

        tb_patient.addWidget(QLabel("Patient ID: "))
        self.patient_id_edit = QLineEdit()
        self.patient_id_edit.setPlaceholderText("Enter ID")
        self.patient_id_edit.setFixedWidth(120)
        self.patient_id_edit.textChanged.connect(self._on_patient_id_changed)
        tb_patient.addWidget(self.patient_id_edit)

        tb_patient.addWidget(QLabel("  Patient Name: "))
        self.patient_name_edit = QLineEdit()
        self.patient_name_edit.setPlaceholderText("Enter name")
        self.patient_name_edit.setFixedWidth(160)
        self.patient_name_edit.textChanged.connect(self._on_patient_name_changed)
        tb_patient.addWidget(self.patient_name_edit)

        tb_patient.addSeparator()
        tb_patient.addAction(self.undo_act)
        tb_patient.addAction(self.clear_act)
        tb_patient.addAction(self.detect_act)
        tb_patient.addAction(self.download_act)

        self.addToolBarBreak()

        tb_features = QToolBar("Features", self)
        tb_features.setObjectName("features_toolbar")
        tb_features.setToolButtonStyle(Qt.ToolButtonStyle.ToolButtonTextBesideIcon)
        self.addToolBar(tb_features)
        tb_features.addWidget(QLabel("Features: "))

        group = QActionGroup(self)
        group.setExclusive(True)
        for info in FEATURES:
            act = QAction(feature_icon(info.kind), info.label, self)
            act.setCheckable(True)
            act.triggered.connect(lambda _checked, k=info.kind: self.set_active_feature(k))
            group.addAction(act)
            tb_features.addAction(act)
            self._feature_actions[info.kind] = act

        self.addToolBarBreak()

        tb_view = QToolBar("View", self)
        tb_view.setObjectName("view_toolbar")
        self.addToolBar(tb_view)

        zoom_cfg = self.settings_manager.settings.canvas.zoom
        tb_view.addWidget(QLabel("Zoom "))
        self.zoom_slider = QSlider(Qt.Orientation.Horizontal)
        self.zoom_slider.setRange(
            int(round(zoom_cfg.min * _ZOOM_SLIDER_SCALE)),
            int(round(zoom_cfg.max * _ZOOM_SLIDER_SCALE)),
        )
        self.zoom_slider.setSingleStep(max(1, int(round(zoom_cfg.step * _ZOOM_SLIDER_SCALE))))
        self.zoom_slider.setFixedWidth(140)
        self.zoom_slider.valueChanged.connect(
            lambda v: self.view.set_zoom(v / _ZOOM_SLIDER_SCALE)
        )
        tb_view.addWidget(self.zoom_slider)
        self.zoom_label = QLabel()
        self.zoom_label.setMinimumWidth(48)
        tb_view.addWidget(self.zoom_label)

        brush_cfg = self.settings_manager.settings.canvas.brush
        tb_view.addWidget(QLabel("  Brush "))
        self.brush_slider = QSlider(Qt.Orientation.Horizontal)
        self.brush_slider.setRange(int(brush_cfg.min), int(brush_cfg.max))
        self.brush_slider.setFixedWidth(140)
        self.brush_slider.valueChanged.connect(self.set_brush_radius)
        tb_view.addWidget(self.brush_slider)
        self.brush_label = QLabel()
        self.brush_label.setMinimumWidth(40)
        tb_view.addWidget(self.brush_label)

        self.show_annotations_check = QCheckBox("Show Annotations")
        self.show_annotations_check.toggled.connect(self.set_show_annotations)
        tb_view.addWidget(self.show_annotations_check)

    # ------------------------------------------------------------------
    # Viewport state
    # ------------------------------------------------------------------

    def _sync_controls_from_viewport(self):
        """Push the session's viewport state into the widgets."""
        vp = self.session.viewport
        widgets: List[QWidget] = [self.zoom_slider, self.brush_slider, self.show_annotations_check]
        for w in widgets:
            w.blockSignals(True)
        try:
            self.zoom_slider.setValue(int(round(vp.zoom * _ZOOM_SLIDER_SCALE)))
            self.brush_slider.setValue(int(round(vp.brush_radius)))
            self.show_annotations_check.setChecked(vp.show_annotations)
        finally:
            for w in widgets:
                w.blockSignals(False)
        self.view.set_zoom(vp.zoom)
        self.zoom_label.setText(f"{vp.zoom * 100:.0f}%")
        self.brush_label.setText(f"{vp.brush_radius:.0f}px")
        self.scene.set_markers_visible(vp.show_annotations)
        self.scene.configure_brush(vp.brush_radius, vp.active_kind)
        self._feature_actions[vp.active_kind].setChecked(True)

    def set_active_feature(self, kind: FeatureKind):
        self.session.viewport.active_kind = kind
        self.scene.configure_brush(self.session.viewport.brush_radius, kind)
        self.statusBar().showMessage(f"Feature: {kind.value}")

    def set_brush_radius(self, radius: int):
        self.session.viewport.set_brush_radius(radius)
        self.brush_label.setText(f"{radius}px")
        self.scene.configure_brush(self.session.viewport.brush_radius, self.session.viewport.active_kind)

    def set_show_annotations(self, visible: bool):
        self.session.viewport.show_annotations = visible
        self.scene.set_markers_visible(visible)

    def _on_view_zoom_changed(self, zoom: float):
        self.session.viewport.set_zoom(zoom)
        self.zoom_label.setText(f"{zoom * 100:.0f}%")
        self.zoom_slider.blockSignals(True)
        self.zoom_slider.setValue(int(round(zoom * _ZOOM_SLIDER_SCALE)))
        self.zoom_slider.blockSignals(False)

    def _on_patient_id_changed(self, text: str):
        self.session.patient_id = text

    def _on_patient_name_changed(self, text: str):
        self.session.patient_name = text

    # ------------------------------------------------------------------
    # Image loading
    # ------------------------------------------------------------------

    def open_image_dialog(self):
        path, _ = QFileDialog.getOpenFileName(self, "Open Image", "", IMAGE_FILTER)
        if path:
            self.load_image(path)

    @trace_call("IMAGE")
    def load_image(self, path: str):
        """Load an image, replacing the current one and its annotations."""
        try:
            info = self.session.load_image(path)
        except InputError as e:
            QMessageBox.warning(self, "Invalid image", str(e))
            return

        image = decode_qimage(path)
        self.scene.set_background(QPixmap.fromImage(image))

        for edit in (self.patient_id_edit, self.patient_name_edit):
            edit.blockSignals(True)
            edit.clear()
            edit.blockSignals(False)

        self._sync_controls_from_viewport()
        self.view.centerOn(self.scene.image_rect.center())
        self._update_action_state()
        self.statusBar().showMessage(
            f"Loaded {os.path.basename(path)} ({info.size_text}, {info.mode})"
        )

    # ------------------------------------------------------------------
    # Annotation edits
    # ------------------------------------------------------------------

    def _on_place(self, x: float, y: float):
        ann = self.session.place_at(x, y)
        if ann is not None:
            self.statusBar().showMessage(f"{ann.kind.value} at ({ann.x:.0f}, {ann.y:.0f})")

    def undo_last(self):
        ann = self.store.undo_last()
        if ann is not None:
            self.statusBar().showMessage(f"Removed {ann.kind.value}")

    def clear_all(self):
        if not self.store:
            return
        answer = QMessageBox.question(
            self,
            "Clear All",
            "Are you sure you want to clear all annotations?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No,
        )
        if answer == QMessageBox.StandardButton.Yes:
            self.store.clear_all()
            self.statusBar().showMessage("All annotations cleared.")

    def _on_annotations_changed(self):
        """Store listener: recompute the report and redraw."""
        report = self.session.report()
        self.results.set_report(report)
        self.scene.refresh_markers()
        self._update_action_state()

    def _update_action_state(self):
        has_image = self.session.has_image
        has_annotations = bool(self.store)
        self.undo_act.setEnabled(has_annotations)
        self.clear_act.setEnabled(has_annotations)
        self.save_ann_act.setEnabled(has_image)
        self.open_ann_act.setEnabled(has_image)
        self.download_act.setEnabled(has_image and self._export_thread is None)
        self.detect_act.setEnabled(has_image and self._detect_thread is None)

    # ------------------------------------------------------------------
    # Annotation files
    # ------------------------------------------------------------------

    def save_annotations_dialog(self):
        if not self.session.has_image:
            return
        initial = str(Path(self.session.image.path).with_suffix(".annotations.json"))
        path, _ = QFileDialog.getSaveFileName(self, "Save Annotations", initial, ANNOTATION_FILTER)
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.session.to_project_dict(), f, indent=2)
        except OSError as e:
            QMessageBox.critical(self, "Save failed", str(e))
            return
        self.statusBar().showMessage(f"Saved annotations: {path}")

    def open_annotations_dialog(self):
        if not self.session.has_image:
            return
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Annotations", os.path.dirname(self.session.image.path), ANNOTATION_FILTER
        )
        if not path:
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            warnings = self.session.load_project_dict(data)
        except (OSError, ValueError) as e:
            QMessageBox.warning(self, "Open failed", f"Could not read annotation file:\n{e}")
            return
        except InputError as e:
            QMessageBox.warning(self, "Open failed", str(e))
            return

        for edit, value in ((self.patient_id_edit, self.session.patient_id),
                            (self.patient_name_edit, self.session.patient_name)):
            edit.blockSignals(True)
            edit.setText(value)
            edit.blockSignals(False)
        msg = f"Opened {len(self.store)} annotation(s) from {os.path.basename(path)}"
        if warnings:
            msg += f" ({len(warnings)} skipped)"
        self.statusBar().showMessage(msg)

    # ------------------------------------------------------------------
    # AI detection
    # ------------------------------------------------------------------

    def auto_detect(self):
        """Start Gemini AI detection."""
        if not self.session.has_image:
            QMessageBox.information(self, "No image", "Open or drop an image first.")
            return

        model = self.settings_manager.settings.gemini.model
        self.statusBar().showMessage(f"Sending image to model: {model} ...")

        self._detect_generation = self.session.generation
        self._detect_thread = QThread()
        self._detect_worker = DetectWorker(self.session.image.path, model)
        self._detect_worker.moveToThread(self._detect_thread)

        self._detect_thread.started.connect(self._detect_worker.run)
        self._detect_worker.finished.connect(self.on_detect_finished)
        self._detect_worker.empty.connect(self.on_detect_empty)
        self._detect_worker.failed.connect(self.on_detect_failed)
        self._detect_worker.tokens_used.connect(
            lambda n: log.info("Detection used %d tokens", n)
        )

        for sig in (self._detect_worker.finished, self._detect_worker.empty, self._detect_worker.failed):
            sig.connect(self._detect_thread.quit)

        self._detect_thread.finished.connect(self._on_detect_thread_done)
        self._detect_thread.finished.connect(self._detect_thread.deleteLater)
        self._detect_thread.start()
        self._update_action_state()

    def _on_detect_thread_done(self):
        self._detect_thread = None
        self._detect_worker = None
        self._update_action_state()

    def on_detect_finished(self, annotations: List[Annotation]):
        """Handle successful AI detection."""
        if self._detect_generation != self.session.generation:
            log.warning("Discarding %d detection(s) for a previously loaded image", len(annotations))
            self.statusBar().showMessage("Auto-Detect results discarded: the image changed.")
            return
        append = not self.settings_manager.settings.gemini.replace_existing
        count = self.session.apply_detections(annotations, append=append)
        if count == 0:
            self.on_detect_empty("Every detection was outside the image.")
            return
        verb = "Added" if append else "Loaded"
        self.statusBar().showMessage(f"{verb} {count} AI annotation(s).")

    def on_detect_empty(self, message: str):
        """Handle a successful call that produced nothing usable."""
        QMessageBox.information(self, "Auto-Detect", f"No annotations were detected.\n\n{message}")
        self.statusBar().showMessage("Auto-Detect: no annotations found.")

    def on_detect_failed(self, err: str):
        """Handle AI detection failure."""
        QMessageBox.critical(self, "Auto-Detect failed", err)
        self.statusBar().showMessage("Auto-Detect failed.")

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def download_report(self):
        """Export the annotated image with the report."""
        if not self.session.has_image:
            return
        export_dir = self.settings_manager.get_export_dir(self.session.image.path)
        suggested = str(export_dir / report_filename(self.session.patient_id))
        path, _ = QFileDialog.getSaveFileName(self, "Download Report", suggested, "PNG (*.png)")
        if not path:
            return
        if not path.lower().endswith(".png"):
            path += ".png"

        self._export_thread = QThread()
        self._export_worker = ExportWorker(
            self.session.image.path,
            self.session.snapshot(),
            path,
            self.session.patient_id,
            self.session.patient_name,
        )
        self._export_worker.moveToThread(self._export_thread)
        self._export_thread.started.connect(self._export_worker.run)
        self._export_worker.finished.connect(self.on_export_finished)
        self._export_worker.failed.connect(self.on_export_failed)
        self._export_worker.finished.connect(self._export_thread.quit)
        self._export_worker.failed.connect(self._export_thread.quit)
        self._export_thread.finished.connect(self._on_export_thread_done)
        self._export_thread.finished.connect(self._export_thread.deleteLater)
        self._export_thread.start()
        self.statusBar().showMessage("Exporting report...")
        self._update_action_state()

    def _on_export_thread_done(self):
        self._export_thread = None
        self._export_worker = None
        self._update_action_state()

    def on_export_finished(self, path: str):
        self.statusBar().showMessage(f"Exported report: {path}")

    def on_export_failed(self, err: str):
        QMessageBox.critical(self, "Export failed", err)
        self.statusBar().showMessage("Export failed.")


def main():
    """Application entry point."""
    sys.excepthook = _excepthook
    setup_logging()
    trace("Application starting", "MAIN")
    app = QApplication(sys.argv)

    settings_manager = get_settings()
    settings_manager.ensure_file_complete()

    initial_style = settings_manager.settings.theme
    if initial_style not in STYLES:
        initial_style = DEFAULT_STYLE
        settings_manager.settings.theme = initial_style
    app.setStyleSheet(STYLES[initial_style])

    def save_on_quit():
        trace("Saving settings on quit", "MAIN")
        settings_manager.save()
        close_log()

    app.aboutToQuit.connect(save_on_quit)

    w = MainWindow(settings_manager)
    w.resize(1400, 900)
    w.show()

    args = app.arguments()[1:]
    if args:
        w.load_image(args[0])

    sys.exit(app.exec())


def _excepthook(exc_type, exc_value, exc_tb):
    logging.getLogger("trichomark").critical(
        "[CRASH] Uncaught exception", exc_info=(exc_type, exc_value, exc_tb)
    )
    close_log()
    sys.__excepthook__(exc_type, exc_value, exc_tb)


if __name__ == "__main__":
    try:
        main()
    except Exception:
        trace_exception("Fatal exception")
        close_log()
        raise
