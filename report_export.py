"""
report_export.py

Export the annotated image with the statistics report as a PNG.

The composite is the untouched source image at native resolution, every
marker (regardless of the canvas visibility toggle), and a report panel
anchored to the top-right corner.
"""

from __future__ import annotations

import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from PyQt6.QtCore import QObject, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import QColor, QFont, QFontMetricsF, QImage, QPainter
from PIL import Image, UnidentifiedImageError

from canvas.render import draw_markers
from errors import ExportFailure
from models import Annotation
from report import StatisticsReport, compute_report
from settings import ReportSettings, get_settings
from utils import hex_to_qcolor


# Read once at import; os.umask can only be queried by setting it
_UMASK = os.umask(0)
os.umask(_UMASK)

log = logging.getLogger(__name__)


def report_timestamp(now: Optional[datetime] = None) -> str:
    """UTC ISO-8601 timestamp with milliseconds, colons replaced by hyphens.

    Example: ``2026-10-19T08-15-30.123Z``
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    iso = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
    return iso.replace(":", "-")


def report_filename(patient_id: str = "", now: Optional[datetime] = None) -> str:
    """Suggested file name for an exported report."""
    ts = report_timestamp(now)
    pid = (patient_id or "").strip()
    if pid:
        return f"report-{pid}-{ts}.png"
    return f"report-{ts}.png"


def decode_qimage(path: str) -> QImage:
    """Decode *path* to a QImage, falling back to Pillow for formats Qt lacks.

    Returns a null QImage if neither can decode the file.
    """
    image = QImage(path)
    if not image.isNull():
        return image
    try:
        with Image.open(path) as img:
            rgba = img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        log.warning("Could not decode %s: %s", path, e)
        return QImage()
    data = rgba.tobytes("raw", "RGBA")
    # copy() detaches from the Python buffer
    return QImage(data, rgba.width, rgba.height, rgba.width * 4, QImage.Format.Format_RGBA8888).copy()


def _report_font(cfg: ReportSettings) -> QFont:
    font = QFont(cfg.font_family)
    if cfg.font_family == "sans-serif":
        font.setStyleHint(QFont.StyleHint.SansSerif)
    font.setPixelSize(cfg.font_size)
    font.setBold(True)
    return font


def report_panel_rect(line_count: int, canvas_width: float, cfg: Optional[ReportSettings] = None) -> QRectF:
    """Rectangle of the report panel, anchored to the top-right margin."""
    cfg = cfg or get_settings().settings.report
    box_height = line_count * cfg.line_height + cfg.padding
    start_x = canvas_width - cfg.box_width - cfg.padding
    return QRectF(start_x, cfg.padding, cfg.box_width, box_height)


def draw_report_panel(
    painter: QPainter,
    lines: Sequence[str],
    canvas_width: float,
    cfg: Optional[ReportSettings] = None,
) -> QRectF:
    """Draw the semi-opaque report box with *lines*.

    Returns:
        The panel rectangle.
    """
    cfg = cfg or get_settings().settings.report
    rect = report_panel_rect(len(lines), canvas_width, cfg)

    painter.save()
    try:
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(hex_to_qcolor(cfg.background, QColor("#1f2937"), alpha=cfg.background_opacity))
        painter.drawRect(rect)

        font = _report_font(cfg)
        painter.setFont(font)
        painter.setPen(hex_to_qcolor(cfg.text_color, QColor("#f3f4f6")))
        # Lines are drawn on their baseline
        ascent = QFontMetricsF(font).ascent()
        for index, line in enumerate(lines):
            baseline = rect.top() + cfg.padding + index * cfg.line_height
            painter.drawText(
                QRectF(rect.left() + cfg.padding / 2, baseline - ascent, rect.width() - cfg.padding, cfg.line_height),
                Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop,
                line,
            )
    finally:
        painter.restore()
    return rect


def compose_report_image(
    source: QImage,
    annotations: Sequence[Annotation],
    report: Optional[StatisticsReport] = None,
    patient_id: str = "",
    patient_name: str = "",
) -> QImage:
    """Compose source image, markers and report panel into a new image.

    *source* is not modified.
    """
    if source.isNull():
        raise ExportFailure("Source image is empty.")
    if report is None:
        report = compute_report(annotations)

    out = source.convertToFormat(QImage.Format.Format_ARGB32)
    painter = QPainter(out)
    try:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        painter.setRenderHint(QPainter.RenderHint.TextAntialiasing, True)
        draw_markers(painter, annotations)
        draw_report_panel(painter, report.report_lines(patient_id, patient_name), out.width())
    finally:
        painter.end()
    return out


def _write_png_atomically(image: QImage, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".report-", suffix=".png", dir=str(target.parent))
    os.close(fd)
    try:
        if not image.save(tmp_name, "PNG"):
            raise ExportFailure(f"Could not write PNG to {target}")
        os.chmod(tmp_name, 0o666 & ~_UMASK)
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise


def export_report(
    source_path: str,
    annotations: Sequence[Annotation],
    output_path: str,
    patient_id: str = "",
    patient_name: str = "",
) -> Path:
    """
    Render and write the report PNG.

    Args:
        source_path: Path of the source image (re-decoded here)
        annotations: Snapshot of the annotations to draw
        output_path: Target file, or a directory to place
            :func:`report_filename` in
        patient_id: Patient identifier for the header line and file name
        patient_name: Optional patient name for the header

    Returns:
        Path of the written file.

    Raises:
        ExportFailure: If the source cannot be decoded or the file cannot
            be written.  No partial file is left behind.
    """
    annotations = tuple(annotations)
    source = decode_qimage(source_path)
    if source.isNull():
        raise ExportFailure(f"Could not decode source image:\n{source_path}")

    target = Path(output_path)
    if target.is_dir():
        target = target / report_filename(patient_id)

    image = compose_report_image(source, annotations, compute_report(annotations), patient_id, patient_name)
    try:
        _write_png_atomically(image, target)
    except OSError as e:
        raise ExportFailure(f"Could not write {target}: {e}") from e
    log.info("Exported report with %d annotation(s) to %s", len(annotations), target)
    return target


class ExportWorker(QObject):
    """
    Background worker that writes the report PNG.

    Works on the annotation snapshot passed in, so edits made while it
    runs are not reflected in the file.

    Signals:
        finished(str): Emitted with the written path on success
        failed(str): Emitted with an error message on failure
    """

    finished = pyqtSignal(str)
    failed = pyqtSignal(str)

    def __init__(
        self,
        source_path: str,
        annotations: Sequence[Annotation],
        output_path: str,
        patient_id: str = "",
        patient_name: str = "",
    ):
        super().__init__()
        self.source_path = source_path
        self.annotations: List[Annotation] = list(annotations)
        self.output_path = output_path
        self.patient_id = patient_id
        self.patient_name = patient_name

    def run(self):
        """Execute the export."""
        try:
            path = export_report(
                self.source_path,
                tuple(self.annotations),
                self.output_path,
                self.patient_id,
                self.patient_name,
            )
        except ExportFailure as e:
            log.error("Export failed: %s", e)
            self.failed.emit(str(e))
            return
        self.finished.emit(str(path))
