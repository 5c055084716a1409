"""
results/panel.py

Live analysis report panel.  Shows the same figures as the exported
report, read from a StatisticsReport.
"""

from __future__ import annotations

from typing import Dict, Tuple

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import (
    QFrame,
    QGridLayout,
    QGroupBox,
    QLabel,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from models import FeatureKind, feature_info
from report import StatisticsReport, compute_report

# (section title, rows).  A row is either a summary field name or a FeatureKind.
SECTIONS: Tuple[Tuple[str, Tuple[object, ...]], ...] = (
    ("Summary", (
        "total_hair_count",
        "total_follicular_unit_count",
        "avg_hairs_per_fu",
        "vellus_to_terminal_ratio",
        "anagen_to_telogen_ratio",
    )),
    ("Hair Details", (FeatureKind.VELLUS_HAIR, FeatureKind.TERMINAL_HAIR)),
    ("Follicular Units", (
        FeatureKind.FOLLICULAR_UNIT_1,
        FeatureKind.FOLLICULAR_UNIT_2,
        FeatureKind.FOLLICULAR_UNIT_3_PLUS,
    )),
    ("Hair Phase Details", (FeatureKind.ANAGEN_HAIR, FeatureKind.TELOGEN_HAIR)),
)

SUMMARY_LABELS: Dict[str, str] = {
    "total_hair_count": "Total Hair Count",
    "total_follicular_unit_count": "Total Follicular Units",
    "avg_hairs_per_fu": "Avg. Hairs per FU",
    "vellus_to_terminal_ratio": "Vellus:Terminal Ratio",
    "anagen_to_telogen_ratio": "Anagen:Telogen Ratio",
}

# Summary rows rendered in bold
_BOLD_ROWS = {"total_hair_count", "total_follicular_unit_count"}


def _swatch(color: str) -> QLabel:
    sw = QLabel()
    sw.setFixedSize(12, 12)
    sw.setStyleSheet(f"background-color: {color}; border-radius: 6px;")
    return sw


class ResultsPanel(QWidget):
    """
    Analysis report widget.

    Call :meth:`set_report` whenever the annotation collection changes;
    the panel only displays, it never computes partial updates.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._value_labels: Dict[object, QLabel] = {}

        outer = QVBoxLayout(self)
        outer.setContentsMargins(8, 8, 8, 8)

        title = QLabel("Analysis Report")
        f = QFont(title.font())
        f.setPointSize(f.pointSize() + 4)
        f.setBold(True)
        title.setFont(f)
        outer.addWidget(title)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QFrame.Shape.NoFrame)
        body = QWidget()
        body_layout = QVBoxLayout(body)
        body_layout.setContentsMargins(0, 0, 0, 0)

        for section_title, rows in SECTIONS:
            box = QGroupBox(section_title)
            grid = QGridLayout(box)
            grid.setColumnStretch(1, 1)
            for r, row in enumerate(rows):
                value = QLabel()
                value.setAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
                value.setFont(QFont("monospace"))
                if isinstance(row, FeatureKind):
                    info = feature_info(row)
                    grid.addWidget(_swatch(info.color), r, 0)
                    label = QLabel(info.label)
                else:
                    label = QLabel(SUMMARY_LABELS[row])
                    if row in _BOLD_ROWS:
                        bf = QFont(label.font())
                        bf.setBold(True)
                        label.setFont(bf)
                        value.setFont(bf)
                grid.addWidget(label, r, 1)
                grid.addWidget(value, r, 2)
                self._value_labels[row] = value
            body_layout.addWidget(box)

        body_layout.addStretch(1)
        scroll.setWidget(body)
        outer.addWidget(scroll, 1)

        self.set_report(compute_report(()))

    def value_text(self, row: object) -> str:
        """Displayed text for a summary field name or FeatureKind."""
        return self._value_labels[row].text()

    def set_report(self, report: StatisticsReport) -> None:
        for row, label in self._value_labels.items():
            if isinstance(row, FeatureKind):
                label.setText(f"{report.count(row)} ({report.percentage(row)})")
            else:
                label.setText(str(getattr(report, row)))
