"""
report.py

Statistics engine: derives counts, ratios and percentages from the
annotation collection.  The live results panel and the exported report
both read from :func:`compute_report`, so their figures always agree.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping

from models import FEATURES, Annotation, FeatureKind

NOT_AVAILABLE = "N/A"

# Hairs credited per follicular-unit bucket.  The 3+ bucket is scored as
# exactly 3; this under-counts units with more hairs.
HAIRS_PER_FU: Mapping[FeatureKind, int] = {
    FeatureKind.FOLLICULAR_UNIT_1: 1,
    FeatureKind.FOLLICULAR_UNIT_2: 2,
    FeatureKind.FOLLICULAR_UNIT_3_PLUS: 3,
}


def _fixed(value: Decimal, places: int) -> str:
    """Format *value* with *places* decimals, rounding half up."""
    quantum = Decimal(1).scaleb(-places)
    return str(value.quantize(quantum, rounding=ROUND_HALF_UP))


def format_ratio(numerator: int, denominator: int, empty: str = NOT_AVAILABLE) -> str:
    """``numerator / denominator`` to 2 decimals, or *empty* if the denominator is 0."""
    if denominator == 0:
        return empty
    return _fixed(Decimal(numerator) / Decimal(denominator), 2)


def format_percentage(count: int, total: int) -> str:
    """``count / total`` as a percentage with 1 decimal, ``"0.0%"`` if *total* is 0."""
    if total == 0:
        return "0.0%"
    return f"{_fixed(Decimal(count) * 100 / Decimal(total), 1)}%"


@dataclass(frozen=True)
class StatisticsReport:
    """Derived view of an annotation collection.

    Attributes:
        counts: Count per FeatureKind (every kind present, possibly 0).
        total_hair_count: vellus + terminal.
        total_follicular_unit_count: fu1 + fu2 + fu3plus.
        hairs_in_follicular_units: fu1*1 + fu2*2 + fu3plus*3.
        total_phase_count: anagen + telogen.
        avg_hairs_per_fu: 2-decimal string, "0.00" without FUs.
        vellus_to_terminal_ratio: 2-decimal string or "N/A".
        anagen_to_telogen_ratio: 2-decimal string or "N/A".
    """
    counts: Mapping[FeatureKind, int]
    total_hair_count: int
    total_follicular_unit_count: int
    hairs_in_follicular_units: int
    total_phase_count: int
    avg_hairs_per_fu: str
    vellus_to_terminal_ratio: str
    anagen_to_telogen_ratio: str

    def count(self, kind: FeatureKind) -> int:
        return self.counts.get(kind, 0)

    def percentage(self, kind: FeatureKind) -> str:
        """Percentage of *kind* within its group (hair, FU or phase)."""
        if kind in (FeatureKind.VELLUS_HAIR, FeatureKind.TERMINAL_HAIR):
            total = self.total_hair_count
        elif kind in HAIRS_PER_FU:
            total = self.total_follicular_unit_count
        else:
            total = self.total_phase_count
        return format_percentage(self.count(kind), total)

    @property
    def vellus_percentage(self) -> str:
        return self.percentage(FeatureKind.VELLUS_HAIR)

    @property
    def terminal_percentage(self) -> str:
        return self.percentage(FeatureKind.TERMINAL_HAIR)

    @property
    def anagen_percentage(self) -> str:
        return self.percentage(FeatureKind.ANAGEN_HAIR)

    @property
    def telogen_percentage(self) -> str:
        return self.percentage(FeatureKind.TELOGEN_HAIR)

    @property
    def fu1_percentage(self) -> str:
        return self.percentage(FeatureKind.FOLLICULAR_UNIT_1)

    @property
    def fu2_percentage(self) -> str:
        return self.percentage(FeatureKind.FOLLICULAR_UNIT_2)

    @property
    def fu3plus_percentage(self) -> str:
        return self.percentage(FeatureKind.FOLLICULAR_UNIT_3_PLUS)

    def as_dict(self) -> Dict[str, object]:
        """Flat dict of every figure, keyed by stable snake_case names."""
        d: Dict[str, object] = {
            f"count_{kind.name.lower()}": self.count(kind) for kind in FeatureKind
        }
        d.update({
            "total_hair_count": self.total_hair_count,
            "total_follicular_unit_count": self.total_follicular_unit_count,
            "hairs_in_follicular_units": self.hairs_in_follicular_units,
            "total_phase_count": self.total_phase_count,
            "avg_hairs_per_fu": self.avg_hairs_per_fu,
            "vellus_to_terminal_ratio": self.vellus_to_terminal_ratio,
            "anagen_to_telogen_ratio": self.anagen_to_telogen_ratio,
        })
        d.update({
            f"percentage_{kind.name.lower()}": self.percentage(kind) for kind in FeatureKind
        })
        return d

    def report_lines(self, patient_id: str = "", patient_name: str = "") -> List[str]:
        """Text lines of the exported report panel, in their fixed order."""
        vellus = self.count(FeatureKind.VELLUS_HAIR)
        terminal = self.count(FeatureKind.TERMINAL_HAIR)
        fu1 = self.count(FeatureKind.FOLLICULAR_UNIT_1)
        fu2 = self.count(FeatureKind.FOLLICULAR_UNIT_2)
        fu3 = self.count(FeatureKind.FOLLICULAR_UNIT_3_PLUS)
        anagen = self.count(FeatureKind.ANAGEN_HAIR)
        telogen = self.count(FeatureKind.TELOGEN_HAIR)

        lines = [f"Patient ID: {patient_id.strip() or NOT_AVAILABLE}"]
        if patient_name.strip():
            lines.append(f"Patient Name: {patient_name.strip()}")
        lines += [
            "--- Analysis Report ---",
            f"Total Hairs: {self.total_hair_count}",
            f"Vellus Hairs: {vellus} ({self.vellus_percentage})",
            f"Terminal Hairs: {terminal} ({self.terminal_percentage})",
            f"V:T Ratio: {self.vellus_to_terminal_ratio}",
            "",
            f"Total FUs: {self.total_follicular_unit_count}",
            f"  - 1-Hair FUs: {fu1} ({self.fu1_percentage})",
            f"  - 2-Hair FUs: {fu2} ({self.fu2_percentage})",
            f"  - 3+ Hair FUs: {fu3} ({self.fu3plus_percentage})",
            f"Avg. Hairs per FU: {self.avg_hairs_per_fu}",
            "",
            f"Anagen Hairs: {anagen} ({self.anagen_percentage})",
            f"Telogen Hairs: {telogen} ({self.telogen_percentage})",
            f"A:T Ratio: {self.anagen_to_telogen_ratio}",
        ]
        return lines


def count_by_kind(annotations: Iterable[Annotation]) -> Dict[FeatureKind, int]:
    """Count annotations per kind.  Kinds outside the taxonomy are skipped."""
    counts: Dict[FeatureKind, int] = {f.kind: 0 for f in FEATURES}
    for ann in annotations:
        kind = getattr(ann, "kind", None)
        if kind in counts:
            counts[kind] += 1
    return counts


def compute_report(annotations: Iterable[Annotation]) -> StatisticsReport:
    """Compute the full statistics report for *annotations*.

    Pure: the same collection always yields an equal report.  Every
    division is guarded, so this never raises for a valid collection.
    """
    counts = count_by_kind(annotations)

    vellus = counts[FeatureKind.VELLUS_HAIR]
    terminal = counts[FeatureKind.TERMINAL_HAIR]
    anagen = counts[FeatureKind.ANAGEN_HAIR]
    telogen = counts[FeatureKind.TELOGEN_HAIR]

    total_fu = sum(counts[k] for k in HAIRS_PER_FU)
    hairs_in_fu = sum(counts[k] * n for k, n in HAIRS_PER_FU.items())

    return StatisticsReport(
        counts=counts,
        total_hair_count=vellus + terminal,
        total_follicular_unit_count=total_fu,
        hairs_in_follicular_units=hairs_in_fu,
        total_phase_count=anagen + telogen,
        avg_hairs_per_fu=format_ratio(hairs_in_fu, total_fu, empty="0.00"),
        vellus_to_terminal_ratio=format_ratio(vellus, terminal),
        anagen_to_telogen_ratio=format_ratio(anagen, telogen),
    )
