"""Tests for the statistics engine in report.py."""
from __future__ import annotations

from models import Annotation, FeatureKind
from report import (
    NOT_AVAILABLE,
    compute_report,
    count_by_kind,
    format_percentage,
    format_ratio,
)


def _anns(*kinds):
    return [Annotation(float(i), float(i), k, 5.0) for i, k in enumerate(kinds)]


V = FeatureKind.VELLUS_HAIR
T = FeatureKind.TERMINAL_HAIR
A = FeatureKind.ANAGEN_HAIR
TE = FeatureKind.TELOGEN_HAIR
FU1 = FeatureKind.FOLLICULAR_UNIT_1
FU2 = FeatureKind.FOLLICULAR_UNIT_2
FU3 = FeatureKind.FOLLICULAR_UNIT_3_PLUS


# ─────────────────────────────────────────────────────────
# Formatting
# ─────────────────────────────────────────────────────────


class TestFormatting:
    def test_ratio_two_decimals(self):
        assert format_ratio(2, 1) == "2.00"
        assert format_ratio(1, 3) == "0.33"

    def test_ratio_rounds_half_up(self):
        # 0.125 would round to even (0.12) with float formatting
        assert format_ratio(1, 8) == "0.13"

    def test_ratio_zero_denominator(self):
        assert format_ratio(5, 0) == NOT_AVAILABLE
        assert format_ratio(0, 0, empty="0.00") == "0.00"

    def test_percentage(self):
        assert format_percentage(2, 3) == "66.7%"
        assert format_percentage(1, 3) == "33.3%"
        assert format_percentage(3, 3) == "100.0%"

    def test_percentage_half_up(self):
        # 1/16 = 6.25% -> 6.3%
        assert format_percentage(1, 16) == "6.3%"

    def test_percentage_zero_total(self):
        assert format_percentage(0, 0) == "0.0%"


# ─────────────────────────────────────────────────────────
# Report
# ─────────────────────────────────────────────────────────


class TestComputeReport:
    def test_hair_scenario(self):
        r = compute_report(_anns(V, V, T))
        assert r.total_hair_count == 3
        assert r.count(V) == 2
        assert r.count(T) == 1
        assert r.vellus_to_terminal_ratio == "2.00"
        assert r.vellus_percentage == "66.7%"
        assert r.terminal_percentage == "33.3%"

    def test_follicular_unit_scenario(self):
        r = compute_report(_anns(FU1, FU1, FU2, FU3))
        assert r.total_follicular_unit_count == 4
        assert r.hairs_in_follicular_units == 7
        assert r.avg_hairs_per_fu == "1.75"
        assert r.fu1_percentage == "50.0%"
        assert r.fu2_percentage == "25.0%"
        assert r.fu3plus_percentage == "25.0%"

    def test_empty(self):
        r = compute_report([])
        assert all(n == 0 for n in r.counts.values())
        assert len(r.counts) == len(FeatureKind)
        assert r.total_hair_count == 0
        assert r.total_follicular_unit_count == 0
        assert r.vellus_to_terminal_ratio == NOT_AVAILABLE
        assert r.anagen_to_telogen_ratio == NOT_AVAILABLE
        assert r.avg_hairs_per_fu == "0.00"
        for kind in FeatureKind:
            assert r.percentage(kind) == "0.0%"

    def test_no_terminal_hairs(self):
        r = compute_report(_anns(V, V))
        assert r.vellus_to_terminal_ratio == NOT_AVAILABLE
        assert r.vellus_percentage == "100.0%"

    def test_phase_ratio(self):
        r = compute_report(_anns(A, A, A, TE))
        assert r.anagen_to_telogen_ratio == "3.00"
        assert r.anagen_percentage == "75.0%"
        assert r.telogen_percentage == "25.0%"

    def test_groups_are_independent(self):
        # Phase and FU markers do not count as hairs
        r = compute_report(_anns(V, A, FU2))
        assert r.total_hair_count == 1
        assert r.total_phase_count == 1
        assert r.total_follicular_unit_count == 1
        assert r.vellus_percentage == "100.0%"

    def test_pure(self):
        anns = _anns(V, T, FU3, A)
        assert compute_report(anns) == compute_report(list(anns))

    def test_count_by_kind_ignores_foreign_objects(self):
        counts = count_by_kind(_anns(V) + [object()])
        assert counts[V] == 1
        assert sum(counts.values()) == 1

    def test_as_dict_keys(self):
        d = compute_report(_anns(V)).as_dict()
        assert d["count_vellus_hair"] == 1
        assert d["percentage_vellus_hair"] == "100.0%"
        assert d["vellus_to_terminal_ratio"] == NOT_AVAILABLE


class TestReportLines:
    def test_fixed_order(self):
        lines = compute_report(_anns(V, V, T)).report_lines("P-17")
        assert lines == [
            "Patient ID: P-17",
            "--- Analysis Report ---",
            "Total Hairs: 3",
            "Vellus Hairs: 2 (66.7%)",
            "Terminal Hairs: 1 (33.3%)",
            "V:T Ratio: 2.00",
            "",
            "Total FUs: 0",
            "  - 1-Hair FUs: 0 (0.0%)",
            "  - 2-Hair FUs: 0 (0.0%)",
            "  - 3+ Hair FUs: 0 (0.0%)",
            "Avg. Hairs per FU: 0.00",
            "",
            "Anagen Hairs: 0 (0.0%)",
            "Telogen Hairs: 0 (0.0%)",
            "A:T Ratio: N/A",
        ]

    def test_blank_patient_id(self):
        lines = compute_report([]).report_lines("   ")
        assert lines[0] == "Patient ID: N/A"

    def test_patient_name_line(self):
        lines = compute_report([]).report_lines("7", "Jane Doe")
        assert lines[:3] == ["Patient ID: 7", "Patient Name: Jane Doe", "--- Analysis Report ---"]
