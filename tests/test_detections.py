"""Tests for detector output validation and JSON extraction."""
from __future__ import annotations

from gemini.detections import parse_detections
from models import FeatureKind
from utils import extract_first_json_value, strip_markdown_fences


class TestExtractJson:
    def test_plain_array(self):
        assert extract_first_json_value('[{"x": 1}]') == [{"x": 1}]

    def test_markdown_fenced(self):
        assert extract_first_json_value('```json\n[{"x": 1}]\n```') == [{"x": 1}]

    def test_surrounded_by_prose(self):
        text = 'Here you go: [{"x": 1, "type": "Vellus Hair"}] hope that helps'
        assert extract_first_json_value(text) == [{"x": 1, "type": "Vellus Hair"}]

    def test_brackets_inside_strings(self):
        text = 'Result {"note": "a ] tricky } value", "n": 2} trailing'
        assert extract_first_json_value(text) == {"note": "a ] tricky } value", "n": 2}

    def test_garbage(self):
        assert extract_first_json_value("no json here") is None
        assert extract_first_json_value("[1, 2") is None
        assert extract_first_json_value("") is None

    def test_strip_fences_without_language(self):
        assert strip_markdown_fences("```\n[]\n```") == "[]"


class TestParseDetections:
    def test_valid_records(self):
        anns, warnings = parse_detections([
            {"x": 10, "y": 20, "type": "Terminal Hair", "radius": 4},
            {"x": 30.555, "y": 40, "type": "Vellus Hair", "radius": 3},
        ])
        assert warnings == []
        assert [a.kind for a in anns] == [FeatureKind.TERMINAL_HAIR, FeatureKind.VELLUS_HAIR]
        assert anns[1].x == 30.56

    def test_wrapped_in_object(self):
        anns, _ = parse_detections({"annotations": [{"x": 1, "y": 1, "type": "Anagen Hair", "radius": 2}]})
        assert anns[0].kind is FeatureKind.ANAGEN_HAIR

    def test_unknown_label_dropped_not_coerced(self):
        anns, warnings = parse_detections([
            {"x": 1, "y": 1, "type": "Hair", "radius": 2},
            {"x": 1, "y": 1, "type": "Terminal Hair", "radius": 2},
        ])
        assert len(anns) == 1
        assert len(warnings) == 1
        assert "unknown type 'Hair'" in warnings[0]

    def test_bad_coordinates_skipped(self):
        anns, warnings = parse_detections([
            {"y": 1, "type": "Vellus Hair", "radius": 2},
            {"x": "left", "y": 1, "type": "Vellus Hair", "radius": 2},
            {"x": -3, "y": 1, "type": "Vellus Hair", "radius": 2},
            {"x": True, "y": 1, "type": "Vellus Hair", "radius": 2},
            "not a record",
        ])
        assert anns == []
        assert len(warnings) == 5

    def test_missing_radius_uses_default(self):
        anns, warnings = parse_detections([{"x": 1, "y": 1, "type": "Vellus Hair"}], default_radius=7)
        assert anns[0].radius == 7.0
        assert len(warnings) == 1

    def test_default_radius_from_settings(self, isolated_settings):
        isolated_settings.settings.gemini.default_radius = 6.5
        anns, _ = parse_detections([{"x": 1, "y": 1, "type": "Vellus Hair", "radius": 0}])
        assert anns[0].radius == 6.5

    def test_not_a_list(self):
        anns, warnings = parse_detections("nope")
        assert anns == []
        assert warnings

    def test_detections_get_fresh_ids(self):
        rec = {"id": "abc", "x": 1, "y": 1, "type": "Vellus Hair", "radius": 2}
        anns, _ = parse_detections([rec, rec])
        assert "abc" not in {a.id for a in anns}
        assert anns[0].id != anns[1].id
