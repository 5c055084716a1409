"""
gemini/detections.py

Validation of detector output: turns raw ``{x, y, type, radius}``
records into Annotations, dropping anything that does not map cleanly.
"""

from __future__ import annotations

import math
from typing import Any, List, Optional, Tuple

from models import Annotation, resolve_feature_label
from settings import get_settings


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        f = round(float(value), 2)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def parse_detections(
    data: Any,
    default_radius: Optional[float] = None,
) -> Tuple[List[Annotation], List[str]]:
    """
    Validate detection records and convert them to annotations.

    Accepts either a list of records or an object with an
    ``annotations`` list.  Unknown type labels are dropped, never mapped
    to a "closest" kind.

    Args:
        data: Parsed JSON from the detector
        default_radius: Radius for records without one; defaults to the
            ``gemini.default_radius`` setting

    Returns:
        (annotations in input order, warnings for every skipped or fixed record)
    """
    warnings: List[str] = []
    if isinstance(data, dict) and "annotations" in data:
        data = data["annotations"]
    if not isinstance(data, list):
        warnings.append("response is not a list of annotations")
        return [], warnings

    if default_radius is None:
        default_radius = get_settings().settings.gemini.default_radius

    annotations: List[Annotation] = []
    for i, rec in enumerate(data):
        if not isinstance(rec, dict):
            warnings.append(f"Annotation {i}: not an object, skipping")
            continue

        kind = resolve_feature_label(rec.get("type"))
        if kind is None:
            warnings.append(f"Annotation {i}: unknown type '{rec.get('type')}', skipping")
            continue

        x = _as_number(rec.get("x"))
        y = _as_number(rec.get("y"))
        if x is None or y is None:
            warnings.append(f"Annotation {i}: missing or invalid coordinates, skipping")
            continue
        if x < 0 or y < 0:
            warnings.append(f"Annotation {i}: negative coordinates ({x}, {y}), skipping")
            continue

        radius = _as_number(rec.get("radius"))
        if radius is None or radius <= 0:
            warnings.append(f"Annotation {i}: invalid radius, using {default_radius}")
            radius = float(default_radius)

        annotations.append(Annotation(x=x, y=y, kind=kind, radius=radius))

    return annotations, warnings
