"""
models.py

Data models and constants for the TrichoMark application.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# ----------------------------
# Feature taxonomy
# ----------------------------

class FeatureKind(Enum):
    """Annotatable scalp features.  The value is the display label."""
    VELLUS_HAIR = "Vellus Hair"
    TERMINAL_HAIR = "Terminal Hair"
    ANAGEN_HAIR = "Anagen Hair"
    TELOGEN_HAIR = "Telogen Hair"
    FOLLICULAR_UNIT_1 = "FU (1 Hair)"
    FOLLICULAR_UNIT_2 = "FU (2 Hairs)"
    FOLLICULAR_UNIT_3_PLUS = "FU (3+ Hairs)"


@dataclass(frozen=True)
class FeatureInfo:
    """Display attributes bound to a feature kind."""
    kind: FeatureKind
    label: str
    color: str  # "#RRGGBB"


# Toolbar order.  Renderer, statistics and export all look attributes up here.
FEATURES: Tuple[FeatureInfo, ...] = (
    FeatureInfo(FeatureKind.VELLUS_HAIR, "Vellus Hair", "#34d399"),          # emerald
    FeatureInfo(FeatureKind.TERMINAL_HAIR, "Terminal Hair", "#f87171"),      # red
    FeatureInfo(FeatureKind.ANAGEN_HAIR, "Anagen Hair", "#22d3ee"),          # cyan
    FeatureInfo(FeatureKind.TELOGEN_HAIR, "Telogen Hair", "#f97316"),        # orange
    FeatureInfo(FeatureKind.FOLLICULAR_UNIT_1, "FU (1 Hair)", "#60a5fa"),    # blue
    FeatureInfo(FeatureKind.FOLLICULAR_UNIT_2, "FU (2 Hairs)", "#a78bfa"),   # violet
    FeatureInfo(FeatureKind.FOLLICULAR_UNIT_3_PLUS, "FU (3+ Hairs)", "#f472b6"),  # pink
)

_FEATURES_BY_KIND: Dict[FeatureKind, FeatureInfo] = {f.kind: f for f in FEATURES}
_FEATURES_BY_LABEL: Dict[str, FeatureInfo] = {f.label: f for f in FEATURES}


def feature_info(kind: FeatureKind) -> FeatureInfo:
    """Return the display attributes for *kind*.

    Raises:
        KeyError: If *kind* is not a member of the taxonomy.
    """
    return _FEATURES_BY_KIND[kind]


def resolve_feature_label(label: Any, fallback: Optional[FeatureKind] = None) -> Optional[FeatureKind]:
    """Resolve an external type label (e.g. from the AI detector) to a FeatureKind.

    Matching is exact on the display label after trimming whitespace,
    then case-insensitive.  Nothing else is coerced: ``"hair"`` or
    ``"Vellus"`` do not match.

    Args:
        label: The label string, e.g. ``'Terminal Hair'``.
        fallback: Kind to return if no label matches.  Defaults to ``None``.

    Returns:
        The matching FeatureKind, or *fallback*.
    """
    if not isinstance(label, str):
        return fallback
    key = label.strip()
    info = _FEATURES_BY_LABEL.get(key)
    if info is None:
        lowered = key.lower()
        for candidate in FEATURES:
            if candidate.label.lower() == lowered:
                info = candidate
                break
    return info.kind if info is not None else fallback


# ----------------------------
# Annotation model
# ----------------------------

def new_annotation_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Annotation:
    """One placed marker, in image-native pixel coordinates.

    Annotations are immutable; the store removes them only through undo,
    clear or a wholesale replace.
    """
    x: float
    y: float
    kind: FeatureKind
    radius: float
    id: str = field(default_factory=new_annotation_id)

    def __post_init__(self):
        if not (math.isfinite(self.x) and math.isfinite(self.y)):
            raise ValueError(f"Annotation coordinates must be finite, got ({self.x}, {self.y})")
        if self.x < 0 or self.y < 0:
            raise ValueError(f"Annotation coordinates must be >= 0, got ({self.x}, {self.y})")
        if not math.isfinite(self.radius) or self.radius <= 0:
            raise ValueError(f"Annotation radius must be > 0, got {self.radius}")
        if not isinstance(self.kind, FeatureKind):
            raise ValueError(f"Unknown feature kind: {self.kind!r}")

    @property
    def color(self) -> str:
        return feature_info(self.kind).color

    def to_record(self) -> Dict[str, Any]:
        """Serialize to a plain dict (``type`` holds the feature label)."""
        return {
            "id": self.id,
            "x": round(self.x, 2),
            "y": round(self.y, 2),
            "type": self.kind.value,
            "radius": self.radius,
        }

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "Annotation":
        """Create an Annotation from a record produced by :meth:`to_record`.

        Raises:
            ValueError: If the type label is unknown or a field is invalid.
        """
        kind = resolve_feature_label(rec.get("type"))
        if kind is None:
            raise ValueError(f"unknown type '{rec.get('type')}'")
        try:
            x = float(rec["x"])
            y = float(rec["y"])
            radius = float(rec["radius"])
        except KeyError as e:
            raise ValueError(f"missing field {e}") from None
        except (TypeError, ValueError):
            raise ValueError("non-numeric geometry") from None
        ann_id = rec.get("id")
        if ann_id:
            return cls(x=x, y=y, kind=kind, radius=radius, id=str(ann_id))
        return cls(x=x, y=y, kind=kind, radius=radius)


# ----------------------------
# Viewport state
# ----------------------------

@dataclass
class ViewportState:
    """Transient per-image UI state.

    Used only as placement defaults and for display; never changes
    stored annotations.  Reset on every image load.
    """
    zoom: float = 1.0
    brush_radius: float = 5.0
    active_kind: FeatureKind = FEATURES[0].kind
    show_annotations: bool = True

    def set_zoom(self, zoom: float) -> None:
        if not zoom > 0:
            raise ValueError(f"zoom must be > 0, got {zoom}")
        self.zoom = float(zoom)

    def set_brush_radius(self, radius: float) -> None:
        if not radius > 0:
            raise ValueError(f"brush radius must be > 0, got {radius}")
        self.brush_radius = float(radius)
