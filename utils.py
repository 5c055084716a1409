"""
utils.py

Utility functions for the TrichoMark application: coordinate mapping,
color parsing and model-response JSON extraction.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional, Tuple

from PyQt6.QtGui import QColor


# ----------------------------
# Coordinate mapping
# ----------------------------

def display_to_image(
    display_x: float,
    display_y: float,
    origin_x: float,
    origin_y: float,
    zoom: float,
) -> Tuple[float, float]:
    """
    Map a pointer position in display space to image-native pixels.

    Display space is the zoomed, rendered image; *origin* is where the
    image's top-left corner currently sits in the same display space.

    Args:
        display_x: Pointer x in display pixels
        display_y: Pointer y in display pixels
        origin_x: Display x of the image origin
        origin_y: Display y of the image origin
        zoom: Current zoom factor (> 0)

    Returns:
        (image_x, image_y) in unscaled source-image pixels
    """
    if not zoom > 0:
        raise ValueError(f"zoom must be > 0, got {zoom}")
    return (display_x - origin_x) / zoom, (display_y - origin_y) / zoom


def image_to_display(
    image_x: float,
    image_y: float,
    zoom: float,
    origin_x: float = 0.0,
    origin_y: float = 0.0,
) -> Tuple[float, float]:
    """Inverse of :func:`display_to_image`."""
    if not zoom > 0:
        raise ValueError(f"zoom must be > 0, got {zoom}")
    return image_x * zoom + origin_x, image_y * zoom + origin_y


def point_in_image(x: float, y: float, width: float, height: float) -> bool:
    """True if image-native (x, y) lies inside a width x height image."""
    return 0 <= x < width and 0 <= y < height


# ----------------------------
# Colors
# ----------------------------

def hex_to_qcolor(s: str, fallback: QColor, alpha: Optional[float] = None) -> QColor:
    """
    Parse a hex string to a QColor.

    Args:
        s: Hex string like "#RRGGBB" or "#RRGGBBAA"
        fallback: Color to return if parsing fails
        alpha: Optional opacity in [0, 1] applied to the parsed color

    Returns:
        Parsed QColor or fallback
    """
    color = QColor(fallback)
    if s:
        h = s.strip().lstrip("#")
        try:
            if len(h) == 6:
                color = QColor(int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16))
            elif len(h) == 8:
                color = QColor(int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16), int(h[6:8], 16))
        except ValueError:
            color = QColor(fallback)
    if alpha is not None:
        color.setAlphaF(max(0.0, min(1.0, float(alpha))))
    return color


# ----------------------------
# Model response parsing
# ----------------------------

def strip_markdown_fences(s: str) -> str:
    """
    Strip markdown code fences from a string.

    Handles formats like:
    - ```json ... ```
    - ``` ... ```

    Args:
        s: The string potentially wrapped in markdown fences

    Returns:
        The string with markdown fences removed
    """
    ss = (s or "").strip()
    pattern = r'^```(?:\w+)?\s*\n?(.*?)\n?```\s*$'
    match = re.match(pattern, ss, re.DOTALL)
    if match:
        return match.group(1).strip()
    return ss


def extract_first_json_value(s: str) -> Optional[Any]:
    """
    Extract the first JSON array or object from a string.

    Handles markdown code blocks, raw JSON, and JSON surrounded by prose.
    Returns ``None`` if nothing parseable is found.
    """
    ss = strip_markdown_fences(s)
    if not ss:
        return None

    try:
        return json.loads(ss)
    except ValueError:
        pass

    starts = [i for i in (ss.find("["), ss.find("{")) if i >= 0]
    if not starts:
        return None
    start = min(starts)
    opener = ss[start]
    closer = "]" if opener == "[" else "}"

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(ss)):
        ch = ss[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                try:
                    return json.loads(ss[start:i + 1])
                except ValueError:
                    return None
    return None
