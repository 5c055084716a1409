"""
session.py

Per-image annotation session: the loaded image, its annotation store,
the viewport state and the patient fields.

UI-agnostic; the main window drives it and listens to the store.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from errors import InputError
from models import Annotation, ViewportState
from report import StatisticsReport, compute_report
from settings import get_settings
from store import AnnotationStore
from utils import point_in_image

log = logging.getLogger(__name__)

PROJECT_FORMAT_VERSION = 1


@dataclass(frozen=True)
class ImageInfo:
    """Decoded properties of the loaded source image."""
    path: str
    width: int
    height: int
    mode: str
    file_size: int

    @property
    def size_text(self) -> str:
        return f"{self.width} x {self.height}px"


def load_image_info(path: str) -> ImageInfo:
    """Decode *path* with Pillow and return its dimensions.

    Raises:
        InputError: If the file is missing or is not a decodable image.
    """
    if not os.path.exists(path):
        raise InputError(f"File does not exist:\n{path}")
    try:
        with Image.open(path) as img:
            img.load()
            w, h = img.size
            mode = img.mode
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise InputError(f"Could not decode image {os.path.basename(path)}: {e}") from e
    if w <= 0 or h <= 0:
        raise InputError(f"Image has no pixels: {path}")
    return ImageInfo(path=path, width=w, height=h, mode=mode, file_size=os.path.getsize(path))


class AnnotationSession:
    """
    State of the currently loaded image.

    Lifecycle: :meth:`load_image` resets the store, the viewport and the
    patient fields.  Undo history never reaches across image loads.
    """

    def __init__(self, store: Optional[AnnotationStore] = None):
        self.store = store if store is not None else AnnotationStore()
        self.viewport = self._fresh_viewport()
        self.image: Optional[ImageInfo] = None
        self.patient_id = ""
        self.patient_name = ""
        # Incremented on every successful image load
        self.generation = 0

    @staticmethod
    def _fresh_viewport() -> ViewportState:
        brush = get_settings().settings.canvas.brush
        return ViewportState(brush_radius=float(brush.default))

    @property
    def has_image(self) -> bool:
        return self.image is not None

    def load_image(self, path: str) -> ImageInfo:
        """Load a new image, discarding the previous session.

        Raises:
            InputError: If the image cannot be decoded.  Nothing changes.
        """
        info = load_image_info(path)
        self.image = info
        self.viewport = self._fresh_viewport()
        self.patient_id = ""
        self.patient_name = ""
        self.generation += 1
        self.store.replace_all(())
        log.info("Loaded image %s (%s, %s)", path, info.size_text, info.mode)
        return info

    def place_at(self, x: float, y: float) -> Optional[Annotation]:
        """Place an annotation at image-native (x, y) using viewport defaults.

        Returns:
            The new annotation, or ``None`` if no image is loaded or the
            point lies outside it.
        """
        if self.image is None or not point_in_image(x, y, self.image.width, self.image.height):
            return None
        return self.store.place(x, y, self.viewport.active_kind, self.viewport.brush_radius)

    def report(self) -> StatisticsReport:
        return compute_report(self.store.list())

    def snapshot(self) -> Tuple[Annotation, ...]:
        """Immutable copy of the annotations for background work."""
        return self.store.list()

    def apply_detections(self, annotations: Iterable[Annotation], append: bool = False) -> int:
        """Insert AI detections, dropping any outside the image.

        When nothing lies inside the image the store is left untouched.

        Returns:
            Number of annotations inserted.
        """
        kept: List[Annotation] = []
        for ann in annotations:
            if self.image is not None and not point_in_image(ann.x, ann.y, self.image.width, self.image.height):
                log.warning("Dropping detection outside image at (%.1f, %.1f)", ann.x, ann.y)
                continue
            kept.append(ann)
        if not kept:
            return 0
        if append:
            self.store.extend(kept)
        else:
            self.store.replace_all(kept)
        return len(kept)

    # ------------------------------------------------------------------
    # Annotation files
    # ------------------------------------------------------------------

    def to_project_dict(self) -> Dict[str, Any]:
        """Serialize the annotations of the loaded image."""
        return {
            "version": PROJECT_FORMAT_VERSION,
            "image": os.path.basename(self.image.path) if self.image else "",
            "width": self.image.width if self.image else 0,
            "height": self.image.height if self.image else 0,
            "patient_id": self.patient_id,
            "patient_name": self.patient_name,
            "annotations": [a.to_record() for a in self.store.list()],
        }

    def load_project_dict(self, data: Dict[str, Any]) -> List[str]:
        """Replace the annotations with those of a saved annotation file.

        Returns:
            Warnings for records that were skipped.

        Raises:
            InputError: If no image is loaded, the data is malformed or it
                was saved for an image of a different size.
        """
        if self.image is None:
            raise InputError("Load the image before opening its annotations.")
        if not isinstance(data, dict) or not isinstance(data.get("annotations"), list):
            raise InputError("Not an annotation file: missing 'annotations' list.")
        w, h = data.get("width"), data.get("height")
        if (w, h) != (self.image.width, self.image.height):
            raise InputError(
                f"Annotations were saved for a {w} x {h}px image, "
                f"but the loaded image is {self.image.size_text}."
            )
        annotations: List[Annotation] = []
        warnings: List[str] = []
        for i, rec in enumerate(data["annotations"]):
            if not isinstance(rec, dict):
                warnings.append(f"Annotation {i}: not an object, skipping")
                continue
            try:
                annotations.append(Annotation.from_record(rec))
            except ValueError as e:
                warnings.append(f"Annotation {i}: {e}, skipping")
        for msg in warnings:
            log.warning("Annotation file: %s", msg)
        self.store.replace_all(annotations)
        self.patient_id = str(data.get("patient_id", "") or "")
        self.patient_name = str(data.get("patient_name", "") or "")
        return warnings
