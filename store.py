"""
store.py

Ordered in-memory collection of annotations for the loaded image.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from models import Annotation, FeatureKind

log = logging.getLogger(__name__)

Listener = Callable[[], None]


class AnnotationStore:
    """
    Ordered annotation collection with append, undo-last and clear.

    Insertion order is placement order, so :meth:`undo_last` always
    removes the most recently placed annotation.  Listeners are called
    synchronously after each mutation that changed the collection.

    There is exactly one mutator (the GUI thread); workers only ever see
    the tuple returned by :meth:`list`.
    """

    def __init__(self, annotations: Iterable[Annotation] = ()):
        self._items: List[Annotation] = list(annotations)
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def add_listener(self, callback: Listener) -> None:
        """Register *callback* to be called after every change."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: Listener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        for cb in list(self._listeners):
            cb()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def place(self, x: float, y: float, kind: FeatureKind, radius: float) -> Annotation:
        """Create an annotation with a fresh id and append it.

        *x* and *y* are image-native pixels (already mapped from display
        space).

        Raises:
            ValueError: For non-finite or negative coordinates, or a
                non-positive radius.
        """
        ann = Annotation(x=float(x), y=float(y), kind=kind, radius=float(radius))
        self._items.append(ann)
        log.debug("placed %s at (%.1f, %.1f) r=%.1f", kind.value, ann.x, ann.y, ann.radius)
        self._notify()
        return ann

    def undo_last(self) -> Optional[Annotation]:
        """Remove and return the most recent annotation, or ``None`` if empty."""
        if not self._items:
            return None
        ann = self._items.pop()
        log.debug("undo removed %s", ann.id)
        self._notify()
        return ann

    def clear_all(self) -> None:
        """Remove every annotation.  Confirmation is the caller's business."""
        if not self._items:
            return
        count = len(self._items)
        self._items.clear()
        log.debug("cleared %d annotation(s)", count)
        self._notify()

    def replace_all(self, annotations: Iterable[Annotation]) -> None:
        """Discard the current collection and take *annotations* in order."""
        self._items = list(annotations)
        log.debug("replaced collection with %d annotation(s)", len(self._items))
        self._notify()

    def extend(self, annotations: Iterable[Annotation]) -> None:
        """Append *annotations* in order after the existing ones."""
        added = list(annotations)
        if not added:
            return
        self._items.extend(added)
        log.debug("appended %d annotation(s)", len(added))
        self._notify()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def list(self) -> Tuple[Annotation, ...]:
        """Snapshot of the collection in insertion order."""
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(self.list())

    def __bool__(self) -> bool:
        return bool(self._items)
