"""Running set of rectangles considered taken while one plan is applied."""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from .geometry import Rect
from .host import LiveShape
from .model import SlideContext


class OccupancyModel:
    """Owned by a single plan application; placement code only ever sees ``snapshot()``."""

    def __init__(self, rects: Optional[Iterable[Rect]] = None):
        self._rects: List[Rect] = [r for r in (rects or []) if r is not None]

    @classmethod
    def seed(cls, context: SlideContext) -> "OccupancyModel":
        return cls(obj.bbox for obj in context.objects if obj.bbox is not None)

    def __len__(self) -> int:
        return len(self._rects)

    def snapshot(self) -> Tuple[Rect, ...]:
        return tuple(self._rects)

    def append(self, rect: Optional[Rect]) -> None:
        if rect is not None:
            self._rects.append(rect)

    def rebuild(self, shapes: Iterable[LiveShape]) -> None:
        """Replace every rect with the current positions of the shapes on the canvas."""
        self._rects = [shape.rect for shape in shapes if shape.rect is not None]
