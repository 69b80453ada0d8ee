"""Rectangle helpers shared by the layout, subtitle and occupancy code.

All values are slide points (a 16:9 slide is 960x540).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

MARGIN = 24
GRID = 4
MIN_WIDTH = 260
MIN_HEIGHT = 44

DEFAULT_SLIDE_WIDTH = 960
DEFAULT_SLIDE_HEIGHT = 540


@dataclass(frozen=True)
class SlideSize:
    w: float = DEFAULT_SLIDE_WIDTH
    h: float = DEFAULT_SLIDE_HEIGHT


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center_x(self) -> float:
        return self.left + self.width / 2

    @property
    def area(self) -> float:
        return self.width * self.height

    @classmethod
    def from_value(cls, value: Any) -> Optional["Rect"]:
        """Build a rect from ``[left, top, width, height]`` or a mapping; None when malformed."""
        if isinstance(value, Rect):
            return value
        if isinstance(value, Mapping):
            raw: Sequence[Any] = [value.get(k) for k in ("left", "top", "width", "height")]
        elif isinstance(value, (list, tuple)) and len(value) == 4:
            raw = value
        else:
            return None

        numbers = []
        for item in raw:
            if isinstance(item, bool) or item is None:
                return None
            try:
                number = float(item)
            except (TypeError, ValueError):
                return None
            if not math.isfinite(number):
                return None
            numbers.append(number)
        return cls(*numbers)

    def to_list(self) -> list[float]:
        return [self.left, self.top, self.width, self.height]

    def shifted(self, dy: float) -> "Rect":
        return Rect(self.left, self.top + dy, self.width, self.height)


def overlap_area(a: Rect, b: Rect) -> float:
    x = max(0.0, min(a.right, b.right) - max(a.left, b.left))
    y = max(0.0, min(a.bottom, b.bottom) - max(a.top, b.top))
    return x * y


def rect_distance(a: Rect, b: Rect) -> float:
    """Gap between two rects (0 when they touch or overlap)."""
    if a.right < b.left:
        dx = b.left - a.right
    elif b.right < a.left:
        dx = a.left - b.right
    else:
        dx = 0.0
    if a.bottom < b.top:
        dy = b.top - a.bottom
    elif b.bottom < a.top:
        dy = a.top - b.bottom
    else:
        dy = 0.0
    return math.hypot(dx, dy)


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def snap_to_grid(value: float, grid: float = GRID) -> float:
    g = max(1.0, float(grid))
    return float(math.floor(value / g + 0.5) * g)


def floor_to_grid(value: float, grid: float = GRID) -> float:
    g = max(1.0, float(grid))
    return float(math.floor(value / g) * g)


def in_slide_bounds(rect: Rect, size: SlideSize, margin: float = MARGIN) -> bool:
    return (
        rect.left >= margin
        and rect.top >= margin
        and rect.right <= size.w - margin
        and rect.bottom <= size.h - margin
    )


def unique_numbers(values: Iterable[float]) -> list[float]:
    out: list[float] = []
    seen: set[int] = set()
    for value in values:
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if not math.isfinite(number):
            continue
        key = int(math.floor(number + 0.5))
        if key in seen:
            continue
        seen.add(key)
        out.append(number)
    return out


def sanitize_rect(rect: Optional[Rect], size: SlideSize) -> Rect:
    """Enforce minimum size, keep the rect inside the slide margins and snap it to the grid.

    The clamp bounds are grid-aligned so ``sanitize_rect(sanitize_rect(r)) == sanitize_rect(r)``.
    """
    usable_w = max(MIN_WIDTH, floor_to_grid(size.w - MARGIN * 2))
    usable_h = max(MIN_HEIGHT, floor_to_grid(size.h - MARGIN * 2))

    if rect is None or not all(math.isfinite(v) for v in rect.to_list()):
        top = max(120.0, MARGIN)
        rect = Rect(MARGIN, top, size.w - MARGIN * 2, min(320.0, size.h - top - MARGIN))

    width = min(usable_w, snap_to_grid(max(MIN_WIDTH, rect.width)))
    height = min(usable_h, snap_to_grid(max(MIN_HEIGHT, rect.height)))

    max_left = max(MARGIN, floor_to_grid(size.w - width - MARGIN))
    max_top = max(MARGIN, floor_to_grid(size.h - height - MARGIN))

    # Clamp, snap, then clamp again: snapping can push an edge back out of bounds.
    left = clamp(rect.left, MARGIN, max_left)
    top = clamp(rect.top, MARGIN, max_top)
    left = clamp(snap_to_grid(left), MARGIN, max_left)
    top = clamp(snap_to_grid(top), MARGIN, max_top)

    return Rect(left, top, width, height)
