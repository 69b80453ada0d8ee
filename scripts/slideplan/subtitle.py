"""Reserve room for a short subtitle directly under the slide title.

When the gap between the title and the content below it is too small, lower content is
moved down as a block; if that would push anything off the slide, the subtitle is
compressed instead.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple

from .geometry import MARGIN, Rect, clamp
from .host import Capability, LiveShape, SlideCanvas
from .layout import detect_title_box
from .model import Operation, SlideContext
from .text import estimate_height_from_text

SUBTITLE_MAX_CHARS = 180
TITLE_GAP = 10
BUFFER = 6
MIN_SUBTITLE_HEIGHT = 44
COMPACT_MAX_HEIGHT = 88
SHIFT_BOTTOM_MARGIN = 20
# Shapes whose top sits this close above the first content row still move with it.
SHIFT_TOLERANCE = 2

SHIFT_WARNING = "Shifted lower content to reserve subtitle space under the title."
COMPACT_WARNING = "Subtitle space was limited; applied compact subtitle placement."

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubtitleDraft:
    left: float
    top: float
    width: float
    desired_height: float
    available_gap: float
    primary_top: Optional[float]

    def rect(self, height: float) -> Rect:
        return Rect(self.left, self.top, self.width, height)


@dataclass(frozen=True)
class SubtitleReservation:
    bbox: Rect
    warnings: Tuple[str, ...] = ()
    shift_start: Optional[float] = None
    shift_delta: float = 0.0

    @property
    def shifted(self) -> bool:
        return self.shift_start is not None and self.shift_delta > 0


def is_subtitle_insert_intent(operation: Operation, text: str) -> bool:
    if operation.type != "insert":
        return False
    target = operation.target.lower()
    ref = operation.anchor.ref.lower()
    cleaned = (text or "").strip()
    mentions = "subtitle" in target or "subtitle" in ref or "below-title" in ref or "under-title" in ref
    return mentions and 0 < len(cleaned) <= SUBTITLE_MAX_CHARS


def find_primary_content_top(occupied: Sequence[Rect], min_top: float) -> Optional[float]:
    """Top of the highest substantial rect below ``min_top``; tiny decorations are ignored."""
    tops = [r.top for r in occupied if r.top >= min_top and r.height > 20 and r.width > 120]
    return min(tops) if tops else None


def build_subtitle_draft(context: SlideContext, text: str, occupied: Sequence[Rect]) -> Optional[SubtitleDraft]:
    size = context.size
    title = detect_title_box(context)
    if title is None:
        return None

    width = min(size.w - MARGIN * 2, max(420.0, math.floor(size.w * 0.74)))
    left = clamp(title.left, MARGIN, max(MARGIN, size.w - width - MARGIN))
    top = clamp(title.bottom + TITLE_GAP, MARGIN, max(MARGIN, size.h - 100 - MARGIN))
    desired_height = max(48, min(92, estimate_height_from_text(text, 22)))
    primary_top = find_primary_content_top(occupied, title.bottom + 4)
    available_gap = (primary_top if primary_top is not None else size.h - MARGIN) - top
    return SubtitleDraft(left, top, width, desired_height, available_gap, primary_top)


def shift_content_down(
    canvas: SlideCanvas,
    shapes: Mapping[str, LiveShape],
    slide_height: float,
    start_top: float,
    delta: float,
) -> bool:
    """Move every shape at or below ``start_top`` down by ``delta``; False (nothing moved) if any would leave the slide."""
    delta = max(0, math.ceil(delta))
    if not delta:
        return True
    if not canvas.supports(Capability.MOVE):
        return False

    movable = []
    for shape in shapes.values():
        rect = shape.rect
        if rect is None or rect.top < start_top - SHIFT_TOLERANCE:
            continue
        if rect.bottom + delta > slide_height - SHIFT_BOTTOM_MARGIN:
            return False
        movable.append(shape)

    moved = []
    try:
        for shape in movable:
            canvas.move_shape(shape.id, shape.rect.shifted(delta))
            moved.append(shape)
    except Exception as exc:
        log.debug("Content shift failed after %d of %d shapes: %s", len(moved), len(movable), exc)
        for shape in moved:
            try:
                canvas.move_shape(shape.id, shape.rect)
            except Exception as undo_exc:
                log.debug("Could not restore shape %s: %s", shape.id, undo_exc)
        return False
    return True


def reserve_subtitle_placement(
    canvas: SlideCanvas,
    shapes: Mapping[str, LiveShape],
    context: SlideContext,
    text: str,
    occupied: Sequence[Rect],
) -> Optional[SubtitleReservation]:
    draft = build_subtitle_draft(context, text, occupied)
    if draft is None:
        return None

    if draft.available_gap >= draft.desired_height + BUFFER:
        return SubtitleReservation(draft.rect(draft.desired_height))

    if draft.primary_top is None:
        compact = max(MIN_SUBTITLE_HEIGHT, min(COMPACT_MAX_HEIGHT, draft.desired_height))
        return SubtitleReservation(draft.rect(compact))

    needed = draft.desired_height + BUFFER - max(0.0, draft.available_gap)
    start = draft.primary_top
    if shift_content_down(canvas, shapes, context.size.h, start, needed):
        log.debug("Shifted content below %.0f down by %.0f for subtitle", start, needed)
        return SubtitleReservation(
            draft.rect(draft.desired_height),
            warnings=(SHIFT_WARNING,),
            shift_start=start - SHIFT_TOLERANCE,
            shift_delta=math.ceil(needed),
        )

    compressed = min(draft.desired_height, draft.available_gap - BUFFER)
    if compressed >= MIN_SUBTITLE_HEIGHT:
        return SubtitleReservation(draft.rect(compressed), warnings=(COMPACT_WARNING,))
    return None
