"""Free-region layout: find a rectangle for new content that stays clear of existing shapes.

Candidates are scored with overlap weighted far above any positional preference, so a
candidate with no overlap always beats one that overlaps, wherever it sits.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence

from .geometry import (
    MARGIN,
    Rect,
    SlideSize,
    in_slide_bounds,
    overlap_area,
    rect_distance,
    sanitize_rect,
    unique_numbers,
)
from .model import Operation, SlideContext
from .text import estimate_height_from_text, is_placeholder_text, normalize_lookup_token

OVERLAP_WEIGHT = 2000.0
CENTER_WEIGHT = 1.8
VERTICAL_WEIGHT = 1.1
HINT_WEIGHT = 0.35

CANDIDATE_MIN_WIDTH = 260
CANDIDATE_MIN_HEIGHT = 90
GRID_STEP_Y = 12


def detect_title_box(context: SlideContext) -> Optional[Rect]:
    """Topmost shape that is named like a title, or looks like one (short, wide, high on the slide)."""
    size = context.size
    candidates: List[Rect] = []
    for obj in context.objects:
        if obj.bbox is None:
            continue
        text = obj.text.strip()
        if not text or is_placeholder_text(text):
            continue
        likely_title = "title" in obj.name.lower() or (
            obj.bbox.top < size.h * 0.38 and obj.bbox.width > size.w * 0.38 and len(text) < 120
        )
        if likely_title:
            candidates.append(obj.bbox)

    if not candidates:
        return None
    return min(candidates, key=lambda rect: rect.top)


def preferred_top(context: SlideContext, title: Optional[Rect] = None) -> float:
    size = context.size
    title = title if title is not None else detect_title_box(context)
    if title is not None:
        return min(size.h - 160, max(80.0, title.bottom + 18))
    return math.floor(size.h * 0.45)


def is_reasonable_box(rect: Rect, size: SlideSize) -> bool:
    return rect.width >= 240 and rect.height >= 44 and rect.right <= size.w + 2 and rect.bottom <= size.h + 2


def looks_like_corner_default(rect: Rect) -> bool:
    # Planners that do not know where to put something often emit (0, 0, w, h).
    return rect.left <= 30 and rect.top <= 40


def named_region(anchor_ref: str, size: SlideSize) -> Optional[Rect]:
    ref = normalize_lookup_token(anchor_ref)
    width = max(300.0, math.floor(size.w * 0.42))
    height = max(180.0, math.floor(size.h * 0.44))
    top = math.floor(size.h * 0.34)
    if "right half" in ref:
        return Rect(math.floor(size.w * 0.52), top, width, height)
    if "left half" in ref:
        return Rect(math.floor(size.w * 0.06), top, width, height)
    return None


def desired_size(size: SlideSize, text: str) -> tuple[float, float]:
    width = min(size.w - MARGIN * 2, max(420.0, math.floor(size.w * 0.76)))
    height = min(320.0, max(120.0, estimate_height_from_text(text, 20)))
    return width, height


def _candidates(context: SlideContext, text: str, occupied: Sequence[Rect]) -> List[Rect]:
    size = context.size
    width, height = desired_size(size, text)
    center_left = max(MARGIN, math.floor((size.w - width) / 2))
    candidates: List[Rect] = []

    title = detect_title_box(context)
    if title is not None:
        candidates.append(Rect(center_left, min(size.h - height - MARGIN, title.bottom + 18), width, height))

    candidates.append(Rect(center_left, math.floor(size.h * 0.48), width, min(height, math.floor(size.h * 0.42))))

    for box in sorted(occupied, key=lambda rect: rect.bottom):
        top = box.bottom + 12
        candidates.append(Rect(center_left, top, width, max(100.0, min(size.h - top - MARGIN, height))))

    x_positions = unique_numbers(
        [
            center_left,
            MARGIN,
            max(MARGIN, math.floor(size.w - width - MARGIN)),
            max(MARGIN, math.floor(size.w * 0.12)),
            max(MARGIN, math.floor(size.w * 0.18)),
        ]
    )
    y_end = max(MARGIN, math.floor(size.h - height - MARGIN))
    for y in range(MARGIN, int(y_end) + 1, GRID_STEP_Y):
        for x in x_positions:
            candidates.append(Rect(x, y, width, height))
    return candidates


def score_candidate(
    candidate: Rect,
    occupied: Sequence[Rect],
    size: SlideSize,
    top_target: float,
    hint: Optional[Rect] = None,
) -> float:
    overlap = sum(overlap_area(candidate, rect) for rect in occupied)
    center_penalty = abs(candidate.center_x - size.w / 2)
    vertical_penalty = abs(candidate.top - top_target)
    hint_penalty = rect_distance(candidate, hint) if hint is not None else 0.0
    return (
        overlap * OVERLAP_WEIGHT
        + center_penalty * CENTER_WEIGHT
        + vertical_penalty * VERTICAL_WEIGHT
        + hint_penalty * HINT_WEIGHT
    )


def best_free_region(
    context: SlideContext,
    text: str,
    occupied: Sequence[Rect],
    hint: Optional[Rect] = None,
) -> Optional[Rect]:
    """Lowest-scoring sanitized candidate, or None when no candidate fits on the slide."""
    size = context.size
    top_target = preferred_top(context)

    best: Optional[Rect] = None
    best_score = math.inf
    seen: set[Rect] = set()
    for candidate in _candidates(context, text, occupied):
        if not in_slide_bounds(candidate, size, MARGIN):
            continue
        if candidate.height < CANDIDATE_MIN_HEIGHT or candidate.width < CANDIDATE_MIN_WIDTH:
            continue
        # Score what will actually be placed; grid snapping can nudge an edge by a couple of points.
        placed = sanitize_rect(candidate, size)
        if placed in seen:
            continue
        seen.add(placed)
        score = score_candidate(placed, occupied, size, top_target, hint)
        if score < best_score:
            best, best_score = placed, score
    return best


def fallback_rect(context: SlideContext, text: str) -> Rect:
    size = context.size
    width = max(520.0, size.w - 120)
    height = min(340.0, max(190.0, estimate_height_from_text(text, 16)))
    return sanitize_rect(
        Rect(
            max(30.0, math.floor((size.w - width) / 2)),
            max(120.0, math.floor((size.h - height) / 2) + 20),
            width,
            height,
        ),
        size,
    )


def place(
    operation: Optional[Operation],
    context: SlideContext,
    text: str,
    occupied: Sequence[Rect],
    preferred: Optional[Rect] = None,
) -> Rect:
    """Rectangle for new content: preferred box, named region, plan box, then the free-region search."""
    size = context.size

    if preferred is not None and is_reasonable_box(preferred, size):
        return sanitize_rect(preferred, size)

    region = named_region(operation.anchor.ref if operation else "", size)
    if region is not None:
        return sanitize_rect(region, size)

    planned = operation.bbox if operation else None
    if planned is not None and is_reasonable_box(planned, size) and not looks_like_corner_default(planned):
        return sanitize_rect(planned, size)

    found = best_free_region(context, text, occupied, hint=preferred)
    if found is not None:
        return found
    return fallback_rect(context, text)
