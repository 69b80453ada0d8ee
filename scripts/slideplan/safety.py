"""Insert-safety policy: may an insert overwrite the text of an existing shape?

A skipped safe write only costs a new shape; an overwritten authored text is unrecoverable,
so every uncertain case answers no.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence, Set

from .geometry import Rect
from .host import LiveShape
from .model import Operation, SlideContext
from .resolver import resolve_from_selection
from .text import PLACEHOLDER_CUE, is_placeholder_text

PLACEHOLDER_NAME_CUES = ("placeholder", "subtitle", "content")


def current_text(shape: LiveShape, context: SlideContext) -> str:
    if shape.text is not None:
        return shape.text.strip()
    obj = context.object_by_id(shape.id)
    return (obj.text if obj else "").strip()


def shape_name(shape: LiveShape, context: SlideContext) -> str:
    obj = context.object_by_id(shape.id)
    return ((obj.name if obj and obj.name else shape.name) or "").lower()


def is_safe_insert_target(shape: LiveShape, context: SlideContext) -> bool:
    names = f"{(shape.name or '').lower()} {shape_name(shape, context)}"
    if "title" in names:
        return False

    if is_placeholder_text(current_text(shape, context)):
        return True

    # Authored text is never replaced by an insert, even one anchored to the selection or a placeholder.
    return False


def is_safe(shape: LiveShape, operation: Operation, context: SlideContext) -> bool:
    return is_safe_insert_target(shape, context)


def _placeholder_like(shape: LiveShape, context: SlideContext) -> bool:
    name = shape_name(shape, context)
    if any(cue in name for cue in PLACEHOLDER_NAME_CUES):
        return True
    return PLACEHOLDER_CUE in current_text(shape, context).lower()


def _placeholder_score(shape: LiveShape, context: SlideContext) -> Optional[float]:
    obj = context.object_by_id(shape.id)
    rect: Optional[Rect] = (obj.bbox if obj else None) or shape.rect
    if rect is None:
        return None
    empty_boost = 1.8 if is_placeholder_text(current_text(shape, context)) else 1.0
    lower_half_boost = 1.2 if rect.top > 220 else 1.0
    return rect.area * empty_boost * lower_half_boost


def resolve_alternative_target(
    shapes: Mapping[str, LiveShape],
    selected_ids: Sequence[str],
    context: SlideContext,
    used_ids: Set[str],
    excluded_ids: Sequence[str] = (),
) -> Optional[LiveShape]:
    """One fallback target for an insert: the selection if safe, else the best unused placeholder."""
    excluded = set(excluded_ids)

    selected = resolve_from_selection(shapes, selected_ids)
    if (
        selected is not None
        and selected.id not in excluded
        and selected.id not in used_ids
        and is_safe_insert_target(selected, context)
    ):
        return selected

    best: Optional[LiveShape] = None
    best_score = -1.0
    for shape_id, shape in shapes.items():
        if shape_id in excluded or shape_id in used_ids:
            continue
        if not _placeholder_like(shape, context):
            continue
        if not is_safe_insert_target(shape, context):
            continue
        score = _placeholder_score(shape, context)
        if score is not None and score > best_score:
            best, best_score = shape, score
    return best

