"""Decide which existing shape, if any, an operation refers to.

Tiers are tried in a fixed order and each tier makes a hard decision; scores are only
compared within the fuzzy name tier.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Mapping, Optional, Sequence

from .host import LiveShape
from .model import Operation, SlideContext
from .text import normalize_lookup_token

ShapeMap = Mapping[str, LiveShape]

_INTEGER_RE = re.compile(r"^[+-]?\d+$")


def _names_for(shape: LiveShape, context: SlideContext) -> tuple[str, str]:
    obj = context.object_by_id(shape.id)
    return (shape.name or "").strip().lower(), ((obj.name if obj else "") or "").strip().lower()


def _top(shape: LiveShape) -> float:
    return shape.rect.top if shape.rect is not None else 0.0


def resolve_by_name(shapes: ShapeMap, context: SlideContext, ref: str) -> Optional[LiveShape]:
    """Exact (raw or normalized) name match first, then the best fuzzy match with a positive score."""
    raw_ref = str(ref or "").strip().lower()
    normalized_ref = normalize_lookup_token(ref)
    if not raw_ref and not normalized_ref:
        return None

    for shape in shapes.values():
        for name in _names_for(shape, context):
            if not name:
                continue
            if name == raw_ref or (normalized_ref and normalize_lookup_token(name) == normalized_ref):
                return shape

    is_subtitle_ref = "subtitle" in normalized_ref
    is_title_ref = "title" in normalized_ref and not is_subtitle_ref

    scored: list[tuple[int, LiveShape]] = []
    for shape in shapes.values():
        combined_raw = " ".join(n for n in _names_for(shape, context) if n).strip()
        if not combined_raw:
            continue
        combined = normalize_lookup_token(combined_raw)

        score = 0
        if raw_ref and raw_ref in combined_raw:
            score += 80
        if normalized_ref and normalized_ref in combined:
            score += 100
        if is_subtitle_ref and "subtitle" in combined:
            score += 60
        if is_title_ref and "title" in combined and "subtitle" not in combined:
            score += 55
        if score > 0:
            scored.append((score, shape))

    if not scored:
        return None
    # Highest score wins; on ties the shape nearer the top of the slide.
    scored.sort(key=lambda item: (-item[0], _top(item[1])))
    return scored[0][1]


def resolve_by_index(shapes: ShapeMap, context: SlideContext, index: int) -> Optional[LiveShape]:
    # Planners disagree on the base, so both 0- and 1-based positions are tried.
    for candidate in (index, index - 1):
        if 0 <= candidate < len(context.objects):
            shape = shapes.get(context.objects[candidate].id)
            if shape is not None:
                return shape
    return None


def resolve_reference(shapes: ShapeMap, context: SlideContext, ref: str) -> Optional[LiveShape]:
    """Shape id, then name, then (for integer strings) position in the snapshot's object list."""
    ref = str(ref or "").strip()
    if not ref:
        return None

    direct = shapes.get(ref)
    if direct is not None:
        return direct

    named = resolve_by_name(shapes, context, ref)
    if named is not None:
        return named

    if _INTEGER_RE.match(ref):
        return resolve_by_index(shapes, context, int(ref))
    return None


def resolve_from_selection(shapes: ShapeMap, selected_ids: Iterable[str]) -> Optional[LiveShape]:
    for shape_id in selected_ids:
        shape = shapes.get(shape_id)
        if shape is not None:
            return shape
    return None


def resolve_target(
    shapes: ShapeMap,
    operation: Operation,
    selected_ids: Sequence[str],
    context: SlideContext,
) -> Optional[LiveShape]:
    anchor = operation.anchor

    if anchor.strategy == "placeholder":
        if anchor.ref:
            anchored = resolve_by_name(shapes, context, anchor.ref) or shapes.get(anchor.ref)
            if anchored is not None:
                return anchored
        # Placeholder anchors are strong intent: only an explicit target may stand in, never an index.
        if operation.target:
            return shapes.get(operation.target) or resolve_by_name(shapes, context, operation.target)
        return None

    targeted = resolve_reference(shapes, context, operation.target)
    if targeted is not None:
        return targeted

    if anchor.strategy == "selection":
        selected = resolve_from_selection(shapes, selected_ids)
        if selected is not None:
            return selected

    return resolve_reference(shapes, context, anchor.ref)


def shapes_by_id(shapes: Iterable[LiveShape]) -> Dict[str, LiveShape]:
    return {shape.id: shape for shape in shapes}
