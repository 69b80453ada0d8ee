from __future__ import annotations

import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).resolve().parents[1] / "scripts"
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from fakes import FakeCanvas, make_context, obj, titled_context  # noqa: E402
from slideplan.geometry import Rect  # noqa: E402
from slideplan.host import ALL_CAPABILITIES, Capability  # noqa: E402
from slideplan.model import Operation  # noqa: E402
from slideplan.resolver import shapes_by_id  # noqa: E402
from slideplan.subtitle import (  # noqa: E402
    COMPACT_WARNING,
    SHIFT_WARNING,
    build_subtitle_draft,
    is_subtitle_insert_intent,
    reserve_subtitle_placement,
)

TEXT_40 = "Results and outlook for the third period"


def _reserve(context, canvas=None):
    canvas = canvas or FakeCanvas.from_context(context)
    shapes = shapes_by_id(canvas.list_shapes())
    occupied = [o.bbox for o in context.objects if o.bbox is not None]
    return canvas, reserve_subtitle_placement(canvas, shapes, context, TEXT_40, occupied)


def test_subtitle_intent_requires_insert_reference_and_short_text() -> None:
    op = Operation.from_dict({"type": "insert", "anchor": {"strategy": "placeholder", "ref": "subtitle"}})
    assert is_subtitle_insert_intent(op, TEXT_40)
    assert not is_subtitle_insert_intent(op, "x" * 181)
    assert is_subtitle_insert_intent(Operation.from_dict({"type": "insert", "anchor": {"ref": "under-title"}}), TEXT_40)
    update = Operation.from_dict({"type": "update", "target": "subtitle"})
    assert not is_subtitle_insert_intent(update, TEXT_40)


def test_draft_aligns_with_title() -> None:
    draft = build_subtitle_draft(titled_context(), TEXT_40, [Rect(40, 20, 880, 80)])
    assert (draft.left, draft.top, draft.width, draft.desired_height) == (40, 110, 710, 54)
    assert draft.primary_top is None


def test_no_title_means_no_reservation() -> None:
    _, reservation = _reserve(make_context())
    assert reservation is None


def test_enough_gap_returns_draft_without_warnings() -> None:
    _, reservation = _reserve(titled_context())
    assert reservation.bbox == Rect(40, 110, 710, 54)
    assert reservation.warnings == ()
    assert not reservation.shifted


def test_tight_gap_shifts_lower_content() -> None:
    context = make_context(
        [
            obj("title", "Title 1", [40, 20, 880, 80], "Quarterly Review"),
            obj("body", "Body", [40, 130, 880, 260], "Revenue up"),
            obj("logo", "Logo", [860, 30, 60, 40], ""),
        ]
    )
    canvas, reservation = _reserve(context)
    assert reservation.warnings == (SHIFT_WARNING,)
    assert reservation.shifted
    # Gap is 20, desired 54 + 6 buffer: everything from the body down moves 40.
    assert reservation.shift_delta == 40
    assert canvas.shapes["body"].rect.top == 170
    assert canvas.shapes["title"].rect.top == 20
    assert canvas.shapes["logo"].rect.top == 30


def test_rejected_shift_compresses_the_subtitle() -> None:
    context = make_context(
        [
            obj("title", "Title 1", [40, 20, 880, 80], "Quarterly Review"),
            obj("body", "Body", [40, 160, 880, 360], "Revenue up"),
        ]
    )
    canvas, reservation = _reserve(context)
    assert reservation.warnings == (COMPACT_WARNING,)
    assert reservation.bbox.height == 44
    assert canvas.shapes["body"].rect.top == 160
    assert "move_shape" not in canvas.calls


def test_no_room_at_all_returns_none() -> None:
    context = make_context(
        [
            obj("title", "Title 1", [40, 20, 880, 80], "Quarterly Review"),
            obj("body", "Body", [40, 130, 880, 380], "Revenue up"),
        ]
    )
    canvas, reservation = _reserve(context)
    assert reservation is None
    assert canvas.shapes["body"].rect.top == 130


def test_shift_needs_move_capability() -> None:
    context = make_context(
        [
            obj("title", "Title 1", [40, 20, 880, 80], "Quarterly Review"),
            obj("body", "Body", [40, 130, 880, 260], "Revenue up"),
        ]
    )
    canvas = FakeCanvas.from_context(context, capabilities=ALL_CAPABILITIES - {Capability.MOVE})
    _, reservation = _reserve(context, canvas)
    assert reservation is None


def test_failed_move_is_rolled_back() -> None:
    context = make_context(
        [
            obj("title", "Title 1", [40, 20, 880, 80], "Quarterly Review"),
            obj("body", "Body", [40, 130, 880, 260], "Revenue up"),
            obj("chart", "Chart", [40, 300, 400, 100], ""),
        ]
    )
    canvas = FakeCanvas.from_context(context)

    original_move = canvas.move_shape
    moves = []

    def flaky_move(shape_id, rect):
        moves.append(shape_id)
        if len(moves) == 2:
            raise RuntimeError("host refused")
        original_move(shape_id, rect)

    canvas.move_shape = flaky_move
    _, reservation = _reserve(context, canvas)
    assert canvas.shapes["body"].rect.top == 130
    assert reservation is None
