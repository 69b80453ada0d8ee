from __future__ import annotations

import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).resolve().parents[1] / "scripts"
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from fakes import live, make_context, obj  # noqa: E402
from slideplan.model import Operation  # noqa: E402
from slideplan.resolver import resolve_by_name, resolve_target, shapes_by_id  # noqa: E402

OBJECTS = [
    obj("10", "Title", [40, 20, 880, 80], "Quarterly Review"),
    obj("11", "Subtitle", [40, 110, 880, 50], ""),
    obj("12", "Body Placeholder", [40, 180, 880, 300], "Click to add text"),
    obj("13", "Footer", [40, 500, 300, 20], "Confidential"),
]


def _setup(selection=()):
    context = make_context(OBJECTS, selection=selection)
    shapes = shapes_by_id(live(o["id"], o["name"], o["bbox"], o["text"]) for o in OBJECTS)
    return context, shapes


def _op(**fields) -> Operation:
    fields.setdefault("type", "update")
    return Operation.from_dict(fields)


def test_direct_id_and_exact_name() -> None:
    context, shapes = _setup()
    assert resolve_target(shapes, _op(target="13"), [], context).id == "13"
    assert resolve_target(shapes, _op(target="footer"), [], context).id == "13"


def test_numeric_target_tries_zero_then_one_based_index() -> None:
    context, shapes = _setup()
    # "0" is not a shape id, so it resolves by position.
    assert resolve_target(shapes, _op(target="0"), [], context).id == "10"
    assert resolve_target(shapes, _op(target="3"), [], context).id == "13"
    # Past the end as 0-based, still in range as 1-based.
    assert resolve_target(shapes, _op(target="4"), [], context).id == "13"
    assert resolve_target(shapes, _op(target="9"), [], context) is None


def test_subtitle_query_never_returns_title() -> None:
    context, shapes = _setup()
    found = resolve_by_name(shapes, context, "subtitle")
    assert found.id == "11"

    only_title = {"10": shapes["10"]}
    assert resolve_by_name(only_title, context, "subtitle") is None


def test_title_query_prefers_title_over_subtitle() -> None:
    context, shapes = _setup()
    assert resolve_by_name(shapes, context, "main title").id == "10"


def test_fuzzy_ties_prefer_the_higher_shape() -> None:
    objects = [
        obj("a", "Body text", [40, 300, 400, 100], "x"),
        obj("b", "Body text box", [40, 120, 400, 100], "y"),
    ]
    context = make_context(objects)
    shapes = shapes_by_id(live(o["id"], o["name"], o["bbox"], o["text"]) for o in objects)
    assert resolve_by_name(shapes, context, "body").id == "b"


def test_zero_score_candidates_are_not_guessed() -> None:
    context, shapes = _setup()
    assert resolve_by_name(shapes, context, "chart area") is None


def test_placeholder_anchor_resolves_by_name_and_never_by_index() -> None:
    context, shapes = _setup()
    op = _op(type="insert", anchor={"strategy": "placeholder", "ref": "subtitle"})
    assert resolve_target(shapes, op, [], context).id == "11"

    op = _op(type="insert", target="2", anchor={"strategy": "placeholder", "ref": "sidebar"})
    assert resolve_target(shapes, op, [], context) is None

    op = _op(type="insert", target="12", anchor={"strategy": "placeholder", "ref": "sidebar"})
    assert resolve_target(shapes, op, [], context).id == "12"


def test_selection_anchor_uses_first_existing_selected_shape() -> None:
    context, shapes = _setup()
    op = _op(anchor={"strategy": "selection", "ref": "current"})
    assert resolve_target(shapes, op, ["missing", "12"], context).id == "12"


def test_anchor_ref_is_the_last_resort() -> None:
    context, shapes = _setup()
    op = _op(target="shape-7", anchor={"strategy": "free-region", "ref": "footer"})
    assert resolve_target(shapes, op, [], context).id == "13"
    assert resolve_target(shapes, _op(target="shape-7"), [], context) is None
