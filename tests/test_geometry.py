from __future__ import annotations

import math
import sys
from pathlib import Path

import pytest

SCRIPT_DIR = Path(__file__).resolve().parents[1] / "scripts"
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from slideplan.geometry import (  # noqa: E402
    MARGIN,
    Rect,
    SlideSize,
    overlap_area,
    rect_distance,
    sanitize_rect,
    snap_to_grid,
    unique_numbers,
)

SIZES = [SlideSize(960, 540), SlideSize(720, 540), SlideSize(1000, 563), SlideSize(300, 100)]
RECTS = [
    Rect(0, 0, 10, 10),
    Rect(-50, -50, 2000, 2000),
    Rect(37, 113, 711, 55),
    Rect(901, 499, 300, 90),
    Rect(25.5, 26.5, 259.9, 43.1),
    Rect(500, 300, 420, 120),
]


@pytest.mark.parametrize("size", SIZES)
def test_sanitize_is_idempotent(size: SlideSize) -> None:
    for rect in RECTS:
        once = sanitize_rect(rect, size)
        assert sanitize_rect(once, size) == once


def test_sanitize_enforces_minimum_size_and_margins() -> None:
    size = SlideSize(960, 540)
    out = sanitize_rect(Rect(0, 0, 10, 10), size)
    assert out.width == 260
    assert out.height == 44
    assert out.left == MARGIN
    assert out.top == MARGIN


def test_sanitize_keeps_rect_inside_the_slide_after_snapping() -> None:
    size = SlideSize(960, 540)
    out = sanitize_rect(Rect(901, 499, 300, 90), size)
    assert out.right <= size.w - MARGIN
    assert out.bottom <= size.h - MARGIN
    for value in out.to_list():
        assert value % 4 == 0


def test_sanitize_caps_oversized_rects_to_usable_area() -> None:
    size = SlideSize(960, 540)
    out = sanitize_rect(Rect(-50, -50, 2000, 2000), size)
    assert out == Rect(24, 24, 912, 492)


def test_sanitize_replaces_non_finite_input() -> None:
    out = sanitize_rect(Rect(math.nan, 0, 100, 100), SlideSize())
    assert out.left == MARGIN
    assert out.top == 120


def test_snap_to_grid_rounds_half_up() -> None:
    assert snap_to_grid(110) == 112
    assert snap_to_grid(109.9) == 108
    assert snap_to_grid(54) == 56


def test_rect_from_value_accepts_lists_and_mappings() -> None:
    assert Rect.from_value([1, 2, 3, 4]) == Rect(1, 2, 3, 4)
    assert Rect.from_value({"left": 1, "top": "2", "width": 3, "height": 4}) == Rect(1, 2, 3, 4)
    assert Rect.from_value([1, 2, 3]) is None
    assert Rect.from_value([1, 2, "x", 4]) is None
    assert Rect.from_value([1, 2, float("inf"), 4]) is None
    assert Rect.from_value([True, 2, 3, 4]) is None
    assert Rect.from_value(None) is None


def test_overlap_and_distance() -> None:
    a = Rect(0, 0, 100, 100)
    b = Rect(50, 50, 100, 100)
    c = Rect(200, 0, 10, 10)
    assert overlap_area(a, b) == 2500
    assert overlap_area(a, c) == 0
    assert overlap_area(a, Rect(100, 0, 10, 10)) == 0
    assert rect_distance(a, b) == 0
    assert rect_distance(a, c) == 100
    assert rect_distance(a, Rect(103, 104, 5, 5)) == 5


def test_unique_numbers_drops_near_duplicates_and_junk() -> None:
    assert unique_numbers([24, 24.2, 120, "x", float("nan"), 120]) == [24, 120]
