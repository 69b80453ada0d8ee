"""Text heuristics: escaped newline cleanup and font-metric estimates.

Nothing here measures real glyphs; every size is an estimate from character counts.
"""

from __future__ import annotations

import math
import re
from typing import Any

PLACEHOLDER_CUE = "click to add"

_ESCAPES = (
    ("\\\\r\\\\n", "\n"),
    ("\\\\n", "\n"),
    ("\\\\t", "\t"),
    ("\\r\\n", "\n"),
    ("\\n", "\n"),
    ("\\t", "\t"),
)


def normalize_escaped_newlines(text: Any) -> str:
    """Turn literal ``\\n`` / ``\\\\n`` (and tab) sequences from JSON payloads into real breaks."""
    output = "" if text is None else str(text)
    for _ in range(3):
        for needle, replacement in _ESCAPES:
            output = output.replace(needle, replacement)
    return output


def normalize_lookup_token(value: Any) -> str:
    return re.sub(r"[^a-z0-9]+", " ", str(value or "").lower()).strip()


def is_placeholder_text(text: Any) -> bool:
    cleaned = str(text or "").strip().lower()
    return not cleaned or PLACEHOLDER_CUE in cleaned


def to_cell_string(value: Any) -> str:
    if value is None:
        return ""
    return normalize_escaped_newlines(value).strip()


def split_lines(text: str) -> list[str]:
    return re.split(r"\r?\n", text or "")


def count_estimated_lines(text: str, chars_per_line: int) -> int:
    lines = 0
    for part in split_lines(text):
        length = max(1, len(part.strip()))
        lines += math.ceil(length / max(1, chars_per_line))
    return max(1, lines)


def estimate_height_from_text(text: str, font_size: float = 16) -> int:
    lines = count_estimated_lines(normalize_escaped_newlines(text), 55)
    line_height = max(16.0, float(font_size or 16) * 1.35)
    return math.ceil(lines * line_height + 24)


def trim_long_bullet_text(text: str, slide_height: float) -> str:
    """Cap very long bulleted text so a new shape does not overflow the slide."""
    normalized = normalize_escaped_newlines(text)
    lines = [line for line in split_lines(normalized) if line.strip()]
    if len(lines) <= 22:
        return normalized

    max_lines = 16 if slide_height < 520 else 20
    return "\n".join([*lines[:max_lines], "..."])


def fits_in_box(text: str, width: float, height: float, font_size: float) -> bool:
    inner_width = max(80.0, width - 20)
    inner_height = max(40.0, height - 16)
    chars_per_line = max(10, math.floor(inner_width / (font_size * 0.52)))
    needed = count_estimated_lines(text, chars_per_line) * font_size * 1.28
    return needed <= inner_height


def estimate_readable_font_size(text: str, width: float, height: float) -> int:
    clean_width = max(120.0, float(width or 0))
    clean_height = max(60.0, float(height or 0))
    for size in range(30, 11, -1):
        if fits_in_box(text, clean_width, clean_height, size):
            return size
    return 12
