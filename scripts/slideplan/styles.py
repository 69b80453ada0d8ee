"""Map plan style bindings (``theme.body``, ``theme.accent``, literal values) onto the slide's own fonts and colors."""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from .geometry import Rect
from .host import TextStyle
from .model import SlideContext
from .text import estimate_readable_font_size, split_lines

_HEX_RE = re.compile(r"^[0-9a-fA-F]{6}$")

DEFAULT_BINDINGS = {"font": "theme.body"}


@dataclass(frozen=True)
class ResolvedStyle:
    font: Optional[str] = None
    color: Optional[str] = None


def normalize_color(value: Any) -> Optional[str]:
    raw = str(value or "").strip()
    if not raw:
        return None
    hex_part = raw[1:] if raw.startswith("#") else raw
    if not _HEX_RE.match(hex_part):
        return None
    return f"#{hex_part.upper()}"


def color_luminance(value: Any) -> float:
    color = normalize_color(value)
    if not color:
        return 1.0
    r, g, b = (int(color[i : i + 2], 16) / 255 for i in (1, 3, 5))
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def find_title_font(context: SlideContext) -> Optional[str]:
    for obj in context.objects:
        if "title" in obj.name.lower() and obj.style.font:
            return obj.style.font
    return None


def find_body_font(context: SlideContext) -> Optional[str]:
    counts: dict[str, float] = defaultdict(float)
    for obj in context.objects:
        if not obj.style.font:
            continue
        counts[obj.style.font] += 0.25 if "title" in obj.name.lower() else 1.0
    return max(counts, key=counts.get) if counts else None


def find_body_color(context: SlideContext) -> Optional[str]:
    counts: dict[str, float] = defaultdict(float)
    for obj in context.objects:
        color = normalize_color(obj.style.color)
        if not color:
            continue
        counts[color] += 0.4 if "title" in obj.name.lower() else 1.0

    best, best_score = None, -1.0
    for color, score in counts.items():
        total = score + (1 - min(1.0, color_luminance(color))) * 0.25
        if total > best_score:
            best, best_score = color, total
    return best


def pick_accent_color(colors: Iterable[str]) -> Optional[str]:
    candidates = [c for c in (normalize_color(v) for v in colors) if c]
    for color in candidates:
        if color not in ("#000000", "#FFFFFF"):
            return color
    return candidates[0] if candidates else None


def pick_text_color(context: SlideContext) -> Optional[str]:
    from_slide = find_body_color(context)
    if from_slide:
        return from_slide
    candidates = [c for c in (normalize_color(v) for v in context.theme_colors) if c]
    return min(candidates, key=color_luminance) if candidates else None


def resolve_style_bindings(bindings: Mapping[str, Any], context: SlideContext) -> ResolvedStyle:
    raw_font = bindings.get("font").strip() if isinstance(bindings.get("font"), str) else ""
    raw_color = bindings.get("color").strip() if isinstance(bindings.get("color"), str) else ""
    first_theme_font = context.theme_fonts[0] if context.theme_fonts else None

    font = None
    if raw_font:
        lower = raw_font.lower()
        if lower.startswith("theme."):
            if "title" in lower:
                font = find_title_font(context) or first_theme_font
            else:
                font = find_body_font(context) or first_theme_font
        else:
            font = raw_font

    # No color binding leaves the theme color alone.
    color = None
    if raw_color:
        lower = raw_color.lower()
        if lower.startswith("theme."):
            color = pick_text_color(context) if "text" in lower else pick_accent_color(context.theme_colors)
        else:
            color = normalize_color(raw_color)

    return ResolvedStyle(font=font, color=color)


def is_subtitle_like(rect: Rect, text: str, slide_height: float) -> bool:
    cleaned = (text or "").strip()
    lines = len([line for line in split_lines(cleaned) if line.strip()]) or 1
    return rect.top < slide_height * 0.55 and rect.height <= 110 and len(cleaned) <= 180 and lines <= 2


def build_text_style(
    rect: Rect,
    text: str,
    bindings: Mapping[str, Any],
    context: SlideContext,
) -> TextStyle:
    """Formatting for a newly created text box; existing shapes keep their own."""
    subtitle_like = is_subtitle_like(rect, text, context.size.h)
    size = estimate_readable_font_size(text, rect.width, rect.height)
    if subtitle_like:
        size = min(26, max(18, size))

    resolved = resolve_style_bindings(bindings or DEFAULT_BINDINGS, context)
    return TextStyle(
        font_name=resolved.font,
        color=resolved.color,
        size_pt=size,
        margin_x=6 if subtitle_like else 10,
        margin_y=4 if subtitle_like else 8,
    )
