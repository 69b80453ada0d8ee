"""Data carried between the plan parser, the resolver, the layout engine and the executor.

Plans and slide snapshots arrive as JSON-shaped dicts; ``from_dict`` constructors are
tolerant of missing fields and never raise for an individual bad operation (the operation
carries a ``problem`` string instead, so the rest of the plan can still run).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .geometry import DEFAULT_SLIDE_HEIGHT, DEFAULT_SLIDE_WIDTH, Rect, SlideSize
from .text import normalize_escaped_newlines, to_cell_string

OPERATION_TYPES = ("insert", "update", "transform", "delete")
ANCHOR_STRATEGIES = ("placeholder", "selection", "free-region")


# --------------------------------------------------------------------------------------
# Slide snapshot
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class ShapeStyle:
    font: Optional[str] = None
    color: Optional[str] = None
    size: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "ShapeStyle":
        if not isinstance(raw, Mapping):
            return cls()

        def known(value: Any) -> Optional[str]:
            if isinstance(value, str) and value.strip() and value.strip().lower() != "unknown":
                return value.strip()
            return None

        size = raw.get("size")
        if isinstance(size, bool) or not isinstance(size, (int, float)):
            size = None
        return cls(font=known(raw.get("font")), color=known(raw.get("color")), size=size)


@dataclass(frozen=True)
class SlideObject:
    id: str
    name: str = ""
    text: str = ""
    bbox: Optional[Rect] = None
    style: ShapeStyle = field(default_factory=ShapeStyle)
    type: str = "unknown"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SlideObject":
        return cls(
            id=str(raw.get("id")),
            name=str(raw.get("name") or ""),
            text=str(raw.get("text") or ""),
            bbox=Rect.from_value(raw.get("bbox")),
            style=ShapeStyle.from_dict(raw.get("style")),
            type=str(raw.get("type") or "unknown"),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"id": self.id, "name": self.name, "type": self.type}
        if self.bbox is not None:
            payload["bbox"] = self.bbox.to_list()
        if self.text:
            payload["text"] = self.text
            payload["style"] = {
                "font": self.style.font or "unknown",
                "color": self.style.color or "unknown",
                "size": self.style.size,
            }
        return payload


@dataclass(frozen=True)
class SlideContext:
    size: SlideSize = field(default_factory=SlideSize)
    selection: Tuple[str, ...] = ()
    theme_fonts: Tuple[str, ...] = ()
    theme_colors: Tuple[str, ...] = ()
    objects: Tuple[SlideObject, ...] = ()
    slide_id: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "SlideContext":
        if not isinstance(raw, Mapping):
            return cls()

        slide = raw.get("slide") if isinstance(raw.get("slide"), Mapping) else {}
        size_raw = slide.get("size") if isinstance(slide.get("size"), Mapping) else {}
        size = SlideSize(
            w=_positive_number(size_raw.get("w"), DEFAULT_SLIDE_WIDTH),
            h=_positive_number(size_raw.get("h"), DEFAULT_SLIDE_HEIGHT),
        )

        selection = raw.get("selection") if isinstance(raw.get("selection"), Mapping) else {}
        shape_ids = selection.get("shapeIds") if isinstance(selection.get("shapeIds"), list) else []

        hints = raw.get("themeHints") if isinstance(raw.get("themeHints"), Mapping) else {}
        objects_raw = raw.get("objects") if isinstance(raw.get("objects"), list) else []

        return cls(
            size=size,
            selection=tuple(sid for sid in shape_ids if isinstance(sid, str) and sid),
            theme_fonts=_string_tuple(hints.get("fonts")),
            theme_colors=_string_tuple(hints.get("colors")),
            objects=tuple(
                SlideObject.from_dict(obj)
                for obj in objects_raw
                if isinstance(obj, Mapping) and isinstance(obj.get("id"), str)
            ),
            slide_id=str(slide["id"]) if slide.get("id") is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slide": {"id": self.slide_id, "size": {"w": self.size.w, "h": self.size.h}},
            "selection": {"shapeIds": list(self.selection)},
            "themeHints": {"fonts": list(self.theme_fonts), "colors": list(self.theme_colors)},
            "objects": [obj.to_dict() for obj in self.objects],
        }

    def object_by_id(self, shape_id: str) -> Optional[SlideObject]:
        for obj in self.objects:
            if obj.id == shape_id:
                return obj
        return None

    def without_object(self, shape_id: str) -> "SlideContext":
        return replace(self, objects=tuple(obj for obj in self.objects if obj.id != shape_id))

    def with_shifted_objects(self, start_top: float, delta: float) -> "SlideContext":
        """Move every object whose top is at or below ``start_top`` down by ``delta``."""
        moved = []
        for obj in self.objects:
            if obj.bbox is not None and obj.bbox.top >= start_top:
                obj = replace(obj, bbox=obj.bbox.shifted(delta))
            moved.append(obj)
        return replace(self, objects=tuple(moved))


def _positive_number(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) and number > 0 else default


def _string_tuple(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(v for v in value if isinstance(v, str) and v.strip())


# --------------------------------------------------------------------------------------
# Operation content (tagged union)
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class TextContent:
    text: str

    def summary_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class TableContent:
    rows: Tuple[Tuple[str, ...], ...]

    def summary_text(self) -> str:
        return rows_to_text(self.rows)


@dataclass(frozen=True)
class ImageContent:
    url: str = ""
    base64: str = ""
    alt: str = ""

    def summary_text(self) -> str:
        return f"Image reference: {self.url}" if self.url else ""


@dataclass(frozen=True)
class ChartPoint:
    label: str
    value: str


@dataclass(frozen=True)
class ChartSeries:
    name: str
    points: Tuple[ChartPoint, ...] = ()


@dataclass(frozen=True)
class ChartContent:
    type: str = "bar"
    series: Tuple[ChartSeries, ...] = ()

    def as_rows(self) -> Optional[Tuple[Tuple[str, ...], ...]]:
        """Category/value table for the first series, the editable fallback for hosts without charts."""
        if not self.series:
            return None
        first = self.series[0]
        rows: List[Tuple[str, ...]] = [("Category", first.name or "Value")]
        for point in first.points:
            if not point.label and not point.value:
                continue
            rows.append((point.label, point.value))
        return tuple(rows) if len(rows) > 1 else None

    def summary_text(self) -> str:
        rows = self.as_rows()
        return rows_to_text(rows) if rows else "Chart placeholder"


@dataclass(frozen=True)
class NoContent:
    def summary_text(self) -> str:
        return ""


Content = Union[TextContent, TableContent, ImageContent, ChartContent, NoContent]


def rows_to_text(rows: Tuple[Tuple[str, ...], ...]) -> str:
    return "\n".join(" | ".join(row) for row in rows).strip()


def normalize_table_rows(rows: Any) -> Optional[Tuple[Tuple[str, ...], ...]]:
    if not isinstance(rows, list):
        return None
    normalized = [[to_cell_string(cell) for cell in row] for row in rows if isinstance(row, list)]
    if not normalized:
        return None
    max_cols = max(len(row) for row in normalized)
    if max_cols == 0:
        return None
    return tuple(tuple(row + [""] * (max_cols - len(row))) for row in normalized)


def _parse_table(table: Any) -> Optional[Tuple[Tuple[str, ...], ...]]:
    if isinstance(table, list):
        return normalize_table_rows(table)
    if not isinstance(table, Mapping):
        return None

    rows: List[Tuple[str, ...]] = []
    headers = table.get("headers")
    if isinstance(headers, list) and headers:
        rows.append(tuple(to_cell_string(cell) for cell in headers))
    body = normalize_table_rows(table.get("rows") if table.get("rows") is not None else table.get("values"))
    if body:
        rows.extend(body)
    if not rows:
        return None
    # Headers and body may disagree on width; pad once more.
    return normalize_table_rows([list(row) for row in rows])


def _parse_image(content: Mapping[str, Any]) -> Optional[ImageContent]:
    image = content.get("image")
    if isinstance(image, str) and image.strip():
        return ImageContent(url=image.strip())

    if isinstance(image, Mapping):
        url = next(
            (v.strip() for v in (image.get("url"), image.get("src"), image.get("dataUrl")) if isinstance(v, str) and v.strip()),
            "",
        )
        b64 = image.get("base64").strip() if isinstance(image.get("base64"), str) else ""
        alt = image.get("alt").strip() if isinstance(image.get("alt"), str) else ""
        if url or b64:
            return ImageContent(url=url, base64=b64, alt=alt)

    image_url = content.get("imageUrl")
    if isinstance(image_url, str) and image_url.strip():
        return ImageContent(url=image_url.strip())
    return None


def _parse_chart(chart: Any) -> Optional[ChartContent]:
    if not isinstance(chart, Mapping):
        return None
    series_raw = chart.get("series")
    if not isinstance(series_raw, list) or not series_raw:
        return None

    chart_type = chart.get("type")
    chart_type = chart_type.strip().lower() if isinstance(chart_type, str) and chart_type.strip() else "bar"

    series: List[ChartSeries] = []
    for item in series_raw:
        item = item if isinstance(item, Mapping) else {}
        name = item.get("name")
        name = name.strip() if isinstance(name, str) and name.strip() else "Series"
        data = item.get("data") if isinstance(item.get("data"), list) else []
        points = []
        for point in data:
            if not isinstance(point, Mapping):
                continue
            label = point.get("label") if isinstance(point.get("label"), str) else ""
            value = point.get("value")
            value = "" if isinstance(value, bool) or not isinstance(value, (int, float, str)) else str(value)
            points.append(ChartPoint(label=label, value=value))
        series.append(ChartSeries(name=name, points=tuple(points)))
    return ChartContent(type=chart_type, series=tuple(series))


def parse_content(content: Any) -> Content:
    """Pick the single authoritative payload: text > rows > table > image > chart > none."""
    if not isinstance(content, Mapping):
        return NoContent()

    text = content.get("text")
    if isinstance(text, str) and text.strip():
        return TextContent(normalize_escaped_newlines(text).strip())

    rows = normalize_table_rows(content.get("rows"))
    if rows:
        return TableContent(rows)

    table = _parse_table(content.get("table"))
    if table:
        return TableContent(table)

    image = _parse_image(content)
    if image:
        return image

    chart = _parse_chart(content.get("chart"))
    if chart:
        return chart

    return NoContent()


# --------------------------------------------------------------------------------------
# Plan
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class Anchor:
    strategy: str = ""
    ref: str = ""

    @classmethod
    def from_dict(cls, raw: Any) -> "Anchor":
        if not isinstance(raw, Mapping):
            return cls()
        return cls(
            strategy=str(raw.get("strategy") or "").strip().lower(),
            ref=raw.get("ref").strip() if isinstance(raw.get("ref"), str) else "",
        )


@dataclass(frozen=True)
class Operation:
    type: str
    target: str = ""
    anchor: Anchor = field(default_factory=Anchor)
    content: Content = field(default_factory=NoContent)
    bbox: Optional[Rect] = None
    style_bindings: Mapping[str, Any] = field(default_factory=dict)
    constraints: Mapping[str, Any] = field(default_factory=dict)
    problem: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "Operation":
        if not isinstance(raw, Mapping):
            return cls(type="", problem="Skipped invalid operation")

        op_type = raw.get("type")
        problem = None
        if not op_type:
            problem = "Skipped operation with missing type"
        elif not isinstance(op_type, str) or op_type.strip().lower() not in OPERATION_TYPES:
            problem = f"Skipped operation with unsupported type '{op_type}'"

        content_raw = raw.get("content") if isinstance(raw.get("content"), Mapping) else {}
        bindings = raw.get("styleBindings")
        constraints = raw.get("constraints")
        return cls(
            type=op_type.strip().lower() if isinstance(op_type, str) else "",
            target=raw.get("target").strip() if isinstance(raw.get("target"), str) else "",
            anchor=Anchor.from_dict(raw.get("anchor")),
            content=parse_content(content_raw),
            bbox=Rect.from_value(content_raw.get("bbox")),
            style_bindings=dict(bindings) if isinstance(bindings, Mapping) else {},
            constraints=dict(constraints) if isinstance(constraints, Mapping) else {},
            problem=problem,
        )


@dataclass(frozen=True)
class ExecutionPlan:
    operations: Tuple[Operation, ...]
    plan_id: str = ""
    summary: str = ""
    requires_confirmation: bool = False
    warnings: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ExecutionPlan":
        operations = raw.get("operations") if isinstance(raw.get("operations"), list) else []
        return cls(
            operations=tuple(Operation.from_dict(op) for op in operations),
            plan_id=str(raw.get("planId") or ""),
            summary=str(raw.get("summary") or ""),
            requires_confirmation=bool(raw.get("requiresConfirmation", False)),
            warnings=_string_tuple(raw.get("warnings")),
        )


# --------------------------------------------------------------------------------------
# Results
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class OperationResult:
    applied: bool
    warnings: Tuple[str, ...] = ()
    occupied_bbox: Optional[Rect] = None
    # Set when shapes were deleted or moved; the occupancy model must be rebuilt from the canvas.
    occupancy_changed: bool = False


@dataclass(frozen=True)
class ApplyResult:
    applied_count: int
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"appliedCount": self.applied_count, "warnings": list(self.warnings)}
