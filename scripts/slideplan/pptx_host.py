"""python-pptx backed host canvas and slide snapshot collector.

Engine geometry is in points; python-pptx stores EMU. Conversion happens only here.
"""

from __future__ import annotations

import io
import logging
from typing import FrozenSet, Iterable, List, Optional, Sequence

from PIL import Image
from pptx.chart.data import CategoryChartData
from pptx.dml.color import RGBColor
from pptx.enum.chart import XL_CHART_TYPE
from pptx.enum.dml import MSO_COLOR_TYPE
from pptx.enum.shapes import MSO_SHAPE_TYPE
from pptx.enum.text import MSO_ANCHOR
from pptx.util import Pt

from .errors import CanvasError
from .geometry import Rect, SlideSize
from .host import ALL_CAPABILITIES, Capability, LiveShape, SlideCanvas, TextStyle
from .model import ChartContent, ShapeStyle, SlideContext, SlideObject

log = logging.getLogger(__name__)

CHART_TYPES = {
    "column": XL_CHART_TYPE.COLUMN_CLUSTERED,
    "column-clustered": XL_CHART_TYPE.COLUMN_CLUSTERED,
    "column-stacked": XL_CHART_TYPE.COLUMN_STACKED,
    "bar": XL_CHART_TYPE.COLUMN_CLUSTERED,
    "bar-clustered": XL_CHART_TYPE.BAR_CLUSTERED,
    "bar-stacked": XL_CHART_TYPE.BAR_STACKED,
    "line": XL_CHART_TYPE.LINE,
    "pie": XL_CHART_TYPE.PIE,
    "donut": XL_CHART_TYPE.DOUGHNUT,
    "area": XL_CHART_TYPE.AREA,
}

MAX_SNAPSHOT_TEXT = 2000


def _pt(length) -> Optional[float]:
    return None if length is None else float(length.pt)


def shape_rect(shape) -> Optional[Rect]:
    values = [_pt(shape.left), _pt(shape.top), _pt(shape.width), _pt(shape.height)]
    if any(v is None for v in values):
        return None
    return Rect(*values)


def shape_kind(shape) -> str:
    if shape.has_chart:
        return "chart"
    if shape.has_table:
        return "table"
    if shape.shape_type == MSO_SHAPE_TYPE.PICTURE:
        return "picture"
    if shape.is_placeholder:
        return "placeholder"
    if shape.has_text_frame:
        return "text"
    return "shape"


def map_chart_type(name: str):
    normalized = (name or "bar").strip().lower()
    if normalized in CHART_TYPES:
        return CHART_TYPES[normalized]
    if "line" in normalized:
        return XL_CHART_TYPE.LINE
    if "pie" in normalized:
        return XL_CHART_TYPE.PIE
    return XL_CHART_TYPE.COLUMN_CLUSTERED


def build_chart_data(chart: ChartContent) -> CategoryChartData:
    first = chart.series[0] if chart.series else None
    labels = [p.label for p in first.points] if first else []
    if not any(labels):
        labels = [f"Item {i + 1}" for i in range(len(labels))]

    chart_data = CategoryChartData()
    chart_data.categories = labels
    for series in chart.series:
        values = []
        for point in series.points[: len(labels)]:
            try:
                values.append(float(point.value))
            except (TypeError, ValueError):
                values.append(0.0)
        values.extend([0.0] * (len(labels) - len(values)))
        chart_data.add_series(series.name, values)
    return chart_data


def _contain_geometry(data: bytes, rect: Rect) -> Rect:
    """Largest rect with the image's aspect ratio centered inside ``rect``."""
    try:
        with Image.open(io.BytesIO(data)) as im:
            iw, ih = im.size
    except (OSError, ValueError) as exc:
        log.debug("Could not measure image, stretching to the box: %s", exc)
        return rect

    if rect.width <= 0 or rect.height <= 0 or iw <= 0 or ih <= 0:
        return rect
    ratio = iw / ih
    if ratio >= rect.width / rect.height:
        w, h = rect.width, rect.width / ratio
    else:
        w, h = rect.height * ratio, rect.height
    return Rect(rect.left + (rect.width - w) / 2, rect.top + (rect.height - h) / 2, w, h)


class PptxCanvas(SlideCanvas):
    """Host canvas over one python-pptx slide."""

    def __init__(self, slide, *, capabilities: Optional[FrozenSet[Capability]] = None):
        self.slide = slide
        self.capabilities = ALL_CAPABILITIES if capabilities is None else frozenset(capabilities)

    def _find(self, shape_id: str):
        for shape in self.slide.shapes:
            if str(shape.shape_id) == str(shape_id):
                return shape
        raise CanvasError(f"Shape {shape_id} is not on the slide")

    def list_shapes(self) -> List[LiveShape]:
        out = []
        for shape in self.slide.shapes:
            out.append(
                LiveShape(
                    id=str(shape.shape_id),
                    name=shape.name or "",
                    rect=shape_rect(shape),
                    text=shape.text_frame.text if shape.has_text_frame else None,
                    kind=shape_kind(shape),
                )
            )
        return out

    def set_text(self, shape_id: str, text: str) -> None:
        self.require(Capability.TEXT)
        shape = self._find(shape_id)
        if not shape.has_text_frame:
            raise CanvasError(f"Shape {shape_id} has no text frame")
        # Assigning ``text_frame.text`` keeps paragraph and placeholder-inherited formatting.
        shape.text_frame.text = text

    def delete_shape(self, shape_id: str) -> None:
        self.require(Capability.DELETE)
        element = self._find(shape_id)._element
        element.getparent().remove(element)

    def move_shape(self, shape_id: str, rect: Rect) -> None:
        self.require(Capability.MOVE)
        shape = self._find(shape_id)
        shape.left, shape.top = Pt(rect.left), Pt(rect.top)
        shape.width, shape.height = Pt(rect.width), Pt(rect.height)

    def add_text_box(self, rect: Rect, text: str, style: Optional[TextStyle] = None) -> str:
        self.require(Capability.TEXT)
        shape = self.slide.shapes.add_textbox(Pt(rect.left), Pt(rect.top), Pt(rect.width), Pt(rect.height))
        text_frame = shape.text_frame
        text_frame.word_wrap = True if style is None else style.word_wrap
        text_frame.vertical_anchor = MSO_ANCHOR.TOP
        if style is not None:
            text_frame.margin_left = text_frame.margin_right = Pt(style.margin_x)
            text_frame.margin_top = text_frame.margin_bottom = Pt(style.margin_y)

        for i, line in enumerate(text.split("\n") or [""]):
            paragraph = text_frame.paragraphs[0] if i == 0 else text_frame.add_paragraph()
            paragraph.text = line
            if style is None:
                continue
            font = paragraph.font
            if style.size_pt:
                font.size = Pt(style.size_pt)
            if style.font_name:
                font.name = style.font_name
            if style.color:
                font.color.rgb = RGBColor.from_string(style.color.lstrip("#"))
        return str(shape.shape_id)

    def add_table(self, rect: Rect, rows: Sequence[Sequence[str]]) -> str:
        self.require(Capability.TABLE)
        row_count = len(rows)
        col_count = max((len(row) for row in rows), default=0)
        if row_count < 1 or col_count < 1:
            raise CanvasError("Table needs at least one row and one column")

        frame = self.slide.shapes.add_table(
            row_count, col_count, Pt(rect.left), Pt(rect.top), Pt(rect.width), Pt(rect.height)
        )
        table = frame.table
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                if value:
                    table.cell(r, c).text = value
        return str(frame.shape_id)

    def set_table(self, shape_id: str, rows: Sequence[Sequence[str]]) -> bool:
        self.require(Capability.TABLE_UPDATE)
        shape = self._find(shape_id)
        if not shape.has_table:
            return False

        table = shape.table
        wrote = False
        for r in range(min(len(table.rows), len(rows))):
            for c in range(min(len(table.columns), len(rows[r]))):
                table.cell(r, c).text = str(rows[r][c] or "")
                wrote = True
        return wrote

    def add_chart(self, rect: Rect, chart: ChartContent) -> str:
        self.require(Capability.CHART)
        frame = self.slide.shapes.add_chart(
            map_chart_type(chart.type),
            Pt(rect.left),
            Pt(rect.top),
            Pt(rect.width),
            Pt(rect.height),
            build_chart_data(chart),
        )
        frame.chart.has_legend = len(chart.series) > 1
        return str(frame.shape_id)

    def set_chart(self, shape_id: str, chart: ChartContent) -> bool:
        self.require(Capability.CHART_UPDATE)
        shape = self._find(shape_id)
        if not shape.has_chart:
            return False
        shape.chart.replace_data(build_chart_data(chart))
        return True

    def add_image(self, rect: Rect, data: bytes) -> str:
        self.require(Capability.IMAGE)
        fit = _contain_geometry(data, rect)
        picture = self.slide.shapes.add_picture(
            io.BytesIO(data), Pt(fit.left), Pt(fit.top), width=Pt(fit.width), height=Pt(fit.height)
        )
        return str(picture.shape_id)


def _first_run_style(shape) -> ShapeStyle:
    for paragraph in shape.text_frame.paragraphs:
        for run in paragraph.runs:
            font = run.font
            color = None
            try:
                if font.color is not None and font.color.type == MSO_COLOR_TYPE.RGB:
                    color = f"#{font.color.rgb}"
            except AttributeError:
                color = None
            return ShapeStyle(
                font=font.name,
                color=color,
                size=_pt(font.size),
            )
    return ShapeStyle()


def snapshot_slide(presentation, slide, selection: Iterable[str] = ()) -> SlideContext:
    """Collect the slide context the engine works from: shapes, text, style hints, slide size."""
    fonts: List[str] = []
    colors: List[str] = []
    objects: List[SlideObject] = []

    for shape in slide.shapes:
        text = ""
        style = ShapeStyle()
        if shape.has_text_frame:
            text = shape.text_frame.text.strip()[:MAX_SNAPSHOT_TEXT]
            if text:
                style = _first_run_style(shape)
        if style.font and style.font not in fonts:
            fonts.append(style.font)
        if style.color and style.color not in colors:
            colors.append(style.color)

        objects.append(
            SlideObject(
                id=str(shape.shape_id),
                name=shape.name or "",
                text=text,
                bbox=shape_rect(shape),
                style=style,
                type=shape_kind(shape),
            )
        )

    return SlideContext(
        size=SlideSize(w=float(presentation.slide_width.pt), h=float(presentation.slide_height.pt)),
        selection=tuple(str(s) for s in selection),
        theme_fonts=tuple(fonts[:8]),
        theme_colors=tuple(colors[:12]),
        objects=tuple(objects),
        slide_id=str(slide.slide_id),
    )
