from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest
from PIL import Image
from pptx import Presentation
from pptx.enum.chart import XL_CHART_TYPE

SCRIPT_DIR = Path(__file__).resolve().parents[1] / "scripts"
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from slideplan import apply_plan  # noqa: E402
from slideplan.errors import CanvasError  # noqa: E402
from slideplan.geometry import Rect, overlap_area  # noqa: E402
from slideplan.host import ALL_CAPABILITIES, Capability, TextStyle  # noqa: E402
from slideplan.model import ChartContent, ChartPoint, ChartSeries  # noqa: E402
from slideplan.pptx_host import PptxCanvas, build_chart_data, map_chart_type, shape_rect, snapshot_slide  # noqa: E402

TITLE_ONLY_LAYOUT = 5
BLANK_LAYOUT = 6


def _chart(*labels_values, name="Sales", chart_type="bar") -> ChartContent:
    points = tuple(ChartPoint(label, value) for label, value in labels_values)
    return ChartContent(type=chart_type, series=(ChartSeries(name, points),))


def _png(width: int, height: int) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (37, 99, 235)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def titled():
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[TITLE_ONLY_LAYOUT])
    slide.shapes.title.text = "Quarterly Review"
    return prs, slide


@pytest.fixture
def blank():
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])
    return prs, slide


def test_snapshot_reports_points_and_text(titled) -> None:
    prs, slide = titled
    context = snapshot_slide(prs, slide, selection=["99"])
    assert (context.size.w, context.size.h) == (720, 540)
    assert context.selection == ("99",)
    (title,) = context.objects
    assert title.text == "Quarterly Review"
    assert title.type == "placeholder"
    assert title.bbox is not None and title.bbox.width > 0
    assert context.slide_id == str(slide.slide_id)


def test_subtitle_insert_on_real_slide(titled) -> None:
    prs, slide = titled
    title_rect = shape_rect(slide.shapes.title)
    plan = {
        "operations": [
            {
                "type": "insert",
                "anchor": {"strategy": "placeholder", "ref": "subtitle"},
                "content": {"text": "Results and outlook for the third period"},
            }
        ]
    }
    result = apply_plan(plan, snapshot_slide(prs, slide), PptxCanvas(slide))
    assert result.applied_count == 1

    added = [s for s in slide.shapes if s.shape_id != slide.shapes.title.shape_id]
    assert len(added) == 1
    box = added[0]
    assert box.text_frame.text == "Results and outlook for the third period"
    assert overlap_area(shape_rect(box), title_rect) == 0
    assert shape_rect(box).top >= title_rect.bottom


def test_text_box_formatting(blank) -> None:
    _, slide = blank
    canvas = PptxCanvas(slide)
    style = TextStyle(font_name="Aptos", color="#1F2937", size_pt=20, margin_x=6, margin_y=4)
    shape_id = canvas.add_text_box(Rect(40, 120, 400, 100), "First\nSecond", style)

    (shape,) = list(slide.shapes)
    assert str(shape.shape_id) == shape_id
    paragraphs = shape.text_frame.paragraphs
    assert [p.text for p in paragraphs] == ["First", "Second"]
    assert paragraphs[1].font.name == "Aptos"
    assert paragraphs[0].font.size.pt == 20
    assert str(paragraphs[0].font.color.rgb) == "1F2937"
    assert shape.text_frame.margin_left.pt == pytest.approx(6)
    assert shape_rect(shape) == Rect(40, 120, 400, 100)


def test_text_write_move_and_delete(blank) -> None:
    _, slide = blank
    canvas = PptxCanvas(slide)
    shape_id = canvas.add_text_box(Rect(40, 120, 400, 100), "Old")
    canvas.set_text(shape_id, "New")
    canvas.move_shape(shape_id, Rect(60, 200, 300, 80))

    (live,) = canvas.list_shapes()
    assert live.text == "New"
    assert live.rect == Rect(60, 200, 300, 80)
    assert live.kind == "text"

    canvas.delete_shape(shape_id)
    assert canvas.list_shapes() == []
    with pytest.raises(CanvasError):
        canvas.set_text(shape_id, "gone")


def test_table_insert_and_update(blank) -> None:
    _, slide = blank
    canvas = PptxCanvas(slide)
    table_id = canvas.add_table(Rect(40, 120, 400, 120), [["Region", "Revenue"], ["EU", ""]])
    (frame,) = list(slide.shapes)
    assert frame.has_table
    assert frame.table.cell(0, 1).text == "Revenue"
    assert frame.table.cell(1, 1).text == ""

    assert canvas.set_table(table_id, [["Area", "Sales", "ignored"]]) is True
    assert frame.table.cell(0, 0).text == "Area"
    assert frame.table.cell(1, 0).text == "EU"

    with pytest.raises(CanvasError):
        canvas.set_text(table_id, "x")
    with pytest.raises(CanvasError):
        canvas.add_table(Rect(40, 300, 400, 120), [])

    text_id = canvas.add_text_box(Rect(40, 300, 400, 100), "Body")
    assert canvas.set_table(text_id, [["a"]]) is False


def test_chart_insert_and_update(blank) -> None:
    _, slide = blank
    canvas = PptxCanvas(slide)
    chart_id = canvas.add_chart(Rect(40, 120, 480, 300), _chart(("Q1", "3"), ("Q2", "5")))
    (frame,) = list(slide.shapes)
    assert frame.has_chart
    assert frame.chart.has_legend is False
    assert list(frame.chart.plots[0].categories) == ["Q1", "Q2"]

    assert canvas.set_chart(chart_id, _chart(("A", "1"), ("B", "2"), ("C", "4"))) is True
    assert list(frame.chart.plots[0].categories) == ["A", "B", "C"]
    assert canvas.list_shapes()[0].kind == "chart"


def test_chart_data_tolerates_bad_values() -> None:
    data = build_chart_data(_chart(("", "x"), ("", "2")))
    assert [c.label for c in data.categories] == ["Item 1", "Item 2"]
    (series,) = list(data)
    assert list(series.values) == [0.0, 2.0]


def test_chart_type_mapping() -> None:
    assert map_chart_type("line") == XL_CHART_TYPE.LINE
    assert map_chart_type("Line-Markers") == XL_CHART_TYPE.LINE
    assert map_chart_type("donut") == XL_CHART_TYPE.DOUGHNUT
    assert map_chart_type("radar") == XL_CHART_TYPE.COLUMN_CLUSTERED
    assert map_chart_type("") == XL_CHART_TYPE.COLUMN_CLUSTERED


def test_image_is_contained_in_its_box(blank) -> None:
    _, slide = blank
    canvas = PptxCanvas(slide)
    canvas.add_image(Rect(100, 100, 300, 300), _png(200, 100))
    (picture,) = list(slide.shapes)
    rect = shape_rect(picture)
    assert rect.width == pytest.approx(300, abs=0.1)
    assert rect.height == pytest.approx(150, abs=0.1)
    assert rect.top == pytest.approx(175, abs=0.1)
    assert canvas.list_shapes()[0].kind == "picture"


def test_restricted_capabilities_fall_back_to_text(blank) -> None:
    prs, slide = blank
    canvas = PptxCanvas(slide, capabilities=ALL_CAPABILITIES - {Capability.CHART, Capability.TABLE})
    plan = {"operations": [{"type": "insert", "content": {"chart": {"series": [{"name": "S", "data": [{"label": "a", "value": 1}]}]}}}]}
    result = apply_plan(plan, snapshot_slide(prs, slide), canvas)
    assert result.applied_count == 1
    (shape,) = list(slide.shapes)
    assert not shape.has_chart
    assert shape.text_frame.text == "Category | S\na | 1"
