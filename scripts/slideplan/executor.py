"""Per-operation state machine: delete, structured update, structured insert, text update, text insert.

Every tier is a distinct attempt. Capability gaps and host failures along the way are
collected as notes; they reach the caller as warnings only when the whole operation fails.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence, Set

from .errors import CapabilityUnavailableError
from .geometry import Rect
from .host import Capability, LiveShape, SlideCanvas
from .images import ImageLoader
from .layout import place
from .model import (
    ChartContent,
    ImageContent,
    Operation,
    OperationResult,
    SlideContext,
    TableContent,
    rows_to_text,
)
from .resolver import resolve_target, shapes_by_id
from .safety import is_safe, resolve_alternative_target
from .styles import build_text_style
from .subtitle import is_subtitle_insert_intent, reserve_subtitle_placement
from .text import trim_long_bullet_text

TABLE_UPDATE_NOTE = "Table update/transform could not be applied directly."
CHART_UPDATE_NOTE = "Chart update/transform could not be applied directly."
IMAGE_INSERT_NOTE = "Image insert failed on this host; falling back to text rendering."
CHART_INSERT_NOTE = "Chart insert is unavailable on this host; falling back to table/text rendering."
TABLE_INSERT_NOTE = "Table insert is unavailable on this host; falling back to text rendering."

TABLE_KEPT_WARNING = "Transformed to table but original target could not be removed."
CHART_KEPT_WARNING = "Transformed to chart but original target could not be removed."
CHART_TABLE_KEPT_WARNING = "Chart transformed to table fallback; original target remains."
CHART_TABLE_TRANSFORM_WARNING = "Chart transform used editable table fallback."
CHART_TABLE_INSERT_WARNING = "Inserted chart data as an editable table fallback."

NO_TEXT_WARNING = "Skipped operation without text content"
DELETE_MISSING_WARNING = "Skipped delete: intended target was not found."
DELETE_FAILED_WARNING = "Delete operation failed: target exists but could not be deleted."


class OperationExecutor:
    """Applies single operations to one canvas, keeping the state shared across a plan.

    ``used_shape_ids`` holds shapes already claimed by a text write in this plan; the
    working ``context`` drops deleted objects and follows subtitle content shifts.
    """

    def __init__(
        self,
        canvas: SlideCanvas,
        context: SlideContext,
        *,
        logger: Optional[logging.Logger] = None,
        image_loader: Optional[ImageLoader] = None,
    ):
        self.canvas = canvas
        self.context = context
        self.log = logger or logging.getLogger(__name__)
        self.image_loader = image_loader
        self.used_shape_ids: Set[str] = set()
        self.shapes: Dict[str, LiveShape] = {}

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def execute(self, operation: Operation, occupied: Sequence[Rect]) -> OperationResult:
        if operation.problem:
            return OperationResult(False, (operation.problem,))

        self.shapes = shapes_by_id(self.canvas.list_shapes())
        target = resolve_target(self.shapes, operation, self.context.selection, self.context)
        if target is not None:
            self.log.debug("Resolved %s target to shape %s (%s)", operation.type, target.id, target.name)

        if operation.type == "delete":
            return self._delete(target)

        run = _Run()
        content = operation.content

        if operation.type in ("update", "transform") and target is not None:
            result = self._structured_update(operation, target, occupied, run)
            if result is not None:
                return result

        if operation.type == "insert":
            result = self._structured_insert(operation, occupied, run)
            if result is not None:
                return result

        text = content.summary_text().strip()
        if not text:
            return run.failed(NO_TEXT_WARNING if not run.notes else None)

        if operation.type in ("update", "transform"):
            return self._text_update(operation, target, text, run)
        return self._text_insert(operation, target, text, occupied, run)

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    def _delete(self, target: Optional[LiveShape]) -> OperationResult:
        if target is None:
            return OperationResult(False, (DELETE_MISSING_WARNING,))
        if not self._remove(target):
            return OperationResult(False, (DELETE_FAILED_WARNING,))
        return OperationResult(True, occupancy_changed=True)

    def _structured_update(
        self,
        operation: Operation,
        target: LiveShape,
        occupied: Sequence[Rect],
        run: "_Run",
    ) -> Optional[OperationResult]:
        content = operation.content
        transform = operation.type == "transform"

        if isinstance(content, TableContent):
            if self._attempt(Capability.TABLE_UPDATE, "table update", self.canvas.set_table, target.id, content.rows):
                return run.applied()
            if transform:
                rect = self._insert_table(operation, content.rows, occupied, self._rect_of(target))
                if rect is not None:
                    return self._replace_original(target, rect, run, TABLE_KEPT_WARNING)
            run.note(TABLE_UPDATE_NOTE)

        elif isinstance(content, ChartContent):
            if self._attempt(Capability.CHART_UPDATE, "chart update", self.canvas.set_chart, target.id, content):
                return run.applied()
            if transform:
                preferred = self._rect_of(target)
                rect = self._insert_chart(operation, content, occupied, preferred)
                if rect is not None:
                    return self._replace_original(target, rect, run, CHART_KEPT_WARNING)
                rows = content.as_rows()
                rect = self._insert_table(operation, rows, occupied, preferred) if rows else None
                if rect is not None:
                    result = self._replace_original(target, rect, run, CHART_TABLE_KEPT_WARNING)
                    run.warn(CHART_TABLE_TRANSFORM_WARNING)
                    return run.applied(rect, occupancy_changed=result.occupancy_changed)
            run.note(CHART_UPDATE_NOTE)
        return None

    def _replace_original(self, target: LiveShape, rect: Rect, run: "_Run", kept_warning: str) -> OperationResult:
        if self._remove(target):
            return run.applied(rect, occupancy_changed=True)
        run.warn(kept_warning)
        return run.applied(rect)

    def _structured_insert(
        self,
        operation: Operation,
        occupied: Sequence[Rect],
        run: "_Run",
    ) -> Optional[OperationResult]:
        content = operation.content

        if isinstance(content, ImageContent):
            rect = self._insert_image(operation, content, occupied)
            if rect is not None:
                return run.applied(rect)
            run.note(IMAGE_INSERT_NOTE)

        elif isinstance(content, ChartContent):
            rect = self._insert_chart(operation, content, occupied)
            if rect is not None:
                return run.applied(rect)
            run.note(CHART_INSERT_NOTE)
            rows = content.as_rows()
            rect = self._insert_table(operation, rows, occupied) if rows else None
            if rect is not None:
                run.warn(CHART_TABLE_INSERT_WARNING)
                return run.applied(rect)

        elif isinstance(content, TableContent):
            rect = self._insert_table(operation, content.rows, occupied)
            if rect is not None:
                return run.applied(rect)
            run.note(TABLE_INSERT_NOTE)
        return None

    def _text_update(
        self,
        operation: Operation,
        target: Optional[LiveShape],
        text: str,
        run: "_Run",
    ) -> OperationResult:
        if target is None:
            # No guessing for writes into existing content.
            return OperationResult(
                False,
                (
                    f"Skipped {operation.type}: intended target was not found. "
                    "Provide a valid shape id or selection anchor.",
                ),
            )
        if self._write_text(target, text):
            return run.applied()
        return run.failed(f"Failed {operation.type}: target exists but is not writable")

    def _text_insert(
        self,
        operation: Operation,
        target: Optional[LiveShape],
        text: str,
        occupied: Sequence[Rect],
        run: "_Run",
    ) -> OperationResult:
        preferred: Optional[Rect] = None

        if target is not None:
            if target.id not in self.used_shape_ids and is_safe(target, operation, self.context):
                if self._write_text(target, text):
                    return run.applied()
                preferred = self._rect_of(target)
            else:
                self.log.debug("Insert target %s is not safe to overwrite", target.id)

            alternative = resolve_alternative_target(
                self.shapes,
                self.context.selection,
                self.context,
                self.used_shape_ids,
                excluded_ids=(target.id,),
            )
            if alternative is not None:
                self.log.debug("Trying alternative insert target %s", alternative.id)
                if self._write_text(alternative, text):
                    return run.applied()
                preferred = preferred or self._rect_of(alternative)

        changed = False
        if is_subtitle_insert_intent(operation, text):
            reservation = reserve_subtitle_placement(self.canvas, self.shapes, self.context, text, occupied)
            if reservation is not None:
                preferred = reservation.bbox
                for warning in reservation.warnings:
                    run.warn(warning)
                if reservation.shifted:
                    self.context = self.context.with_shifted_objects(
                        reservation.shift_start, reservation.shift_delta
                    )
                    changed = True

        rect = self._insert_text_box(operation, text, occupied, preferred)
        if rect is not None:
            return run.applied(rect, occupancy_changed=changed)
        result = run.failed(f"Failed to apply {operation.type} operation")
        if changed:
            return OperationResult(False, result.warnings, occupancy_changed=True)
        return result

    # ------------------------------------------------------------------
    # Canvas writes
    # ------------------------------------------------------------------

    def _attempt(self, capability: Capability, label: str, action: Callable, *args):
        """Run one canvas write; a missing capability or any host error counts as a failed tier."""
        if not self.canvas.supports(capability):
            self.log.debug("Skipping %s: host lacks '%s'", label, capability.value)
            return None
        try:
            return action(*args)
        except CapabilityUnavailableError as exc:
            self.log.debug("Skipping %s: %s", label, exc)
        except Exception as exc:
            self.log.warning("%s failed: %s", label.capitalize(), exc)
        return None

    def _remove(self, shape: LiveShape) -> bool:
        if not self.canvas.supports(Capability.DELETE):
            self.log.debug("Skipping delete of %s: host lacks 'delete'", shape.id)
            return False
        try:
            self.canvas.delete_shape(shape.id)
        except Exception as exc:
            self.log.warning("Delete of shape %s failed: %s", shape.id, exc)
            return False
        self.shapes.pop(shape.id, None)
        self.used_shape_ids.discard(shape.id)
        self.context = self.context.without_object(shape.id)
        return True

    def _write_text(self, shape: LiveShape, text: str) -> bool:
        if not self.canvas.supports(Capability.TEXT):
            return False
        try:
            self.canvas.set_text(shape.id, text)
        except Exception as exc:
            self.log.warning("Text write to shape %s failed: %s", shape.id, exc)
            return False
        self.used_shape_ids.add(shape.id)
        return True

    def _insert_text_box(
        self,
        operation: Operation,
        text: str,
        occupied: Sequence[Rect],
        preferred: Optional[Rect],
    ) -> Optional[Rect]:
        text = trim_long_bullet_text(text, self.context.size.h)
        rect = place(operation, self.context, text, occupied, preferred)
        style = build_text_style(rect, text, operation.style_bindings, self.context)
        if self._attempt(Capability.TEXT, "text box insert", self.canvas.add_text_box, rect, text, style) is None:
            return None
        return rect

    def _insert_table(
        self,
        operation: Operation,
        rows,
        occupied: Sequence[Rect],
        preferred: Optional[Rect] = None,
    ) -> Optional[Rect]:
        if not self.canvas.supports(Capability.TABLE):
            self.log.debug("Skipping table insert: host lacks 'table'")
            return None
        rect = place(operation, self.context, rows_to_text(rows), occupied, preferred)
        if self._attempt(Capability.TABLE, "table insert", self.canvas.add_table, rect, rows) is None:
            return None
        return rect

    def _insert_chart(
        self,
        operation: Operation,
        chart: ChartContent,
        occupied: Sequence[Rect],
        preferred: Optional[Rect] = None,
    ) -> Optional[Rect]:
        if not self.canvas.supports(Capability.CHART):
            self.log.debug("Skipping chart insert: host lacks 'chart'")
            return None
        rect = place(operation, self.context, f"Chart: {chart.type}", occupied, preferred)
        if self._attempt(Capability.CHART, "chart insert", self.canvas.add_chart, rect, chart) is None:
            return None
        return rect

    def _insert_image(self, operation: Operation, image: ImageContent, occupied: Sequence[Rect]) -> Optional[Rect]:
        if not self.canvas.supports(Capability.IMAGE):
            self.log.debug("Skipping image insert: host lacks 'image'")
            return None
        if self.image_loader is None:
            self.log.debug("Skipping image insert: no image loader configured")
            return None

        data = self.image_loader.load(image)
        if not data:
            self.log.debug("Image payload could not be resolved (%s)", image.url or "inline data")
            return None

        rect = place(operation, self.context, image.alt or "Image", occupied)
        if self._attempt(Capability.IMAGE, "image insert", self.canvas.add_image, rect, data) is None:
            return None
        return rect

    def _rect_of(self, shape: LiveShape) -> Optional[Rect]:
        obj = self.context.object_by_id(shape.id)
        if obj is not None and obj.bbox is not None:
            return obj.bbox
        return shape.rect


class _Run:
    """Warnings for one operation: ``warnings`` are always reported, ``notes`` only on failure."""

    def __init__(self):
        self.warnings: List[str] = []
        self.notes: List[str] = []

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def note(self, message: str) -> None:
        self.notes.append(message)

    def applied(self, rect: Optional[Rect] = None, *, occupancy_changed: bool = False) -> OperationResult:
        return OperationResult(True, tuple(self.warnings), rect, occupancy_changed)

    def failed(self, message: Optional[str] = None) -> OperationResult:
        messages = self.warnings + self.notes + ([message] if message else [])
        return OperationResult(False, tuple(messages))
