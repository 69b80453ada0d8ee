"""Plan application entry point.

Operations run strictly one after another: each operation's placement is recorded in the
occupancy model before the next operation's layout search, which is what keeps inserts
from the same plan off each other.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Union

from .errors import SlideUnavailableError
from .executor import OperationExecutor
from .host import SlideCanvas
from .images import ImageLoader
from .model import ApplyResult, ExecutionPlan, SlideContext
from .occupancy import OccupancyModel
from .validation import validate_plan


def _dedupe(messages: List[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(m for m in messages if m))


class PlanApplier:
    def __init__(
        self,
        canvas: Optional[SlideCanvas],
        *,
        logger: Optional[logging.Logger] = None,
        image_loader: Optional[ImageLoader] = None,
    ):
        self.canvas = canvas
        self.log = logger or logging.getLogger(__name__)
        self.image_loader = image_loader

    def apply(
        self,
        plan: Union[ExecutionPlan, Mapping[str, Any]],
        context: Union[SlideContext, Mapping[str, Any], None],
    ) -> ApplyResult:
        if not isinstance(plan, ExecutionPlan):
            validate_plan(plan)
            plan = ExecutionPlan.from_dict(plan)
        if self.canvas is None:
            raise SlideUnavailableError("No slide found to apply the plan")
        if context is None:
            raise SlideUnavailableError("No slide context available to apply the plan")
        if not isinstance(context, SlideContext):
            context = SlideContext.from_dict(context)

        owned_loader = None if self.image_loader is not None else ImageLoader(logger=self.log)
        try:
            return self._run(plan, context, self.image_loader or owned_loader)
        finally:
            if owned_loader is not None:
                owned_loader.close()

    def _run(self, plan: ExecutionPlan, context: SlideContext, image_loader: ImageLoader) -> ApplyResult:
        executor = OperationExecutor(self.canvas, context, logger=self.log, image_loader=image_loader)
        occupancy = OccupancyModel.seed(context)
        self.log.debug(
            "Starting plan %s: %d operation(s), %d occupied rect(s)",
            plan.plan_id or "<unnamed>",
            len(plan.operations),
            len(occupancy),
        )

        applied = 0
        warnings: List[str] = []
        for index, operation in enumerate(plan.operations, start=1):
            self.log.debug(
                "Applying operation %d: %s target=%r anchor=%s",
                index,
                operation.type,
                operation.target,
                operation.anchor,
            )
            result = executor.execute(operation, occupancy.snapshot())
            self.log.debug("Operation result %d: %s", index, result)

            if result.applied:
                applied += 1
            warnings.extend(result.warnings)

            if result.occupancy_changed:
                occupancy.rebuild(self.canvas.list_shapes())
            elif result.occupied_bbox is not None:
                occupancy.append(result.occupied_bbox)

        result = ApplyResult(applied, _dedupe(warnings))
        self.log.info("Applied %d of %d operation(s)", result.applied_count, len(plan.operations))
        return result


def apply_plan(
    plan: Union[ExecutionPlan, Mapping[str, Any]],
    context: Union[SlideContext, Mapping[str, Any], None],
    canvas: Optional[SlideCanvas],
    *,
    logger: Optional[logging.Logger] = None,
    image_loader: Optional[ImageLoader] = None,
) -> ApplyResult:
    """Apply every operation of ``plan`` to ``canvas`` and return the applied count and warnings."""
    return PlanApplier(canvas, logger=logger, image_loader=image_loader).apply(plan, context)
