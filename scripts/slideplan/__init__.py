"""Plan application engine: applies planner-generated edit operations to one slide."""

import logging

from .applier import PlanApplier, apply_plan
from .errors import (
    CanvasError,
    CapabilityUnavailableError,
    PlanValidationError,
    SlideContextError,
    SlideUnavailableError,
)
from .host import Capability, LiveShape, SlideCanvas, TextStyle
from .model import ApplyResult, ExecutionPlan, Operation, SlideContext
from .validation import policy_warnings, validate_plan, validate_plan_file, validate_slide_context

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ApplyResult",
    "CanvasError",
    "Capability",
    "CapabilityUnavailableError",
    "ExecutionPlan",
    "LiveShape",
    "Operation",
    "PlanApplier",
    "PlanValidationError",
    "SlideCanvas",
    "SlideContext",
    "SlideContextError",
    "SlideUnavailableError",
    "TextStyle",
    "apply_plan",
    "policy_warnings",
    "validate_plan",
    "validate_plan_file",
    "validate_slide_context",
]
