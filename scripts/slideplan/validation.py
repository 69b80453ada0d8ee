"""Input validation for execution plans and slide context snapshots."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from .errors import PlanValidationError, SlideContextError
from .model import ANCHOR_STRATEGIES, OPERATION_TYPES

MAX_OPERATIONS = 15
MAX_CONTEXT_OBJECTS = 250

DELETE_POLICY_WARNING = "Plan contains delete operations and requires explicit confirmation."
FREE_REGION_POLICY_WARNING = "Plan uses free-region anchoring; renderer must run collision checks before apply."


def _is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def operation_issues(op: Any, index: int) -> list[str]:
    """Planner-contract checks for one operation. The applier itself tolerates all of these."""
    label = f"operations[{index}]"
    if not isinstance(op, dict):
        return [f"{label} must be an object"]

    issues: list[str] = []
    if op.get("type") not in OPERATION_TYPES:
        issues.append(f"{label}.type is invalid")

    if not _is_non_empty_str(op.get("target")):
        issues.append(f"{label}.target is required")

    anchor = op.get("anchor")
    if not isinstance(anchor, dict):
        issues.append(f"{label}.anchor is required")
    else:
        if anchor.get("strategy") not in ANCHOR_STRATEGIES:
            issues.append(f"{label}.anchor.strategy is invalid")
        if not _is_non_empty_str(anchor.get("ref")):
            issues.append(f"{label}.anchor.ref is required")

    if not isinstance(op.get("constraints"), dict):
        issues.append(f"{label}.constraints is required")

    if "content" in op and not isinstance(op.get("content"), dict):
        issues.append(f"{label}.content must be an object when provided")
    return issues


def validate_plan(plan: Any, *, strict: bool = False) -> Dict[str, Any]:
    """Reject plans that cannot be applied at all.

    Individual malformed operations are left for the applier, which skips them with a
    warning. ``strict`` adds the planner's full contract (plan id, summary, and every
    operation's type, target, anchor and constraints).
    """
    if not isinstance(plan, dict):
        raise PlanValidationError(["Root JSON value must be an object"])

    issues: list[str] = []
    operations = plan.get("operations")
    if not isinstance(operations, list):
        issues.append("plan.operations is required and must be a list")
    elif not 1 <= len(operations) <= MAX_OPERATIONS:
        issues.append(f"plan.operations must contain between 1 and {MAX_OPERATIONS} items")

    for field in ("planId", "summary"):
        value = plan.get(field)
        if strict and not _is_non_empty_str(value):
            issues.append(f"plan.{field} is required")
        elif value is not None and not isinstance(value, str):
            issues.append(f"plan.{field} must be a string when provided")

    if "requiresConfirmation" in plan and not isinstance(plan.get("requiresConfirmation"), bool):
        issues.append("plan.requiresConfirmation must be a boolean when provided")

    warnings = plan.get("warnings")
    if warnings is not None and not (isinstance(warnings, list) and all(isinstance(w, str) for w in warnings)):
        issues.append("plan.warnings must be a list of strings when provided")

    if strict and isinstance(operations, list):
        for idx, op in enumerate(operations):
            issues.extend(operation_issues(op, idx))

    if issues:
        raise PlanValidationError(issues)
    return plan


def policy_warnings(plan: Dict[str, Any]) -> list[str]:
    """Risks a caller should surface before applying (not errors)."""
    operations = [op for op in plan.get("operations") or [] if isinstance(op, dict)]
    out: List[str] = []
    if any(op.get("type") == "delete" for op in operations):
        out.append(DELETE_POLICY_WARNING)
    if any(isinstance(op.get("anchor"), dict) and op["anchor"].get("strategy") == "free-region" for op in operations):
        out.append(FREE_REGION_POLICY_WARNING)
    return out


def validate_slide_context(context: Any) -> Dict[str, Any]:
    if not isinstance(context, dict):
        raise SlideContextError(["slideContext must be an object"])

    issues: list[str] = []
    objects = context.get("objects")
    if objects is not None and not isinstance(objects, list):
        issues.append("slideContext.objects must be a list when provided")
        objects = []
    objects = objects or []

    if len(objects) > MAX_CONTEXT_OBJECTS:
        issues.append(f"slideContext.objects exceeds max length of {MAX_CONTEXT_OBJECTS}")
    if any(not isinstance(obj, dict) or not isinstance(obj.get("id"), str) for obj in objects):
        issues.append("Every slideContext object must contain an id string")

    for field in ("slide", "selection"):
        if context.get(field) is not None and not isinstance(context.get(field), dict):
            issues.append(f"slideContext.{field} must be an object when provided")

    if issues:
        raise SlideContextError(issues)
    return context


def load_json_file(path: Path, *, label: str = "Plan", error_cls=PlanValidationError) -> Any:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise error_cls([f"{label} file not found: {path}"]) from exc

    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise error_cls([f"Invalid JSON at line {exc.lineno}, column {exc.colno}: {exc.msg}"]) from exc


def validate_plan_file(plan_path: Path, *, strict: bool = False) -> Dict[str, Any]:
    """Load and validate a JSON execution plan file."""
    return validate_plan(load_json_file(plan_path), strict=strict)


def validate_slide_context_file(context_path: Path) -> Dict[str, Any]:
    return validate_slide_context(load_json_file(context_path, label="Slide context", error_cls=SlideContextError))
