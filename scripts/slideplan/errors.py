"""Custom exceptions for plan validation and slide mutation errors."""

from __future__ import annotations


class PlanValidationError(ValueError):
    """Raised when an execution plan payload cannot be applied at all."""

    title = "Execution plan validation failed:"

    def __init__(self, issues: list[str]):
        self.issues = [str(i).strip() for i in issues if str(i).strip()]
        if not self.issues:
            self.issues = ["Invalid execution plan"]
        super().__init__(self._format())

    def _format(self) -> str:
        lines = [self.title]
        for issue in self.issues:
            lines.append(f"- {issue}")
        return "\n".join(lines)


class SlideContextError(PlanValidationError):
    """Raised when a slide context snapshot is malformed."""

    title = "Slide context validation failed:"


class SlideUnavailableError(RuntimeError):
    """Raised when there is no slide (or slide snapshot) to apply a plan to."""


class CanvasError(RuntimeError):
    """Raised by a host canvas when a read or write fails."""


class CapabilityUnavailableError(CanvasError):
    """Raised when the host canvas does not support the requested mutation."""
