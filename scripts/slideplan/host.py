"""Host canvas interface.

The executor never inspects shapes for incidental attributes; it asks the canvas which
capabilities it has and picks a fallback tier before attempting a write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Optional, Sequence

from .errors import CapabilityUnavailableError
from .geometry import Rect
from .model import ChartContent


class Capability(str, Enum):
    TEXT = "text"
    DELETE = "delete"
    MOVE = "move"
    TABLE = "table"
    TABLE_UPDATE = "table-update"
    CHART = "chart"
    CHART_UPDATE = "chart-update"
    IMAGE = "image"


ALL_CAPABILITIES: FrozenSet[Capability] = frozenset(Capability)


@dataclass(frozen=True)
class LiveShape:
    """Current state of one shape as the host reports it."""

    id: str
    name: str = ""
    rect: Optional[Rect] = None
    text: Optional[str] = None
    kind: str = "shape"


@dataclass(frozen=True)
class TextStyle:
    font_name: Optional[str] = None
    color: Optional[str] = None
    size_pt: Optional[float] = None
    margin_x: float = 10
    margin_y: float = 8
    word_wrap: bool = True


class SlideCanvas(ABC):
    """Mutable view of the one slide a plan is applied to."""

    capabilities: FrozenSet[Capability] = frozenset()

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def require(self, capability: Capability) -> None:
        if not self.supports(capability):
            raise CapabilityUnavailableError(f"Host canvas does not support '{capability.value}'")

    @abstractmethod
    def list_shapes(self) -> List[LiveShape]:
        """Shapes currently on the slide, in z-order."""

    @abstractmethod
    def set_text(self, shape_id: str, text: str) -> None:
        """Replace the text of an existing shape, keeping its formatting."""

    @abstractmethod
    def delete_shape(self, shape_id: str) -> None:
        ...

    @abstractmethod
    def move_shape(self, shape_id: str, rect: Rect) -> None:
        ...

    @abstractmethod
    def add_text_box(self, rect: Rect, text: str, style: Optional[TextStyle] = None) -> str:
        """Create a text box and return its shape id."""

    def add_table(self, rect: Rect, rows: Sequence[Sequence[str]]) -> str:
        raise CapabilityUnavailableError("Table insert is unavailable on this host")

    def set_table(self, shape_id: str, rows: Sequence[Sequence[str]]) -> bool:
        """Write rows into an existing table; False when nothing could be written."""
        raise CapabilityUnavailableError("Table update is unavailable on this host")

    def add_chart(self, rect: Rect, chart: ChartContent) -> str:
        raise CapabilityUnavailableError("Chart insert is unavailable on this host")

    def set_chart(self, shape_id: str, chart: ChartContent) -> bool:
        raise CapabilityUnavailableError("Chart update is unavailable on this host")

    def add_image(self, rect: Rect, data: bytes) -> str:
        raise CapabilityUnavailableError("Image insert is unavailable on this host")
