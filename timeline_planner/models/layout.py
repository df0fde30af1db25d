"""
Layout model definitions.

Everything here is in content-space pixels: x grows with time from the chart
origin, y grows with row index. Hosts apply their own scroll transform.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from timeline_planner.models.enums import TimeScale
from timeline_planner.models.interaction import DragSession


class ViewportBounds(BaseModel):
    """Visible window of the chart in content-space pixels."""

    model_config = ConfigDict(frozen=True)

    x: float = Field(0.0, description="Horizontal scroll offset")
    y: float = Field(0.0, description="Vertical scroll offset")
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


class Rect(BaseModel):
    """Axis-aligned rectangle."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    def intersects(self, viewport: ViewportBounds) -> bool:
        return (
            self.x <= viewport.right
            and viewport.x <= self.right
            and self.y <= viewport.bottom
            and viewport.y <= self.bottom
        )


class PositionedMilestone(BaseModel):
    """A milestone bar placed on the chart."""

    model_config = ConfigDict(frozen=True)

    milestone_id: str
    title: str
    row: int
    indent: int
    rect: Rect
    start: datetime = Field(..., description="Bounds actually drawn (live during a drag)")
    end: datetime
    completed: int = 0
    color: Optional[str] = None
    has_children: bool = False
    is_expanded: bool = True
    is_live: bool = Field(False, description="Drawn from an in-progress drag session")
    has_conflict: bool = False


class Point(BaseModel):
    """2D point."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class ConnectorPath(BaseModel):
    """Cubic connector from a dependency's right edge to a dependent's left edge."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    target_id: str
    start: Point
    control1: Point
    control2: Point
    end: Point

    def svg_path(self) -> str:
        """Render as an SVG path `d` attribute."""
        return (
            f"M {self.start.x:g} {self.start.y:g} "
            f"C {self.control1.x:g} {self.control1.y:g}, "
            f"{self.control2.x:g} {self.control2.y:g}, "
            f"{self.end.x:g} {self.end.y:g}"
        )


class TimelineTick(BaseModel):
    """Header cell for one time unit."""

    model_config = ConfigDict(frozen=True)

    x: float
    instant: datetime
    label: str
    is_weekend: bool = False
    is_major: bool = False


class RenderResult(BaseModel):
    """Output of one render pass."""

    model_config = ConfigDict(frozen=True)

    time_scale: TimeScale
    origin: datetime
    viewport: ViewportBounds
    positioned_milestones: tuple[PositionedMilestone, ...] = ()
    connector_paths: tuple[ConnectorPath, ...] = ()
    ticks: tuple[TimelineTick, ...] = ()
    content_width: float = 0.0
    content_height: float = 0.0
    session: Optional[DragSession] = None

    def position_of(self, milestone_id: str) -> Optional[PositionedMilestone]:
        for positioned in self.positioned_milestones:
            if positioned.milestone_id == milestone_id:
                return positioned
        return None
