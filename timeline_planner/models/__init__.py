"""Pydantic models (schemas) for the timeline planner."""

from timeline_planner.models.enums import CommitOutcome, DragMode, InteractionState, TimeScale
from timeline_planner.models.milestone import Milestone, MilestoneCreate, MilestoneUpdate
from timeline_planner.models.interaction import CommitResult, ConstraintReport, DragSession
from timeline_planner.models.layout import (
    ConnectorPath,
    Point,
    PositionedMilestone,
    Rect,
    RenderResult,
    TimelineTick,
    ViewportBounds,
)

__all__ = [
    # Enums
    "CommitOutcome",
    "DragMode",
    "InteractionState",
    "TimeScale",
    # Milestone
    "Milestone",
    "MilestoneCreate",
    "MilestoneUpdate",
    # Interaction
    "CommitResult",
    "ConstraintReport",
    "DragSession",
    # Layout
    "ConnectorPath",
    "Point",
    "PositionedMilestone",
    "Rect",
    "RenderResult",
    "TimelineTick",
    "ViewportBounds",
]
