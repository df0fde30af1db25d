"""
Interaction model definitions.

A DragSession is the ephemeral state of one drag/resize gesture; it lives only
between pointer-down and pointer-up (or cancel) and is never persisted.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from timeline_planner.models.enums import CommitOutcome, DragMode
from timeline_planner.models.milestone import Milestone


class ConstraintReport(BaseModel):
    """Outcome of checking proposed bounds against siblings and dependencies."""

    model_config = ConfigDict(frozen=True)

    conflicts: tuple[str, ...] = Field(default=(), description="Overlapping sibling IDs")
    violations: tuple[str, ...] = Field(
        default=(), description="Dependencies that end after the candidate starts"
    )
    dependent_violations: tuple[str, ...] = Field(
        default=(), description="Dependents that start before the candidate ends"
    )

    @property
    def is_valid(self) -> bool:
        return not (self.conflicts or self.violations or self.dependent_violations)


class DragSession(BaseModel):
    """Live state of an active drag or resize gesture."""

    model_config = ConfigDict(frozen=True)

    milestone_id: str
    mode: DragMode
    origin_start: datetime
    origin_end: datetime
    pointer_origin_x: float
    live_start: datetime
    live_end: datetime
    is_valid: bool = True
    report: ConstraintReport = Field(default_factory=ConstraintReport)

    @property
    def has_changed(self) -> bool:
        return self.live_start != self.origin_start or self.live_end != self.origin_end


class CommitResult(BaseModel):
    """Resolution of a drag session on pointer-up or cancel."""

    model_config = ConfigDict(frozen=True)

    outcome: CommitOutcome
    milestone_id: Optional[str] = None
    milestone: Optional[Milestone] = Field(None, description="Store entry after resolution")
    report: ConstraintReport = Field(default_factory=ConstraintReport)

    @property
    def committed(self) -> bool:
        return self.outcome == CommitOutcome.COMMITTED
