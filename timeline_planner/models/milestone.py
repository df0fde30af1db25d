"""
Milestone model definitions.

Milestones are time-boxed bars on the project timeline. They form a forest
through parent_id and a DAG through dependencies; both edge sets are plain id
references resolved by the milestone store.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from timeline_planner.utils.datetime_utils import ensure_utc, whole_days


class MilestoneBase(BaseModel):
    """Base milestone fields."""

    title: str = Field(..., min_length=1, max_length=200, description="Display label")
    start: datetime = Field(..., description="Start instant (UTC)")
    end: datetime = Field(..., description="End instant (UTC), never before start")
    project_id: str = Field(..., min_length=1, description="Owning project ID")
    parent_id: Optional[str] = Field(None, description="Containing milestone ID")
    dependencies: frozenset[str] = Field(
        default_factory=frozenset, description="IDs of milestones that must finish first"
    )
    completed: int = Field(default=0, ge=0, le=100, description="Percent complete (0-100)")
    editable: bool = Field(True, description="Drag/resize allowed")
    deletable: bool = Field(True, description="Deletion allowed")
    is_expanded: bool = Field(True, description="Children visible in the layout")
    color: Optional[str] = Field(None, max_length=32, description="Bar colour")
    key: Optional[str] = Field(None, max_length=100, description="Template key")
    project_name: Optional[str] = Field(None, max_length=200, description="Owning project label")

    @field_validator("start", "end")
    @classmethod
    def _normalize_instant(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.start > self.end:
            raise ValueError("start must not be after end")
        return self


class MilestoneCreate(MilestoneBase):
    """Schema for creating a milestone. The store assigns an ID when omitted."""

    id: Optional[str] = Field(None, min_length=1, description="Milestone ID")


class MilestoneUpdate(BaseModel):
    """Schema for a direct (non-gesture) milestone edit."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    parent_id: Optional[str] = None
    dependencies: Optional[frozenset[str]] = None
    completed: Optional[int] = Field(None, ge=0, le=100)
    editable: Optional[bool] = None
    deletable: Optional[bool] = None
    color: Optional[str] = Field(None, max_length=32)


class Milestone(MilestoneBase):
    """Complete milestone model."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str = Field(..., min_length=1, description="Immutable milestone ID")
    indent: int = Field(default=0, ge=0, description="Forest depth, maintained by the store")

    @computed_field
    @property
    def duration(self) -> int:
        """Length in whole days, always derived from start/end."""
        return whole_days(self.end - self.start)

    def with_bounds(self, start: datetime, end: datetime) -> "Milestone":
        """Return a validated copy with new temporal bounds."""
        return self.with_changes(start=start, end=end)

    def with_changes(self, **changes) -> "Milestone":
        """Return a validated copy with the given fields replaced."""
        data = self.model_dump(exclude={"duration"})
        data.update(changes)
        return Milestone.model_validate(data)
