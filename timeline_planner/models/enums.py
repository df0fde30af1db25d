"""
Enum definitions for the timeline planner.

These enums are used across models and services and provide type-safe values.
"""

from enum import Enum


class TimeScale(str, Enum):
    """Timeline zoom granularity."""

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class DragMode(str, Enum):
    """
    Kind of gesture applied to a milestone bar.

    MOVE = body drag, shifts both bounds
    RESIZE_START = left handle, adjusts start only
    RESIZE_END = right handle, adjusts end only
    """

    MOVE = "move"
    RESIZE_START = "resize-start"
    RESIZE_END = "resize-end"


class InteractionState(str, Enum):
    """Drag/resize state machine states."""

    IDLE = "IDLE"
    TRACKING = "TRACKING"
    COMMITTING = "COMMITTING"
    CANCELLED = "CANCELLED"


class CommitOutcome(str, Enum):
    """Result of resolving a drag session."""

    COMMITTED = "COMMITTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    UNCHANGED = "UNCHANGED"
