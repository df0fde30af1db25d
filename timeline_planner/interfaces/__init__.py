"""Abstract interfaces for infrastructure abstraction."""

from timeline_planner.interfaces.milestone_repository import IMilestoneRepository

__all__ = [
    "IMilestoneRepository",
]
