"""
Milestone repository interface.

Defines the persistence collaborator contract consumed by the planner.
Implementations signal failure by raising; the planner converts that into a
rollback plus a PersistenceFailure notice.
"""

from abc import ABC, abstractmethod

from timeline_planner.models.milestone import Milestone


class IMilestoneRepository(ABC):
    """Interface for milestone persistence operations."""

    @abstractmethod
    async def load_milestones(self, project_id: str) -> list[Milestone]:
        """Load all milestones of a project in display order."""
        pass

    @abstractmethod
    async def save_milestone(self, milestone: Milestone) -> Milestone:
        """Insert or replace a milestone. Raises on failure."""
        pass

    @abstractmethod
    async def delete_milestone(self, milestone_id: str) -> bool:
        """Delete a milestone. Returns True if deleted, False if not found. Raises on failure."""
        pass
