"""
SQLite implementation of the milestone persistence collaborator.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from timeline_planner.core.exceptions import InfrastructureError
from timeline_planner.core.logger import setup_logger
from timeline_planner.infrastructure.local.database import MilestoneORM, get_session_factory
from timeline_planner.interfaces.milestone_repository import IMilestoneRepository
from timeline_planner.models.milestone import Milestone

logger = setup_logger(__name__)

_COLUMNS = (
    "project_id",
    "parent_id",
    "title",
    "start",
    "end",
    "indent",
    "completed",
    "editable",
    "deletable",
    "is_expanded",
    "color",
    "key",
    "project_name",
)


class SqliteMilestoneRepository(IMilestoneRepository):
    """SQLite implementation of milestone repository."""

    def __init__(self, session_factory=None):
        """
        Initialize repository.

        Args:
            session_factory: Optional session factory (for testing)
        """
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: MilestoneORM) -> Milestone:
        """Convert ORM object to Pydantic model."""
        return Milestone.model_validate(orm, from_attributes=True)

    async def load_milestones(self, project_id: str) -> list[Milestone]:
        """Load all milestones of a project ordered by start, then ID."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(MilestoneORM)
                    .where(MilestoneORM.project_id == project_id)
                    .order_by(MilestoneORM.start, MilestoneORM.id)
                )
                return [self._orm_to_model(orm) for orm in result.scalars().all()]
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load milestones for project {project_id}: {e}") from e

    async def save_milestone(self, milestone: Milestone) -> Milestone:
        """Insert or replace a milestone."""
        try:
            async with self._session_factory() as session:
                orm = await session.get(MilestoneORM, milestone.id)
                if orm is None:
                    orm = MilestoneORM(id=milestone.id)
                    session.add(orm)
                for field in _COLUMNS:
                    setattr(orm, field, getattr(milestone, field))
                orm.dependencies = sorted(milestone.dependencies)
                await session.commit()
                await session.refresh(orm)
                logger.debug(f"Saved milestone {milestone.id}")
                return self._orm_to_model(orm)
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to save milestone {milestone.id}: {e}") from e

    async def delete_milestone(self, milestone_id: str) -> bool:
        """Delete a milestone. Returns True if deleted, False if not found."""
        try:
            async with self._session_factory() as session:
                orm = await session.get(MilestoneORM, milestone_id)
                if not orm:
                    return False
                await session.delete(orm)
                await session.commit()
                return True
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to delete milestone {milestone_id}: {e}") from e
