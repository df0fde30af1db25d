"""
Shared fixtures for timeline planner tests.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from timeline_planner.core.config import Settings
from timeline_planner.core.exceptions import InfrastructureError
from timeline_planner.infrastructure.local.database import Base, get_session_factory
from timeline_planner.interfaces.milestone_repository import IMilestoneRepository
from timeline_planner.models.milestone import Milestone

BASE_DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)  # Monday


def _day(n: int) -> datetime:
    """Day n of the test calendar, d1 = 2024-01-01."""
    return BASE_DATE + timedelta(days=n - 1)


class InMemoryMilestoneRepository(IMilestoneRepository):
    """In-memory milestone repository with failure injection."""

    def __init__(self, milestones: Optional[list[Milestone]] = None):
        self.milestones = {m.id: m for m in milestones or []}
        self.saved: list[Milestone] = []
        self.deleted: list[str] = []
        self.fail_saves = False
        self.fail_deletes = False
        self.gate: Optional[asyncio.Event] = None
        self.save_delays: list[float] = []

    async def load_milestones(self, project_id: str) -> list[Milestone]:
        return sorted(
            (m for m in self.milestones.values() if m.project_id == project_id),
            key=lambda m: (m.start, m.id),
        )

    async def save_milestone(self, milestone: Milestone) -> Milestone:
        if self.gate is not None:
            await self.gate.wait()
        if self.save_delays:
            await asyncio.sleep(self.save_delays.pop(0))
        if self.fail_saves:
            raise InfrastructureError("save rejected")
        self.milestones[milestone.id] = milestone
        self.saved.append(milestone)
        return milestone

    async def delete_milestone(self, milestone_id: str) -> bool:
        if self.fail_deletes:
            raise InfrastructureError("delete rejected")
        self.deleted.append(milestone_id)
        return self.milestones.pop(milestone_id, None) is not None


@pytest.fixture
def settings():
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, LAYOUT_DEBOUNCE_MS=10)


@pytest.fixture
def day():
    return _day


@pytest.fixture
def make_milestone():
    """Factory for milestones spanning test-calendar days."""

    def factory(
        milestone_id: str,
        start_day: int,
        end_day: int,
        parent_id: Optional[str] = None,
        dependencies: tuple[str, ...] = (),
        project_id: str = "p1",
        **fields,
    ) -> Milestone:
        return Milestone(
            id=milestone_id,
            title=fields.pop("title", milestone_id.upper()),
            start=_day(start_day),
            end=_day(end_day),
            project_id=project_id,
            parent_id=parent_id,
            dependencies=frozenset(dependencies),
            **fields,
        )

    return factory


@pytest.fixture
def repository():
    return InMemoryMilestoneRepository()


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with the schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return get_session_factory(engine)
