"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM model backing the reference
milestone collaborator and the async engine/session helpers.
"""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from timeline_planner.core.config import get_settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ===========================================
# ORM Models
# ===========================================


class MilestoneORM(Base):
    """Milestone ORM model."""

    __tablename__ = "milestones"

    id = Column(String(255), primary_key=True)
    project_id = Column(String(255), nullable=False, index=True)
    parent_id = Column(String(255), nullable=True, index=True)
    title = Column(String(200), nullable=False)
    start = Column("start_at", DateTime(timezone=True), nullable=False)
    end = Column("end_at", DateTime(timezone=True), nullable=False)
    dependencies = Column(JSON, nullable=False, default=list)
    indent = Column(Integer, default=0)
    completed = Column(Integer, default=0)
    editable = Column(Boolean, default=True)
    deletable = Column(Boolean, default=True)
    is_expanded = Column(Boolean, default=True)
    color = Column(String(32), nullable=True)
    key = Column(String(100), nullable=True)
    project_name = Column(String(200), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


def get_engine():
    """Get async engine instance."""
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def get_session_factory(engine=None):
    """Get async session factory."""
    engine = engine or get_engine()
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine=None):
    """Initialize database tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
