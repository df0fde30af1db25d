"""
Optimistic persistence for committed milestone edits.

The store is updated first; the save collaborator is called in the background.
When the save fails, the store entry is rolled back to its pre-drag bounds and
a PersistenceFailure is delivered to error listeners. Saves of the same
milestone are chained, so the repository sees them in commit order.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Optional

from timeline_planner.core.exceptions import PersistenceFailure
from timeline_planner.core.logger import setup_logger
from timeline_planner.interfaces.milestone_repository import IMilestoneRepository
from timeline_planner.models.milestone import Milestone
from timeline_planner.services.milestone_store import MilestoneStore

logger = setup_logger(__name__)

ErrorListener = Callable[[PersistenceFailure], None]


class PersistenceDispatcher:
    """Fire-and-forget saves with rollback on failure."""

    def __init__(self, repository: IMilestoneRepository, store: MilestoneStore):
        self._repository = repository
        self._store = store
        self._pending: set[asyncio.Task] = set()
        # Last scheduled save per milestone; a newer save waits for it
        self._tails: dict[str, asyncio.Task] = {}
        self._error_listeners: list[ErrorListener] = []

    @property
    def pending(self) -> int:
        return len(self._pending)

    def on_error(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    def dispatch_save(
        self,
        milestone: Milestone,
        origin_start: Optional[datetime] = None,
        origin_end: Optional[datetime] = None,
    ) -> Optional[asyncio.Task]:
        """
        Schedule a save of a locally committed milestone.

        Args:
            milestone: Milestone as committed to the store
            origin_start: Bounds to restore if the save fails (None = no rollback)
            origin_end: Bounds to restore if the save fails

        Returns:
            The scheduled task, or None when no event loop is running and the
            save was completed inline
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self._save(milestone, origin_start, origin_end))
            return None
        previous = self._tails.get(milestone.id)
        task = loop.create_task(self._save(milestone, origin_start, origin_end, after=previous))
        self._tails[milestone.id] = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        task.add_done_callback(lambda done: self._release_tail(milestone.id, done))
        return task

    async def drain(self) -> None:
        """Wait for every outstanding save to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _save(
        self,
        milestone: Milestone,
        origin_start: Optional[datetime],
        origin_end: Optional[datetime],
        after: Optional[asyncio.Task] = None,
    ) -> None:
        if after is not None:
            # Saves of one milestone reach the repository in commit order
            await asyncio.wait({after})
        try:
            await self._repository.save_milestone(milestone)
            logger.debug(f"Persisted milestone {milestone.id}")
        except Exception as e:
            logger.error(f"Failed to persist milestone {milestone.id}: {e}")
            if origin_start is not None and origin_end is not None:
                self._rollback(milestone, origin_start, origin_end)
            self._notify(
                PersistenceFailure(
                    f"Failed to save milestone {milestone.id}",
                    milestone=milestone,
                    origin_start=origin_start,
                    origin_end=origin_end,
                    reason=str(e),
                )
            )

    def _release_tail(self, milestone_id: str, task: asyncio.Task) -> None:
        if self._tails.get(milestone_id) is task:
            del self._tails[milestone_id]

    def _rollback(self, milestone: Milestone, origin_start: datetime, origin_end: datetime) -> None:
        current = self._store.get(milestone.id)
        if current is None:
            logger.warning(f"Rollback skipped: milestone {milestone.id} no longer exists")
            return
        if (current.start, current.end) != (milestone.start, milestone.end):
            # A later edit already replaced the failed one
            logger.warning(f"Rollback skipped: milestone {milestone.id} changed since commit")
            return
        self._store.update_bounds(milestone.id, origin_start, origin_end)
        logger.info(f"Rolled back milestone {milestone.id} to {origin_start.isoformat()}..{origin_end.isoformat()}")

    def _notify(self, failure: PersistenceFailure) -> None:
        for listener in list(self._error_listeners):
            listener(failure)
