"""
Timeline planner service.

Composes the milestone store, constraint checks, drag/resize interaction,
layout and persistence into the surface a host view talks to:
- Project loading and template seeding
- Pointer gestures (begin/update/end/cancel)
- Layout-affecting events (time scale, viewport, expansion) with a
  debounced recompute delivered to layout listeners
- Direct edits and deletes persisted through the milestone repository
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import uuid4

from timeline_planner.core.config import Settings, get_settings
from timeline_planner.core.exceptions import (
    ForbiddenError,
    HasDependents,
    PersistenceFailure,
    ValidationError,
)
from timeline_planner.core.logger import logger
from timeline_planner.interfaces.milestone_repository import IMilestoneRepository
from timeline_planner.models.enums import DragMode, InteractionState, TimeScale
from timeline_planner.models.interaction import CommitResult, DragSession
from timeline_planner.models.layout import RenderResult, ViewportBounds
from timeline_planner.models.milestone import Milestone, MilestoneCreate, MilestoneUpdate
from timeline_planner.services.constraint_checker import evaluate, raise_for_report
from timeline_planner.services.interaction import InteractionStateMachine
from timeline_planner.services.layout import LayoutEngine, LayoutScheduler
from timeline_planner.services.milestone_store import MilestoneStore
from timeline_planner.services.milestone_templates import generate_standard_milestones
from timeline_planner.services.persistence import ErrorListener, PersistenceDispatcher
from timeline_planner.utils.datetime_utils import now_utc, start_of_day

LayoutListener = Callable[[RenderResult], None]

# Edits touching any of these are re-checked for overlap and dependency order
CONSTRAINED_FIELDS = ("start", "end", "parent_id", "dependencies")


class TimelinePlanner:
    """Planner for one active project at a time."""

    def __init__(
        self,
        repository: IMilestoneRepository,
        settings: Optional[Settings] = None,
        store: Optional[MilestoneStore] = None,
    ):
        """
        Initialize planner.

        Args:
            repository: Save/load/delete collaborator
            settings: Optional settings (for testing)
            store: Optional pre-populated store
        """
        self.settings = settings or get_settings()
        self._repository = repository
        self.store = store if store is not None else MilestoneStore()
        self.dispatcher = PersistenceDispatcher(repository, self.store)
        self.layout = LayoutEngine(self.settings)

        self.project_id: Optional[str] = None
        self.time_scale: TimeScale = self.settings.DEFAULT_TIME_SCALE
        self.pixels_per_unit: Optional[float] = None
        self.viewport: Optional[ViewportBounds] = None
        self.last_render: Optional[RenderResult] = None
        # First chart day while the project has no milestones; fixed at load
        self.anchor: Optional[datetime] = None

        self._interaction = InteractionStateMachine(
            self.store,
            self.layout.build_mapper(self.store, "", self.time_scale),
            dispatcher=self.dispatcher,
            settings=self.settings,
        )
        self._scheduler = LayoutScheduler(self._recompute, settings=self.settings)
        self._layout_listeners: list[LayoutListener] = []

        # Rolled-back commits change what is on screen
        self.dispatcher.on_error(lambda failure: self.request_layout())

    # ===========================================
    # Listeners and state
    # ===========================================

    @property
    def state(self) -> InteractionState:
        return self._interaction.state

    @property
    def session(self) -> Optional[DragSession]:
        return self._interaction.session

    @property
    def minimum_duration(self) -> timedelta:
        """Resize floor applied to gestures."""
        return self._interaction.minimum_duration

    @minimum_duration.setter
    def minimum_duration(self, value: timedelta) -> None:
        if value < timedelta(0):
            raise ValidationError("minimum_duration must not be negative")
        self._interaction.minimum_duration = value

    def on_layout(self, listener: LayoutListener) -> None:
        self._layout_listeners.append(listener)

    def on_error(self, listener: ErrorListener) -> None:
        """Receive PersistenceFailure notices for rolled-back commits."""
        self.dispatcher.on_error(listener)

    # ===========================================
    # Loading
    # ===========================================

    async def load_project(self, project_id: str) -> list[Milestone]:
        """
        Load a project's milestones from the repository into the store.

        Returns:
            list[Milestone]: Stored milestones in display order
        """
        self._interaction.cancel_drag()
        loaded = [m for m in await self._repository.load_milestones(project_id) if m.project_id == project_id]
        if loaded:
            self.store.load(loaded)
        else:
            self.store.clear(project_id)
        self.project_id = project_id
        self.anchor = start_of_day(now_utc())
        logger.info(f"Loaded project {project_id} ({len(loaded)} milestones)")
        self.request_layout()
        return self.store.list_by_project(project_id)

    async def apply_template(
        self,
        project_id: str,
        project_name: Optional[str],
        start: datetime,
    ) -> list[Milestone]:
        """
        Seed an empty project with the standard milestone template.

        Raises:
            ValidationError: If the project already has milestones
            PersistenceFailure: If a save fails; the project is left empty locally
        """
        if self.store.list_by_project(project_id):
            raise ValidationError(f"Project {project_id} already has milestones")

        generated = generate_standard_milestones(project_id, project_name, start)
        stored = self.store.load(generated)
        for milestone in stored:
            try:
                await self._repository.save_milestone(milestone)
            except Exception as e:
                logger.error(f"Template save failed for project {project_id} at {milestone.id}: {e}")
                self.store.clear(project_id)
                self.request_layout()
                raise PersistenceFailure(
                    f"Failed to save template milestone {milestone.id}",
                    milestone=milestone,
                    reason=str(e),
                ) from e

        if self.project_id is None:
            self.project_id = project_id
            self.anchor = start_of_day(start)
        self.request_layout()
        return stored

    # ===========================================
    # Rendering
    # ===========================================

    def render(
        self,
        viewport: Optional[ViewportBounds] = None,
        time_scale: Optional[TimeScale] = None,
    ) -> RenderResult:
        """
        Compute the current layout without touching any state.

        Args:
            viewport: Visible window (defaults to the last resize_viewport value)
            time_scale: Zoom level (defaults to the current scale)

        Raises:
            ValidationError: If no project is loaded or no viewport is known
        """
        if self.project_id is None:
            raise ValidationError("No project loaded")
        viewport = viewport or self.viewport
        if viewport is None:
            raise ValidationError("Viewport is not set")
        return self.layout.render(
            self.store,
            self.project_id,
            viewport,
            TimeScale(time_scale) if time_scale is not None else self.time_scale,
            session=self._interaction.session,
            pixels_per_unit=self.pixels_per_unit,
            anchor=self.anchor,
        )

    def request_layout(self) -> None:
        self._scheduler.request()

    def flush_layout(self) -> None:
        """Run a pending debounced recompute immediately."""
        self._scheduler.flush()

    def _recompute(self) -> None:
        if self.project_id is None or self.viewport is None:
            return
        result = self.render()
        self.last_render = result
        for listener in list(self._layout_listeners):
            listener(result)

    # ===========================================
    # Layout-affecting events
    # ===========================================

    def set_time_scale(self, time_scale: TimeScale, pixels_per_unit: Optional[float] = None) -> None:
        """Change zoom. Any gesture in progress is cancelled."""
        time_scale = TimeScale(time_scale)
        if time_scale == self.time_scale and pixels_per_unit == self.pixels_per_unit:
            return
        if self._interaction.is_tracking:
            self._interaction.cancel_drag()
        self.time_scale = time_scale
        self.pixels_per_unit = pixels_per_unit
        self.request_layout()

    def resize_viewport(self, viewport: ViewportBounds) -> None:
        self.viewport = viewport
        self.request_layout()

    def toggle_expansion(self, milestone_id: str) -> Milestone:
        """Show or hide a milestone's children. A gesture on a milestone that becomes hidden is cancelled."""
        milestone = self.store.toggle_expanded(milestone_id)
        session = self._interaction.session
        if session is not None and not self.store.is_visible(session.milestone_id):
            self._interaction.cancel_drag()
        self.request_layout()
        return milestone

    # ===========================================
    # Gestures
    # ===========================================

    def begin_drag(self, milestone_id: str, mode: DragMode, pointer_x: float) -> Optional[DragSession]:
        if not self._interaction.is_tracking:
            # Pointer deltas are measured against the mapper of the frame the gesture started on
            self._interaction.mapper = self.layout.build_mapper(
                self.store,
                self.store.require(milestone_id).project_id,
                self.time_scale,
                self.pixels_per_unit,
                self.anchor,
            )
        session = self._interaction.begin_drag(milestone_id, mode, pointer_x)
        if session is not None:
            self.request_layout()
        return session

    def update_drag(self, pointer_x: float) -> Optional[DragSession]:
        session = self._interaction.update_drag(pointer_x)
        self.request_layout()
        return session

    def end_drag(self, raise_on_reject: bool = False) -> CommitResult:
        try:
            return self._interaction.end_drag(raise_on_reject=raise_on_reject)
        finally:
            self.request_layout()

    def cancel_drag(self) -> CommitResult:
        result = self._interaction.cancel_drag()
        self.request_layout()
        return result

    # ===========================================
    # Direct edits
    # ===========================================

    async def create_milestone(self, data: MilestoneCreate) -> Milestone:
        """Create a milestone, assigning an ID when none is given."""
        milestone = Milestone(id=data.id or str(uuid4()), **data.model_dump(exclude={"id"}))
        if milestone.id in self.store:
            raise ValidationError(f"Milestone {milestone.id} already exists")
        return await self.upsert_milestone(milestone)

    async def update_milestone(self, milestone_id: str, update: MilestoneUpdate) -> Milestone:
        """Apply a partial edit to an existing milestone."""
        current = self.store.require(milestone_id)
        changes = update.model_dump(exclude_unset=True)
        if not changes:
            return current
        return await self.upsert_milestone(current.with_changes(**changes))

    async def upsert_milestone(self, milestone: Milestone) -> Milestone:
        """
        Store a milestone and persist it.

        Args:
            milestone: Milestone to insert or replace

        Returns:
            Milestone: Stored milestone

        Raises:
            CycleDetected / NotFoundError / ValidationError: If the store rejects the edges
            OverlapConflict / DependencyOrderViolation: If the bounds break a constraint
            PersistenceFailure: If the save fails; the store is restored
        """
        previous = self.store.get(milestone.id)
        if previous is None or any(
            getattr(previous, field) != getattr(milestone, field) for field in CONSTRAINED_FIELDS
        ):
            raise_for_report(milestone.id, evaluate(milestone, self.store))

        stored = self.store.upsert(milestone)
        try:
            await self._repository.save_milestone(stored)
        except Exception as e:
            logger.error(f"Failed to persist milestone {stored.id}: {e}")
            if previous is None:
                self.store.remove(stored.id, force=True)
            else:
                self.store.upsert(previous)
            self.request_layout()
            raise PersistenceFailure(
                f"Failed to save milestone {stored.id}",
                milestone=stored,
                origin_start=previous.start if previous else None,
                origin_end=previous.end if previous else None,
                reason=str(e),
            ) from e

        self.request_layout()
        return stored

    async def delete_milestone(self, milestone_id: str, force: bool = False) -> list[Milestone]:
        """
        Delete a milestone remotely, then locally.

        Args:
            milestone_id: Milestone to delete
            force: Delete even when other milestones depend on it

        Returns:
            list[Milestone]: Other milestones changed by the removal (re-saved in the background)

        Raises:
            NotFoundError: If the milestone does not exist
            ForbiddenError: If the milestone is not deletable
            HasDependents: If dependents exist and force is False
            PersistenceFailure: If the repository delete fails; the store is unchanged
        """
        milestone = self.store.require(milestone_id)
        if not milestone.deletable:
            raise ForbiddenError(f"Milestone {milestone_id} is not deletable")
        dependents = self.store.dependents(milestone_id)
        if dependents and not force:
            raise HasDependents(milestone_id, dependents)

        session = self._interaction.session
        if session is not None and session.milestone_id == milestone_id:
            self._interaction.cancel_drag()

        try:
            deleted = await self._repository.delete_milestone(milestone_id)
        except Exception as e:
            logger.error(f"Failed to delete milestone {milestone_id}: {e}")
            raise PersistenceFailure(
                f"Failed to delete milestone {milestone_id}",
                milestone=milestone,
                reason=str(e),
            ) from e
        if not deleted:
            logger.warning(f"Milestone {milestone_id} was not found in the repository")

        changed = self.store.remove(milestone_id, force=force)
        for updated in changed:
            self.dispatcher.dispatch_save(updated)
        self.request_layout()
        return changed

    async def drain(self) -> None:
        """Wait for background saves to settle."""
        await self.dispatcher.drain()
