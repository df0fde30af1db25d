"""
Drag/resize interaction state machine.

States: IDLE -> TRACKING -> {COMMITTING, CANCELLED} -> IDLE

- begin_drag: pointer-down on an editable milestone starts a session
- update_drag: pointer-move recomputes live bounds and re-runs the checks
- end_drag: pointer-up commits valid live bounds or snaps back
- cancel_drag: escape / pointer-capture loss discards the session

The store is only written in the COMMITTING step, so cancelling or rejecting
a session never needs an undo.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

from timeline_planner.core.config import Settings, get_settings
from timeline_planner.core.exceptions import ForbiddenError
from timeline_planner.core.logger import setup_logger
from timeline_planner.models.enums import CommitOutcome, DragMode, InteractionState
from timeline_planner.models.interaction import CommitResult, ConstraintReport, DragSession
from timeline_planner.models.milestone import Milestone
from timeline_planner.services.constraint_checker import evaluate, raise_for_report
from timeline_planner.services.geometry import TimeMapper
from timeline_planner.services.milestone_store import MilestoneStore
from timeline_planner.services.persistence import PersistenceDispatcher

logger = setup_logger(__name__)

CommitListener = Callable[[Milestone], None]


def propose_bounds(
    mode: DragMode,
    origin_start: datetime,
    origin_end: datetime,
    delta: timedelta,
    minimum_duration: timedelta,
) -> tuple[datetime, datetime]:
    """
    Derive live bounds for a gesture.

    Resizes never shrink a milestone below `minimum_duration`; a milestone
    that is already shorter than the floor can grow but not shrink further.

    Args:
        mode: Gesture kind
        origin_start: Start at pointer-down
        origin_end: End at pointer-down
        delta: Snapped time delta of the pointer
        minimum_duration: Resize floor

    Returns:
        Tuple of (live_start, live_end)
    """
    if mode == DragMode.MOVE:
        return origin_start + delta, origin_end + delta
    if mode == DragMode.RESIZE_START:
        limit = max(origin_end - minimum_duration, origin_start)
        return min(origin_start + delta, limit), origin_end
    limit = min(origin_start + minimum_duration, origin_end)
    return origin_start, max(origin_end + delta, limit)


class InteractionStateMachine:
    """Owns the single active drag/resize session."""

    def __init__(
        self,
        store: MilestoneStore,
        mapper: TimeMapper,
        dispatcher: Optional[PersistenceDispatcher] = None,
        minimum_duration: Optional[timedelta] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize state machine.

        Args:
            store: Milestone store read during tracking and written on commit
            mapper: Mapper used to turn pointer deltas into time deltas
            dispatcher: Persistence dispatcher notified on commit (None = local only)
            minimum_duration: Resize floor; defaults to the configured value
            settings: Optional settings (for testing)
        """
        settings = settings or get_settings()
        self._store = store
        self._dispatcher = dispatcher
        self.mapper = mapper
        self.minimum_duration = minimum_duration if minimum_duration is not None else settings.minimum_duration
        self._state = InteractionState.IDLE
        self._session: Optional[DragSession] = None
        self._commit_listeners: list[CommitListener] = []

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def session(self) -> Optional[DragSession]:
        return self._session

    @property
    def is_tracking(self) -> bool:
        return self._state == InteractionState.TRACKING

    def on_commit(self, listener: CommitListener) -> None:
        self._commit_listeners.append(listener)

    def begin_drag(self, milestone_id: str, mode: DragMode, pointer_x: float) -> Optional[DragSession]:
        """
        Start a gesture on a milestone.

        Args:
            milestone_id: Target milestone
            mode: move, resize-start or resize-end
            pointer_x: Pointer x at pointer-down

        Returns:
            The new session, or None if another session is still active

        Raises:
            NotFoundError: If the milestone does not exist
            ForbiddenError: If the milestone is not editable
        """
        if self._state == InteractionState.TRACKING:
            logger.debug(f"Ignoring pointer-down on {milestone_id}: session on {self._session.milestone_id} active")
            return None

        milestone = self._store.require(milestone_id)
        if not milestone.editable:
            raise ForbiddenError(f"Milestone {milestone_id} is not editable")

        self._session = DragSession(
            milestone_id=milestone.id,
            mode=DragMode(mode),
            origin_start=milestone.start,
            origin_end=milestone.end,
            pointer_origin_x=float(pointer_x),
            live_start=milestone.start,
            live_end=milestone.end,
            is_valid=True,
        )
        self._state = InteractionState.TRACKING
        logger.debug(f"Drag started on {milestone_id} ({self._session.mode.value})")
        return self._session

    def update_drag(self, pointer_x: float) -> Optional[DragSession]:
        """
        Track a pointer move.

        The constraint check is advisory here: an invalid position is flagged
        on the session but tracking continues.

        Returns:
            The updated session, or None when idle
        """
        if self._state != InteractionState.TRACKING or self._session is None:
            return None

        session = self._session
        milestone = self._store.get(session.milestone_id)
        if milestone is None:
            logger.warning(f"Milestone {session.milestone_id} disappeared during drag; cancelling")
            self.cancel_drag()
            return None

        delta = self.mapper.delta_to_timedelta(float(pointer_x) - session.pointer_origin_x)
        live_start, live_end = propose_bounds(
            session.mode, session.origin_start, session.origin_end, delta, self.minimum_duration
        )
        report = evaluate(milestone.with_bounds(live_start, live_end), self._store)
        self._session = session.model_copy(
            update={
                "live_start": live_start,
                "live_end": live_end,
                "is_valid": report.is_valid,
                "report": report,
            }
        )
        return self._session

    def end_drag(self, raise_on_reject: bool = False) -> CommitResult:
        """
        Resolve the gesture on pointer-up.

        Valid live bounds are written to the store and handed to the
        persistence dispatcher. Invalid bounds are never committed: the
        session is cancelled and the milestone keeps its original bounds.

        Args:
            raise_on_reject: Raise the blocking error instead of returning REJECTED

        Returns:
            CommitResult describing the outcome

        Raises:
            OverlapConflict: If rejected for a sibling overlap and raise_on_reject is set
            DependencyOrderViolation: If rejected for ordering and raise_on_reject is set
        """
        if self._state != InteractionState.TRACKING or self._session is None:
            return CommitResult(outcome=CommitOutcome.UNCHANGED)

        session = self._session
        self._state = InteractionState.COMMITTING
        try:
            current = self._store.get(session.milestone_id)
            if current is None:
                logger.warning(f"Milestone {session.milestone_id} disappeared before commit")
                return CommitResult(outcome=CommitOutcome.CANCELLED, milestone_id=session.milestone_id)

            if not session.has_changed:
                return CommitResult(
                    outcome=CommitOutcome.UNCHANGED, milestone_id=current.id, milestone=current
                )

            report = evaluate(current.with_bounds(session.live_start, session.live_end), self._store)
            if not report.is_valid:
                logger.info(
                    f"Commit rejected for {current.id}: conflicts={list(report.conflicts)} "
                    f"violations={list(report.violations) + list(report.dependent_violations)}"
                )
                self._state = InteractionState.CANCELLED
                if raise_on_reject:
                    raise_for_report(current.id, report)
                return CommitResult(
                    outcome=CommitOutcome.REJECTED,
                    milestone_id=current.id,
                    milestone=current,
                    report=report,
                )

            committed = self._store.update_bounds(current.id, session.live_start, session.live_end)
            logger.info(
                f"Committed {committed.id}: {committed.start.isoformat()}..{committed.end.isoformat()} "
                f"({committed.duration}d)"
            )
            if self._dispatcher is not None:
                self._dispatcher.dispatch_save(committed, session.origin_start, session.origin_end)
            for listener in list(self._commit_listeners):
                listener(committed)
            return CommitResult(
                outcome=CommitOutcome.COMMITTED,
                milestone_id=committed.id,
                milestone=committed,
                report=ConstraintReport(),
            )
        finally:
            self._session = None
            self._state = InteractionState.IDLE

    def cancel_drag(self) -> CommitResult:
        """Discard the active session without touching the store."""
        if self._session is None:
            return CommitResult(outcome=CommitOutcome.UNCHANGED)
        session = self._session
        self._state = InteractionState.CANCELLED
        self._session = None
        self._state = InteractionState.IDLE
        logger.debug(f"Drag cancelled on {session.milestone_id}")
        return CommitResult(
            outcome=CommitOutcome.CANCELLED,
            milestone_id=session.milestone_id,
            milestone=self._store.get(session.milestone_id),
        )
