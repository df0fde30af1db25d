"""
Layout orchestration.

One render pass:
1. Resolve visible milestones (every ancestor expanded) in tree order
2. Map each to a bar rectangle, using live bounds for the dragged milestone
3. Keep the bars that intersect the viewport
4. Route connectors between the kept bars

Rendering is a pure function of the store, the session and the arguments.
Recompute requests from bursts of events go through LayoutScheduler, which
runs once after the last request (trailing edge).
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Optional

from timeline_planner.core.config import Settings, get_settings
from timeline_planner.core.logger import setup_logger
from timeline_planner.models.enums import TimeScale
from timeline_planner.models.interaction import DragSession
from timeline_planner.models.layout import PositionedMilestone, Rect, RenderResult, ViewportBounds
from timeline_planner.services.connector_router import route_connectors
from timeline_planner.services.geometry import TimeMapper, chart_range
from timeline_planner.services.milestone_store import MilestoneStore

logger = setup_logger(__name__)


class LayoutEngine:
    """Turns store and session state into positioned bars and connectors."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def build_mapper(
        self,
        store: MilestoneStore,
        project_id: str,
        time_scale: TimeScale,
        pixels_per_unit: Optional[float] = None,
        anchor: Optional[datetime] = None,
    ) -> TimeMapper:
        """Mapper anchored at the padded chart origin of the committed milestones."""
        origin, _ = chart_range(store.list_by_project(project_id), settings=self.settings, anchor=anchor)
        return TimeMapper(origin, time_scale, pixels_per_unit, settings=self.settings)

    def render(
        self,
        store: MilestoneStore,
        project_id: str,
        viewport: ViewportBounds,
        time_scale: TimeScale,
        session: Optional[DragSession] = None,
        pixels_per_unit: Optional[float] = None,
        anchor: Optional[datetime] = None,
    ) -> RenderResult:
        """
        Run one render pass.

        Args:
            store: Milestone store
            project_id: Project to draw
            viewport: Visible window in content pixels
            time_scale: Zoom granularity
            session: Active drag session; its milestone is drawn with live bounds
            pixels_per_unit: Density override
            anchor: First chart day of a project with no milestones. When it is
                omitted an empty project is drawn from today, which is the one
                case where the result depends on the clock

        Returns:
            RenderResult with rendered bars, connectors and header ticks
        """
        settings = self.settings
        committed = store.list_by_project(project_id)
        origin, range_end = chart_range(committed, settings=settings, anchor=anchor)
        mapper = TimeMapper(origin, time_scale, pixels_per_unit, settings=settings)
        visible = store.list_by_project(project_id, visible_only=True)

        bar_offset = (settings.ROW_HEIGHT - settings.BAR_HEIGHT) / 2
        positioned: list[PositionedMilestone] = []
        positions: dict[str, Rect] = {}
        for row, milestone in enumerate(visible):
            is_live = session is not None and session.milestone_id == milestone.id
            start = session.live_start if is_live else milestone.start
            end = session.live_end if is_live else milestone.end
            rect = Rect(
                x=mapper.to_x(start),
                y=row * settings.ROW_HEIGHT + bar_offset,
                width=max(mapper.width(start, end), settings.MIN_BAR_WIDTH),
                height=settings.BAR_HEIGHT,
            )
            if not rect.intersects(viewport):
                continue
            positions[milestone.id] = rect
            positioned.append(
                PositionedMilestone(
                    milestone_id=milestone.id,
                    title=milestone.title,
                    row=row,
                    indent=milestone.indent,
                    rect=rect,
                    start=start,
                    end=end,
                    completed=milestone.completed,
                    color=milestone.color,
                    has_children=bool(store.children(milestone.id)),
                    is_expanded=milestone.is_expanded,
                    is_live=is_live,
                    has_conflict=is_live and not session.is_valid,
                )
            )

        connectors = route_connectors(visible, positions, settings=settings)
        ticks = mapper.ticks(mapper.to_instant(viewport.x), mapper.to_instant(viewport.right))
        logger.debug(
            f"Rendered project {project_id}: {len(positioned)}/{len(visible)} bars, {len(connectors)} connectors"
        )
        return RenderResult(
            time_scale=mapper.time_scale,
            origin=origin,
            viewport=viewport,
            positioned_milestones=tuple(positioned),
            connector_paths=tuple(connectors),
            ticks=tuple(ticks),
            content_width=mapper.to_x(range_end),
            content_height=len(visible) * settings.ROW_HEIGHT,
            session=session,
        )


class LayoutScheduler:
    """
    Trailing-edge debounce for layout recomputes.

    Every request restarts the timer; the callback runs once the requests stop
    for `delay_ms`. Without a running event loop the callback runs inline.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        delay_ms: Optional[int] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self._callback = callback
        self.delay = (settings.LAYOUT_DEBOUNCE_MS if delay_ms is None else delay_ms) / 1000
        self._handle: Optional[asyncio.TimerHandle] = None
        self.runs = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def request(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._fire()
            return
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def flush(self) -> None:
        """Run a pending recompute now."""
        if self._handle is None:
            return
        self._handle.cancel()
        self._fire()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self.runs += 1
        self._callback()
