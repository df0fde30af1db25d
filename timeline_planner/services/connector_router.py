"""
Dependency connector routing.

Connectors run from the right edge of a dependency's bar to the left edge of
the dependent's bar as a cubic curve with horizontal tangents at both ends.
The whole edge set is recomputed on every call; edges whose endpoints are not
currently rendered are omitted.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from timeline_planner.core.config import Settings, get_settings
from timeline_planner.models.layout import ConnectorPath, Point, Rect
from timeline_planner.models.milestone import Milestone


def control_offset(source_x: float, target_x: float, max_offset: float = 80.0, min_offset: float = 20.0) -> float:
    """Horizontal control-point offset: half the gap, clamped to [min_offset, max_offset]."""
    return min(max_offset, max((target_x - source_x) / 2, min_offset))


def route_connector(
    source_id: str,
    source_rect: Rect,
    target_id: str,
    target_rect: Rect,
    max_offset: float = 80.0,
    min_offset: float = 20.0,
) -> ConnectorPath:
    """Build the curve between two rendered bars."""
    sx, sy = source_rect.right, source_rect.center_y
    tx, ty = target_rect.x, target_rect.center_y
    offset = control_offset(sx, tx, max_offset, min_offset)
    return ConnectorPath(
        source_id=source_id,
        target_id=target_id,
        start=Point(x=sx, y=sy),
        control1=Point(x=sx + offset, y=sy),
        control2=Point(x=tx - offset, y=ty),
        end=Point(x=tx, y=ty),
    )


def route_connectors(
    milestones: Iterable[Milestone],
    positions: Mapping[str, Rect],
    settings: Optional[Settings] = None,
) -> list[ConnectorPath]:
    """
    Compute connectors for every dependency edge with both endpoints rendered.

    Args:
        milestones: Milestones whose dependency sets define the edges
        positions: Rendered bar rectangles by milestone ID

    Returns:
        list[ConnectorPath]: Sorted by (target ID, source ID)
    """
    settings = settings or get_settings()
    paths: list[ConnectorPath] = []
    for milestone in sorted(milestones, key=lambda m: m.id):
        if not milestone.dependencies:
            continue
        target_rect = positions.get(milestone.id)
        if target_rect is None:
            continue
        for dep_id in sorted(milestone.dependencies):
            source_rect = positions.get(dep_id)
            if source_rect is None:
                continue
            paths.append(
                route_connector(
                    dep_id,
                    source_rect,
                    milestone.id,
                    target_rect,
                    max_offset=settings.CONNECTOR_MAX_OFFSET,
                    min_offset=settings.CONNECTOR_MIN_OFFSET,
                )
            )
    return paths
