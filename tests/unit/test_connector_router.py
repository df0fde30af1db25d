"""
Unit tests for dependency connector routing.
"""

import pytest

from timeline_planner.models.layout import Point, Rect
from timeline_planner.services.connector_router import control_offset, route_connector, route_connectors


@pytest.mark.parametrize(
    "source_x,target_x,expected",
    [
        (0, 400, 80.0),  # long gap clamps to the maximum
        (0, 100, 50.0),
        (0, 10, 20.0),  # short gap clamps to the minimum
        (100, 50, 20.0),  # backwards edge
    ],
)
def test_control_offset(source_x, target_x, expected):
    assert control_offset(source_x, target_x) == expected


def test_route_connector_uses_bar_edges():
    source = Rect(x=0, y=8, width=100, height=24)
    target = Rect(x=200, y=48, width=50, height=24)

    path = route_connector("a", source, "b", target)

    assert path.start == Point(x=100, y=20)
    assert path.control1 == Point(x=150, y=20)
    assert path.control2 == Point(x=150, y=60)
    assert path.end == Point(x=200, y=60)
    assert path.svg_path() == "M 100 20 C 150 20, 150 60, 200 60"


def test_route_connectors_skips_missing_endpoints(make_milestone, settings):
    milestones = [
        make_milestone("a", 1, 5),
        make_milestone("b", 6, 8, dependencies=("a",)),
        make_milestone("c", 9, 10, dependencies=("a", "b")),
    ]
    positions = {
        "a": Rect(x=0, y=8, width=80, height=24),
        "c": Rect(x=160, y=88, width=20, height=24),
    }

    paths = route_connectors(milestones, positions, settings=settings)

    assert [(p.source_id, p.target_id) for p in paths] == [("a", "c")]


def test_route_connectors_order(make_milestone, settings):
    milestones = [
        make_milestone("c", 9, 10, dependencies=("b", "a")),
        make_milestone("b", 6, 8, dependencies=("a",)),
        make_milestone("a", 1, 5),
    ]
    positions = {m.id: Rect(x=i * 100, y=i * 40, width=50, height=24) for i, m in enumerate(milestones)}

    paths = route_connectors(milestones, positions, settings=settings)

    assert [(p.source_id, p.target_id) for p in paths] == [("a", "b"), ("a", "c"), ("b", "c")]
