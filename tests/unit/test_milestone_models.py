"""
Unit tests for milestone and layout models.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from timeline_planner.models.layout import ConnectorPath, Point, Rect, ViewportBounds
from timeline_planner.models.milestone import Milestone, MilestoneUpdate


def test_duration_is_derived_from_bounds(make_milestone):
    milestone = make_milestone("a", 1, 5)

    assert milestone.duration == 4
    assert milestone.model_dump()["duration"] == 4


def test_naive_datetimes_are_treated_as_utc():
    milestone = Milestone(
        id="a",
        title="A",
        start=datetime(2024, 1, 1),
        end=datetime(2024, 1, 3),
        project_id="p1",
    )

    assert milestone.start.tzinfo == timezone.utc
    assert milestone.end == datetime(2024, 1, 3, tzinfo=timezone.utc)


def test_start_after_end_rejected():
    with pytest.raises(ValidationError):
        Milestone(
            id="a",
            title="A",
            start=datetime(2024, 1, 5, tzinfo=timezone.utc),
            end=datetime(2024, 1, 1, tzinfo=timezone.utc),
            project_id="p1",
        )


def test_zero_length_milestone_allowed(make_milestone):
    milestone = make_milestone("notice", 3, 3)

    assert milestone.duration == 0


def test_completed_out_of_range_rejected(make_milestone):
    with pytest.raises(ValidationError):
        make_milestone("a", 1, 5, completed=120)


def test_milestone_is_frozen(make_milestone, day):
    milestone = make_milestone("a", 1, 5)

    with pytest.raises(ValidationError):
        milestone.start = day(2)


def test_with_bounds_returns_validated_copy(make_milestone, day):
    milestone = make_milestone("a", 1, 5)

    moved = milestone.with_bounds(day(3), day(9))

    assert moved.start == day(3)
    assert moved.duration == 6
    assert milestone.start == day(1)
    with pytest.raises(ValidationError):
        milestone.with_bounds(day(9), day(3))


def test_update_schema_tracks_only_set_fields():
    update = MilestoneUpdate(title="Renamed", completed=50)

    assert update.model_dump(exclude_unset=True) == {"title": "Renamed", "completed": 50}


def test_rect_intersects_viewport():
    viewport = ViewportBounds(x=100, y=0, width=200, height=100)

    assert Rect(x=50, y=10, width=60, height=24).intersects(viewport)
    assert not Rect(x=0, y=10, width=60, height=24).intersects(viewport)
    assert not Rect(x=150, y=200, width=60, height=24).intersects(viewport)


def test_viewport_requires_positive_size():
    with pytest.raises(ValidationError):
        ViewportBounds(width=0, height=100)


def test_connector_svg_path():
    path = ConnectorPath(
        source_id="a",
        target_id="b",
        start=Point(x=100, y=20),
        control1=Point(x=150, y=20),
        control2=Point(x=150, y=60),
        end=Point(x=200, y=60),
    )

    assert path.svg_path() == "M 100 20 C 150 20, 150 60, 200 60"
