"""
Unit tests for time/geometry mapping.
"""

from datetime import datetime, timedelta, timezone

import pytest

from timeline_planner.models.enums import TimeScale
from timeline_planner.services.geometry import TimeMapper, chart_range, unit_length


@pytest.fixture
def mapper(settings, day):
    return TimeMapper(day(1), TimeScale.DAY, settings=settings)


class TestTimeMapper:
    def test_default_density_comes_from_settings(self, mapper):
        assert mapper.pixels_per_unit == 20.0

    def test_to_x_and_back(self, mapper, day):
        assert mapper.to_x(day(4)) == 60.0
        assert mapper.to_instant(60.0) == day(4)
        assert mapper.to_instant(mapper.to_x(day(17))) == day(17)

    def test_instants_before_origin_map_to_negative_x(self, mapper, day):
        assert mapper.to_x(day(1) - timedelta(days=2)) == -40.0

    def test_width(self, mapper, day):
        assert mapper.width(day(1), day(5)) == 80.0

    @pytest.mark.parametrize(
        "dx,expected_days",
        [(0, 0), (9, 0), (10, 1), (29, 1), (30, 2), (-10, -1), (-29, -1), (-30, -2)],
    )
    def test_delta_snaps_half_away_from_zero(self, mapper, dx, expected_days):
        assert mapper.delta_to_timedelta(dx) == timedelta(days=expected_days)

    def test_unsnapped_delta(self, mapper):
        assert mapper.delta_to_timedelta(10, snap=False) == timedelta(hours=12)

    def test_snap_instant(self, mapper, day):
        assert mapper.snap(day(3) + timedelta(hours=13)) == day(4)
        assert mapper.snap(day(3) + timedelta(hours=11)) == day(3)

    def test_month_is_fixed_thirty_days(self, settings, day):
        mapper = TimeMapper(day(1), TimeScale.MONTH, settings=settings)

        assert unit_length(TimeScale.MONTH) == timedelta(days=30)
        assert mapper.to_x(day(31)) == 120.0

    def test_density_override(self, day):
        mapper = TimeMapper(day(1), TimeScale.HOUR, pixels_per_unit=10)

        assert mapper.to_x(day(2)) == 240.0

    def test_non_positive_density_rejected(self, day):
        with pytest.raises(ValueError):
            TimeMapper(day(1), TimeScale.DAY, pixels_per_unit=0)


class TestTicks:
    def test_day_ticks_flag_weekends_and_mondays(self, mapper):
        saturday = datetime(2024, 1, 6, tzinfo=timezone.utc)
        monday = datetime(2024, 1, 8, tzinfo=timezone.utc)

        ticks = mapper.ticks(saturday, monday)

        assert [t.label for t in ticks] == ["6", "7", "8"]
        assert [t.is_weekend for t in ticks] == [True, True, False]
        assert [t.is_major for t in ticks] == [False, False, True]
        assert ticks[0].x == 100.0

    def test_ticks_start_at_or_before_window(self, mapper, day):
        ticks = mapper.ticks(day(2) + timedelta(hours=18), day(4))

        assert ticks[0].instant == day(2)
        assert ticks[-1].instant == day(4)

    def test_month_ticks_mark_january(self, settings):
        mapper = TimeMapper(datetime(2023, 12, 2, tzinfo=timezone.utc), TimeScale.MONTH, settings=settings)

        ticks = mapper.ticks(mapper.origin, mapper.origin + timedelta(days=30))

        assert [t.label for t in ticks] == ["Dec 2023", "Jan 2024"]
        assert [t.is_major for t in ticks] == [False, True]


class TestChartRange:
    def test_padded_day_aligned_range(self, settings, make_milestone):
        a = make_milestone("a", 10, 12)
        a = a.with_bounds(a.start + timedelta(hours=12), a.end + timedelta(hours=6))

        origin, end = chart_range([a], settings=settings)

        assert origin == datetime(2024, 1, 5, tzinfo=timezone.utc)
        assert end == datetime(2024, 1, 18, tzinfo=timezone.utc)

    def test_empty_range_covers_sixty_days(self, settings):
        origin, end = chart_range([], settings=settings)

        assert end - origin == timedelta(days=60)
        assert origin.hour == 0

    def test_empty_range_starts_at_anchor_day(self, settings):
        anchor = datetime(2024, 6, 1, 15, 30, tzinfo=timezone.utc)

        origin, end = chart_range([], settings=settings, anchor=anchor)

        assert origin == datetime(2024, 6, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 7, 31, tzinfo=timezone.utc)
