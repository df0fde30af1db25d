"""
Time/geometry mapping between calendar instants and chart pixels.

A TimeMapper is an affine map fixed by (origin, time scale, density). It is
immutable: a zoom or density change builds a new mapper, and every pixel value
computed by the old one must be recomputed.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Iterable, Optional

from timeline_planner.core.config import Settings, get_settings
from timeline_planner.models.enums import TimeScale
from timeline_planner.models.layout import TimelineTick
from timeline_planner.models.milestone import Milestone
from timeline_planner.utils.datetime_utils import ensure_utc, now_utc, start_of_day

# Month is treated as a fixed 30-day unit so the mapping stays affine.
UNIT_LENGTHS: dict[TimeScale, timedelta] = {
    TimeScale.HOUR: timedelta(hours=1),
    TimeScale.DAY: timedelta(days=1),
    TimeScale.WEEK: timedelta(days=7),
    TimeScale.MONTH: timedelta(days=30),
}

DEFAULT_EMPTY_RANGE_DAYS = 60


def unit_length(time_scale: TimeScale) -> timedelta:
    return UNIT_LENGTHS[TimeScale(time_scale)]


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


class TimeMapper:
    """Affine mapping between instants and x coordinates."""

    def __init__(
        self,
        origin: datetime,
        time_scale: TimeScale = TimeScale.DAY,
        pixels_per_unit: Optional[float] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize mapper.

        Args:
            origin: Instant drawn at x = 0
            time_scale: Zoom granularity
            pixels_per_unit: Density override; defaults to the configured value for the scale
            settings: Optional settings (for testing)
        """
        settings = settings or get_settings()
        self.origin = ensure_utc(origin)
        self.time_scale = TimeScale(time_scale)
        self.pixels_per_unit = (
            float(pixels_per_unit) if pixels_per_unit is not None else settings.pixels_per_unit(self.time_scale)
        )
        if self.pixels_per_unit <= 0:
            raise ValueError("pixels_per_unit must be > 0")
        self.unit = unit_length(self.time_scale)

    def __repr__(self) -> str:
        return (
            f"TimeMapper(origin={self.origin.isoformat()}, time_scale={self.time_scale.value}, "
            f"pixels_per_unit={self.pixels_per_unit})"
        )

    def to_x(self, instant: datetime) -> float:
        """Pixel x of an instant."""
        return (ensure_utc(instant) - self.origin) / self.unit * self.pixels_per_unit

    def to_instant(self, x: float) -> datetime:
        """Instant at pixel x."""
        return self.origin + self.unit * (x / self.pixels_per_unit)

    def width(self, start: datetime, end: datetime) -> float:
        return self.to_x(end) - self.to_x(start)

    def delta_to_timedelta(self, dx: float, snap: bool = True) -> timedelta:
        """
        Convert a horizontal pixel delta into a time delta.

        Args:
            dx: Pixel delta (positive = later)
            snap: Quantise to whole time units of the scale

        Returns:
            timedelta: Equivalent time delta
        """
        units = dx / self.pixels_per_unit
        if snap:
            return self.unit * _round_half_away(units)
        return self.unit * units

    def snap(self, instant: datetime) -> datetime:
        """Round an instant to the nearest unit boundary measured from the origin."""
        units = (ensure_utc(instant) - self.origin) / self.unit
        return self.origin + self.unit * _round_half_away(units)

    def ticks(self, window_start: datetime, window_end: datetime) -> list[TimelineTick]:
        """
        Header ticks, one per unit, covering [window_start, window_end].

        Weekend cells and major boundaries (first of month or Monday on the
        day scale) are flagged for the host's header styling.
        """
        ticks: list[TimelineTick] = []
        cursor = self.snap(window_start)
        if cursor > ensure_utc(window_start):
            cursor -= self.unit
        window_end = ensure_utc(window_end)
        while cursor <= window_end:
            ticks.append(
                TimelineTick(
                    x=self.to_x(cursor),
                    instant=cursor,
                    label=self._label(cursor),
                    is_weekend=self.time_scale in (TimeScale.HOUR, TimeScale.DAY) and cursor.weekday() >= 5,
                    is_major=self._is_major(cursor),
                )
            )
            cursor += self.unit
        return ticks

    def _label(self, instant: datetime) -> str:
        if self.time_scale == TimeScale.HOUR:
            return instant.strftime("%H:%M")
        if self.time_scale == TimeScale.DAY:
            return str(instant.day)
        if self.time_scale == TimeScale.WEEK:
            return instant.strftime("%b %d")
        return instant.strftime("%b %Y")

    def _is_major(self, instant: datetime) -> bool:
        if self.time_scale == TimeScale.HOUR:
            return instant.hour == 0
        if self.time_scale == TimeScale.DAY:
            return instant.day == 1 or instant.weekday() == 0
        if self.time_scale == TimeScale.WEEK:
            return instant.day <= 7
        return instant.month == 1


def chart_range(
    milestones: Iterable[Milestone],
    padding_days: Optional[int] = None,
    settings: Optional[Settings] = None,
    anchor: Optional[datetime] = None,
) -> tuple[datetime, datetime]:
    """
    Padded chart window around a set of milestones.

    The window starts `padding_days` before the day of the earliest start and
    ends `padding_days` after the day of the latest end. With no milestones it
    covers 60 days from the day of `anchor`, or from today when no anchor is
    given.

    Returns:
        Tuple of (origin, end)
    """
    settings = settings or get_settings()
    padding = timedelta(days=settings.CHART_PADDING_DAYS if padding_days is None else padding_days)
    milestones = list(milestones)
    if not milestones:
        first_day = start_of_day(anchor if anchor is not None else now_utc())
        return first_day, first_day + timedelta(days=DEFAULT_EMPTY_RANGE_DAYS)
    earliest = start_of_day(min(m.start for m in milestones))
    latest = start_of_day(max(m.end for m in milestones)) + timedelta(days=1)
    return earliest - padding, latest + padding
