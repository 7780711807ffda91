"""Tick marks for the three time-axis rows drawn beneath the task rows.

* primary row – resolution depends on the visible domain width: 5 minute
  ticks below two hours, hourly ticks below a day, a "nice" interval
  otherwise.
* day row – one tick per calendar day, labelled with the day of month.
* month row – one tick per month, labelled with the abbreviated month.

All three rows are computed from the same :class:`TimeDomainScale` that
places the task bars. The day and month rows never look at the primary
resolution; they only thin out (on calendar-aligned steps) when labels
would otherwise collide.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import pandas as pd
from dateutil.relativedelta import relativedelta

from timeline_scale import TimeDomainScale

FINE_RESOLUTION_LIMIT = pd.Timedelta(hours=2)
HOURLY_RESOLUTION_LIMIT = pd.Timedelta(hours=24)
DEFAULT_TICK_COUNT = 10
MIN_LABEL_SPACING_PX = 22.0

MONTH_ABBR = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

DAY_STEPS = (1, 2, 5, 10, 15)
MONTH_STEPS = (1, 2, 3, 6, 12)
YEAR_STEPS = (1, 2, 5)

AXIS_PRIMARY = "primary"
AXIS_DAY = "day"
AXIS_MONTH = "month"


@dataclass(frozen=True)
class Tick:
    instant: pd.Timestamp
    x: float
    label: str


@dataclass(frozen=True)
class TickAxis:
    """One row of ticks.

    ``unit`` is the calendar unit the ticks step in (``minute``, ``hour``,
    ``day``, ``month`` or ``year``) and ``step`` the number of units between
    two ticks.
    """

    name: str
    unit: str
    step: int
    ticks: Tuple[Tick, ...]

    @property
    def labels(self) -> List[str]:
        return [tick.label for tick in self.ticks]

    @property
    def positions(self) -> List[float]:
        return [tick.x for tick in self.ticks]


@dataclass(frozen=True)
class _Interval:
    unit: str
    step: int
    approx: pd.Timedelta


# Candidate spacings for the zoomed-out primary row, finest first.
NICE_INTERVALS: Sequence[_Interval] = (
    _Interval("second", 1, pd.Timedelta(seconds=1)),
    _Interval("second", 5, pd.Timedelta(seconds=5)),
    _Interval("second", 15, pd.Timedelta(seconds=15)),
    _Interval("second", 30, pd.Timedelta(seconds=30)),
    _Interval("minute", 1, pd.Timedelta(minutes=1)),
    _Interval("minute", 5, pd.Timedelta(minutes=5)),
    _Interval("minute", 15, pd.Timedelta(minutes=15)),
    _Interval("minute", 30, pd.Timedelta(minutes=30)),
    _Interval("hour", 1, pd.Timedelta(hours=1)),
    _Interval("hour", 3, pd.Timedelta(hours=3)),
    _Interval("hour", 6, pd.Timedelta(hours=6)),
    _Interval("hour", 12, pd.Timedelta(hours=12)),
    _Interval("day", 1, pd.Timedelta(days=1)),
    _Interval("day", 2, pd.Timedelta(days=2)),
    _Interval("week", 1, pd.Timedelta(days=7)),
    _Interval("month", 1, pd.Timedelta(days=30)),
    _Interval("month", 3, pd.Timedelta(days=91)),
    _Interval("year", 1, pd.Timedelta(days=365)),
)

_FIXED_FREQ = {"second": "s", "minute": "min", "hour": "h", "day": "D"}


def select_primary_resolution(width: pd.Timedelta) -> str:
    """Name of the primary tick policy for a domain ``width``."""

    if width < FINE_RESOLUTION_LIMIT:
        return "5min"
    if width < HOURLY_RESOLUTION_LIMIT:
        return "hour"
    return "auto"


def choose_nice_interval(width: pd.Timedelta, count: int = DEFAULT_TICK_COUNT) -> _Interval:
    """Pick the candidate spacing closest (by ratio) to ``width / count``."""

    target = width / max(1, count)
    for index, interval in enumerate(NICE_INTERVALS):
        if interval.approx >= target:
            if index > 0:
                previous = NICE_INTERVALS[index - 1]
                if target / previous.approx < interval.approx / target:
                    return previous
            return interval
    years = target / pd.Timedelta(days=365)
    magnitude = 10 ** max(0, math.floor(math.log10(years)))
    step = 10 * magnitude
    for factor in YEAR_STEPS:
        if factor * magnitude >= years:
            step = factor * magnitude
            break
    return _Interval("year", step, pd.Timedelta(days=365 * step))


def _fixed_marks(start: pd.Timestamp, end: pd.Timestamp, unit: str, step: int) -> List[pd.Timestamp]:
    freq = f"{step}{_FIXED_FREQ[unit]}"
    first = start.ceil(freq)
    if first > end:
        return []
    return list(pd.date_range(first, end, freq=freq))


def _week_marks(start: pd.Timestamp, end: pd.Timestamp) -> List[pd.Timestamp]:
    first = start.ceil("D")
    first = first + pd.Timedelta(days=(6 - first.dayofweek) % 7)
    if first > end:
        return []
    return list(pd.date_range(first, end, freq="7D"))


def _month_marks(start: pd.Timestamp, end: pd.Timestamp, months: int) -> List[pd.Timestamp]:
    """Month starts inside ``[start, end]`` whose month index is a multiple of ``months``."""

    cursor = pd.Timestamp(start.year, start.month, 1, tz=start.tz)
    if cursor < start:
        cursor = cursor + relativedelta(months=1)
    marks: List[pd.Timestamp] = []
    while cursor <= end:
        if ((cursor.year * 12 + cursor.month - 1) % months) == 0:
            marks.append(cursor)
        cursor = cursor + relativedelta(months=1)
    return marks


def _year_marks(start: pd.Timestamp, end: pd.Timestamp, years: int) -> List[pd.Timestamp]:
    year = int(math.ceil(start.year / years) * years)
    marks: List[pd.Timestamp] = []
    while year <= end.year:
        mark = pd.Timestamp(year, 1, 1, tz=start.tz)
        if start <= mark <= end:
            marks.append(mark)
        year += years
    return marks


def _marks_for(interval: _Interval, start: pd.Timestamp, end: pd.Timestamp) -> List[pd.Timestamp]:
    if interval.unit in _FIXED_FREQ:
        return _fixed_marks(start, end, interval.unit, interval.step)
    if interval.unit == "week":
        return _week_marks(start, end)
    if interval.unit == "month":
        return _month_marks(start, end, interval.step)
    return _year_marks(start, end, interval.step)


def _format_auto(mark: pd.Timestamp, unit: str) -> str:
    if unit in ("second",):
        return mark.strftime("%H:%M:%S")
    if unit in ("minute", "hour"):
        return mark.strftime("%H:%M")
    if unit in ("day", "week"):
        return f"{MONTH_ABBR[mark.month - 1]} {mark.day:02d}"
    if unit == "month":
        return MONTH_ABBR[mark.month - 1]
    return str(mark.year)


def _build_axis(
    name: str, unit: str, step: int, marks: Sequence[pd.Timestamp], scale: TimeDomainScale, labels: Sequence[str]
) -> TickAxis:
    positions = scale.to_pixels(marks)
    ticks = tuple(
        Tick(instant=mark, x=float(x), label=label)
        for mark, x, label in zip(marks, positions, labels)
    )
    return TickAxis(name=name, unit=unit, step=step, ticks=ticks)


def primary_axis(scale: TimeDomainScale) -> TickAxis:
    start, end = scale.domain_start, scale.domain_end
    resolution = select_primary_resolution(scale.domain_width)
    if resolution == "5min":
        marks = _fixed_marks(start, end, "minute", 5)
        labels = [mark.strftime("%H:%M") for mark in marks]
        return _build_axis(AXIS_PRIMARY, "minute", 5, marks, scale, labels)
    if resolution == "hour":
        marks = _fixed_marks(start, end, "hour", 1)
        labels = [f"{mark.hour}:00" for mark in marks]
        return _build_axis(AXIS_PRIMARY, "hour", 1, marks, scale, labels)

    interval = choose_nice_interval(scale.domain_width)
    marks = _marks_for(interval, start, end)
    labels = [_format_auto(mark, interval.unit) for mark in marks]
    unit = "day" if interval.unit == "week" else interval.unit
    step = 7 if interval.unit == "week" else interval.step
    return _build_axis(AXIS_PRIMARY, unit, step, marks, scale, labels)


def _fits(count: float, pixel_width: float) -> bool:
    return count <= 1 or pixel_width / count >= MIN_LABEL_SPACING_PX


def _thinned_month_step(month_count: float, pixel_width: float) -> int:
    for step in MONTH_STEPS:
        if _fits(month_count / step, pixel_width):
            return step
    step = 12
    while not _fits(month_count / step, pixel_width):
        step *= 2
    return step


def day_axis(scale: TimeDomainScale) -> TickAxis:
    """One tick per calendar day, thinning to every N-th day when crowded."""

    start, end = scale.domain_start, scale.domain_end
    days = scale.domain_width / pd.Timedelta(days=1)
    for step in DAY_STEPS:
        if _fits(days / step, scale.pixel_width):
            marks = [
                mark
                for mark in _fixed_marks(start, end, "day", 1)
                if (mark.day - 1) % step == 0
            ]
            labels = [str(mark.day) for mark in marks]
            return _build_axis(AXIS_DAY, "day", step, marks, scale, labels)

    months = days / 30.44
    step = _thinned_month_step(months, scale.pixel_width)
    marks = _month_marks(start, end, step)
    labels = [str(mark.day) for mark in marks]
    return _build_axis(AXIS_DAY, "month", step, marks, scale, labels)


def month_axis(scale: TimeDomainScale) -> TickAxis:
    """One tick per month start, thinning to every N-th month when crowded."""

    start, end = scale.domain_start, scale.domain_end
    months = scale.domain_width / pd.Timedelta(days=30.44)
    step = _thinned_month_step(months, scale.pixel_width)
    marks = _month_marks(start, end, step)
    labels = [MONTH_ABBR[mark.month - 1] for mark in marks]
    return _build_axis(AXIS_MONTH, "month", step, marks, scale, labels)


def generate_axes(scale: TimeDomainScale) -> List[TickAxis]:
    """Primary, day and month rows for ``scale``, top to bottom."""

    return [primary_axis(scale), day_axis(scale), month_axis(scale)]


def find_axis(axes: Sequence[TickAxis], name: str) -> Optional[TickAxis]:
    for axis in axes:
        if axis.name == name:
            return axis
    return None


__all__ = [
    "AXIS_DAY",
    "AXIS_MONTH",
    "AXIS_PRIMARY",
    "Tick",
    "TickAxis",
    "choose_nice_interval",
    "day_axis",
    "find_axis",
    "generate_axes",
    "month_axis",
    "primary_axis",
    "select_primary_resolution",
]
