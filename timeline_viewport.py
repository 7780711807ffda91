"""Visible time window of the timeline chart.

:class:`ViewportController` owns the domain currently mapped onto the
plot area and the plot area's pixel width. Panning and zooming go through
it; it keeps the domain inside a fixed absolute window (now ± 50 years)
and the domain width between a minimum and maximum zoom.

Both domain ends always move together when clamped, so clamping never
changes the width unless a zoom asked for a new width.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import pandas as pd
from dateutil.relativedelta import relativedelta

from timeline_scale import TimeDomainScale, as_instant
from timeline_tasks import Task

logger = logging.getLogger(__name__)

ABSOLUTE_WINDOW_YEARS = 50
MIN_DOMAIN_WIDTH = pd.Timedelta(minutes=15)
MAX_DOMAIN_WIDTH = pd.Timedelta(days=365 * 40)
FIT_PADDING = pd.Timedelta(days=3)
DEFAULT_DOMAIN_WIDTH = pd.Timedelta(days=14)


@dataclass(frozen=True)
class ViewportLimits:
    """Bounds applied to every viewport change."""

    lower_bound: pd.Timestamp
    upper_bound: pd.Timestamp
    min_width: pd.Timedelta = MIN_DOMAIN_WIDTH
    max_width: pd.Timedelta = MAX_DOMAIN_WIDTH

    @classmethod
    def around(cls, now=None, years: int = ABSOLUTE_WINDOW_YEARS) -> "ViewportLimits":
        center = as_instant(now) if now is not None else pd.Timestamp.now(tz="UTC")
        return cls(
            lower_bound=center - relativedelta(years=years),
            upper_bound=center + relativedelta(years=years),
        )

    def clamp_width(self, width_ns: float) -> int:
        window_ns = self.upper_bound.value - self.lower_bound.value
        upper = min(self.max_width.value, window_ns)
        return int(round(min(max(width_ns, self.min_width.value), upper)))


class ViewportController:
    """Mutable ``{domain_start, domain_end, pixel_width}`` with pan and zoom."""

    def __init__(
        self,
        domain_start=None,
        domain_end=None,
        pixel_width: float = 800.0,
        limits: Optional[ViewportLimits] = None,
        now=None,
    ) -> None:
        if pixel_width <= 0:
            raise ValueError(f"pixel_width は正の値にしてください: {pixel_width}")
        self.limits = limits or ViewportLimits.around(now)
        if domain_start is None or domain_end is None:
            center = as_instant(now) if now is not None else pd.Timestamp.now(tz="UTC")
            domain_start = center - DEFAULT_DOMAIN_WIDTH / 2
            domain_end = center + DEFAULT_DOMAIN_WIDTH / 2
        self._pixel_width = float(pixel_width)
        self._start_ns = 0
        self._end_ns = 0
        self._set_domain(as_instant(domain_start).value, as_instant(domain_end).value)
        self._home: Tuple[int, int] = (self._start_ns, self._end_ns)

    @property
    def domain_start(self) -> pd.Timestamp:
        return pd.Timestamp(self._start_ns, tz="UTC")

    @property
    def domain_end(self) -> pd.Timestamp:
        return pd.Timestamp(self._end_ns, tz="UTC")

    @property
    def domain_width(self) -> pd.Timedelta:
        return pd.Timedelta(self._end_ns - self._start_ns, unit="ns")

    @property
    def pixel_width(self) -> float:
        return self._pixel_width

    @property
    def home_domain(self) -> Tuple[pd.Timestamp, pd.Timestamp]:
        return pd.Timestamp(self._home[0], tz="UTC"), pd.Timestamp(self._home[1], tz="UTC")

    def scale(self) -> TimeDomainScale:
        """Scale for the current domain; rebuilt on every call."""

        return TimeDomainScale(self.domain_start, self.domain_end, self._pixel_width)

    def _set_domain(self, start_ns: float, end_ns: float) -> None:
        width = self.limits.clamp_width(end_ns - start_ns)
        if width != int(round(end_ns - start_ns)):
            # Grow or shrink around the requested centre.
            center = (start_ns + end_ns) / 2
            start_ns = center - width / 2
        self._apply(int(round(start_ns)), width)

    def _apply(self, start_ns: int, width_ns: int) -> None:
        lower = self.limits.lower_bound.value
        upper = self.limits.upper_bound.value
        clamped = start_ns
        if clamped < lower:
            clamped = lower
        if clamped + width_ns > upper:
            clamped = upper - width_ns
        if clamped != start_ns:
            logger.debug("viewport clamped to absolute window (%d ns shift)", clamped - start_ns)
        self._start_ns = clamped
        self._end_ns = clamped + width_ns

    def set_domain(self, domain_start, domain_end) -> None:
        start = as_instant(domain_start)
        end = as_instant(domain_end)
        if end <= start:
            raise ValueError(f"表示範囲の終了は開始より後にしてください: {start} - {end}")
        self._set_domain(start.value, end.value)

    def pan_by_pixels(self, delta_px: float) -> None:
        """Shift the window so content follows the pointer.

        Dragging right (positive ``delta_px``) moves the window earlier in
        time. The domain width is left untouched.
        """

        if not math.isfinite(delta_px) or delta_px == 0:
            return
        shift = int(round(-float(delta_px) * self.scale().ns_per_pixel))
        width = self._end_ns - self._start_ns
        self._apply(self._start_ns + shift, width)

    def zoom_at_anchor(self, scale_factor: float, anchor_px: float) -> None:
        """Zoom by ``scale_factor`` keeping the instant under ``anchor_px`` fixed.

        ``scale_factor > 1`` zooms in (the domain width shrinks by
        ``1 / scale_factor``). Widths outside the configured limits are
        clamped rather than refused.
        """

        if not math.isfinite(scale_factor) or scale_factor <= 0:
            raise ValueError(f"ズーム倍率は正の値にしてください: {scale_factor}")
        anchor_px = float(anchor_px)
        scale = self.scale()
        anchor_ns = self._start_ns + anchor_px * scale.ns_per_pixel
        requested = (self._end_ns - self._start_ns) / scale_factor
        width = self.limits.clamp_width(requested)
        if width != int(round(requested)):
            logger.debug("zoom clamped: requested %.0f ns, using %d ns", requested, width)
        fraction = anchor_px / self._pixel_width
        start_ns = int(round(anchor_ns - fraction * width))
        self._apply(start_ns, width)

    def set_absolute_zoom(self, scale_factor: float, center_px: Optional[float] = None) -> None:
        """Zoom for the discrete +/- controls, anchored at the plot centre by default."""

        anchor = self._pixel_width / 2 if center_px is None else center_px
        self.zoom_at_anchor(scale_factor, anchor)

    def fit_to_tasks(self, tasks: Iterable[Task], padding: pd.Timedelta = FIT_PADDING) -> bool:
        """Frame all ``tasks`` with ``padding`` on both sides.

        The fitted domain also becomes the target of :meth:`reset`. Returns
        ``False`` (and leaves the domain alone) when there are no tasks.
        """

        tasks = list(tasks)
        if not tasks:
            return False
        start = min(task.start for task in tasks) - padding
        end = max(task.end for task in tasks) + padding
        self._set_domain(start.value, end.value)
        self._home = (self._start_ns, self._end_ns)
        logger.debug("fitted viewport to %d task(s): %s - %s", len(tasks), self.domain_start, self.domain_end)
        return True

    def reset(self) -> None:
        """Return to the last fitted (or initial) domain."""

        self._set_domain(*self._home)

    def resize(self, pixel_width: float) -> bool:
        """Change the pixel width, keeping the current domain."""

        if not math.isfinite(pixel_width) or pixel_width <= 0:
            logger.debug("ignored resize to %r px", pixel_width)
            return False
        self._pixel_width = float(pixel_width)
        return True


__all__ = [
    "FIT_PADDING",
    "MAX_DOMAIN_WIDTH",
    "MIN_DOMAIN_WIDTH",
    "ViewportController",
    "ViewportLimits",
]
