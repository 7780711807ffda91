"""Linear mapping between a time domain and a horizontal pixel range.

:class:`TimeDomainScale` is immutable. The viewport builds a fresh instance
whenever its domain or width changes, and every consumer of a frame (task
bars, tick rows, drag deltas) projects through that same instance so that
bars and ticks stay pixel-aligned.

Instants are handled as timezone-aware UTC ``pandas.Timestamp`` values.
Internally the mapping works on their nanosecond epoch value.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np
import pandas as pd


def coerce_instant(value) -> Optional[pd.Timestamp]:
    """Return ``value`` as a UTC timestamp, or ``None`` when it is not a date."""

    if value is None:
        return None
    if isinstance(value, str) and value.strip() == "":
        return None
    converted = pd.to_datetime(value, errors="coerce", utc=True)
    if pd.isna(converted):
        return None
    return pd.Timestamp(converted)


def as_instant(value) -> pd.Timestamp:
    """Like :func:`coerce_instant` but raise for values that are not dates."""

    converted = coerce_instant(value)
    if converted is None:
        raise ValueError(f"日時として解釈できません: {value!r}")
    return converted


def instant_from_ns(value: float) -> pd.Timestamp:
    return pd.Timestamp(int(round(value)), tz="UTC")


@dataclass(frozen=True)
class TimeDomainScale:
    """Map ``[domain_start, domain_end]`` onto ``[0, pixel_width]``."""

    domain_start: pd.Timestamp
    domain_end: pd.Timestamp
    pixel_width: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "domain_start", as_instant(self.domain_start))
        object.__setattr__(self, "domain_end", as_instant(self.domain_end))
        object.__setattr__(self, "pixel_width", float(self.pixel_width))

    @property
    def span_ns(self) -> int:
        return self.domain_end.value - self.domain_start.value

    @property
    def domain_width(self) -> pd.Timedelta:
        return self.domain_end - self.domain_start

    @property
    def is_degenerate(self) -> bool:
        return self.span_ns == 0 or self.pixel_width <= 0

    @property
    def ns_per_pixel(self) -> float:
        """Nanoseconds covered by one pixel (0 for a degenerate scale)."""

        if self.is_degenerate:
            return 0.0
        return self.span_ns / self.pixel_width

    def to_pixel(self, instant) -> float:
        if self.is_degenerate:
            return 0.0
        offset = as_instant(instant).value - self.domain_start.value
        return offset * self.pixel_width / self.span_ns

    def to_instant(self, pixel: float) -> pd.Timestamp:
        if self.is_degenerate:
            return self.domain_start
        return instant_from_ns(self.domain_start.value + float(pixel) * self.ns_per_pixel)

    def to_pixels(self, instants: Iterable) -> np.ndarray:
        """Vectorised :meth:`to_pixel` for a sequence of instants."""

        values = pd.to_datetime(pd.Series(list(instants), dtype=object), utc=True)
        if values.empty:
            return np.array([], dtype=float)
        if self.is_degenerate:
            return np.zeros(len(values), dtype=float)
        offsets = (values - self.domain_start) / pd.Timedelta(1, unit="ns")
        return offsets.to_numpy(dtype=float) * (self.pixel_width / self.span_ns)

    def timedelta_for_pixels(self, delta_px: float) -> pd.Timedelta:
        """Duration covered by ``delta_px`` pixels at this scale."""

        ns = float(delta_px) * self.ns_per_pixel
        if not math.isfinite(ns):
            return pd.Timedelta(0)
        return pd.Timedelta(int(round(ns)), unit="ns")


__all__ = [
    "TimeDomainScale",
    "as_instant",
    "coerce_instant",
    "instant_from_ns",
]
