"""Projection of job records into renderable timeline tasks.

Job records come from the surrounding application either as a
``pandas.DataFrame`` or as an iterable of mappings with the keys

* ``id`` – stable job identifier, borrowed by the task.
* ``job_number`` / ``customer_name`` – used for the display label.
* ``job_start`` / ``job_end`` – optional start and end instants.

Only records whose start and end both parse as dates (and do not run
backwards) become tasks. Everything else is left off the chart without
raising, the same way the project Gantt chart drops rows with unusable
dates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Mapping, Union

import pandas as pd

from timeline_scale import as_instant

logger = logging.getLogger(__name__)

JOB_COLUMNS = ["id", "job_number", "customer_name", "job_start", "job_end"]
COLOR_HUE_RANGE = 300
COLOR_SATURATION = 70
COLOR_LIGHTNESS = 50

JobRecords = Union[pd.DataFrame, Iterable[Mapping[str, object]]]


@dataclass(frozen=True)
class Task:
    """Time-bounded bar derived from a job record."""

    id: str
    label: str
    start: pd.Timestamp
    end: pd.Timestamp
    color: str

    def __post_init__(self) -> None:
        start = as_instant(self.start)
        end = as_instant(self.end)
        if start > end:
            raise ValueError(f"タスク {self.id} の終了が開始より前です: {start} > {end}")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def duration(self) -> pd.Timedelta:
        return self.end - self.start

    def with_times(self, start, end) -> "Task":
        return replace(self, start=start, end=end)


def _int32(value: int) -> int:
    return (value + 2**31) % 2**32 - 2**31


def hash_identifier(identifier: str) -> int:
    """Order dependent character code hash, wrapped to a signed 32 bit int."""

    value = 0
    for ch in str(identifier):
        value = _int32(ord(ch) + ((value << 5) - value))
    return value


def derive_color(identifier: str) -> str:
    """Return a stable ``hsl(...)`` color for ``identifier``."""

    hue = abs(hash_identifier(identifier)) % COLOR_HUE_RANGE
    return f"hsl({hue}, {COLOR_SATURATION}%, {COLOR_LIGHTNESS}%)"


def _text(value, default: str) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return default
    text = str(value).strip()
    return text or default


def build_label(record: Mapping[str, object]) -> str:
    job_number = _text(record.get("job_number"), "No #")
    customer = _text(record.get("customer_name"), "Unnamed")
    return f"{job_number} - {customer}"


def _as_frame(jobs: JobRecords) -> pd.DataFrame:
    if isinstance(jobs, pd.DataFrame):
        frame = jobs.copy()
    else:
        frame = pd.DataFrame(list(jobs))
    frame = frame.reset_index(drop=True)
    for column in JOB_COLUMNS:
        if column not in frame.columns:
            frame[column] = None
    return frame


def project_tasks(jobs: JobRecords) -> List[Task]:
    """Convert job records to tasks, keeping the input order."""

    frame = _as_frame(jobs)
    if frame.empty:
        return []

    starts = pd.to_datetime(frame["job_start"], errors="coerce", utc=True, format="mixed")
    ends = pd.to_datetime(frame["job_end"], errors="coerce", utc=True, format="mixed")
    ids = frame["id"].map(lambda value: _text(value, ""))

    valid_mask = starts.notna() & ends.notna() & (ids != "")
    ordered_mask = valid_mask & (ends >= starts)
    skipped = int(len(frame) - ordered_mask.sum())
    if skipped:
        logger.debug("skipped %d job(s) without a usable start/end", skipped)

    tasks: List[Task] = []
    for index in frame.index[ordered_mask.to_numpy()]:
        record = frame.loc[index]
        job_id = ids.loc[index]
        tasks.append(
            Task(
                id=job_id,
                label=build_label(record),
                start=starts.loc[index],
                end=ends.loc[index],
                color=derive_color(job_id),
            )
        )
    return tasks


def tasks_to_frame(tasks: Iterable[Task]) -> pd.DataFrame:
    """Tabular view of tasks, one row per task."""

    rows = [
        {"id": t.id, "label": t.label, "start": t.start, "end": t.end, "color": t.color}
        for t in tasks
    ]
    return pd.DataFrame(rows, columns=["id", "label", "start", "end", "color"])


__all__ = [
    "Task",
    "build_label",
    "derive_color",
    "hash_identifier",
    "project_tasks",
    "tasks_to_frame",
]
