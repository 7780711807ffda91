"""Reschedule and resize gestures on task bars.

:class:`DragInteractionController` is a two-state machine (``idle`` and
``dragging``). A gesture starts on a task's body (move) or on one of its
edge handles (resize), follows the pointer while it moves and ends with
either :meth:`~DragInteractionController.finish`, which reports the new
times to the reschedule callback once, or
:meth:`~DragInteractionController.cancel`, which reports nothing.

Pointer displacement is converted to time with the scale that is current
at the moment of the move, so a zoom change during the gesture is taken
into account.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import pandas as pd

from timeline_scale import TimeDomainScale
from timeline_tasks import Task

logger = logging.getLogger(__name__)

# Pointer travel (px) below which a press-and-release counts as a click.
CLICK_TOLERANCE_PX = 3.0

RescheduleCallback = Callable[[str, pd.Timestamp, pd.Timestamp], None]


class DragOperation(str, Enum):
    MOVE = "move"
    RESIZE_START = "resize-start"
    RESIZE_END = "resize-end"


CURSOR_STYLES = {
    DragOperation.MOVE: "grabbing",
    DragOperation.RESIZE_START: "w-resize",
    DragOperation.RESIZE_END: "e-resize",
}
IDLE_CURSOR = "grab"


def log_reschedule(task_id: str, start: pd.Timestamp, end: pd.Timestamp) -> None:
    """Fallback reschedule callback that only records the update."""

    logger.info("job time update: %s %s - %s", task_id, start.isoformat(), end.isoformat())


@dataclass
class DragSession:
    task_snapshot: Task
    operation: DragOperation
    anchor_pixel_x: float
    anchor_start: pd.Timestamp
    anchor_end: pd.Timestamp
    candidate_start: pd.Timestamp
    candidate_end: pd.Timestamp
    max_travel_px: float = 0.0

    @property
    def moved(self) -> bool:
        return self.max_travel_px > CLICK_TOLERANCE_PX

    def candidate_task(self) -> Task:
        return self.task_snapshot.with_times(self.candidate_start, self.candidate_end)


@dataclass(frozen=True)
class DragResult:
    """Outcome of a finished gesture.

    ``moved`` is ``False`` for a press-and-release that never left the click
    tolerance; such gestures do not reach the reschedule callback.
    """

    task_id: str
    operation: DragOperation
    start: pd.Timestamp
    end: pd.Timestamp
    moved: bool


def candidate_times(
    operation: DragOperation, start: pd.Timestamp, end: pd.Timestamp, delta: pd.Timedelta
):
    """New ``(start, end)`` after shifting by ``delta``; never returns start > end."""

    if operation is DragOperation.MOVE:
        return start + delta, end + delta
    if operation is DragOperation.RESIZE_START:
        new_start = start + delta
        if new_start > end:
            new_start = end
        return new_start, end
    if operation is DragOperation.RESIZE_END:
        new_end = end + delta
        if new_end < start:
            new_end = start
        return start, new_end
    raise ValueError(f"未知のドラッグ操作です: {operation!r}")


class DragInteractionController:
    def __init__(
        self,
        scale_provider: Callable[[], TimeDomainScale],
        on_reschedule: Optional[RescheduleCallback] = None,
    ) -> None:
        self._scale_provider = scale_provider
        self._on_reschedule = on_reschedule or log_reschedule
        self._session: Optional[DragSession] = None

    @property
    def session(self) -> Optional[DragSession]:
        return self._session

    @property
    def is_dragging(self) -> bool:
        return self._session is not None

    @property
    def state(self) -> str:
        if self._session is None:
            return "idle"
        return f"dragging({self._session.operation.value})"

    @property
    def cursor(self) -> str:
        if self._session is None:
            return IDLE_CURSOR
        return CURSOR_STYLES[self._session.operation]

    def begin(self, task: Task, operation, pixel_x: float) -> bool:
        """Start a gesture on ``task``; ignored while another one is active."""

        if self._session is not None:
            logger.debug("ignored drag start on %s: gesture already active", task.id)
            return False
        operation = DragOperation(operation)
        snapshot = task.with_times(task.start, task.end)
        self._session = DragSession(
            task_snapshot=snapshot,
            operation=operation,
            anchor_pixel_x=float(pixel_x),
            anchor_start=snapshot.start,
            anchor_end=snapshot.end,
            candidate_start=snapshot.start,
            candidate_end=snapshot.end,
        )
        logger.debug("drag %s started on %s at x=%.1f", operation.value, task.id, pixel_x)
        return True

    def update(self, pixel_x: float) -> Optional[Task]:
        """Follow the pointer; returns the live candidate task."""

        session = self._session
        if session is None:
            return None
        delta_px = float(pixel_x) - session.anchor_pixel_x
        session.max_travel_px = max(session.max_travel_px, abs(delta_px))
        if not session.moved:
            # Still a click: the bar stays where it is.
            session.candidate_start, session.candidate_end = session.anchor_start, session.anchor_end
            return session.candidate_task()
        delta = self._scale_provider().timedelta_for_pixels(delta_px)
        session.candidate_start, session.candidate_end = candidate_times(
            session.operation, session.anchor_start, session.anchor_end, delta
        )
        return session.candidate_task()

    def finish(self) -> Optional[DragResult]:
        """End the gesture and report the final candidate once."""

        session = self._session
        if session is None:
            return None
        self._session = None
        result = DragResult(
            task_id=session.task_snapshot.id,
            operation=session.operation,
            start=session.candidate_start,
            end=session.candidate_end,
            moved=session.moved,
        )
        if result.moved:
            logger.debug("drag %s committed on %s", result.operation.value, result.task_id)
            self._on_reschedule(result.task_id, result.start, result.end)
        return result

    def cancel(self) -> bool:
        """Drop the gesture without reporting anything."""

        if self._session is None:
            return False
        logger.debug("drag on %s cancelled", self._session.task_snapshot.id)
        self._session = None
        return True

    def preview(self, task: Task) -> Task:
        """Task as it should be drawn right now (live candidate while dragged)."""

        session = self._session
        if session is None or session.task_snapshot.id != task.id:
            return task
        return session.candidate_task()


__all__ = [
    "CLICK_TOLERANCE_PX",
    "DragInteractionController",
    "DragOperation",
    "DragResult",
    "DragSession",
    "candidate_times",
    "log_reschedule",
]
