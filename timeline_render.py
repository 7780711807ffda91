"""Per-frame geometry for the timeline chart."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from timeline_drag import DragInteractionController, DragOperation
from timeline_input import HitTarget
from timeline_tasks import Task
from timeline_ticks import AXIS_PRIMARY, TickAxis, find_axis, generate_axes
from timeline_viewport import ViewportController

DRAG_HANDLE_WIDTH = 8.0
ROW_PADDING = 0.4
DEFAULT_PLOT_HEIGHT = 410.0
HOVER_HINT = "Drag to move, handles to resize"


@dataclass(frozen=True)
class BarGeometry:
    task_id: str
    label: str
    row: int
    x: float
    width: float
    y: float
    height: float
    color: str
    dragging: bool
    hover_text: str

    @property
    def x_end(self) -> float:
        return self.x + self.width


@dataclass(frozen=True)
class RenderFrame:
    pixel_width: float
    plot_height: float
    row_height: float
    bars: Tuple[BarGeometry, ...]
    row_labels: Tuple[str, ...]
    axes: Tuple[TickAxis, ...]
    grid_x: Tuple[float, ...]
    grid_y: Tuple[float, ...]
    cursor: str


def handle_width(bar_width: float) -> float:
    """Edge handle width for a bar; narrow bars keep their middle third for moving."""

    return min(DRAG_HANDLE_WIDTH, bar_width / 3)


def hover_text(task: Task) -> str:
    return (
        f"<b>{task.label}</b><br>"
        f"Start: {task.start.strftime('%Y-%m-%d %H:%M')}<br>"
        f"End: {task.end.strftime('%Y-%m-%d %H:%M')}<br>"
        f"<i>{HOVER_HINT}</i>"
    )


class RenderModel:
    """Combine the viewport, the drag preview and the task list into a frame."""

    def __init__(
        self,
        viewport: ViewportController,
        drag: DragInteractionController,
        plot_height: float = DEFAULT_PLOT_HEIGHT,
    ) -> None:
        self._viewport = viewport
        self._drag = drag
        self.plot_height = float(plot_height)
        self._tasks: List[Task] = []

    @property
    def tasks(self) -> List[Task]:
        return list(self._tasks)

    def set_tasks(self, tasks: Sequence[Task]) -> None:
        self._tasks = list(tasks)

    def find_task(self, task_id: str) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def row_height(self) -> float:
        if not self._tasks:
            return 0.0
        return self.plot_height / len(self._tasks)

    def frame(self) -> RenderFrame:
        scale = self._viewport.scale()
        drawn = [self._drag.preview(task) for task in self._tasks]
        starts = scale.to_pixels([task.start for task in drawn])
        ends = scale.to_pixels([task.end for task in drawn])

        row_height = self.row_height()
        bar_height = row_height * (1 - ROW_PADDING)
        offset = row_height * ROW_PADDING / 2
        session = self._drag.session
        dragged_id = session.task_snapshot.id if session is not None else None

        bars: List[BarGeometry] = []
        for row, (task, x, x_end) in enumerate(zip(drawn, starts, ends)):
            width = float(x_end - x)
            if width <= 0:
                continue
            bars.append(
                BarGeometry(
                    task_id=task.id,
                    label=task.label,
                    row=row,
                    x=float(x),
                    width=width,
                    y=row * row_height + offset,
                    height=bar_height,
                    color=task.color,
                    dragging=task.id == dragged_id,
                    hover_text=hover_text(task),
                )
            )

        axes = tuple(generate_axes(scale))
        primary = find_axis(axes, AXIS_PRIMARY)
        return RenderFrame(
            pixel_width=scale.pixel_width,
            plot_height=self.plot_height,
            row_height=row_height,
            bars=tuple(bars),
            row_labels=tuple(task.label for task in self._tasks),
            axes=axes,
            grid_x=tuple(primary.positions) if primary is not None else (),
            grid_y=tuple(row * row_height for row in range(len(self._tasks) + 1)),
            cursor=self._drag.cursor,
        )

    def hit_test(self, x: float, y: float) -> Optional[HitTarget]:
        """Resolve a plot-area point to a task handle or body.

        Edge handles are centred on the bar edges and win over the body.
        They are ``DRAG_HANDLE_WIDTH`` wide, or a third of the bar when it
        is narrower than that.
        """

        frame = self.frame()
        for bar in frame.bars:
            if not (bar.y <= y <= bar.y + bar.height):
                continue
            half = handle_width(bar.width) / 2
            if abs(x - bar.x) <= half:
                return HitTarget(bar.task_id, DragOperation.RESIZE_START)
            if abs(x - bar.x_end) <= half:
                return HitTarget(bar.task_id, DragOperation.RESIZE_END)
            if bar.x <= x <= bar.x_end:
                return HitTarget(bar.task_id, DragOperation.MOVE)
        return None


__all__ = ["BarGeometry", "RenderFrame", "RenderModel", "handle_width", "hover_text"]
