"""Interactive job timeline (Gantt) chart.

The module exposes :class:`TimelineChart`, one chart instance wiring the
viewport, drag, input routing and render model together, and
:func:`create_timeline_figure` which draws a :class:`RenderFrame` as a
``plotly.graph_objects.Figure``.

The figure is drawn in plot-area pixel coordinates rather than dates: bars,
grid lines and all three tick rows are positioned with the same
:class:`~timeline_scale.TimeDomainScale`, so they stay aligned at any zoom
level. Pointer coordinates passed to the chart are plot-area pixels as
well (``x`` from the left edge, ``y`` from the top of the task rows).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

import plotly.graph_objects as go

from timeline_drag import DragInteractionController, RescheduleCallback
from timeline_input import (
    POINTER_MOVE,
    POINTER_UP,
    PRIMARY_BUTTON,
    GestureState,
    GlobalListeners,
    InputRouter,
    PointerEvent,
    WheelEvent,
)
from timeline_render import RenderFrame, RenderModel, handle_width
from timeline_tasks import JobRecords, Task, project_tasks
from timeline_ticks import AXIS_DAY, AXIS_MONTH, AXIS_PRIMARY, find_axis
from timeline_viewport import ViewportController

logger = logging.getLogger(__name__)

ZOOM_STEP = 1.5
AXIS_TEXT_COLOR = "#333"
GRID_COLOR = "#e0e0e0"
HANDLE_COLOR = "rgba(0,0,0,0.2)"
DAY_ROW_OFFSET = 30
MONTH_ROW_OFFSET = 55


@dataclass(frozen=True)
class _Margins:
    top: int = 20
    right: int = 40
    bottom: int = 90
    left: int = 150


MARGINS = _Margins()


def plot_area(width: float, height: float) -> Tuple[float, float]:
    """Plot-area ``(width, height)`` inside the chart margins."""

    return (
        width - MARGINS.left - MARGINS.right,
        height - MARGINS.top - MARGINS.bottom,
    )


class TimelineChart:
    """One timeline chart: owns its viewport, gestures and listeners.

    Parameters
    ----------
    width, height:
        Size of the whole drawing surface in pixels, margins included.
    on_reschedule:
        Called once per completed drag with ``(job_id, new_start, new_end)``.
    on_select:
        Called with ``job_id`` when a task body is clicked without dragging.
    now:
        Reference instant for the absolute viewport window; defaults to the
        current time.
    """

    def __init__(
        self,
        width: float = 800,
        height: float = 500,
        on_reschedule: Optional[RescheduleCallback] = None,
        on_select: Optional[Callable[[str], None]] = None,
        now=None,
    ) -> None:
        plot_width, plot_height = plot_area(width, height)
        self.listeners = GlobalListeners()
        self.viewport = ViewportController(pixel_width=max(plot_width, 1.0), now=now)
        self.drag = DragInteractionController(self.viewport.scale, on_reschedule)
        self.render_model = RenderModel(self.viewport, self.drag, max(plot_height, 0.0))
        self.router = InputRouter(
            self.listeners,
            self.viewport,
            self.drag,
            request_zoom=self.viewport.zoom_at_anchor,
            task_lookup=self.render_model.find_task,
            on_select=on_select,
        )
        self.width = float(width)
        self.height = float(height)
        self._fitted = False
        self._torn_down = False

    @property
    def tasks(self) -> List[Task]:
        return self.render_model.tasks

    @property
    def gesture(self) -> GestureState:
        return self.router.state

    def set_jobs(self, jobs: JobRecords) -> List[Task]:
        """Re-project the job list; the first non-empty list also fits the view."""

        tasks = project_tasks(jobs)
        session = self.drag.session
        if session is not None and session.task_snapshot.id not in {t.id for t in tasks}:
            logger.debug("dragged task %s disappeared, cancelling", session.task_snapshot.id)
            self.router.cancel()
        self.render_model.set_tasks(tasks)
        if not self._fitted and tasks:
            self._fitted = self.viewport.fit_to_tasks(tasks)
        return tasks

    def resize(self, width: float, height: float) -> None:
        """Follow a surface resize without touching the current zoom or pan."""

        plot_width, plot_height = plot_area(width, height)
        if self.viewport.resize(plot_width):
            self.width = float(width)
        if plot_height > 0:
            self.render_model.plot_height = float(plot_height)
            self.height = float(height)

    def pointer_down(self, x: float, y: float, button: int = PRIMARY_BUTTON, modifiers: Iterable[str] = ()) -> bool:
        if self._torn_down:
            return False
        target = self.render_model.hit_test(x, y) if button == PRIMARY_BUTTON else None
        event = PointerEvent(x=x, y=y, button=button, modifiers=frozenset(modifiers), target=target)
        return self.router.pointer_down(event)

    def pointer_move(self, x: float, y: float = 0.0) -> None:
        self.listeners.dispatch(POINTER_MOVE, PointerEvent(x=x, y=y))

    def pointer_up(self, x: float, y: float = 0.0) -> None:
        self.listeners.dispatch(POINTER_UP, PointerEvent(x=x, y=y))

    def wheel(self, x: float, delta_y: float) -> bool:
        if self._torn_down:
            return False
        return self.router.wheel(WheelEvent(x=x, delta_y=delta_y))

    def focus_lost(self) -> bool:
        return self.router.cancel()

    def zoom_in(self) -> None:
        self.viewport.set_absolute_zoom(ZOOM_STEP)

    def zoom_out(self) -> None:
        self.viewport.set_absolute_zoom(1 / ZOOM_STEP)

    def pan(self, delta_px: float) -> None:
        if self.router.state is GestureState.IDLE:
            self.viewport.pan_by_pixels(delta_px)

    def reset(self) -> None:
        self.viewport.reset()

    def frame(self) -> RenderFrame:
        return self.render_model.frame()

    def figure(self, title: Optional[str] = None) -> go.Figure:
        return create_timeline_figure(self.frame(), title=title)

    def teardown(self) -> None:
        """Cancel any gesture in progress and release its listeners."""

        self.router.teardown()
        self._torn_down = True


def _tick_row_annotations(frame: RenderFrame, name: str, offset: int, size: int, bold: bool) -> List[dict]:
    axis = find_axis(frame.axes, name)
    if axis is None:
        return []
    annotations = []
    for tick in axis.ticks:
        if tick.x < 0 or tick.x > frame.pixel_width:
            continue
        annotations.append(
            dict(
                x=tick.x,
                xref="x",
                y=0,
                yref="paper",
                yanchor="top",
                yshift=-offset,
                text=f"<b>{tick.label}</b>" if bold else tick.label,
                showarrow=False,
                font=dict(size=size, color=AXIS_TEXT_COLOR),
            )
        )
    return annotations


def create_timeline_figure(frame: RenderFrame, title: Optional[str] = None) -> go.Figure:
    """Create a Plotly figure for one rendered frame.

    Parameters
    ----------
    frame:
        Geometry produced by :meth:`RenderModel.frame`.
    title:
        Optional chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Horizontal bars in plot-area pixel space with grid lines, the
        primary tick row on the x axis and day/month rows beneath it.
    """

    fig = go.Figure()
    for bar in frame.bars:
        fig.add_trace(
            go.Bar(
                x=[bar.width],
                y=[bar.y + bar.height / 2],
                base=[bar.x],
                width=[bar.height],
                orientation="h",
                marker=dict(color=bar.color, opacity=0.7 if bar.dragging else 1.0),
                customdata=[bar.task_id],
                hovertemplate=bar.hover_text + "<extra></extra>",
                name=bar.label,
                showlegend=False,
            )
        )
        half = handle_width(bar.width) / 2
        for edge in (bar.x, bar.x_end):
            fig.add_shape(
                type="rect",
                x0=edge - half,
                x1=edge + half,
                y0=bar.y,
                y1=bar.y + bar.height,
                fillcolor=HANDLE_COLOR,
                line=dict(width=0),
                layer="above",
            )

    for x in frame.grid_x:
        fig.add_vline(x=x, line_color=GRID_COLOR, line_width=1, layer="below")
    for y in frame.grid_y:
        fig.add_hline(y=y, line_color=GRID_COLOR, line_width=1, layer="below")

    primary = find_axis(frame.axes, AXIS_PRIMARY)
    row_centers = [row * frame.row_height + frame.row_height / 2 for row in range(len(frame.row_labels))]
    annotations = _tick_row_annotations(frame, AXIS_DAY, DAY_ROW_OFFSET, 11, False)
    annotations += _tick_row_annotations(frame, AXIS_MONTH, MONTH_ROW_OFFSET, 12, True)

    fig.update_layout(
        barmode="overlay",
        width=frame.pixel_width + MARGINS.left + MARGINS.right,
        height=frame.plot_height + MARGINS.top + MARGINS.bottom,
        template="plotly_white",
        plot_bgcolor="white",
        paper_bgcolor="white",
        dragmode=False,
        xaxis=dict(
            range=[0, frame.pixel_width],
            fixedrange=True,
            showgrid=False,
            zeroline=False,
            tickmode="array",
            tickvals=primary.positions if primary is not None else [],
            ticktext=primary.labels if primary is not None else [],
            tickfont=dict(color=AXIS_TEXT_COLOR, size=11),
        ),
        yaxis=dict(
            range=[frame.plot_height, 0],
            fixedrange=True,
            showgrid=False,
            zeroline=False,
            tickmode="array",
            tickvals=row_centers,
            ticktext=list(frame.row_labels),
            tickfont=dict(color=AXIS_TEXT_COLOR, size=11),
        ),
        annotations=annotations,
        margin=dict(t=MARGINS.top, b=MARGINS.bottom, l=MARGINS.left, r=MARGINS.right),
    )
    if title:
        fig.update_layout(title=dict(text=title))
    return fig


__all__ = ["MARGINS", "TimelineChart", "create_timeline_figure", "plot_area"]
