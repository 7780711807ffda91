"""Pointer and wheel routing for the timeline surface.

One surface receives three gesture families:

* wheel – zoom around the pointer through the injected ``request_zoom``
  callback;
* pan – non-primary button, a held pan modifier, or a primary press on
  empty background;
* drag – primary press on a task's body or edge handle.

At most one of pan and drag is active at a time and the wheel is ignored
while either runs. Each gesture registers its pointer-move/pointer-up
listeners on the global :class:`GlobalListeners` registry when it starts
and releases them on every way out: release, cancellation and teardown.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterator, List, Optional

from timeline_drag import DragInteractionController, DragOperation
from timeline_tasks import Task
from timeline_viewport import ViewportController

logger = logging.getLogger(__name__)

POINTER_MOVE = "pointermove"
POINTER_UP = "pointerup"
PRIMARY_BUTTON = 0
PAN_MODIFIER = "shift"
WHEEL_ZOOM_STEP = 1.1

Listener = Callable[["PointerEvent"], None]
ZoomRequest = Callable[[float, float], None]
SelectCallback = Callable[[str], None]


@dataclass(frozen=True)
class HitTarget:
    task_id: str
    operation: DragOperation = DragOperation.MOVE


@dataclass(frozen=True)
class PointerEvent:
    """Pointer position in plot-area pixels."""

    x: float
    y: float = 0.0
    button: int = PRIMARY_BUTTON
    modifiers: FrozenSet[str] = field(default_factory=frozenset)
    target: Optional[HitTarget] = None


@dataclass(frozen=True)
class WheelEvent:
    x: float
    delta_y: float
    y: float = 0.0


class GlobalListeners:
    """Window-wide listener registry, so fast pointer motion off the chart is still seen."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def add(self, event_type: str, listener: Listener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def remove(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            self._listeners.pop(event_type, None)

    @contextmanager
    def listen(self, event_type: str, listener: Listener) -> Iterator[None]:
        self.add(event_type, listener)
        try:
            yield
        finally:
            self.remove(event_type, listener)

    def count(self, event_type: Optional[str] = None) -> int:
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return sum(len(items) for items in self._listeners.values())

    def dispatch(self, event_type: str, event: "PointerEvent") -> None:
        for listener in list(self._listeners.get(event_type, [])):
            listener(event)


class GestureState(str, Enum):
    IDLE = "idle"
    PANNING = "panning"
    DRAGGING = "dragging"


class InputRouter:
    """Decide, per pointer-down, whether the gesture pans the view or drags a task."""

    def __init__(
        self,
        listeners: GlobalListeners,
        viewport: ViewportController,
        drag: DragInteractionController,
        request_zoom: ZoomRequest,
        task_lookup: Callable[[str], Optional[Task]],
        on_select: Optional[SelectCallback] = None,
        pan_modifier: str = PAN_MODIFIER,
    ) -> None:
        self._listeners = listeners
        self._viewport = viewport
        self._drag = drag
        self._request_zoom = request_zoom
        self._task_lookup = task_lookup
        self._on_select = on_select
        self._pan_modifier = pan_modifier
        self._state = GestureState.IDLE
        self._gesture: Optional[ExitStack] = None
        self._last_pan_x = 0.0

    @property
    def state(self) -> GestureState:
        return self._state

    def _is_pan_gesture(self, event: PointerEvent) -> bool:
        if event.button != PRIMARY_BUTTON:
            return True
        if self._pan_modifier in event.modifiers:
            return True
        return event.target is None

    def _enter(self, state: GestureState) -> None:
        stack = ExitStack()
        stack.enter_context(self._listeners.listen(POINTER_MOVE, self._on_pointer_move))
        stack.enter_context(self._listeners.listen(POINTER_UP, self._on_pointer_up))
        self._gesture = stack
        self._state = state
        logger.debug("gesture %s started", state.value)

    def _exit(self) -> None:
        stack, self._gesture = self._gesture, None
        previous, self._state = self._state, GestureState.IDLE
        if stack is not None:
            stack.close()
        logger.debug("gesture %s ended", previous.value)

    def pointer_down(self, event: PointerEvent) -> bool:
        """Start a pan or drag gesture; returns ``False`` when the press is ignored."""

        if self._state is not GestureState.IDLE:
            logger.debug("ignored pointer down while %s", self._state.value)
            return False

        if self._is_pan_gesture(event):
            self._last_pan_x = event.x
            self._enter(GestureState.PANNING)
            return True

        task = self._task_lookup(event.target.task_id)
        if task is None:
            logger.debug("ignored pointer down on unknown task %s", event.target.task_id)
            return False
        if not self._drag.begin(task, event.target.operation, event.x):
            return False
        self._enter(GestureState.DRAGGING)
        return True

    def _on_pointer_move(self, event: PointerEvent) -> None:
        if self._state is GestureState.PANNING:
            delta = event.x - self._last_pan_x
            self._last_pan_x = event.x
            self._viewport.pan_by_pixels(delta)
        elif self._state is GestureState.DRAGGING:
            self._drag.update(event.x)

    def _on_pointer_up(self, event: PointerEvent) -> None:
        if self._state is GestureState.DRAGGING:
            self._drag.update(event.x)
            try:
                result = self._drag.finish()
            finally:
                self._exit()
            if (
                result is not None
                and not result.moved
                and result.operation is DragOperation.MOVE
                and self._on_select is not None
            ):
                self._on_select(result.task_id)
        elif self._state is GestureState.PANNING:
            self._on_pointer_move(event)
            self._exit()

    def wheel(self, event: WheelEvent) -> bool:
        """Zoom around the pointer; ignored during a pan or drag."""

        if self._state is not GestureState.IDLE:
            logger.debug("ignored wheel while %s", self._state.value)
            return False
        if event.delta_y == 0:
            return False
        factor = WHEEL_ZOOM_STEP if event.delta_y < 0 else 1 / WHEEL_ZOOM_STEP
        self._request_zoom(factor, event.x)
        return True

    def cancel(self) -> bool:
        """Abort the active gesture (focus or pointer capture lost)."""

        if self._state is GestureState.IDLE:
            return False
        try:
            if self._state is GestureState.DRAGGING:
                self._drag.cancel()
        finally:
            self._exit()
        return True

    def teardown(self) -> None:
        """Release everything the router holds; safe to call more than once."""

        self.cancel()
