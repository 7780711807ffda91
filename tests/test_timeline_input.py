import unittest

import pandas as pd

from timeline_drag import DragInteractionController, DragOperation
from timeline_input import (
    POINTER_MOVE,
    POINTER_UP,
    GestureState,
    GlobalListeners,
    HitTarget,
    InputRouter,
    PointerEvent,
    WheelEvent,
)
from timeline_tasks import Task
from timeline_viewport import ViewportController


def _ts(value: str) -> pd.Timestamp:
    return pd.Timestamp(value, tz="UTC")


TASK = Task("T1", "1001 - Kaneko", _ts("2024-01-10T09:00"), _ts("2024-01-10T11:00"), "hsl(10, 70%, 50%)")


class InputTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.viewport = ViewportController(_ts("2024-01-10"), _ts("2024-01-11"), 960, now="2024-01-10")
        self.reschedules = []
        self.selected = []
        self.zooms = []
        self.drag = DragInteractionController(
            self.viewport.scale, lambda *args: self.reschedules.append(args)
        )
        self.listeners = GlobalListeners()
        self.router = InputRouter(
            self.listeners,
            self.viewport,
            self.drag,
            request_zoom=lambda factor, x: self.zooms.append((factor, x)),
            task_lookup={TASK.id: TASK}.get,
            on_select=self.selected.append,
        )

    def press_task(self, x: float = 360, operation: DragOperation = DragOperation.MOVE) -> bool:
        return self.router.pointer_down(PointerEvent(x=x, target=HitTarget(TASK.id, operation)))

    def move(self, x: float) -> None:
        self.listeners.dispatch(POINTER_MOVE, PointerEvent(x=x))

    def release(self, x: float) -> None:
        self.listeners.dispatch(POINTER_UP, PointerEvent(x=x))


class TestListenerLifecycle(InputTestCase):
    def test_listeners_exist_only_during_a_gesture(self) -> None:
        self.assertEqual(self.listeners.count(), 0)
        self.press_task()
        self.assertEqual(self.listeners.count(POINTER_MOVE), 1)
        self.assertEqual(self.listeners.count(POINTER_UP), 1)
        self.move(400)
        self.release(440)
        self.assertEqual(self.listeners.count(), 0)
        self.assertIs(self.router.state, GestureState.IDLE)

    def test_cancel_releases_listeners_without_reschedule(self) -> None:
        self.press_task()
        self.move(500)
        self.assertTrue(self.router.cancel())
        self.assertEqual(self.listeners.count(), 0)
        self.assertFalse(self.drag.is_dragging)
        self.assertEqual(self.reschedules, [])

    def test_teardown_mid_gesture_releases_everything(self) -> None:
        self.router.pointer_down(PointerEvent(x=100, button=1))
        self.router.teardown()
        self.router.teardown()
        self.assertEqual(self.listeners.count(), 0)
        self.assertIs(self.router.state, GestureState.IDLE)

    def test_listen_context_removes_listener_on_error(self) -> None:
        seen = []
        with self.assertRaises(RuntimeError):
            with self.listeners.listen(POINTER_MOVE, seen.append):
                self.assertEqual(self.listeners.count(POINTER_MOVE), 1)
                raise RuntimeError("boom")
        self.assertEqual(self.listeners.count(), 0)


class TestGestureSelection(InputTestCase):
    def test_drag_on_task_reschedules_once(self) -> None:
        self.assertTrue(self.press_task())
        self.assertIs(self.router.state, GestureState.DRAGGING)
        self.move(400)
        self.release(440)
        self.assertEqual(self.reschedules, [("T1", _ts("2024-01-10T11:00"), _ts("2024-01-10T13:00"))])
        self.assertEqual(self.selected, [])

    def test_click_on_task_body_selects(self) -> None:
        self.press_task()
        self.release(361)
        self.assertEqual(self.selected, ["T1"])
        self.assertEqual(self.reschedules, [])

    def test_click_on_handle_does_not_select(self) -> None:
        self.press_task(x=440, operation=DragOperation.RESIZE_END)
        self.release(440)
        self.assertEqual(self.selected, [])

    def test_non_primary_button_pans_even_on_a_task(self) -> None:
        start = self.viewport.domain_start
        event = PointerEvent(x=360, button=2, target=HitTarget(TASK.id))
        self.assertTrue(self.router.pointer_down(event))
        self.assertIs(self.router.state, GestureState.PANNING)
        self.assertFalse(self.drag.is_dragging)
        self.move(400)
        self.release(440)
        self.assertEqual(self.viewport.domain_start, start - pd.Timedelta(hours=2))
        self.assertEqual(self.reschedules, [])

    def test_modifier_turns_primary_press_into_pan(self) -> None:
        event = PointerEvent(x=360, modifiers=frozenset({"shift"}), target=HitTarget(TASK.id))
        self.router.pointer_down(event)
        self.assertIs(self.router.state, GestureState.PANNING)

    def test_primary_press_on_background_pans(self) -> None:
        start = self.viewport.domain_start
        self.router.pointer_down(PointerEvent(x=500))
        self.move(460)
        self.release(460)
        self.assertEqual(self.viewport.domain_start, start + pd.Timedelta(hours=1))

    def test_second_press_is_ignored_while_active(self) -> None:
        self.press_task()
        self.assertFalse(self.router.pointer_down(PointerEvent(x=10, button=1)))
        self.assertIs(self.router.state, GestureState.DRAGGING)
        self.assertEqual(self.listeners.count(POINTER_MOVE), 1)

    def test_unknown_task_is_ignored(self) -> None:
        event = PointerEvent(x=360, target=HitTarget("missing"))
        self.assertFalse(self.router.pointer_down(event))
        self.assertEqual(self.listeners.count(), 0)


class TestWheel(InputTestCase):
    def test_wheel_up_requests_zoom_in_at_pointer(self) -> None:
        self.assertTrue(self.router.wheel(WheelEvent(x=321, delta_y=-120)))
        self.assertEqual(self.zooms, [(1.1, 321)])

    def test_wheel_down_requests_zoom_out(self) -> None:
        self.router.wheel(WheelEvent(x=10, delta_y=3))
        factor, x = self.zooms[0]
        self.assertAlmostEqual(factor, 1 / 1.1)
        self.assertEqual(x, 10)

    def test_wheel_ignored_during_gestures(self) -> None:
        self.press_task()
        self.assertFalse(self.router.wheel(WheelEvent(x=10, delta_y=-1)))
        self.release(360)
        self.router.pointer_down(PointerEvent(x=10, button=1))
        self.assertFalse(self.router.wheel(WheelEvent(x=10, delta_y=-1)))
        self.assertEqual(self.zooms, [])

    def test_zero_delta_is_ignored(self) -> None:
        self.assertFalse(self.router.wheel(WheelEvent(x=10, delta_y=0)))
        self.assertEqual(self.zooms, [])


if __name__ == "__main__":
    unittest.main()
