import unittest

import pandas as pd

from timeline_drag import DragInteractionController, DragOperation
from timeline_input import HitTarget
from timeline_render import RenderModel, handle_width
from timeline_tasks import Task
from timeline_ticks import AXIS_PRIMARY, find_axis
from timeline_viewport import ViewportController


def _ts(value: str) -> pd.Timestamp:
    return pd.Timestamp(value, tz="UTC")


def _task(task_id: str, start: str, end: str) -> Task:
    return Task(task_id, f"{task_id} - label", _ts(start), _ts(end), "hsl(42, 70%, 50%)")


TASKS = [
    _task("A", "2024-01-10T06:00", "2024-01-10T12:00"),
    _task("B", "2024-01-10T12:00", "2024-01-10T18:00"),
    _task("C", "2024-01-10T03:00", "2024-01-10T03:00"),
]


class RenderTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.viewport = ViewportController(_ts("2024-01-10"), _ts("2024-01-11"), 960, now="2024-01-10")
        self.drag = DragInteractionController(self.viewport.scale, lambda *args: None)
        self.model = RenderModel(self.viewport, self.drag, plot_height=300)
        self.model.set_tasks(TASKS)


class TestFrame(RenderTestCase):
    def test_bar_geometry(self) -> None:
        frame = self.model.frame()
        self.assertEqual(frame.row_height, 100)
        first, second = frame.bars
        self.assertAlmostEqual(first.x, 240)
        self.assertAlmostEqual(first.width, 240)
        self.assertAlmostEqual(first.y, 20)
        self.assertAlmostEqual(first.height, 60)
        self.assertEqual(second.row, 1)
        self.assertAlmostEqual(second.y, 120)
        self.assertAlmostEqual(second.x_end, 720)
        self.assertEqual(first.color, "hsl(42, 70%, 50%)")
        self.assertIn("2024-01-10 06:00", first.hover_text)

    def test_zero_width_bar_is_hidden_but_keeps_its_row(self) -> None:
        frame = self.model.frame()
        self.assertNotIn("C", [bar.task_id for bar in frame.bars])
        self.assertEqual(frame.row_labels, ("A - label", "B - label", "C - label"))
        self.assertEqual(frame.grid_y, (0, 100, 200, 300))

    def test_grid_follows_primary_ticks(self) -> None:
        frame = self.model.frame()
        primary = find_axis(frame.axes, AXIS_PRIMARY)
        self.assertEqual(frame.grid_x, tuple(primary.positions))
        self.assertEqual(frame.pixel_width, 960)

    def test_dragged_bar_uses_candidate_times(self) -> None:
        self.drag.begin(TASKS[0], DragOperation.MOVE, 360)
        self.drag.update(456)
        frame = self.model.frame()
        bar = frame.bars[0]
        self.assertTrue(bar.dragging)
        self.assertFalse(frame.bars[1].dragging)
        self.assertAlmostEqual(bar.x, 336)
        self.assertAlmostEqual(bar.width, 240)
        self.assertEqual(frame.cursor, "grabbing")

    def test_frame_follows_the_viewport(self) -> None:
        self.viewport.zoom_at_anchor(2.0, 0)
        bar = self.model.frame().bars[0]
        self.assertAlmostEqual(bar.x, 480)
        self.assertAlmostEqual(bar.width, 480)

    def test_empty_task_list(self) -> None:
        self.model.set_tasks([])
        frame = self.model.frame()
        self.assertEqual(frame.bars, ())
        self.assertEqual(frame.row_height, 0.0)
        self.assertEqual(frame.grid_y, (0,))


class TestHitTest(RenderTestCase):
    def test_handles_win_over_body(self) -> None:
        self.assertEqual(self.model.hit_test(241, 50), HitTarget("A", DragOperation.RESIZE_START))
        self.assertEqual(self.model.hit_test(478, 50), HitTarget("A", DragOperation.RESIZE_END))
        self.assertEqual(self.model.hit_test(360, 50), HitTarget("A", DragOperation.MOVE))

    def test_row_decides_the_task(self) -> None:
        self.assertEqual(self.model.hit_test(600, 150), HitTarget("B", DragOperation.MOVE))
        self.assertEqual(self.model.hit_test(482, 150), HitTarget("B", DragOperation.RESIZE_START))

    def test_background_misses(self) -> None:
        self.assertIsNone(self.model.hit_test(360, 10))
        self.assertIsNone(self.model.hit_test(900, 50))
        self.assertIsNone(self.model.hit_test(72, 250))

    def test_narrow_bar_keeps_a_movable_middle(self) -> None:
        narrow = _task("N", "2024-01-10T20:00", "2024-01-10T20:09")
        self.model.set_tasks([TASKS[0], narrow])
        bar = self.model.frame().bars[1]
        self.assertAlmostEqual(bar.width, 6)
        self.assertAlmostEqual(handle_width(bar.width), 2)
        self.assertEqual(self.model.hit_test(803, 220), HitTarget("N", DragOperation.MOVE))
        self.assertEqual(self.model.hit_test(800, 220), HitTarget("N", DragOperation.RESIZE_START))
        self.assertEqual(self.model.hit_test(806, 220), HitTarget("N", DragOperation.RESIZE_END))

    def test_find_task(self) -> None:
        self.assertIs(self.model.find_task("B"), TASKS[1])
        self.assertIsNone(self.model.find_task("Z"))


if __name__ == "__main__":
    unittest.main()
