import unittest

import pandas as pd

from timeline_drag import DragInteractionController, DragOperation, candidate_times
from timeline_scale import TimeDomainScale
from timeline_tasks import Task


def _ts(value: str) -> pd.Timestamp:
    return pd.Timestamp(value, tz="UTC")


def _day_scale(width: float = 960) -> TimeDomainScale:
    return TimeDomainScale(_ts("2024-01-10T00:00"), _ts("2024-01-11T00:00"), width)


TASK = Task("T1", "1001 - Kaneko", _ts("2024-01-10T09:00"), _ts("2024-01-10T11:00"), "hsl(10, 70%, 50%)")


class _Recorder:
    def __init__(self) -> None:
        self.calls = []

    def __call__(self, task_id, start, end) -> None:
        self.calls.append((task_id, start, end))


class DragTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.current_scale = _day_scale()
        self.calls = _Recorder()
        self.drag = DragInteractionController(lambda: self.current_scale, self.calls)


class TestMoveAndResize(DragTestCase):
    def test_move_shifts_both_ends(self) -> None:
        self.assertTrue(self.drag.begin(TASK, DragOperation.MOVE, 360))
        preview = self.drag.update(440)
        self.assertEqual((preview.start, preview.end), (_ts("2024-01-10T11:00"), _ts("2024-01-10T13:00")))
        result = self.drag.finish()
        self.assertTrue(result.moved)
        self.assertEqual(self.calls.calls, [("T1", _ts("2024-01-10T11:00"), _ts("2024-01-10T13:00"))])

    def test_resize_start_never_passes_end(self) -> None:
        self.drag.begin(TASK, "resize-start", 360)
        preview = self.drag.update(360 + 40 * 5)
        self.assertEqual(preview.start, TASK.end)
        self.assertEqual(preview.end, TASK.end)
        preview = self.drag.update(320)
        self.assertEqual(preview.start, _ts("2024-01-10T08:00"))
        self.assertEqual(preview.end, TASK.end)

    def test_resize_end_never_passes_start(self) -> None:
        self.drag.begin(TASK, DragOperation.RESIZE_END, 440)
        preview = self.drag.update(0)
        self.assertEqual((preview.start, preview.end), (TASK.start, TASK.start))
        self.drag.finish()
        self.assertEqual(self.calls.calls, [("T1", TASK.start, TASK.start)])

    def test_candidate_times_rejects_unknown_operation(self) -> None:
        with self.assertRaises(ValueError):
            candidate_times("stretch", TASK.start, TASK.end, pd.Timedelta(hours=1))

    def test_begin_rejects_unknown_operation(self) -> None:
        with self.assertRaises(ValueError):
            self.drag.begin(TASK, "stretch", 10)
        self.assertFalse(self.drag.is_dragging)


class TestGestureLifecycle(DragTestCase):
    def test_single_emission_per_gesture(self) -> None:
        self.drag.begin(TASK, DragOperation.MOVE, 360)
        for x in (370, 390, 420, 440):
            self.drag.update(x)
        self.drag.finish()
        self.assertIsNone(self.drag.finish())
        self.assertEqual(len(self.calls.calls), 1)

    def test_cancel_emits_nothing(self) -> None:
        self.drag.begin(TASK, DragOperation.MOVE, 360)
        self.drag.update(500)
        self.assertTrue(self.drag.cancel())
        self.assertFalse(self.drag.cancel())
        self.assertIsNone(self.drag.finish())
        self.assertEqual(self.calls.calls, [])
        self.assertEqual(self.drag.state, "idle")

    def test_moves_without_begin_are_ignored(self) -> None:
        self.assertIsNone(self.drag.update(100))
        self.assertIsNone(self.drag.finish())
        self.assertEqual(self.calls.calls, [])

    def test_second_begin_is_ignored(self) -> None:
        other = Task("T2", "other", _ts("2024-01-10T15:00"), _ts("2024-01-10T16:00"), "hsl(1, 70%, 50%)")
        self.drag.begin(TASK, DragOperation.MOVE, 360)
        self.assertFalse(self.drag.begin(other, DragOperation.MOVE, 600))
        self.assertEqual(self.drag.session.task_snapshot.id, "T1")

    def test_press_and_release_in_place_is_a_click(self) -> None:
        self.drag.begin(TASK, DragOperation.MOVE, 360)
        self.drag.update(362)
        result = self.drag.finish()
        self.assertFalse(result.moved)
        self.assertEqual(self.calls.calls, [])

    def test_zoomed_out_click_never_previews_a_shift(self) -> None:
        # 40 years over 800 px: 3 px is close to two months.
        self.current_scale = TimeDomainScale(_ts("2000-01-01"), _ts("2040-01-01"), 800)
        self.drag.begin(TASK, DragOperation.MOVE, 360)
        preview = self.drag.update(363)
        self.assertEqual((preview.start, preview.end), (TASK.start, TASK.end))
        self.assertEqual(self.drag.preview(TASK), TASK)
        self.assertFalse(self.drag.finish().moved)
        self.assertEqual(self.calls.calls, [])

    def test_zoomed_out_drag_commits_what_was_previewed(self) -> None:
        self.current_scale = TimeDomainScale(_ts("2000-01-01"), _ts("2040-01-01"), 800)
        self.drag.begin(TASK, DragOperation.MOVE, 360)
        self.drag.update(362)
        preview = self.drag.update(365)
        self.assertGreater(preview.start, TASK.start)
        self.drag.finish()
        self.assertEqual(self.calls.calls, [("T1", preview.start, preview.end)])

    def test_travel_back_to_origin_still_commits(self) -> None:
        self.drag.begin(TASK, DragOperation.MOVE, 360)
        self.drag.update(420)
        self.drag.update(360)
        result = self.drag.finish()
        self.assertTrue(result.moved)
        self.assertEqual(self.calls.calls, [("T1", TASK.start, TASK.end)])


class TestScaleAndPreview(DragTestCase):
    def test_current_scale_is_used_for_each_move(self) -> None:
        self.drag.begin(TASK, DragOperation.MOVE, 360)
        self.drag.update(400)
        self.assertEqual(self.drag.session.candidate_start, _ts("2024-01-10T10:00"))
        # Zoomed in twice as far: 40 px are now half an hour.
        self.current_scale = _day_scale(1920)
        self.drag.update(400)
        self.assertEqual(self.drag.session.candidate_start, _ts("2024-01-10T09:30"))

    def test_preview_replaces_only_the_dragged_task(self) -> None:
        other = Task("T2", "other", _ts("2024-01-10T15:00"), _ts("2024-01-10T16:00"), "hsl(1, 70%, 50%)")
        self.assertIs(self.drag.preview(TASK), TASK)
        self.drag.begin(TASK, DragOperation.MOVE, 360)
        self.drag.update(440)
        self.assertEqual(self.drag.preview(TASK).start, _ts("2024-01-10T11:00"))
        self.assertIs(self.drag.preview(other), other)
        self.assertEqual(TASK.start, _ts("2024-01-10T09:00"))

    def test_state_and_cursor(self) -> None:
        self.assertEqual((self.drag.state, self.drag.cursor), ("idle", "grab"))
        self.drag.begin(TASK, DragOperation.RESIZE_END, 440)
        self.assertEqual((self.drag.state, self.drag.cursor), ("dragging(resize-end)", "e-resize"))
        self.drag.cancel()
        self.drag.begin(TASK, DragOperation.RESIZE_START, 360)
        self.assertEqual(self.drag.cursor, "w-resize")


if __name__ == "__main__":
    unittest.main()
