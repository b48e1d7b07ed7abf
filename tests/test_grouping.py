import pathlib
import sys
import unittest

import numpy as np

# Ensure src/ is on path for direct test execution
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from nodechart.analysis.grouping import (  # noqa: E402
    AnchorIndex,
    clip_to_window,
    group_samples,
    grouping_tolerance_ms,
)
from nodechart.core.models import MS_PER_HOUR, AlignedRow, MeasurementTask, RawSample  # noqa: E402


def _task(task_id, interval):
    return MeasurementTask(id=task_id, name=f"task-{task_id}", sampling_interval_seconds=interval)


class ToleranceTest(unittest.TestCase):
    def test_defaults_to_sixty_seconds_without_tasks(self):
        # 60 s * 1000 * 0.25 = 15000, clamped to 6000
        self.assertEqual(grouping_tolerance_ms([]), 6000)

    def test_uses_fastest_task(self):
        tasks = [_task(1, 60), _task(2, 4)]
        self.assertEqual(grouping_tolerance_ms(tasks), 1000)

    def test_clamps_to_lower_bound(self):
        self.assertEqual(grouping_tolerance_ms([_task(1, 1)]), 800)

    def test_ignores_non_positive_intervals(self):
        tasks = [_task(1, 0), _task(2, -5), _task(3, 8)]
        self.assertEqual(grouping_tolerance_ms(tasks), 2000)


class GroupSamplesTest(unittest.TestCase):
    def test_samples_within_tolerance_share_a_row(self):
        samples = [
            RawSample(task_id=1, timestamp_ms=0, value=10.0),
            RawSample(task_id=2, timestamp_ms=900, value=20.0),
        ]
        rows = group_samples(samples, tolerance_ms=1000)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].timestamp_ms, 0)
        self.assertEqual(dict(rows[0].values), {1: 10.0, 2: 20.0})

    def test_samples_beyond_tolerance_get_separate_rows(self):
        samples = [
            RawSample(task_id=1, timestamp_ms=0, value=10.0),
            RawSample(task_id=2, timestamp_ms=1100, value=20.0),
        ]
        rows = group_samples(samples, tolerance_ms=1000)
        self.assertEqual([row.timestamp_ms for row in rows], [0, 1100])

    def test_first_sample_per_task_wins(self):
        samples = [
            RawSample(task_id=1, timestamp_ms=0, value=1.0),
            RawSample(task_id=1, timestamp_ms=500, value=2.0),
        ]
        rows = group_samples(samples, tolerance_ms=1000)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].get(1), 1.0)

    def test_missing_value_still_claims_the_slot(self):
        samples = [
            RawSample(task_id=1, timestamp_ms=0, value=None),
            RawSample(task_id=1, timestamp_ms=200, value=5.0),
        ]
        rows = group_samples(samples, tolerance_ms=1000)
        self.assertIsNone(rows[0].get(1))

    def test_nearest_anchor_is_chosen(self):
        samples = [
            RawSample(task_id=1, timestamp_ms=0, value=1.0),
            RawSample(task_id=1, timestamp_ms=1500, value=2.0),
            RawSample(task_id=2, timestamp_ms=900, value=3.0),
        ]
        rows = group_samples(samples, tolerance_ms=1000)
        self.assertEqual([row.timestamp_ms for row in rows], [0, 1500])
        self.assertIsNone(rows[0].get(2))
        self.assertEqual(rows[1].get(2), 3.0)

    def test_tie_goes_to_earlier_discovered_anchor(self):
        index = AnchorIndex(1000)
        index.add(2000)
        index.add(0)
        self.assertEqual(index.match(1000), 2000)

    def test_rows_are_sorted_even_with_skewed_input(self):
        samples = [
            RawSample(task_id=1, timestamp_ms=60_000, value=1.0),
            RawSample(task_id=2, timestamp_ms=0, value=2.0),
            RawSample(task_id=1, timestamp_ms=120_000, value=3.0),
        ]
        rows = group_samples(samples, tolerance_ms=1000)
        self.assertEqual([row.timestamp_ms for row in rows], [0, 60_000, 120_000])

    def test_malformed_timestamps_are_dropped(self):
        samples = [
            RawSample(task_id=1, timestamp_ms="yesterday", value=1.0),
            RawSample(task_id=1, timestamp_ms=None, value=1.0),
            RawSample(task_id=2, timestamp_ms=0, value=2.0),
        ]
        rows = group_samples(samples, tolerance_ms=1000)
        self.assertEqual(len(rows), 1)
        self.assertEqual(dict(rows[0].values), {2: 2.0})

    def test_numpy_integer_timestamps_are_accepted(self):
        samples = [
            RawSample(task_id=1, timestamp_ms=np.int64(1000), value=1.0),
            RawSample(task_id=2, timestamp_ms=np.int64(1500), value=2.0),
        ]
        rows = group_samples(samples, tolerance_ms=1000)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].timestamp_ms, 1000)
        self.assertIs(type(rows[0].timestamp_ms), int)
        self.assertEqual(dict(rows[0].values), {1: 1.0, 2: 2.0})

    def test_empty_input(self):
        self.assertEqual(group_samples([], tolerance_ms=1000), [])


class ClipToWindowTest(unittest.TestCase):
    def test_keeps_one_row_before_boundary(self):
        hours = [0, 5, 7, 8.5, 10]
        rows = [AlignedRow(timestamp_ms=int(h * MS_PER_HOUR), values={1: 1.0}) for h in hours]
        clipped = clip_to_window(rows, 2)
        self.assertEqual(
            [row.timestamp_ms for row in clipped],
            [7 * MS_PER_HOUR, int(8.5 * MS_PER_HOUR), 10 * MS_PER_HOUR],
        )

    def test_empty(self):
        self.assertEqual(clip_to_window([], 1), [])


if __name__ == "__main__":
    unittest.main()
