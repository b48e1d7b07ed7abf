"""Group samples from concurrent measurement tasks under shared anchors.

Independent probes rarely fire on the same clock tick. Grouping every sample
that falls within a tolerance of an existing anchor into one row lets a chart
show all tasks side by side instead of one task per row.
"""

from __future__ import annotations

import bisect
import logging
import math
import numbers
from typing import Dict, Iterable, List, Optional, Sequence

from ..core.models import MS_PER_HOUR, AlignedRow, MeasurementTask, RawSample, SeriesKey, Value

logger = logging.getLogger(__name__)

DEFAULT_TASK_INTERVAL_S = 60.0
TOLERANCE_FRACTION = 0.25
MIN_TOLERANCE_MS = 800
MAX_TOLERANCE_MS = 6000


def fallback_interval_seconds(
    tasks: Iterable[MeasurementTask],
    default: float = DEFAULT_TASK_INTERVAL_S,
) -> float:
    """Return the shortest positive sampling interval among ``tasks``."""
    intervals = []
    for task in tasks:
        interval = task.sampling_interval_seconds
        if isinstance(interval, (int, float)) and not isinstance(interval, bool) and interval > 0:
            intervals.append(float(interval))
    return min(intervals) if intervals else float(default)


def grouping_tolerance_ms(
    tasks: Iterable[MeasurementTask],
    *,
    fraction: float = TOLERANCE_FRACTION,
    min_ms: int = MIN_TOLERANCE_MS,
    max_ms: int = MAX_TOLERANCE_MS,
    default_interval_s: float = DEFAULT_TASK_INTERVAL_S,
) -> int:
    """
    Tolerance used to decide whether two samples belong to the same row.

    A quarter of the fastest task interval, clamped to ``[min_ms, max_ms]``.
    """
    interval_s = fallback_interval_seconds(tasks, default_interval_s)
    raw = int(math.floor(interval_s * 1000.0 * fraction))
    return min(max_ms, max(min_ms, raw))


class AnchorIndex:
    """
    Sorted anchor timestamps with nearest-match lookup.

    Anchors are only created when no existing anchor lies within the
    tolerance, so any two anchors are more than ``tolerance_ms`` apart and at
    most the two neighbours of an insertion point can match.
    """

    __slots__ = ("tolerance_ms", "_sorted", "_order")

    def __init__(self, tolerance_ms: int) -> None:
        if tolerance_ms < 0:
            raise ValueError("tolerance_ms must be >= 0")
        self.tolerance_ms = int(tolerance_ms)
        self._sorted: List[int] = []
        # discovery position of each anchor, used to break ties
        self._order: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._sorted)

    def match(self, timestamp_ms: int) -> Optional[int]:
        """Return the anchor ``timestamp_ms`` belongs to, or ``None``."""
        idx = bisect.bisect_left(self._sorted, timestamp_ms)
        best: Optional[int] = None
        for candidate_idx in (idx - 1, idx):
            if candidate_idx < 0 or candidate_idx >= len(self._sorted):
                continue
            anchor = self._sorted[candidate_idx]
            distance = abs(anchor - timestamp_ms)
            if distance > self.tolerance_ms:
                continue
            if best is None:
                best = anchor
                continue
            best_distance = abs(best - timestamp_ms)
            if distance < best_distance or (
                distance == best_distance and self._order[anchor] < self._order[best]
            ):
                best = anchor
        return best

    def add(self, timestamp_ms: int) -> int:
        bisect.insort(self._sorted, timestamp_ms)
        self._order[timestamp_ms] = len(self._order)
        return timestamp_ms

    def anchor_for(self, timestamp_ms: int) -> int:
        """Return the matching anchor, creating one at ``timestamp_ms`` if needed."""
        anchor = self.match(timestamp_ms)
        if anchor is None:
            anchor = self.add(timestamp_ms)
        return anchor


def _usable_timestamp(sample: RawSample) -> Optional[int]:
    ts = sample.timestamp_ms
    # numpy integer scalars register as Integral
    if isinstance(ts, bool) or not isinstance(ts, numbers.Integral):
        return None
    return int(ts)


def group_samples(
    samples: Iterable[RawSample],
    tasks: Sequence[MeasurementTask] = (),
    *,
    tolerance_ms: Optional[int] = None,
) -> List[AlignedRow]:
    """
    Cluster normalized samples into rows keyed by anchor timestamp.

    The first sample of a task at an anchor wins; later samples of the same
    task within the tolerance are dropped. Samples without a usable integer
    timestamp are skipped.
    """
    if tolerance_ms is None:
        tolerance_ms = grouping_tolerance_ms(tasks)
    index = AnchorIndex(tolerance_ms)
    grouped: Dict[int, Dict[SeriesKey, Value]] = {}
    dropped = 0

    for sample in samples:
        ts = _usable_timestamp(sample)
        if ts is None:
            dropped += 1
            continue
        anchor = index.anchor_for(ts)
        row = grouped.setdefault(anchor, {})
        if sample.task_id in row:
            continue
        row[sample.task_id] = sample.value

    if dropped:
        logger.debug("Dropped %d samples without a usable timestamp", dropped)

    return [AlignedRow(timestamp_ms=anchor, values=grouped[anchor]) for anchor in sorted(grouped)]


def clip_to_window(rows: Sequence[AlignedRow], hours: float) -> List[AlignedRow]:
    """
    Keep rows within ``hours`` of the newest row.

    The last row before the boundary is kept as well so the first visible
    segment of the chart starts at the window edge.
    """
    if not rows:
        return []
    from_ts = rows[-1].timestamp_ms - int(round(float(hours) * MS_PER_HOUR))
    start_idx = 0
    for i, row in enumerate(rows):
        if row.timestamp_ms >= from_ts:
            start_idx = max(0, i - 1)
            break
    return list(rows[start_idx:])
