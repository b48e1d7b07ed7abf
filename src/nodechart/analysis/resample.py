"""Project timestamped rows onto a fixed-cadence grid."""

from __future__ import annotations

from math import floor
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..core.models import GridRow, SeriesKey, SeriesRow, Value, ViewWindow


def bucket_start(timestamp_ms: int, interval_ms: int) -> int:
    """Floor ``timestamp_ms`` to the start of its ``interval_ms`` bucket."""
    return int(floor(timestamp_ms / interval_ms) * interval_ms)


def grid_timestamps(end_ms: int, window: ViewWindow) -> np.ndarray:
    """
    Ascending slot timestamps covering ``window`` and ending at ``end_ms``.

    ``end_ms`` is floored to a cadence boundary first.
    """
    interval = window.interval_ms
    window_end = bucket_start(end_ms, interval)
    steps = window.duration_ms // interval
    return window_end - interval * np.arange(steps, -1, -1, dtype=np.int64)


def _nearest_indices(source_ts: np.ndarray, slots: np.ndarray, radius_ms: float) -> np.ndarray:
    """
    Index of the nearest source timestamp for each slot, or -1.

    Ties resolve to the earlier source row.
    """
    n = source_ts.size
    right = np.searchsorted(source_ts, slots, side="left")
    left = right - 1

    right_ok = right < n
    left_ok = left >= 0
    right_c = np.clip(right, 0, n - 1)
    left_c = np.clip(left, 0, n - 1)

    right_dist = np.where(right_ok, np.abs(source_ts[right_c] - slots), np.iinfo(np.int64).max)
    left_dist = np.where(left_ok, np.abs(slots - source_ts[left_c]), np.iinfo(np.int64).max)

    use_left = left_dist <= right_dist
    best = np.where(use_left, left_c, right_c)
    best_dist = np.where(use_left, left_dist, right_dist)
    return np.where(best_dist <= radius_ms, best, -1)


def resample(
    rows: Sequence[SeriesRow],
    window: ViewWindow,
    *,
    end_ms: Optional[int] = None,
    trim_leading: bool = True,
) -> List[GridRow]:
    """
    Resample ``rows`` (ascending by time) onto the grid for ``window``.

    Each slot copies the values of the nearest input row within half of the
    window's ``max_gap_ms``. Slots without a nearby row are kept with every
    known key set to ``None`` so a later interpolation pass can decide
    whether the hole is noise or an outage. ``trim_leading`` drops slots
    that come before the first input row. Empty input returns an empty list.
    """
    if not rows:
        return []
    rows = sorted(rows, key=lambda row: row.timestamp_ms)

    source_ts = np.fromiter((row.timestamp_ms for row in rows), dtype=np.int64, count=len(rows))
    if end_ms is None:
        end_ms = int(source_ts[-1])

    slots = grid_timestamps(int(end_ms), window)
    radius = window.max_gap_ms / 2.0
    if trim_leading:
        slots = slots[slots >= source_ts[0] - radius]
    if slots.size == 0:
        return []

    keys: Dict[SeriesKey, None] = {}
    for row in rows:
        for key in row.keys():
            keys.setdefault(key, None)
    empty: Dict[SeriesKey, Value] = dict.fromkeys(keys)

    nearest = _nearest_indices(source_ts, slots, radius)
    out: List[GridRow] = []
    for slot, idx in zip(slots.tolist(), nearest.tolist()):
        values = dict(empty)
        if idx >= 0:
            values.update(rows[idx].values)
        out.append(GridRow(timestamp_ms=int(slot), values=values))
    return out
