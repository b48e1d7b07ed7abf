"""Linear gap filling that refuses to bridge real outages."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar

import numpy as np

from ..core.models import MS_PER_MINUTE, SeriesKey, SeriesRow, Value

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", bound=SeriesRow)

DEFAULT_MAX_GAP_MULTIPLIER = 6.0
DEFAULT_MIN_CAP_MS = 2 * MS_PER_MINUTE
DEFAULT_MAX_CAP_MS = 30 * MS_PER_MINUTE


def infer_interval_ms(timestamps: Sequence[int]) -> Optional[int]:
    """Median positive spacing between consecutive timestamps."""
    if len(timestamps) < 2:
        return None
    deltas = np.diff(np.asarray(timestamps, dtype=np.int64))
    deltas = deltas[deltas > 0]
    if deltas.size == 0:
        return None
    return int(np.median(deltas))


def gap_cap_ms(
    interval_ms: float,
    *,
    max_gap_multiplier: float = DEFAULT_MAX_GAP_MULTIPLIER,
    min_cap_ms: float = DEFAULT_MIN_CAP_MS,
    max_cap_ms: float = DEFAULT_MAX_CAP_MS,
) -> float:
    """Longest gap (left known point to right known point) eligible for filling."""
    return min(max_cap_ms, max(min_cap_ms, interval_ms * max_gap_multiplier))


def interpolate_gaps(
    rows: Sequence[RowT],
    keys: Iterable[SeriesKey],
    *,
    max_gap_multiplier: float = DEFAULT_MAX_GAP_MULTIPLIER,
    min_cap_ms: float = DEFAULT_MIN_CAP_MS,
    max_cap_ms: float = DEFAULT_MAX_CAP_MS,
    interval_ms: Optional[int] = None,
) -> List[RowT]:
    """
    Fill interior missing runs by time-proportional linear interpolation.

    A run is filled only when the span between its two bounding known values
    is at most the gap cap; longer runs stay missing. Leading and trailing
    runs have a single bound and are never filled.

    Parameters
    ----------
    rows:
        Rows ordered by ascending timestamp.
    keys:
        Keys to treat. Other keys pass through untouched.
    interval_ms:
        Grid spacing. Inferred from the rows (median spacing) when omitted.
    """
    result = list(rows)
    if len(result) < 2:
        return result

    timestamps = np.array([row.timestamp_ms for row in result], dtype=np.int64)
    if interval_ms is None:
        interval_ms = infer_interval_ms(timestamps.tolist())
        if interval_ms is None:
            return result
    cap = gap_cap_ms(
        interval_ms,
        max_gap_multiplier=max_gap_multiplier,
        min_cap_ms=min_cap_ms,
        max_cap_ms=max_cap_ms,
    )

    updates: Dict[int, Dict[SeriesKey, Value]] = {}
    skipped = 0
    for key in keys:
        raw = [row.get(key) for row in result]
        known_idx = np.array([i for i, v in enumerate(raw) if v is not None], dtype=np.int64)
        if known_idx.size < 2:
            continue
        # consecutive known points with at least one missing point between them
        left = known_idx[:-1]
        right = known_idx[1:]
        holes = right - left > 1
        for lo, hi in zip(left[holes].tolist(), right[holes].tolist()):
            span = timestamps[hi] - timestamps[lo]
            if span > cap:
                skipped += 1
                continue
            inner_ts = timestamps[lo + 1 : hi]
            filled = np.interp(
                inner_ts,
                [timestamps[lo], timestamps[hi]],
                [raw[lo], raw[hi]],
            )
            for offset, value in enumerate(filled.tolist(), start=lo + 1):
                updates.setdefault(offset, {})[key] = float(value)

    if skipped:
        logger.debug("Left %d gaps longer than %.0f ms unfilled", skipped, cap)

    for idx, changes in updates.items():
        result[idx] = result[idx].with_values(changes)
    return result
