"""Dampen isolated single-sample spikes before interpolation.

A point is an isolated spike when it rises above *both* of its immediate
neighbours by at least ``max(min_rise, (spike_ratio - 1) * |hi|)``, where
``hi`` is the larger neighbour. The threshold level ``knee = hi + rise`` is
kept and whatever sticks out above it is scaled by ``damping``::

    v' = knee + (v - knee) * damping

The mapping is continuous and monotonic in ``v``. A sustained level shift
is never touched because at least one neighbour sits on the same level.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Sequence, Tuple, TypeVar

import numpy as np
from scipy import signal

from ..core.models import SeriesKey, SeriesRow, Value

RowT = TypeVar("RowT", bound=SeriesRow)

DEFAULT_SPIKE_RATIO = 1.5
DEFAULT_DAMPING = 0.1
DEFAULT_MIN_RISE = 1.0


def _known_runs(known: np.ndarray) -> Iterator[Tuple[int, int]]:
    """Yield ``(start, stop)`` for each contiguous run of known values."""
    padded = np.concatenate(([False], known, [False]))
    edges = np.flatnonzero(np.diff(padded.astype(np.int8)))
    for start, stop in zip(edges[0::2], edges[1::2]):
        yield int(start), int(stop)


def suppress_array(
    values: np.ndarray,
    known: np.ndarray,
    *,
    spike_ratio: float = DEFAULT_SPIKE_RATIO,
    damping: float = DEFAULT_DAMPING,
    min_rise: float = DEFAULT_MIN_RISE,
) -> np.ndarray:
    """
    Return a copy of ``values`` with isolated spikes damped.

    Only entries where ``known`` is true are inspected; a point next to a
    missing value has no complete neighbourhood and is left alone.
    """
    out = np.array(values, dtype=np.float64, copy=True)
    for start, stop in _known_runs(np.asarray(known, dtype=bool)):
        seg = out[start:stop]
        if seg.size < 3:
            continue
        hi = np.empty_like(seg)
        hi[1:-1] = np.maximum(seg[:-2], seg[2:])
        hi[0], hi[-1] = seg[0], seg[-1]
        rise = np.maximum(min_rise, (spike_ratio - 1.0) * np.abs(hi))
        peaks, _ = signal.find_peaks(seg, threshold=rise)
        if peaks.size == 0:
            continue
        knee = hi[peaks] + rise[peaks]
        seg[peaks] = knee + (seg[peaks] - knee) * damping
    return out


def suppress_peaks(
    rows: Sequence[RowT],
    keys: Iterable[SeriesKey],
    *,
    spike_ratio: float = DEFAULT_SPIKE_RATIO,
    damping: float = DEFAULT_DAMPING,
    min_rise: float = DEFAULT_MIN_RISE,
) -> List[RowT]:
    """Apply :func:`suppress_array` to each key of ``rows`` independently."""
    if spike_ratio < 1.0:
        raise ValueError(f"spike_ratio must be >= 1, got {spike_ratio}")
    if not 0.0 <= damping <= 1.0:
        raise ValueError(f"damping must be within [0, 1], got {damping}")
    if min_rise <= 0.0:
        raise ValueError(f"min_rise must be > 0, got {min_rise}")

    result = list(rows)
    if len(result) < 3:
        return result

    updates: Dict[int, Dict[SeriesKey, Value]] = {}
    for key in keys:
        raw = [row.get(key) for row in result]
        known = np.array([v is not None for v in raw], dtype=bool)
        if known.sum() < 3:
            continue
        values = np.array([0.0 if v is None else v for v in raw], dtype=np.float64)
        damped = suppress_array(
            values, known, spike_ratio=spike_ratio, damping=damping, min_rise=min_rise
        )
        for idx in np.flatnonzero(known & (damped != values)).tolist():
            updates.setdefault(idx, {})[key] = float(damped[idx])

    for idx, changes in updates.items():
        result[idx] = result[idx].with_values(changes)
    return result
