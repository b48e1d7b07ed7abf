"""Normalization pipeline: sentinels -> grouping -> grid -> peaks -> gap fill.

Every function here recomputes from its inputs alone; calling one twice with
the same arguments returns equal rows.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from ..analysis.grouping import clip_to_window, group_samples, grouping_tolerance_ms
from ..analysis.interpolate import interpolate_gaps
from ..analysis.peaks import suppress_peaks
from ..analysis.resample import resample
from ..analysis.sentinel import normalize_samples
from ..config.runtime import NodeChartConfig
from ..tools.debug import timed
from .models import MeasurementTask, RawSample, SeriesKey, SeriesRow, ViewWindow

__all__ = [
    "build_ping_series",
    "build_load_series",
    "series_keys",
]


def series_keys(rows: Iterable[SeriesRow]) -> List[SeriesKey]:
    """Keys present in ``rows``, in first-seen order."""
    seen: dict = {}
    for row in rows:
        for key in row.keys():
            seen.setdefault(key, None)
    return list(seen)


def _cut_peaks(rows, keys, config: NodeChartConfig):
    return suppress_peaks(
        rows,
        keys,
        spike_ratio=config.spike_ratio,
        damping=config.peak_damping,
        min_rise=config.peak_min_rise,
    )


def _fill_gaps(rows, keys, config: NodeChartConfig, interval_ms: Optional[int]):
    return interpolate_gaps(
        rows,
        keys,
        max_gap_multiplier=config.max_gap_multiplier,
        min_cap_ms=config.min_cap_ms,
        max_cap_ms=config.max_cap_ms,
        interval_ms=interval_ms,
    )


@timed()
def build_ping_series(
    samples: Sequence[RawSample],
    tasks: Sequence[MeasurementTask],
    hours: float,
    *,
    config: Optional[NodeChartConfig] = None,
    cut_peak: bool = False,
    resample_grid: bool = True,
    end_ms: Optional[int] = None,
) -> List[SeriesRow]:
    """
    Turn raw probe samples from several tasks into chart rows.

    With ``resample_grid`` the rows sit on the grid chosen for ``hours``;
    without it the aligned rows are clipped to the window and interpolated
    using their median spacing. Peak suppression and interpolation only
    touch task keys.
    """
    config = config or NodeChartConfig()
    window = ViewWindow.resolve(hours)
    if not samples:
        return []

    tolerance = grouping_tolerance_ms(
        tasks,
        fraction=config.tolerance_fraction,
        min_ms=config.min_tolerance_ms,
        max_ms=config.max_tolerance_ms,
        default_interval_s=config.default_task_interval_s,
    )
    aligned = group_samples(normalize_samples(samples), tasks, tolerance_ms=tolerance)

    if resample_grid:
        rows: List[SeriesRow] = resample(
            aligned, window, end_ms=end_ms, trim_leading=config.trim_leading
        )
        interval_ms: Optional[int] = window.interval_ms
    else:
        rows = clip_to_window(aligned, window.requested_hours)
        interval_ms = None

    keys = [task.key for task in tasks] if tasks else series_keys(rows)
    if cut_peak and keys:
        rows = _cut_peaks(rows, keys, config)
    if keys and rows:
        rows = _fill_gaps(rows, keys, config, interval_ms)
    return rows


@timed()
def build_load_series(
    rows: Sequence[SeriesRow],
    hours: float,
    *,
    config: Optional[NodeChartConfig] = None,
    keys: Optional[Sequence[SeriesKey]] = None,
    cut_peak: bool = False,
    end_ms: Optional[int] = None,
) -> List[SeriesRow]:
    """Resample flat load rows onto the grid for ``hours`` and fill short gaps."""
    config = config or NodeChartConfig()
    window = ViewWindow.resolve(hours)
    if not rows:
        return []

    gridded: List[SeriesRow] = resample(
        rows, window, end_ms=end_ms, trim_leading=config.trim_leading
    )
    target_keys = list(keys) if keys is not None else series_keys(gridded)
    if cut_peak and target_keys:
        gridded = _cut_peaks(gridded, target_keys, config)
    if target_keys and gridded:
        gridded = _fill_gaps(gridded, target_keys, config, window.interval_ms)
    return gridded
