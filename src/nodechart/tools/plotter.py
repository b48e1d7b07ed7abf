#!/usr/bin/env python3
"""
Simple CLI plotter for saved history responses.

Loads a JSON response captured from the records endpoint (ping or load),
runs it through the normalization pipeline and shows the result in a
standard Matplotlib window. Gaps the pipeline leaves open are drawn as
breaks in the line, which makes it easy to check the interpolation cap
against real data.

``--dump`` prints the normalized rows as JSON instead of plotting.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from ..config.runtime import NodeChartConfig, load_config
from ..core.models import SeriesKey, SeriesRow
from ..core.pipeline import build_load_series, build_ping_series, series_keys
from ..dataio.records import QueryResult, parse_query_result

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- # helpers
def load_response(path: Path) -> QueryResult:
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Response file {path} must contain a JSON object")
    return parse_query_result(payload)


def normalize_response(
    result: QueryResult,
    hours: float,
    *,
    config: NodeChartConfig,
    cut_peak: bool = False,
) -> tuple[List[SeriesRow], List[SeriesKey]]:
    """Pick the ping or load pipeline depending on what the response holds."""
    if result.samples:
        rows = build_ping_series(
            result.samples, result.tasks, hours, config=config, cut_peak=cut_peak
        )
        keys = [task.key for task in result.tasks] or series_keys(rows)
    else:
        rows = build_load_series(result.rows, hours, config=config, cut_peak=cut_peak)
        keys = series_keys(rows)
    return rows, keys


def _series_arrays(rows: Sequence[SeriesRow], key: SeriesKey) -> tuple[list[datetime], np.ndarray]:
    times = [datetime.fromtimestamp(row.timestamp_ms / 1000.0, tz=timezone.utc) for row in rows]
    # NaN only for drawing: Matplotlib breaks lines at NaN
    values = np.array(
        [np.nan if row.get(key) is None else row.get(key) for row in rows], dtype=float
    )
    return times, values


def plot_rows(
    rows: Sequence[SeriesRow],
    keys: Sequence[SeriesKey],
    *,
    labels: Optional[dict] = None,
    title: str = "nodechart",
) -> None:
    labels = labels or {}
    fig, ax = plt.subplots(figsize=(12, 5))
    for key in keys:
        times, values = _series_arrays(rows, key)
        ax.plot(times, values, label=str(labels.get(key, key)), linewidth=1.5)
    ax.set_xlabel("time (UTC)")
    ax.grid(True)
    if keys:
        ax.legend(loc="upper right")
    if fig.canvas.manager is not None:
        fig.canvas.manager.set_window_title(title)
    fig.autofmt_xdate()
    plt.show()


# --------------------------------------------------------------------------- # CLI
def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Plot (or dump) a saved history response after normalization."
    )
    parser.add_argument("-f", "--file", required=True, help="Path to a saved JSON response.")
    parser.add_argument(
        "-H",
        "--hours",
        type=float,
        default=4.0,
        help="Requested window in hours (default: 4).",
    )
    parser.add_argument("-c", "--config", help="Optional YAML config file.")
    parser.add_argument(
        "--cut-peak",
        action="store_true",
        help="Dampen isolated spikes before interpolation.",
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Print normalized rows as JSON instead of opening a plot window.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    path = Path(args.file).expanduser().resolve()
    if not path.exists():
        parser.error(f"Response file not found: {path}")
    if args.hours <= 0:
        parser.error("--hours must be positive")

    config = load_config(args.config)
    try:
        result = load_response(path)
    except ValueError as exc:
        parser.error(str(exc))

    rows, keys = normalize_response(result, args.hours, config=config, cut_peak=args.cut_peak)
    if args.dump:
        json.dump([row.as_dict() for row in rows], sys.stdout, indent=2)
        sys.stdout.write("\n")
        return 0

    if not rows:
        logger.info("No data in %s for the last %.1f h", path, args.hours)
        return 0

    labels = {task.key: task.name for task in result.tasks}
    try:
        plot_rows(rows, keys, labels=labels, title=f"nodechart: {path.name}")
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
