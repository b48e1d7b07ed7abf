"""Per-view chart state that recomputes the full series on every trigger."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Sequence

from ..analysis.summary import latest_values
from ..config.runtime import NodeChartConfig
from ..dataio.records import QueryResult
from .fetcher import FetchState
from .live_buffer import LiveBuffer, splice
from .models import LiveSnapshot, SeriesKey, SeriesRow, TaskSummary, ViewWindow
from .pipeline import build_load_series, build_ping_series, series_keys

logger = logging.getLogger(__name__)

ChartKind = Literal["load", "ping"]


@dataclass(frozen=True)
class ChartSeries:
    """Everything a renderer needs for one chart."""

    rows: List[SeriesRow] = field(default_factory=list)
    keys: List[SeriesKey] = field(default_factory=list)
    window: Optional[ViewWindow] = None
    realtime: bool = False
    summaries: List[TaskSummary] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None

    @property
    def empty(self) -> bool:
        return not self.rows


class ChartSession:
    """
    State of one chart view: window, peak toggle, history and live buffer.

    ``hours=None`` selects the real-time view, which shows the live buffer
    as-is. Every mutator triggers a full recomputation from current inputs;
    nothing from a previous computation is reused.
    """

    def __init__(
        self,
        kind: ChartKind = "load",
        *,
        config: Optional[NodeChartConfig] = None,
        hours: Optional[float] = None,
        splice_live: bool = False,
    ) -> None:
        if kind not in ("load", "ping"):
            raise ValueError(f"Unknown chart kind {kind!r}")
        self.kind: ChartKind = kind
        self.config = (config or NodeChartConfig()).sanitized()
        self.splice_live = splice_live
        self.live = LiveBuffer(self.config.live_capacity)
        self._hours = hours
        self._cut_peak = False
        self._history = QueryResult()
        self._fetch = FetchState()
        self._series = ChartSeries()
        self.recompute()

    # ------------------------------------------------------------------ state
    @property
    def hours(self) -> Optional[float]:
        return self._hours

    @property
    def realtime(self) -> bool:
        return self._hours is None

    @property
    def cut_peak(self) -> bool:
        return self._cut_peak

    @property
    def series(self) -> ChartSeries:
        return self._series

    # --------------------------------------------------------------- triggers
    def set_window(self, hours: Optional[float]) -> ChartSeries:
        """Switch window; history from the previous window is discarded."""
        if hours is not None:
            ViewWindow.resolve(hours)
        if hours != self._hours:
            self._history = QueryResult()
            self._fetch = FetchState()
        self._hours = hours
        return self.recompute()

    def set_cut_peak(self, enabled: bool) -> ChartSeries:
        self._cut_peak = bool(enabled)
        return self.recompute()

    def apply_fetch_state(self, state: FetchState) -> ChartSeries:
        """Feed a :class:`HistoryFetcher` state change into the session."""
        if state.hours is not None and state.hours != self._hours:
            logger.debug("Ignoring history for %.1f h while showing %r", state.hours, self._hours)
            return self._series
        self._fetch = state
        if state.result is not None:
            self._history = state.result
        return self.recompute()

    def apply_history(self, result: QueryResult) -> ChartSeries:
        self._history = result
        self._fetch = FetchState(hours=self._hours, result=result)
        return self.recompute()

    def push_live(self, snapshot: LiveSnapshot) -> ChartSeries:
        if not self.live.push(snapshot):
            return self._series
        return self.recompute()

    def seed_live(self, snapshots: Sequence[LiveSnapshot]) -> ChartSeries:
        self.live.seed(snapshots)
        return self.recompute()

    # ------------------------------------------------------------ recompute
    def recompute(self) -> ChartSeries:
        """Rebuild :attr:`series` from the current inputs."""
        loading = self._fetch.loading
        error = self._fetch.error
        if self.realtime:
            rows: List[SeriesRow] = list(self.live.rows())
            series = ChartSeries(
                rows=rows, keys=series_keys(rows), realtime=True, loading=False, error=None
            )
        elif self.kind == "ping":
            series = self._ping_series(loading, error)
        else:
            series = self._load_series(loading, error)
        self._series = series
        return series

    def _ping_series(self, loading: bool, error: Optional[str]) -> ChartSeries:
        history = self._history
        hours = float(self._hours)
        rows = build_ping_series(
            history.samples,
            history.tasks,
            hours,
            config=self.config,
            cut_peak=self._cut_peak,
        )
        keys: List[SeriesKey] = [task.key for task in history.tasks] or series_keys(rows)
        return ChartSeries(
            rows=rows,
            keys=keys,
            window=ViewWindow.resolve(hours),
            summaries=latest_values(history.samples, history.tasks),
            loading=loading,
            error=error,
        )

    def _load_series(self, loading: bool, error: Optional[str]) -> ChartSeries:
        hours = float(self._hours)
        rows = build_load_series(
            self._history.rows,
            hours,
            config=self.config,
            cut_peak=self._cut_peak,
        )
        if self.splice_live and len(self.live):
            rows = splice(rows, self.live.rows())
        return ChartSeries(
            rows=rows,
            keys=series_keys(rows),
            window=ViewWindow.resolve(hours),
            loading=loading,
            error=error,
        )
