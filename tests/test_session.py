import pytest

from nodechart.core.fetcher import FetchState
from nodechart.core.models import MS_PER_MINUTE, GridRow, LiveSnapshot, MeasurementTask, RawSample
from nodechart.core.session import ChartSession
from nodechart.dataio.records import QueryResult

T0 = 1_699_999_200_000


def _ping_history():
    tasks = [MeasurementTask(id=1, name="cn", sampling_interval_seconds=60)]
    samples = [
        RawSample(task_id=1, timestamp_ms=T0 + m * MS_PER_MINUTE, value=float(m)) for m in range(10)
    ]
    samples.append(RawSample(task_id=1, timestamp_ms=T0 + 10 * MS_PER_MINUTE, value=-1.0))
    return QueryResult(samples=samples, tasks=tasks)


def _load_history():
    rows = [
        GridRow(timestamp_ms=T0 + m * MS_PER_MINUTE, values={"cpu": float(m)}) for m in range(10)
    ]
    return QueryResult(rows=rows)


def _snap(ts, cpu):
    return LiveSnapshot(timestamp_ms=ts, values={"cpu": cpu}, entity="node-1")


def test_realtime_view_shows_live_buffer() -> None:
    session = ChartSession("load")
    assert session.realtime
    assert session.series.empty
    series = session.push_live(_snap(1_000, 1.0))
    assert series.realtime
    assert [row.get("cpu") for row in series.rows] == [1.0]
    assert series.keys == ["cpu"]


def test_duplicate_live_push_keeps_series() -> None:
    session = ChartSession("load")
    first = session.push_live(_snap(1_000, 1.0))
    assert session.push_live(_snap(1_000, 2.0)) is first


def test_live_capacity_follows_config() -> None:
    from nodechart.config.runtime import NodeChartConfig

    session = ChartSession("load", config=NodeChartConfig(live_capacity=2))
    for ts in (1, 2, 3):
        session.push_live(_snap(ts, float(ts)))
    assert [row.timestamp_ms for row in session.series.rows] == [2, 3]


def test_ping_history_with_summaries() -> None:
    session = ChartSession("ping", hours=1)
    series = session.apply_history(_ping_history())
    assert not series.realtime
    assert series.window.interval_ms == MS_PER_MINUTE
    assert series.keys == [1]
    assert series.rows[-1].timestamp_ms == T0 + 10 * MS_PER_MINUTE
    assert series.rows[-1].get(1) is None
    (summary,) = series.summaries
    assert summary.value == 9.0
    assert summary.timestamp_ms == T0 + 9 * MS_PER_MINUTE


def test_switching_window_discards_history() -> None:
    session = ChartSession("load", hours=1)
    session.apply_history(_load_history())
    assert not session.series.empty
    series = session.set_window(6)
    assert series.empty
    assert series.window.interval_ms == 15 * MS_PER_MINUTE


def test_invalid_window_is_rejected() -> None:
    session = ChartSession("load")
    with pytest.raises(ValueError):
        session.set_window(0)
    assert session.realtime


def test_unknown_kind_is_rejected() -> None:
    with pytest.raises(ValueError):
        ChartSession("disk")


def test_fetch_state_for_another_window_is_ignored() -> None:
    session = ChartSession("load", hours=1)
    before = session.series
    after = session.apply_fetch_state(FetchState(generation=1, hours=6.0, result=_load_history()))
    assert after is before


def test_fetch_state_loading_and_error() -> None:
    session = ChartSession("load", hours=1)
    loading = session.apply_fetch_state(FetchState(generation=1, hours=1.0, loading=True))
    assert loading.loading
    failed = session.apply_fetch_state(FetchState(generation=1, hours=1.0, error="timeout"))
    assert failed.error == "timeout"
    assert not failed.loading
    done = session.apply_fetch_state(FetchState(generation=2, hours=1.0, result=_load_history()))
    assert done.error is None
    assert not done.empty


def test_cut_peak_toggle_recomputes() -> None:
    rows = [GridRow(timestamp_ms=T0 + m * MS_PER_MINUTE, values={"cpu": 10.0}) for m in range(10)]
    rows[5] = GridRow(timestamp_ms=T0 + 5 * MS_PER_MINUTE, values={"cpu": 100.0})
    session = ChartSession("load", hours=1)
    session.apply_history(QueryResult(rows=rows))
    slot = T0 + 5 * MS_PER_MINUTE

    def value_at(series):
        return next(row.get("cpu") for row in series.rows if row.timestamp_ms == slot)

    assert value_at(session.series) == 100.0
    assert value_at(session.set_cut_peak(True)) == pytest.approx(23.5)
    assert value_at(session.set_cut_peak(False)) == 100.0


def test_spliced_load_view() -> None:
    session = ChartSession("load", hours=1, splice_live=True)
    session.apply_history(_load_history())
    series = session.push_live(_snap(T0 + 8 * MS_PER_MINUTE + 30_000, 99.0))
    stamps = [row.timestamp_ms for row in series.rows]
    assert stamps[-1] == T0 + 8 * MS_PER_MINUTE + 30_000
    assert stamps[-2] == T0 + 8 * MS_PER_MINUTE
    assert series.rows[-1].get("cpu") == 99.0
