"""Shared dataclasses for measurement tasks, samples and chart rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Hashable, Iterator, Mapping, Optional, Tuple

SeriesKey = Hashable
Value = Optional[float]

MS_PER_SECOND = 1_000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE


def ms_to_iso(timestamp_ms: int) -> str:
    """Format epoch milliseconds as an ISO-8601 UTC string."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class TaskAggregates:
    """Server-side statistics reported alongside a measurement task."""

    min: Optional[float] = None
    max: Optional[float] = None
    avg: Optional[float] = None
    p50: Optional[float] = None
    p99: Optional[float] = None
    loss_rate: Optional[float] = None
    latest: Optional[float] = None
    total: Optional[int] = None
    volatility: Optional[float] = None  # p99 / p50


@dataclass(frozen=True)
class MeasurementTask:
    id: int
    name: str
    sampling_interval_seconds: float
    aggregates: TaskAggregates = field(default_factory=TaskAggregates)
    kind: Optional[str] = None

    @property
    def key(self) -> SeriesKey:
        """Row key under which this task's values are stored."""
        return self.id


@dataclass(frozen=True)
class RawSample:
    task_id: int
    timestamp_ms: int
    value: Value


@dataclass(frozen=True)
class SeriesRow:
    """
    One timestamped row of per-key values.

    ``None`` marks a missing value. A key that is absent from ``values`` is
    treated exactly like a key mapped to ``None``.
    """

    timestamp_ms: int
    values: Mapping[SeriesKey, Value] = field(default_factory=dict)

    def get(self, key: SeriesKey) -> Value:
        return self.values.get(key)

    def keys(self) -> Iterator[SeriesKey]:
        return iter(self.values)

    def with_values(self, updates: Mapping[SeriesKey, Value]):
        """Return a copy of this row with ``updates`` applied."""
        merged: Dict[SeriesKey, Value] = dict(self.values)
        merged.update(updates)
        return type(self)(timestamp_ms=self.timestamp_ms, values=merged)

    @property
    def time(self) -> str:
        return ms_to_iso(self.timestamp_ms)

    def as_dict(self) -> Dict[str, object]:
        """Flatten into the mapping handed to chart renderers."""
        out: Dict[str, object] = {"time": self.time}
        for key, value in self.values.items():
            out[str(key)] = value
        return out


@dataclass(frozen=True)
class AlignedRow(SeriesRow):
    """Samples from several tasks grouped under one anchor timestamp."""


@dataclass(frozen=True)
class GridRow(SeriesRow):
    """A row sitting on a fixed-cadence grid slot."""


@dataclass(frozen=True)
class LiveSnapshot(SeriesRow):
    """A push-delivered measurement for one entity (not grid aligned)."""

    entity: str = ""

    def with_values(self, updates: Mapping[SeriesKey, Value]) -> "LiveSnapshot":
        merged: Dict[SeriesKey, Value] = dict(self.values)
        merged.update(updates)
        return LiveSnapshot(timestamp_ms=self.timestamp_ms, values=merged, entity=self.entity)

    def to_row(self) -> GridRow:
        return GridRow(timestamp_ms=self.timestamp_ms, values=dict(self.values))


# (max requested hours, interval ms, max gap ms); last entry catches the rest.
WINDOW_POLICY: Tuple[Tuple[float, int, int], ...] = (
    (4.0, MS_PER_MINUTE, 2 * MS_PER_MINUTE),
    (120.0, 15 * MS_PER_MINUTE, 30 * MS_PER_MINUTE),
    (float("inf"), MS_PER_HOUR, 2 * MS_PER_HOUR),
)


@dataclass(frozen=True)
class ViewWindow:
    requested_hours: float
    interval_ms: int
    max_gap_ms: int

    @classmethod
    def resolve(cls, requested_hours: float) -> "ViewWindow":
        """Pick the grid interval and gap limit for a requested duration."""
        hours = float(requested_hours)
        if not hours > 0:
            raise ValueError(f"requested_hours must be > 0, got {requested_hours!r}")
        for limit, interval_ms, max_gap_ms in WINDOW_POLICY:
            if hours <= limit:
                return cls(requested_hours=hours, interval_ms=interval_ms, max_gap_ms=max_gap_ms)
        raise AssertionError("unreachable: WINDOW_POLICY ends with an open bound")

    @property
    def duration_ms(self) -> int:
        return int(round(self.requested_hours * MS_PER_HOUR))

    @property
    def slot_count(self) -> int:
        """Number of grid slots for a full window, inclusive of both ends."""
        return self.duration_ms // self.interval_ms + 1


@dataclass(frozen=True)
class TaskSummary:
    """Most recent valid reading of one task, for summary cards."""

    task: MeasurementTask
    value: Value
    timestamp_ms: Optional[int]
