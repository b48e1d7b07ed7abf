"""Decode historical query payloads into samples, tasks and load rows."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..analysis.usage import usage_percent
from ..core.models import GridRow, MeasurementTask, RawSample, SeriesKey, TaskAggregates, Value
from .timestamps import parse_timestamp

logger = logging.getLogger(__name__)

_SKIP_FIELDS = {"client", "time", "uuid", "gpu_detailed"}


@dataclass(frozen=True)
class QueryResult:
    """One decoded historical response."""

    samples: List[RawSample] = field(default_factory=list)
    tasks: List[MeasurementTask] = field(default_factory=list)
    rows: List[GridRow] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.samples or self.rows)


def coerce_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or ``None``."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_task(raw: Mapping[str, Any]) -> Optional[MeasurementTask]:
    """Build a :class:`MeasurementTask` from a task descriptor, or ``None``."""
    task_id = raw.get("id")
    if isinstance(task_id, bool):
        return None
    try:
        task_id = int(task_id)
    except (TypeError, ValueError):
        logger.debug("Task without usable id: %r", raw)
        return None

    total = coerce_number(raw.get("total"))
    aggregates = TaskAggregates(
        min=coerce_number(raw.get("min")),
        max=coerce_number(raw.get("max")),
        avg=coerce_number(raw.get("avg")),
        p50=coerce_number(raw.get("p50")),
        p99=coerce_number(raw.get("p99")),
        loss_rate=coerce_number(raw.get("loss")),
        latest=coerce_number(raw.get("latest")),
        total=None if total is None else int(total),
        volatility=coerce_number(raw.get("p99_p50_ratio")),
    )
    interval = coerce_number(raw.get("interval"))
    kind = raw.get("type")
    return MeasurementTask(
        id=task_id,
        name=str(raw.get("name") or task_id),
        sampling_interval_seconds=interval if interval is not None else 0.0,
        aggregates=aggregates,
        kind=str(kind) if kind else None,
    )


def parse_sample(raw: Mapping[str, Any]) -> Optional[RawSample]:
    """Decode one ping record. The sentinel value is kept as-is."""
    ts = parse_timestamp(raw.get("time"))
    if ts is None:
        return None
    try:
        task_id = int(raw["task_id"])
    except (KeyError, TypeError, ValueError):
        return None
    value = coerce_number(raw.get("value"))
    if value is None:
        return None
    return RawSample(task_id=task_id, timestamp_ms=ts, value=value)


def parse_load_row(raw: Mapping[str, Any]) -> Optional[GridRow]:
    """Decode one flat load record into a row of its numeric fields."""
    ts = parse_timestamp(raw.get("time"))
    if ts is None:
        return None
    values: Dict[SeriesKey, Value] = {}
    for key, value in raw.items():
        if key in _SKIP_FIELDS:
            continue
        number = coerce_number(value)
        if number is not None:
            values[str(key)] = number
    return GridRow(timestamp_ms=ts, values=values)


def merge_gpu_devices(rows: Sequence[GridRow], gpu_devices: Mapping[str, Any]) -> List[GridRow]:
    """
    Attach per-device GPU readings to load rows with the same timestamp.

    Each device ``idx`` contributes ``gpu<idx>_usage``, ``gpu<idx>_memory``
    (percent of device memory) and ``gpu<idx>_temperature``.
    """
    if not gpu_devices:
        return list(rows)

    by_time: Dict[int, Dict[SeriesKey, Value]] = {}
    for device_key, device in gpu_devices.items():
        if not isinstance(device, Mapping):
            continue
        for record in device.get("records") or ():
            if not isinstance(record, Mapping):
                continue
            ts = parse_timestamp(record.get("time"))
            if ts is None:
                continue
            idx = record.get("device_index", device_key)
            prefix = f"gpu{idx}"
            extra = by_time.setdefault(ts, {})
            extra[f"{prefix}_usage"] = coerce_number(record.get("utilization"))
            extra[f"{prefix}_memory"] = usage_percent(
                coerce_number(record.get("mem_used")),
                coerce_number(record.get("mem_total")),
            )
            extra[f"{prefix}_temperature"] = coerce_number(record.get("temperature"))

    merged = []
    for row in rows:
        extra = by_time.get(row.timestamp_ms)
        merged.append(row.with_values(extra) if extra else row)
    return merged


def parse_query_result(payload: Mapping[str, Any] | None) -> QueryResult:
    """
    Decode a historical response.

    Accepts ``{"records": [...], "tasks": [...]}`` at the top level or under
    ``data``. Records carrying a ``task_id`` are ping samples; all others are
    flat load rows. Malformed records are dropped.
    """
    if not isinstance(payload, Mapping):
        return QueryResult()
    body = payload.get("data") if isinstance(payload.get("data"), Mapping) else payload

    tasks: List[MeasurementTask] = []
    for raw in body.get("tasks") or ():
        task = parse_task(raw) if isinstance(raw, Mapping) else None
        if task is not None:
            tasks.append(task)

    samples: List[RawSample] = []
    rows: List[GridRow] = []
    dropped = 0
    for raw in body.get("records") or ():
        if not isinstance(raw, Mapping):
            dropped += 1
            continue
        if "task_id" in raw:
            sample = parse_sample(raw)
            if sample is None:
                dropped += 1
            else:
                samples.append(sample)
        else:
            row = parse_load_row(raw)
            if row is None:
                dropped += 1
            else:
                rows.append(row)

    if dropped:
        logger.debug("Dropped %d malformed records", dropped)

    samples.sort(key=lambda s: s.timestamp_ms)
    rows.sort(key=lambda r: r.timestamp_ms)
    gpu_devices = body.get("gpu_devices")
    if isinstance(gpu_devices, Mapping):
        rows = merge_gpu_devices(rows, gpu_devices)
    return QueryResult(samples=samples, tasks=tasks, rows=rows)
