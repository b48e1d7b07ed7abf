"""Latest valid reading per measurement task, for summary cards."""

from __future__ import annotations

from typing import Dict, List, Sequence

from ..core.models import MeasurementTask, RawSample, TaskSummary


def latest_values(samples: Sequence[RawSample], tasks: Sequence[MeasurementTask]) -> List[TaskSummary]:
    """
    Most recent valid reading per task, in task order.

    ``samples`` must be ascending by time. Sentinel (negative) and missing
    readings are skipped; a task with no valid reading gets ``value=None``.
    """
    wanted = {task.id for task in tasks}
    found: Dict[int, RawSample] = {}
    for sample in reversed(samples):
        if len(found) == len(wanted):
            break
        if sample.task_id not in wanted or sample.task_id in found:
            continue
        if sample.value is None or sample.value < 0:
            continue
        found[sample.task_id] = sample

    summaries = []
    for task in tasks:
        sample = found.get(task.id)
        summaries.append(
            TaskSummary(
                task=task,
                value=None if sample is None else sample.value,
                timestamp_ms=None if sample is None else sample.timestamp_ms,
            )
        )
    return summaries
