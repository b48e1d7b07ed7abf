"""Which view windows a chart can offer, given the server's retention."""

from __future__ import annotations

from typing import List, Sequence

LOAD_PRESETS = (4.0, 24.0, 168.0, 720.0)
PING_PRESETS = (1.0, 6.0, 12.0, 24.0)


def available_views(
    max_preserve_hours: float | None,
    presets: Sequence[float],
    *,
    min_dynamic_hours: float | None = None,
) -> List[float]:
    """
    Return the selectable window lengths in hours.

    Presets longer than the retention are dropped. The retention itself is
    appended when it exceeds the largest preset, or when it is longer than
    ``min_dynamic_hours`` (default: the smallest preset) and is not already
    a preset. Without retention there is nothing historical to show.
    """
    if not isinstance(max_preserve_hours, (int, float)) or isinstance(max_preserve_hours, bool):
        return []
    retention = float(max_preserve_hours)
    if retention <= 0 or not presets:
        return []

    ordered = sorted(float(p) for p in presets)
    views = [p for p in ordered if retention >= p]
    threshold = ordered[0] if min_dynamic_hours is None else float(min_dynamic_hours)
    if retention > ordered[-1]:
        views.append(retention)
    elif retention > threshold and retention not in ordered:
        views.append(retention)
    return views
