"""Capacity and traffic ratios with zero-denominator guards."""

from __future__ import annotations

from typing import Literal, Optional

TrafficMode = Literal["max", "min", "sum", "up", "down"]


def ratio(numerator: Optional[float], denominator: Optional[float]) -> float:
    """Return ``numerator / denominator``, or 0 when either side is unusable."""
    if numerator is None or not denominator:
        return 0.0
    return float(numerator) / float(denominator)


def usage_percent(used: Optional[float], total: Optional[float]) -> float:
    """Percentage of ``total`` consumed by ``used``; 0 for an empty capacity."""
    return ratio(used, total) * 100.0


def traffic_percentage(
    total_up: float,
    total_down: float,
    limit: float,
    mode: TrafficMode | str = "sum",
) -> float:
    """
    Traffic consumed against a quota, as a percentage.

    ``mode`` chooses which counter is billed: the larger or smaller of the two
    directions, their sum, or one direction only. Unknown modes yield 0.
    """
    if not limit:
        return 0.0
    if mode == "max":
        used = max(total_up, total_down)
    elif mode == "min":
        used = min(total_up, total_down)
    elif mode == "sum":
        used = total_up + total_down
    elif mode == "up":
        used = total_up
    elif mode == "down":
        used = total_down
    else:
        return 0.0
    return usage_percent(used, limit)
