"""Decode live push payloads into :class:`LiveSnapshot` objects."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional

from ..analysis.usage import usage_percent
from ..core.models import LiveSnapshot, SeriesKey, Value
from .records import coerce_number
from .timestamps import parse_timestamp

logger = logging.getLogger(__name__)


def _field(payload: Mapping[str, Any], section: str, name: str) -> Optional[float]:
    block = payload.get(section)
    if not isinstance(block, Mapping):
        return None
    return coerce_number(block.get(name))


def snapshot_from_live(
    entity: str,
    payload: Mapping[str, Any],
    *,
    mem_total: Optional[float] = None,
    disk_total: Optional[float] = None,
) -> Optional[LiveSnapshot]:
    """
    Map one node status payload onto chart keys.

    ``mem_total``/``disk_total`` come from the node's static info and take
    precedence over totals in the payload. Returns ``None`` when the payload
    has no usable ``updated_at`` timestamp.
    """
    if not isinstance(payload, Mapping):
        return None
    ts = parse_timestamp(payload.get("updated_at"))
    if ts is None:
        logger.debug("Live payload for %s without usable updated_at", entity)
        return None

    ram_used = _field(payload, "ram", "used")
    ram_total = mem_total if mem_total is not None else _field(payload, "ram", "total")
    disk_used = _field(payload, "disk", "used")
    disk_cap = disk_total if disk_total is not None else _field(payload, "disk", "total")

    values: Dict[SeriesKey, Value] = {
        "cpu": _field(payload, "cpu", "usage"),
        "ram": ram_used,
        "ram_percent": usage_percent(ram_used, ram_total),
        "swap": _field(payload, "swap", "used"),
        "disk": disk_used,
        "disk_percent": usage_percent(disk_used, disk_cap),
        "load": _field(payload, "load", "load1"),
        "net_in": _field(payload, "network", "down"),
        "net_out": _field(payload, "network", "up"),
        "tcp": _field(payload, "connections", "tcp"),
        "udp": _field(payload, "connections", "udp"),
        "process": coerce_number(payload.get("process")),
    }
    return LiveSnapshot(timestamp_ms=ts, values=values, entity=str(entity))
