"""Timestamp parsing shared by the payload decoders."""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any, Optional

# RFC 3339 allows nanosecond fractions; datetime keeps microseconds
_LONG_FRACTION = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value: Any) -> Optional[int]:
    """
    Convert ``value`` into epoch milliseconds.

    Accepts ``datetime`` (naive values are taken as UTC), ISO-8601 strings
    (a trailing ``Z`` is allowed) and numbers, which are read as epoch
    milliseconds. Returns ``None`` for anything unusable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
        return int(round(dt.timestamp() * 1000))
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.isdigit():
            return int(text)
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        text = _LONG_FRACTION.sub(r"\1", text)
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parse_timestamp(dt)
    return None
