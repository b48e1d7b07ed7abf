"""Bounded buffer of live snapshots and splicing with historical rows."""

from __future__ import annotations

import bisect
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .models import GridRow, LiveSnapshot, SeriesRow

DEFAULT_LIVE_CAPACITY = 30 * 5


class LiveBuffer:
    """
    Fixed-capacity buffer of :class:`LiveSnapshot` for one entity, ascending
    by timestamp; the oldest snapshot is evicted first.

    The stored tuple is replaced wholesale on every change, so a reader
    holding ``snapshots`` never sees a half-applied update.
    """

    __slots__ = ("_capacity", "_entries")

    def __init__(self, capacity: int = DEFAULT_LIVE_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = int(capacity)
        self._entries: Tuple[LiveSnapshot, ...] = ()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def snapshots(self) -> Tuple[LiveSnapshot, ...]:
        return self._entries

    def push(self, snapshot: LiveSnapshot) -> bool:
        """
        Insert ``snapshot`` in timestamp order, keeping the newest ``capacity``.

        Returns ``True`` when the buffer changed. The transport may redeliver
        or reorder snapshots; a duplicate timestamp is ignored, and so is a
        snapshot older than everything in a full buffer.
        """
        entries = self._entries
        stamps = [item.timestamp_ms for item in entries]
        idx = bisect.bisect_left(stamps, snapshot.timestamp_ms)
        if idx < len(stamps) and stamps[idx] == snapshot.timestamp_ms:
            return False
        if idx == 0 and len(entries) >= self._capacity:
            return False
        self._entries = (*entries[:idx], snapshot, *entries[idx:])[-self._capacity :]
        return True

    def seed(self, snapshots: Iterable[LiveSnapshot]) -> None:
        """Replace the contents with the newest ``capacity`` of ``snapshots``."""
        seen = set()
        unique: List[LiveSnapshot] = []
        for snapshot in snapshots:
            if snapshot.timestamp_ms in seen:
                continue
            seen.add(snapshot.timestamp_ms)
            unique.append(snapshot)
        unique.sort(key=lambda item: item.timestamp_ms)
        self._entries = tuple(unique[-self._capacity :])

    def clear(self) -> None:
        self._entries = ()

    def latest(self) -> Optional[LiveSnapshot]:
        """Return the newest snapshot, or ``None`` if the buffer is empty."""
        entries = self._entries
        return entries[-1] if entries else None

    def rows(self) -> List[GridRow]:
        """Snapshots as chart rows, ascending by time and not regridded."""
        return [snapshot.to_row() for snapshot in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LiveSnapshot]:
        return iter(self._entries)


class LiveBufferStore:
    """Mapping of entity -> :class:`LiveBuffer`, created on first use."""

    def __init__(self, capacity: int = DEFAULT_LIVE_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._buffers: Dict[str, LiveBuffer] = {}

    def get_or_create(self, entity: str) -> LiveBuffer:
        buf = self._buffers.get(entity)
        if buf is None:
            buf = LiveBuffer(self._capacity)
            self._buffers[entity] = buf
        return buf

    def get(self, entity: str) -> Optional[LiveBuffer]:
        return self._buffers.get(entity)

    def push(self, snapshot: LiveSnapshot) -> bool:
        return self.get_or_create(snapshot.entity).push(snapshot)

    def entities(self) -> List[str]:
        return list(self._buffers)

    def clear(self) -> None:
        self._buffers.clear()


def splice(history: Sequence[SeriesRow], live: Sequence[SeriesRow]) -> List[SeriesRow]:
    """
    Concatenate historical rows with live rows.

    History rows at or after the first live row are dropped so the result
    stays strictly ascending. Callers decide when to show a spliced view.
    """
    if not live:
        return list(history)
    tail = sorted(live, key=lambda row: row.timestamp_ms)
    cutoff = tail[0].timestamp_ms
    head = [row for row in history if row.timestamp_ms < cutoff]
    return head + tail
