"""Background history fetches where the most recent request wins.

The fetch itself is an injected callable (transport and authentication live
outside this package). Each request runs on its own daemon thread; starting
a new request signals the previous one to stop and guarantees its result is
never applied, even if it arrives later.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from ..dataio.records import QueryResult, parse_query_result

logger = logging.getLogger(__name__)

FetchFn = Callable[[float, threading.Event], Mapping[str, Any]]


@dataclass(frozen=True)
class FetchState:
    """What the view should show for the history request."""

    generation: int = 0
    hours: Optional[float] = None
    loading: bool = False
    error: Optional[str] = None
    result: Optional[QueryResult] = None


@dataclass
class FetchHandle:
    generation: int
    thread: threading.Thread
    stop_event: threading.Event

    def cancel(self) -> None:
        self.stop_event.set()

    def join(self, timeout: Optional[float] = None) -> None:
        self.thread.join(timeout)

    def is_alive(self) -> bool:
        return self.thread.is_alive()


class HistoryFetcher:
    """
    Run history fetches off the caller's thread, applying the latest only.

    ``fetch(hours, stop_event)`` returns the raw response mapping; it may
    poll ``stop_event`` to abandon work early. ``on_change`` is invoked with
    the new :class:`FetchState` whenever a current request starts, resolves
    or fails.
    """

    def __init__(
        self,
        fetch: FetchFn,
        *,
        on_change: Optional[Callable[[FetchState], None]] = None,
        thread_name: str = "NodeChartHistoryFetch",
    ) -> None:
        self._fetch = fetch
        self._on_change = on_change
        self._thread_name = thread_name
        self._lock = threading.Lock()
        self._generation = 0
        self._active: Optional[FetchHandle] = None
        self._state = FetchState()

    @property
    def state(self) -> FetchState:
        with self._lock:
            return self._state

    def request(self, hours: float) -> FetchHandle:
        """Start fetching ``hours`` of history, superseding any earlier request."""
        stop_event = threading.Event()
        with self._lock:
            if self._active is not None:
                self._active.cancel()
            self._generation += 1
            generation = self._generation
            thread = threading.Thread(
                target=self._run,
                args=(generation, float(hours), stop_event),
                name=f"{self._thread_name}-{generation}",
                daemon=True,
            )
            handle = FetchHandle(generation=generation, thread=thread, stop_event=stop_event)
            self._active = handle
            state = FetchState(generation=generation, hours=float(hours), loading=True)
            self._state = state
        self._notify(state)
        thread.start()
        return handle

    def cancel(self) -> None:
        """Abandon the current request (e.g. the view was closed)."""
        with self._lock:
            if self._active is not None:
                self._active.cancel()
                self._active = None
            self._generation += 1
            state = FetchState(generation=self._generation)
            self._state = state
        self._notify(state)

    def _run(self, generation: int, hours: float, stop_event: threading.Event) -> None:
        try:
            payload = self._fetch(hours, stop_event)
            state = FetchState(
                generation=generation,
                hours=hours,
                result=parse_query_result(payload),
            )
        except Exception as exc:
            logger.warning("History fetch for %.1f h failed: %s", hours, exc)
            state = FetchState(
                generation=generation,
                hours=hours,
                error=str(exc) or type(exc).__name__,
            )
        self._apply(generation, stop_event, state)

    def _apply(self, generation: int, stop_event: threading.Event, state: FetchState) -> None:
        with self._lock:
            if stop_event.is_set() or generation != self._generation:
                logger.debug("Discarding stale history result (generation %d)", generation)
                return
            self._state = state
            self._active = None
        self._notify(state)

    def _notify(self, state: FetchState) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(state)
        except Exception:
            logger.exception("History fetch listener failed")
