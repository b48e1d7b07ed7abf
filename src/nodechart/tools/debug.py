"""Opt-in timing of pipeline stages, switched on by ``NODECHART_DEBUG``."""

from __future__ import annotations

import functools
import logging
import os
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

logger = logging.getLogger(__name__)

DEBUG_ENV_VAR = "NODECHART_DEBUG"
_TRUTHY = {"1", "true", "yes", "on"}

F = TypeVar("F", bound=Callable[..., Any])


def debug_enabled() -> bool:
    """Whether stage timings should be logged (read on every call)."""
    return os.getenv(DEBUG_ENV_VAR, "").strip().lower() in _TRUTHY


@contextmanager
def time_block(
    label: str,
    *,
    emitter: Callable[[str], None] | None = None,
    threshold_ms: float = 0.0,
) -> Iterator[None]:
    """
    Log how long the block took when debugging is enabled.

    Blocks faster than ``threshold_ms`` are not reported. ``emitter``
    replaces ``logger.debug`` as the sink.
    """
    if not debug_enabled():
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if elapsed_ms >= threshold_ms:
            (emitter or logger.debug)(f"[timing] {label} took {elapsed_ms:.3f} ms")


def timed(label: str | None = None) -> Callable[[F], F]:
    """Decorator form of :func:`time_block`; defaults to the function name."""

    def decorate(func: F) -> F:
        name = label or func.__qualname__

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with time_block(name):
                return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorate
