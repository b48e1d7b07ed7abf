"""Core data model, live buffer and the normalization pipeline.

:mod:`models` holds the immutable rows every transform passes around,
:mod:`live_buffer` the bounded buffer of pushed snapshots, :mod:`pipeline`
chains the transforms from :mod:`nodechart.analysis`, and :mod:`session`
recomputes a chart whenever history, live data or the view changes.
"""

# Data structures shared by the pipeline
from .live_buffer import LiveBuffer, LiveBufferStore, splice
from .models import (
    AlignedRow,
    GridRow,
    LiveSnapshot,
    MeasurementTask,
    RawSample,
    TaskAggregates,
    TaskSummary,
    ViewWindow,
)

__all__ = [
    "AlignedRow",
    "GridRow",
    "LiveBuffer",
    "LiveBufferStore",
    "LiveSnapshot",
    "MeasurementTask",
    "RawSample",
    "TaskAggregates",
    "TaskSummary",
    "ViewWindow",
    "splice",
]
