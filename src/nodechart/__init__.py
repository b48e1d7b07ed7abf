"""Time-series normalization for node monitoring charts."""

__version__ = "0.1.0"
