"""Configuration objects and helpers for nodechart.

Settings live in an optional YAML file (a flat mapping, or nested under a
``normalizer:`` key). The typed dataclass in :mod:`runtime` is passed to the
pipeline and the chart session so both use the same thresholds.
"""

from .runtime import NodeChartConfig, bundled_config_path, config_from_mapping, load_config

__all__ = ["NodeChartConfig", "bundled_config_path", "config_from_mapping", "load_config"]
