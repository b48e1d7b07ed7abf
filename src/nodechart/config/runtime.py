"""Runtime configuration helpers for the normalization pipeline."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class NodeChartConfig:
    """
    Tuning knobs for grouping, resampling, peak damping and gap filling.

    The defaults match the dashboard: probes every ~60 s, a 1 minute grid for
    short windows and a 150 point live buffer (30 points x 5).
    """

    # Anchor grouping
    default_task_interval_s: float = 60.0
    tolerance_fraction: float = 0.25
    min_tolerance_ms: int = 800
    max_tolerance_ms: int = 6000

    # Grid resampling
    trim_leading: bool = True

    # Peak suppression
    spike_ratio: float = 1.5
    peak_damping: float = 0.1
    peak_min_rise: float = 1.0

    # Gap-bounded interpolation
    max_gap_multiplier: float = 6.0
    min_cap_ms: int = 2 * 60_000
    max_cap_ms: int = 30 * 60_000

    # Live buffer
    live_capacity: int = 30 * 5

    def sanitized(self) -> NodeChartConfig:
        """Return a copy with derived limits applied."""
        min_tol = max(0, int(self.min_tolerance_ms))
        min_cap = max(0, int(self.min_cap_ms))
        return NodeChartConfig(
            default_task_interval_s=max(0.001, float(self.default_task_interval_s)),
            tolerance_fraction=max(0.0, float(self.tolerance_fraction)),
            min_tolerance_ms=min_tol,
            max_tolerance_ms=max(min_tol, int(self.max_tolerance_ms)),
            trim_leading=bool(self.trim_leading),
            spike_ratio=max(1.0, float(self.spike_ratio)),
            peak_damping=max(0.0, min(1.0, float(self.peak_damping))),
            peak_min_rise=max(1e-9, float(self.peak_min_rise)),
            max_gap_multiplier=max(0.0, float(self.max_gap_multiplier)),
            min_cap_ms=min_cap,
            max_cap_ms=max(min_cap, int(self.max_cap_ms)),
            live_capacity=max(1, int(self.live_capacity)),
        )


CONFIG_ENV_VAR = "NODECHART_CONFIG"
SECTION = "normalizer"


def _field_names() -> frozenset[str]:
    return frozenset(f.name for f in fields(NodeChartConfig))


def _settings_section(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return the flat settings mapping held by ``data``.

    Settings may sit at the top level or under a ``normalizer`` section;
    top-level keys win over the section when both are present.
    """
    section = data.get(SECTION)
    if section is None:
        return dict(data)
    if not isinstance(section, Mapping):
        raise ValueError(f"'{SECTION}' must be a mapping, got {type(section).__name__}")
    flat = dict(section)
    flat.update((key, value) for key, value in data.items() if key != SECTION)
    return flat


def config_from_mapping(data: Mapping[str, Any] | None) -> NodeChartConfig:
    """Build a sanitized :class:`NodeChartConfig` from ``data``; unknown keys are ignored."""
    if not data:
        return NodeChartConfig()
    settings = _settings_section(data)
    unknown = sorted(str(key) for key in settings.keys() - _field_names())
    if unknown:
        logger.debug("Ignoring unknown config keys: %s", ", ".join(unknown))
    known = {key: value for key, value in settings.items() if key in _field_names()}
    return NodeChartConfig(**known).sanitized()


def bundled_config_path() -> Path:
    """Location of the packaged ``nodechart.yaml`` with the default settings."""
    return Path(str(resources.files(__package__).joinpath("nodechart.yaml")))


def load_config(path: str | Path | None = None) -> NodeChartConfig:
    """
    Read settings from a YAML file.

    ``path`` defaults to ``$NODECHART_CONFIG``. Without either, or when the
    file does not exist, the dataclass defaults are used.
    """
    if path is None:
        path = os.getenv(CONFIG_ENV_VAR) or None
    if path is None:
        return NodeChartConfig()
    source = Path(path).expanduser()
    if not source.is_file():
        logger.debug("Config file %s not found; using defaults", source)
        return NodeChartConfig()
    text = source.read_text(encoding="utf-8")
    document = yaml.safe_load(text)
    if document is None:
        return NodeChartConfig()
    if not isinstance(document, Mapping):
        raise ValueError(f"{source}: top level must be a mapping, not {type(document).__name__}")
    return config_from_mapping(document)


__all__ = ["NodeChartConfig", "bundled_config_path", "config_from_mapping", "load_config"]
