"""Map "no reading" encodings to the explicit missing marker."""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Iterable, List, Optional

from ..core.models import RawSample, Value


def normalize_value(value: Optional[float]) -> Value:
    """
    Return ``None`` for sentinel readings, the value itself otherwise.

    Probes report a failed measurement as a negative number. NaN is also
    treated as missing so it never leaks into interpolation.
    """
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if value < 0:
        return None
    return value


def normalize(sample: RawSample) -> RawSample:
    value = normalize_value(sample.value)
    if value is sample.value:
        return sample
    return replace(sample, value=value)


def normalize_samples(samples: Iterable[RawSample]) -> List[RawSample]:
    return [normalize(sample) for sample in samples]
